"""Prometheus metrics definitions for Minnow.

All Minnow metrics use the ``minnow_`` prefix. They count what the client
did: S3 requests by operation and outcome, payload bytes in each direction,
and multipart parts uploaded versus reused from an earlier session.

Nothing is registered until :func:`init_metrics` is called, so importing
the client never touches the global registry. The ``record_*`` helpers are
no-ops until then.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# S3 request counter  (labels: operation, status)
# ---------------------------------------------------------------------------
s3_requests_total: Counter | None = None

# ---------------------------------------------------------------------------
# Byte counters
# ---------------------------------------------------------------------------
bytes_uploaded_total: Counter | None = None
bytes_downloaded_total: Counter | None = None

# ---------------------------------------------------------------------------
# Multipart parts  (labels: outcome = uploaded | reused)
# ---------------------------------------------------------------------------
multipart_parts_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call more than once; only the first call registers collectors.
    """
    global _initialized
    global s3_requests_total, bytes_uploaded_total, bytes_downloaded_total, multipart_parts_total

    if _initialized:
        return

    s3_requests_total = Counter(
        "minnow_s3_requests_total",
        "Total S3 requests by operation and outcome",
        ["operation", "status"],
    )

    bytes_uploaded_total = Counter(
        "minnow_bytes_uploaded_total",
        "Total object payload bytes sent by PutObject and UploadPart",
    )

    bytes_downloaded_total = Counter(
        "minnow_bytes_downloaded_total",
        "Total payload bytes received in response bodies",
    )

    multipart_parts_total = Counter(
        "minnow_multipart_parts_total",
        "Multipart parts by outcome",
        ["outcome"],
    )

    _initialized = True


def record_request(operation: str, status: int | str) -> None:
    if s3_requests_total is not None:
        s3_requests_total.labels(operation=operation, status=str(status)).inc()


def record_upload(nbytes: int) -> None:
    if bytes_uploaded_total is not None and nbytes > 0:
        bytes_uploaded_total.inc(nbytes)


def record_download(nbytes: int) -> None:
    if bytes_downloaded_total is not None and nbytes > 0:
        bytes_downloaded_total.inc(nbytes)


def record_part(outcome: str) -> None:
    if multipart_parts_total is not None:
        multipart_parts_total.labels(outcome=outcome).inc()
