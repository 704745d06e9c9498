"""Canonical request construction for AWS Signature Version 4.

Turns a logical HTTP request into the canonical string that both the client
and the server hash when computing a signature. Everything here is a pure
function of its inputs.

References:
    - https://docs.aws.amazon.com/AmazonS3/latest/API/sig-v4-header-based-auth.html
"""

from __future__ import annotations

import re
import urllib.parse
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from minnow.errors import ConstructionError

# Pairs of (name, value). Query strings and headers both allow repeats.
Pairs = tuple[tuple[str, str], ...]

# Headers that are never signed. User-Agent is rewritten by proxies and
# Accept-Encoding is ignored by some servers when they recompute signatures.
IGNORED_HEADERS = frozenset({"accept-encoding", "authorization", "user-agent", "expect"})

# Presigned URLs are executed by other agents, so only stable headers are signed.
PRESIGN_IGNORED_HEADERS = IGNORED_HEADERS | frozenset(
    {"content-md5", "x-amz-content-sha256", "x-amz-date", "x-amz-security-token"}
)

_SPACES_RE = re.compile(r" +")


@dataclass(frozen=True)
class RequestDescriptor:
    """A request as seen by the signer.

    Attributes:
        method: HTTP method (upper case).
        host: Host header value, including a non-default port.
        path: The un-encoded request path, starting with ``/``.
        query: Query parameters as ordered (name, value) pairs.
        headers: Request headers as ordered (name, value) pairs.
        scheme: ``https`` or ``http``.
    """

    method: str
    host: str
    path: str = "/"
    query: Pairs = ()
    headers: Pairs = ()
    scheme: str = "https"

    @classmethod
    def build(
        cls,
        method: str,
        host: str,
        path: str = "/",
        query: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        scheme: str = "https",
    ) -> RequestDescriptor:
        """Build a descriptor from mappings or pair sequences."""
        return cls(
            method=method.upper(),
            host=host,
            path=path or "/",
            query=as_pairs(query, "query"),
            headers=as_pairs(headers, "header"),
            scheme=scheme,
        )

    def with_query(self, extra: Iterable[tuple[str, str]]) -> RequestDescriptor:
        """Return a copy with ``extra`` appended to the query parameters."""
        return RequestDescriptor(
            method=self.method,
            host=self.host,
            path=self.path,
            query=self.query + tuple(extra),
            headers=self.headers,
            scheme=self.scheme,
        )


@dataclass(frozen=True)
class CanonicalRequest:
    """The six components of a SigV4 canonical request."""

    method: str
    uri: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    @property
    def text(self) -> str:
        """The newline-joined canonical request string."""
        return "\n".join(
            [
                self.method,
                self.uri,
                self.query,
                self.headers,
                self.signed_headers,
                self.payload_hash,
            ]
        )


def _check_text(kind: str, name: str, value: str | bytes) -> str:
    """Validate one header/query component and return it as ``str``."""
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            raise ConstructionError(f"{kind} {name}", value, "is not valid UTF-8")
    if not isinstance(value, str):
        raise ConstructionError(f"{kind} {name}", value, "must be a string")
    if "\x00" in value:
        raise ConstructionError(f"{kind} {name}", value, "contains a null byte")
    if kind == "header" and ("\r" in value or "\n" in value):
        raise ConstructionError(f"{kind} {name}", value, "contains a line break")
    return value


def as_pairs(
    items: Mapping[str, str] | Iterable[tuple[str, str]] | None, kind: str = "header"
) -> Pairs:
    """Normalize a mapping or pair sequence into validated (name, value) pairs.

    Args:
        items: The input collection, or None.
        kind: ``header`` or ``query``; used in error messages and to decide
            whether line breaks are allowed.

    Returns:
        A tuple of string pairs in input order.

    Raises:
        ConstructionError: If a name or value is not UTF-8 text or contains
            a null byte (or, for headers, a line break).
    """
    if items is None:
        return ()
    source = items.items() if isinstance(items, Mapping) else items
    pairs = []
    for name, value in source:
        name = _check_text(kind, "name", name)
        if not name:
            raise ConstructionError(f"{kind} name", name, "must not be empty")
        pairs.append((name, _check_text(kind, name, value)))
    return tuple(pairs)


def uri_encode(value: str, encode_slash: bool = True) -> str:
    """S3-compatible URI encoding.

    Characters A-Z, a-z, 0-9, '-', '_', '.', '~' are not encoded.
    All other characters are percent-encoded with uppercase hex.
    Spaces become %20 (not +).

    Args:
        value: The string to encode.
        encode_slash: If True (default), '/' is encoded as %2F.
            If False, '/' is left as-is.

    Returns:
        The URI-encoded string.
    """
    safe = "-_.~" if encode_slash else "-_.~/"
    return urllib.parse.quote(value, safe=safe)


def uri_encode_path(path: str) -> str:
    """URI-encode a path, preserving forward slashes.

    Each path segment is individually URI-encoded, so a ``/`` inside an
    object key stays a separator and is never written as ``%2F``.
    """
    if not path:
        return "/"
    encoded = "/".join(uri_encode(segment) for segment in path.split("/"))
    if not encoded.startswith("/"):
        encoded = "/" + encoded
    return encoded


def copy_source_path(bucket: str, key: str) -> str:
    """Return the ``x-amz-copy-source`` form of ``bucket/key``.

    Unlike the request path, the copy source is escaped as one value, so
    characters in the key that would survive per-segment encoding of an
    already-escaped path (a literal ``%``) are escaped again.
    """
    return uri_encode(f"/{bucket}/{key}", encode_slash=False)


def trim_header_value(value: str) -> str:
    """Strip a header value and collapse runs of spaces to one."""
    return _SPACES_RE.sub(" ", value.strip())


def canonical_query_string(query: Iterable[tuple[str, str]]) -> str:
    """Build the canonical query string.

    Names and values are encoded first and the pairs are then sorted by
    encoded name, then encoded value. Parameters without a value render as
    ``name=``.
    """
    encoded = sorted((uri_encode(name), uri_encode(value)) for name, value in query)
    return "&".join(f"{name}={value}" for name, value in encoded)


def canonical_headers(
    host: str,
    headers: Iterable[tuple[str, str]],
    ignored: frozenset[str] = IGNORED_HEADERS,
) -> tuple[str, str]:
    """Build the canonical header block and the signed header list.

    ``host`` is always signed. Every other header not in ``ignored`` is
    signed as well, which always covers ``content-type`` and ``x-amz-*``.

    Returns:
        ``(block, signed_headers)`` where ``block`` ends with a newline so
        that joining the canonical request leaves exactly one blank line
        before the signed header list.
    """
    values: dict[str, list[str]] = {"host": [trim_header_value(host)]}
    for name, value in headers:
        lower = name.lower()
        if lower in ignored or lower == "host":
            continue
        values.setdefault(lower, []).append(trim_header_value(value))

    names = sorted(values)
    block = "".join(f"{name}:{','.join(values[name])}\n" for name in names)
    return block, ";".join(names)


def build_canonical_request(
    request: RequestDescriptor,
    payload_hash: str,
    ignored: frozenset[str] = IGNORED_HEADERS,
) -> CanonicalRequest:
    """Canonicalize ``request`` for signing.

    Args:
        request: The request descriptor.
        payload_hash: Hex SHA-256 of the body, or a sentinel such as
            ``UNSIGNED-PAYLOAD``.
        ignored: Lower-case header names excluded from signing.

    Returns:
        The canonical request.
    """
    block, signed = canonical_headers(request.host, request.headers, ignored)
    return CanonicalRequest(
        method=request.method,
        uri=uri_encode_path(request.path),
        query=canonical_query_string(request.query),
        headers=block,
        signed_headers=signed,
        payload_hash=payload_hash,
    )
