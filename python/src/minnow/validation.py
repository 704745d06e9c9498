"""Client-side validation of bucket names, object keys and listing arguments.

Checked before a request is built so that obviously bad input fails fast
with a :class:`~minnow.errors.ConstructionError` instead of a server round
trip.
"""

import re

from minnow.errors import ConstructionError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# S3 bucket naming rules:
#   - 3-63 characters
#   - lowercase letters, digits, hyphens, and periods
#   - must start and end with a letter or digit
#   - must not be formatted as an IP address
#   - must not start with "xn--"
#   - no consecutive periods and no period next to a hyphen

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9]$")
_IP_RE = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")

MAX_KEY_BYTES = 1024
MAX_MAX_KEYS = 1000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_bucket_name(name: str) -> None:
    """Validate a bucket name against S3 naming rules.

    Args:
        name: The candidate bucket name.

    Raises:
        ConstructionError: If the name violates any naming rule.
    """
    if not name:
        raise ConstructionError("bucket", name, "must not be empty")
    if len(name) < 3 or len(name) > 63:
        raise ConstructionError("bucket", name, "must be 3 to 63 characters long")
    if not _BUCKET_RE.match(name):
        raise ConstructionError(
            "bucket", name, "must be lowercase letters, digits, '.' or '-' and start with a letter or digit"
        )
    if _IP_RE.match(name):
        raise ConstructionError("bucket", name, "must not be an IP address")
    if name.startswith("xn--"):
        raise ConstructionError("bucket", name, "must not start with 'xn--'")
    if ".." in name or ".-" in name or "-." in name:
        raise ConstructionError("bucket", name, "must not contain '..', '.-' or '-.'")


def validate_object_key(key: str) -> None:
    """Validate an object key.

    Raises:
        ConstructionError: If the key is empty, longer than 1024 UTF-8 bytes,
            or has a "." or ".." segment.
    """
    if not key:
        raise ConstructionError("key", key, "must not be empty")
    if len(key.encode("utf-8")) > MAX_KEY_BYTES:
        raise ConstructionError("key", key, f"must be at most {MAX_KEY_BYTES} bytes")
    if any(segment in (".", "..") for segment in key.split("/")):
        raise ConstructionError("key", key, "must not contain '.' or '..' path segments")


def validate_max_keys(value: int) -> int:
    """Validate a page size for listing calls.

    Returns:
        ``value`` if it is within [1, 1000].

    Raises:
        ConstructionError: If ``value`` is out of range.
    """
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= MAX_MAX_KEYS:
        raise ConstructionError("max_keys", value, f"must be an integer between 1 and {MAX_MAX_KEYS}")
    return value
