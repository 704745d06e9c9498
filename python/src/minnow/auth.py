"""AWS Signature Version 4 request signing for Minnow.

Implements the client half of the SigV4 algorithm for header-based auth
(Authorization header), query-string auth (presigned URLs) and the chained
chunk signatures used by ``aws-chunked`` streaming uploads.

References:
    - https://docs.aws.amazon.com/AmazonS3/latest/API/sig-v4-authenticating-requests.html
    - https://docs.aws.amazon.com/AmazonS3/latest/API/sigv4-streaming.html
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from minnow.canonical import (
    PRESIGN_IGNORED_HEADERS,
    CanonicalRequest,
    RequestDescriptor,
    build_canonical_request,
)
from minnow.credentials import Credentials
from minnow.errors import ExpiryOutOfRangeError

logger = logging.getLogger(__name__)

# Constants
ALGORITHM = "AWS4-HMAC-SHA256"
CHUNK_ALGORITHM = "AWS4-HMAC-SHA256-PAYLOAD"
KEY_PREFIX = "AWS4"
SCOPE_TERMINATOR = "aws4_request"
SERVICE_NAME = "s3"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
STREAMING_PAYLOAD = "STREAMING-AWS4-HMAC-SHA256-PAYLOAD"
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
MAX_PRESIGNED_EXPIRES = 604800  # 7 days in seconds

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"


def amz_date(timestamp: datetime) -> str:
    """Format a timestamp as ``YYYYMMDDTHHMMSSZ`` in UTC.

    Naive datetimes are taken to already be UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime(AMZ_DATE_FORMAT)


@dataclass(frozen=True)
class SigningScope:
    """The credential scope of one signed request.

    Attributes:
        date: Date stamp (YYYYMMDD) of the request timestamp, in UTC.
        region: Region the request is addressed to.
        service: Service name, always ``s3`` for object storage.
    """

    date: str
    region: str
    service: str = SERVICE_NAME

    @classmethod
    def for_timestamp(cls, timestamp: datetime, region: str) -> SigningScope:
        return cls(date=amz_date(timestamp)[:8], region=region)

    def __str__(self) -> str:
        return f"{self.date}/{self.region}/{self.service}/{SCOPE_TERMINATOR}"

    def credential(self, access_key: str) -> str:
        """The ``Credential=`` value for ``access_key``."""
        return f"{access_key}/{self}"


class SigningKey:
    """A derived signing key that can be wiped.

    The key material lives in a ``bytearray`` so that :meth:`clear` can
    overwrite it in place. Use it as a context manager to clear it as soon
    as the signature is computed.
    """

    __slots__ = ("_key",)

    def __init__(self, key: bytes | bytearray) -> None:
        # A bytearray is adopted as is; clear() then wipes the caller's buffer.
        self._key = key if isinstance(key, bytearray) else bytearray(key)

    def sign(self, message: str) -> str:
        """Return the lowercase hex HMAC-SHA256 of ``message``."""
        if not self._key:
            raise RuntimeError("signing key has been cleared")
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def clear(self) -> None:
        _wipe(self._key)
        self._key = bytearray()

    def __enter__(self) -> SigningKey:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.clear()

    def __repr__(self) -> str:
        return "SigningKey(<redacted>)"


def _wipe(buffer: bytearray) -> None:
    for i in range(len(buffer)):
        buffer[i] = 0


def _derive(secret_key: str, date: str, region: str, service: str) -> bytearray:
    key = bytearray(KEY_PREFIX.encode("utf-8"))
    key += secret_key.encode("utf-8")
    for message in (date, region, service, SCOPE_TERMINATOR):
        digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
        _wipe(key)
        key[:] = digest
    return key


def derive_signing_key(secret_key: str, date: str, region: str, service: str) -> bytes:
    """Derive the SigV4 signing key via the HMAC-SHA256 chain.

    Args:
        secret_key: The secret access key.
        date: Date string (YYYYMMDD).
        region: AWS region.
        service: AWS service name.

    Returns:
        The 32-byte signing key.
    """
    key = _derive(secret_key, date, region, service)
    try:
        return bytes(key)
    finally:
        _wipe(key)


def derive_key(credentials: Credentials, scope: SigningScope) -> SigningKey:
    """Derive the wipeable signing key for ``scope``."""
    return SigningKey(_derive(credentials.secret_key, scope.date, scope.region, scope.service))


def sha256_hex(data: bytes | str) -> str:
    """Hex SHA-256 of ``data`` (strings are UTF-8 encoded)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class SignedRequest:
    """The result of header-based signing.

    Attributes:
        headers: The original headers plus the signing headers, in order.
        signature: The hex signature; the seed signature of a chunked upload.
        scope: The credential scope used.
        canonical_request: The canonical request that was signed.
    """

    headers: tuple[tuple[str, str], ...]
    signature: str
    scope: SigningScope
    canonical_request: CanonicalRequest

    @property
    def authorization(self) -> str:
        for name, value in self.headers:
            if name == "Authorization":
                return value
        raise KeyError("Authorization")


class RequestSigner:
    """Signs requests for one region.

    A signer holds no secrets and no per-request state; credentials and the
    timestamp are passed to every call and the scope is computed fresh each
    time, so one instance can be shared across tasks and threads.

    Attributes:
        region: Region used in the credential scope.
    """

    def __init__(self, region: str = "us-east-1") -> None:
        self.region = region

    # -- Header auth -----------------------------------------------------------

    def sign_header(
        self,
        request: RequestDescriptor,
        credentials: Credentials,
        timestamp: datetime,
        payload_hash: str = EMPTY_SHA256,
    ) -> SignedRequest:
        """Sign ``request`` with an Authorization header.

        Adds ``x-amz-date``, ``x-amz-content-sha256`` and, for temporary
        credentials, ``x-amz-security-token`` before canonicalizing, so those
        headers are covered by the signature.

        Args:
            request: The request descriptor.
            credentials: Access key pair to sign with.
            timestamp: Request time; its UTC date selects the scope.
            payload_hash: Hex SHA-256 of the body, ``UNSIGNED-PAYLOAD`` or
                ``STREAMING-AWS4-HMAC-SHA256-PAYLOAD``.

        Returns:
            The signed headers and signature.
        """
        date = amz_date(timestamp)
        scope = SigningScope.for_timestamp(timestamp, self.region)

        # A stale x-amz-date would be signed alongside ours; drop it.
        headers = tuple((n, v) for n, v in request.headers if n.lower() != "x-amz-date")
        existing = {name.lower() for name, _ in headers}
        headers += (("x-amz-date", date),)
        if "x-amz-content-sha256" not in existing:
            headers += (("x-amz-content-sha256", payload_hash),)
        if credentials.session_token and "x-amz-security-token" not in existing:
            headers += (("x-amz-security-token", credentials.session_token),)
        request = replace(request, headers=headers)

        canonical = build_canonical_request(request, payload_hash)
        string_to_sign = self._build_string_to_sign(date, scope, canonical.text)
        with derive_key(credentials, scope) as key:
            signature = key.sign(string_to_sign)

        authorization = (
            f"{ALGORITHM} Credential={scope.credential(credentials.access_key)}, "
            f"SignedHeaders={canonical.signed_headers}, Signature={signature}"
        )
        logger.debug(
            "Signed %s %s (scope=%s, signed_headers=%s)",
            request.method,
            canonical.uri,
            scope,
            canonical.signed_headers,
        )
        return SignedRequest(
            headers=request.headers + (("Authorization", authorization),),
            signature=signature,
            scope=scope,
            canonical_request=canonical,
        )

    # -- Query-string auth -----------------------------------------------------

    def presign(
        self,
        request: RequestDescriptor,
        credentials: Credentials,
        timestamp: datetime,
        expires: int,
    ) -> str:
        """Return a presigned URL for ``request``.

        Args:
            request: The request descriptor; its headers (other than the ones
                presigning ignores) must be sent by whoever uses the URL.
            credentials: Access key pair to sign with.
            timestamp: Signing time; the URL is valid from here for
                ``expires`` seconds.
            expires: Lifetime in seconds, 1 to 604800.

        Returns:
            The full URL including ``X-Amz-Signature``.

        Raises:
            ExpiryOutOfRangeError: If ``expires`` is out of range. Checked
                before anything is hashed.
        """
        if isinstance(expires, bool) or not isinstance(expires, int):
            raise ExpiryOutOfRangeError(expires, MAX_PRESIGNED_EXPIRES)
        if expires < 1 or expires > MAX_PRESIGNED_EXPIRES:
            raise ExpiryOutOfRangeError(expires, MAX_PRESIGNED_EXPIRES)

        date = amz_date(timestamp)
        scope = SigningScope.for_timestamp(timestamp, self.region)
        signed_headers = build_canonical_request(
            request, UNSIGNED_PAYLOAD, PRESIGN_IGNORED_HEADERS
        ).signed_headers

        params = [
            ("X-Amz-Algorithm", ALGORITHM),
            ("X-Amz-Credential", scope.credential(credentials.access_key)),
            ("X-Amz-Date", date),
            ("X-Amz-Expires", str(expires)),
            ("X-Amz-SignedHeaders", signed_headers),
        ]
        if credentials.session_token:
            params.append(("X-Amz-Security-Token", credentials.session_token))
        request = request.with_query(params)

        canonical = build_canonical_request(request, UNSIGNED_PAYLOAD, PRESIGN_IGNORED_HEADERS)
        string_to_sign = self._build_string_to_sign(date, scope, canonical.text)
        with derive_key(credentials, scope) as key:
            signature = key.sign(string_to_sign)

        return (
            f"{request.scheme}://{request.host}{canonical.uri}"
            f"?{canonical.query}&X-Amz-Signature={signature}"
        )

    # -- Streaming chunks ------------------------------------------------------

    def sign_chunk(
        self,
        previous_signature: str,
        chunk_hash: str,
        credentials: Credentials,
        timestamp: datetime,
    ) -> str:
        """Sign one chunk of an ``aws-chunked`` upload.

        Each chunk signature covers the previous one, starting from the seed
        signature of the request headers. The closing zero-length chunk is
        signed with ``EMPTY_SHA256`` as its hash.

        Args:
            previous_signature: Seed signature or the previous chunk's.
            chunk_hash: Hex SHA-256 of the chunk data.
            credentials: Access key pair to sign with.
            timestamp: The timestamp of the seed request.

        Returns:
            The chunk's hex signature.
        """
        scope = SigningScope.for_timestamp(timestamp, self.region)
        string_to_sign = "\n".join(
            [
                CHUNK_ALGORITHM,
                amz_date(timestamp),
                str(scope),
                previous_signature,
                EMPTY_SHA256,
                chunk_hash,
            ]
        )
        with derive_key(credentials, scope) as key:
            return key.sign(string_to_sign)

    # -- Arbitrary strings -----------------------------------------------------

    def sign_string(self, string_to_sign: str, credentials: Credentials, timestamp: datetime) -> str:
        """Sign a caller-built string, as browser POST policies require."""
        scope = SigningScope.for_timestamp(timestamp, self.region)
        with derive_key(credentials, scope) as key:
            return key.sign(string_to_sign)

    # -- String to sign --------------------------------------------------------

    def _build_string_to_sign(self, date: str, scope: SigningScope, canonical_request: str) -> str:
        """Build the string to sign.

        Args:
            date: ISO 8601 timestamp (YYYYMMDDTHHMMSSZ).
            scope: Credential scope.
            canonical_request: The assembled canonical request string.

        Returns:
            The string to sign.
        """
        return f"{ALGORITHM}\n{date}\n{scope}\n{sha256_hex(canonical_request)}"


