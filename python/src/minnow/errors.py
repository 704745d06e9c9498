"""Error definitions for Minnow.

Two families live here:

* Local, deterministic failures raised by the signing, policy and multipart
  code (``ConstructionError``, ``PolicyInconsistencyError``,
  ``ResumeIntegrityError``, ``MultipartStateError``). They are never retried.
* ``S3Error`` and its subclasses, raised when an S3-compatible server answers
  with an XML ``<Error>`` document.
"""

from typing import Any


class MinnowError(Exception):
    """Base class for every error raised by Minnow."""


# -- Local errors --------------------------------------------------------------


class ConstructionError(MinnowError, ValueError):
    """Malformed input to a pure function.

    Attributes:
        field: Name of the offending argument or header.
        value: The offending value (never a secret).
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(f"{field}: {reason} (got {value!r})")
        self.field = field
        self.value = value
        self.reason = reason


class ExpiryOutOfRangeError(ConstructionError):
    """Presigned URL expiry outside the 1 second .. 7 days window."""

    def __init__(self, value: Any, maximum: int) -> None:
        super().__init__("expires", value, f"must be between 1 and {maximum} seconds")


class PolicyInconsistencyError(MinnowError):
    """A bucket policy contains statements the access algebra cannot express.

    Callers may ignore it (treat the access as NONE) or escalate it.

    Attributes:
        bucket: The bucket being classified or edited.
        statement: The offending statement, if one was identified.
    """

    def __init__(self, message: str, bucket: str = "", statement: Any = None) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.statement = statement


class ResumeIntegrityError(MinnowError):
    """A recorded part contradicts the upload plan; the session can't be resumed.

    Attributes:
        upload_id: The incomplete upload that was being resumed.
        part_number: The part whose record disagreed with the plan.
    """

    def __init__(self, message: str, upload_id: str = "", part_number: int = 0) -> None:
        super().__init__(message)
        self.upload_id = upload_id
        self.part_number = part_number


class MultipartStateError(MinnowError):
    """Illegal multipart session transition or incomplete completion."""


class InvalidResponseError(MinnowError):
    """The server answered with a body that could not be parsed.

    Attributes:
        body: The first bytes of the offending body.
    """

    def __init__(self, message: str, body: bytes = b"") -> None:
        super().__init__(message)
        self.body = body[:512]


# -- Server errors -------------------------------------------------------------


class S3Error(MinnowError):
    """An error response returned by an S3-compatible server.

    Attributes:
        code: The S3 error code string (e.g. "NoSuchBucket", "AccessDenied").
        message: Human-readable error description.
        http_status: The HTTP status code of the response.
        resource: The resource named in the error body, if any.
        request_id: The server request id, if any.
        extra_fields: Any other elements found in the error body.
    """

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = 400,
        resource: str = "",
        request_id: str = "",
        extra_fields: dict[str, str] | None = None,
    ) -> None:
        """Initialize the S3 error.

        Args:
            code: S3 error code.
            message: Error description.
            http_status: HTTP status code (default 400).
            resource: Resource from the error body.
            request_id: Request id from the error body or headers.
            extra_fields: Optional extra XML fields.
        """
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.http_status = http_status
        self.resource = resource
        self.request_id = request_id
        self.extra_fields = extra_fields or {}


class AccessDenied(S3Error):
    """Access denied error."""


class NoSuchBucket(S3Error):
    """The specified bucket does not exist."""


class NoSuchKey(S3Error):
    """The specified key does not exist."""


class NoSuchUpload(S3Error):
    """The specified multipart upload does not exist."""


class NoSuchBucketPolicy(S3Error):
    """The bucket does not have a policy."""


class BucketAlreadyExists(S3Error):
    """The requested bucket name is already in use."""


class BucketAlreadyOwnedByYou(S3Error):
    """The bucket already exists and is owned by you."""


class BucketNotEmpty(S3Error):
    """The bucket is not empty and cannot be deleted."""


class InvalidBucketName(S3Error):
    """The specified bucket name is not valid."""


class InvalidPart(S3Error):
    """One or more of the specified parts could not be found."""


class InvalidPartOrder(S3Error):
    """The list of parts was not in ascending order."""


class EntityTooSmall(S3Error):
    """The proposed upload is smaller than the minimum allowed object size."""


class EntityTooLarge(S3Error):
    """The proposed upload exceeds the maximum allowed object size."""


class SignatureDoesNotMatch(S3Error):
    """The request signature does not match."""


class InvalidAccessKeyId(S3Error):
    """The access key id does not exist in the server's records."""


class RequestTimeTooSkewed(S3Error):
    """The difference between the request time and the server's time is too large."""


class MalformedPolicy(S3Error):
    """The server rejected the policy document."""


class InternalError(S3Error):
    """The server hit an internal error."""


_ERROR_CLASSES: dict[str, type[S3Error]] = {
    "AccessDenied": AccessDenied,
    "NoSuchBucket": NoSuchBucket,
    "NoSuchKey": NoSuchKey,
    "NoSuchUpload": NoSuchUpload,
    "NoSuchBucketPolicy": NoSuchBucketPolicy,
    "BucketAlreadyExists": BucketAlreadyExists,
    "BucketAlreadyOwnedByYou": BucketAlreadyOwnedByYou,
    "BucketNotEmpty": BucketNotEmpty,
    "InvalidBucketName": InvalidBucketName,
    "InvalidPart": InvalidPart,
    "InvalidPartOrder": InvalidPartOrder,
    "EntityTooSmall": EntityTooSmall,
    "EntityTooLarge": EntityTooLarge,
    "SignatureDoesNotMatch": SignatureDoesNotMatch,
    "InvalidAccessKeyId": InvalidAccessKeyId,
    "RequestTimeTooSkewed": RequestTimeTooSkewed,
    "MalformedPolicy": MalformedPolicy,
    "InternalError": InternalError,
}

# HEAD responses carry no body, so the code is inferred from the status.
_STATUS_CODES: dict[int, tuple[str, str]] = {
    301: ("PermanentRedirect", "Bucket is located in another region."),
    307: ("Redirect", "Temporary redirect."),
    400: ("BadRequest", "Bad request."),
    403: ("AccessDenied", "Access Denied"),
    404: ("NoSuchKey", "The specified key does not exist."),
    405: ("MethodNotAllowed", "The specified method is not allowed against this resource."),
    409: ("Conflict", "Conflicting request."),
    501: ("NotImplemented", "A header you provided implies functionality that is not implemented."),
}


def error_from_code(
    code: str,
    message: str,
    http_status: int,
    resource: str = "",
    request_id: str = "",
    extra_fields: dict[str, str] | None = None,
) -> S3Error:
    """Build the most specific ``S3Error`` subclass for an error code.

    Args:
        code: The S3 error code from the response body.
        message: The error message.
        http_status: The HTTP status of the response.
        resource: Resource named in the body.
        request_id: Request id from the body or response headers.
        extra_fields: Remaining body elements.

    Returns:
        An ``S3Error`` instance; the base class for unknown codes.
    """
    cls = _ERROR_CLASSES.get(code, S3Error)
    return cls(
        code=code,
        message=message,
        http_status=http_status,
        resource=resource,
        request_id=request_id,
        extra_fields=extra_fields,
    )


def error_from_status(http_status: int, resource: str = "", request_id: str = "") -> S3Error:
    """Build an ``S3Error`` for a response without an error body."""
    code, message = _STATUS_CODES.get(http_status, ("UnknownError", f"HTTP {http_status}"))
    return error_from_code(code, message, http_status, resource=resource, request_id=request_id)
