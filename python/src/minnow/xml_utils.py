"""S3 XML request rendering and response parsing for Minnow.

Request bodies are built by escaped string joining; response bodies are
parsed with ``xml.etree.ElementTree``. Servers differ in whether they put
success responses in the S3 namespace, so every lookup accepts both the
namespaced and the bare element name.
"""

import urllib.parse
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable
from xml.sax.saxutils import escape as _sax_escape

from minnow.errors import InvalidResponseError, S3Error, error_from_code, error_from_status
from minnow.models import Bucket, IncompleteUpload, ListObjectsPage, ListPartsPage, ListUploadsPage, ObjectInfo
from minnow.multipart import UploadPart, normalize_etag

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"

_ERROR_FIELDS = {"Code", "Message", "Resource", "RequestId"}


def _escape_xml(value: str) -> str:
    """Escape special XML characters in a string value."""
    return _sax_escape(str(value))


# -- Rendering -----------------------------------------------------------------


def render_create_bucket_configuration(region: str) -> str:
    """Render the CreateBucket request body.

    The us-east-1 quirk: that region is the default and is sent as an empty
    body rather than a ``LocationConstraint``.
    """
    if region == "us-east-1" or not region:
        return ""
    return "\n".join(
        [
            f'<CreateBucketConfiguration xmlns="{S3_XMLNS}">',
            f"<LocationConstraint>{_escape_xml(region)}</LocationConstraint>",
            "</CreateBucketConfiguration>",
        ]
    )


def render_complete_multipart_upload(parts: Iterable[UploadPart]) -> str:
    """Render the CompleteMultipartUpload request body.

    Args:
        parts: Parts in ascending part-number order.

    Returns:
        An XML string for CompleteMultipartUpload.
    """
    xml_parts = [f'<CompleteMultipartUpload xmlns="{S3_XMLNS}">']
    for part in parts:
        xml_parts.append("<Part>")
        xml_parts.append(f"<PartNumber>{part.part_number}</PartNumber>")
        xml_parts.append(f'<ETag>"{_escape_xml(normalize_etag(part.etag))}"</ETag>')
        xml_parts.append("</Part>")
    xml_parts.append("</CompleteMultipartUpload>")
    return "\n".join(xml_parts)


# -- Parsing helpers -----------------------------------------------------------


def _parse(body: bytes) -> ET.Element:
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise InvalidResponseError(f"malformed XML response: {exc}", body) from exc


def _namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag[: root.tag.index("}") + 1]
    return ""


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find(parent: ET.Element, ns: str, name: str) -> ET.Element | None:
    """Find a child by namespaced name, falling back to the bare name.

    Uses explicit ``is not None`` checks; an element without children is
    falsy in ElementTree.
    """
    elem = parent.find(f"{ns}{name}")
    if elem is not None:
        return elem
    return parent.find(name)


def _findall(parent: ET.Element, ns: str, name: str) -> list[ET.Element]:
    return parent.findall(f"{ns}{name}") or parent.findall(name)


def _text(parent: ET.Element, ns: str, name: str, default: str = "") -> str:
    elem = _find(parent, ns, name)
    if elem is None or elem.text is None:
        return default
    return elem.text


def _int(parent: ET.Element, ns: str, name: str, default: int = 0) -> int:
    value = _text(parent, ns, name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidResponseError(f"{name} is not an integer: {value!r}") from None


def _bool(parent: ET.Element, ns: str, name: str) -> bool:
    return _text(parent, ns, name).strip().lower() == "true"


def _key_decoder(root: ET.Element, ns: str) -> Callable[[str], str]:
    if _text(root, ns, "EncodingType") == "url":
        return urllib.parse.unquote_plus
    return str


def _root(body: bytes, expected: str) -> tuple[ET.Element, str]:
    root = _parse(body)
    if _local_name(root.tag) == "Error":
        raise parse_error(body, 200)
    if _local_name(root.tag) != expected:
        raise InvalidResponseError(f"expected <{expected}>, got <{_local_name(root.tag)}>", body)
    return root, _namespace(root)


# -- Errors --------------------------------------------------------------------


def parse_error(
    body: bytes, http_status: int, resource: str = "", request_id: str = ""
) -> S3Error:
    """Turn an error response into the matching ``S3Error`` subclass.

    The Error element has no XML namespace. An empty or unparseable body
    (HEAD requests, proxies) falls back to a code inferred from the status.

    Args:
        body: The response body.
        http_status: The HTTP status code.
        resource: Request path, used when the body names none.
        request_id: ``x-amz-request-id`` header, used when the body has none.

    Returns:
        The error; the caller raises it.
    """
    if not body or not body.strip():
        return error_from_status(http_status, resource, request_id)
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return error_from_status(http_status, resource, request_id)
    if _local_name(root.tag) != "Error":
        return error_from_status(http_status, resource, request_id)

    ns = _namespace(root)
    extra = {
        _local_name(child.tag): child.text or ""
        for child in root
        if _local_name(child.tag) not in _ERROR_FIELDS
    }
    return error_from_code(
        code=_text(root, ns, "Code", "UnknownError"),
        message=_text(root, ns, "Message"),
        http_status=http_status,
        resource=_text(root, ns, "Resource", resource),
        request_id=_text(root, ns, "RequestId", request_id),
        extra_fields=extra,
    )


# -- Buckets -------------------------------------------------------------------


def parse_list_buckets(body: bytes) -> list[Bucket]:
    """Parse a ListAllMyBucketsResult."""
    root, ns = _root(body, "ListAllMyBucketsResult")
    buckets_elem = _find(root, ns, "Buckets")
    if buckets_elem is None:
        return []
    return [
        Bucket(name=_text(b, ns, "Name"), creation_date=_text(b, ns, "CreationDate"))
        for b in _findall(buckets_elem, ns, "Bucket")
    ]


def parse_location_constraint(body: bytes) -> str:
    """Parse a GetBucketLocation response; empty means us-east-1."""
    root, _ = _root(body, "LocationConstraint")
    return (root.text or "").strip() or "us-east-1"


# -- Objects -------------------------------------------------------------------


def parse_list_objects_v2(bucket: str, body: bytes) -> ListObjectsPage:
    """Parse a ListObjectsV2 ``ListBucketResult``.

    Keys are form-decoded (``+`` is a space) when the response says
    ``EncodingType`` is ``url``.
    """
    root, ns = _root(body, "ListBucketResult")
    decode = _key_decoder(root, ns)

    objects = [
        ObjectInfo(
            bucket=bucket,
            key=decode(_text(c, ns, "Key")),
            size=_int(c, ns, "Size"),
            etag=normalize_etag(_text(c, ns, "ETag")),
            last_modified=_text(c, ns, "LastModified"),
            storage_class=_text(c, ns, "StorageClass", "STANDARD"),
        )
        for c in _findall(root, ns, "Contents")
    ]
    prefixes = [decode(_text(cp, ns, "Prefix")) for cp in _findall(root, ns, "CommonPrefixes")]
    return ListObjectsPage(
        objects=objects,
        common_prefixes=prefixes,
        is_truncated=_bool(root, ns, "IsTruncated"),
        next_continuation_token=_text(root, ns, "NextContinuationToken") or None,
    )


# -- Multipart -----------------------------------------------------------------


def parse_initiate_multipart_upload(body: bytes) -> str:
    """Parse an InitiateMultipartUploadResult and return the upload id."""
    root, ns = _root(body, "InitiateMultipartUploadResult")
    upload_id = _text(root, ns, "UploadId")
    if not upload_id:
        raise InvalidResponseError("InitiateMultipartUploadResult has no UploadId", body)
    return upload_id


def parse_complete_multipart_upload(body: bytes) -> str:
    """Parse a CompleteMultipartUploadResult and return the object ETag.

    The server may answer 200 and still put an ``<Error>`` in the body once
    assembly fails; that is raised as the matching ``S3Error``.
    """
    root, ns = _root(body, "CompleteMultipartUploadResult")
    return normalize_etag(_text(root, ns, "ETag"))


def parse_list_multipart_uploads(bucket: str, body: bytes) -> ListUploadsPage:
    """Parse a ListMultipartUploadsResult."""
    root, ns = _root(body, "ListMultipartUploadsResult")
    decode = _key_decoder(root, ns)
    uploads = [
        IncompleteUpload(
            bucket=bucket,
            key=decode(_text(u, ns, "Key")),
            upload_id=_text(u, ns, "UploadId"),
            initiated=_text(u, ns, "Initiated"),
        )
        for u in _findall(root, ns, "Upload")
    ]
    return ListUploadsPage(
        uploads=uploads,
        is_truncated=_bool(root, ns, "IsTruncated"),
        next_key_marker=_text(root, ns, "NextKeyMarker") or None,
        next_upload_id_marker=_text(root, ns, "NextUploadIdMarker") or None,
    )


def parse_list_parts(upload_id: str, body: bytes) -> ListPartsPage:
    """Parse a ListPartsResult."""
    root, ns = _root(body, "ListPartsResult")
    parts = [
        UploadPart(
            part_number=_int(p, ns, "PartNumber"),
            size=_int(p, ns, "Size"),
            etag=normalize_etag(_text(p, ns, "ETag")),
            upload_id=upload_id,
        )
        for p in _findall(root, ns, "Part")
    ]
    next_marker = _text(root, ns, "NextPartNumberMarker")
    return ListPartsPage(
        parts=parts,
        is_truncated=_bool(root, ns, "IsTruncated"),
        next_part_number_marker=int(next_marker) if next_marker.strip() else None,
    )
