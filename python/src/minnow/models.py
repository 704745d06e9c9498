"""Data model types returned by the Minnow client.

These dataclasses represent the entities an S3-compatible server reports
(buckets, objects, incomplete multipart uploads) and the page containers
returned by list operations. Timestamps are kept as the ISO 8601 strings
the server sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from minnow.multipart import UploadPart


@dataclass
class Bucket:
    """A bucket as listed by ListBuckets.

    Attributes:
        name: The bucket name.
        creation_date: ISO 8601 creation timestamp.
    """

    name: str
    creation_date: str = ""


@dataclass
class ObjectInfo:
    """Metadata for an object.

    Attributes:
        bucket: The bucket name.
        key: The object key, or a common prefix when ``is_dir`` is set.
        size: Size in bytes.
        etag: ETag with the surrounding quotes removed.
        last_modified: Last-modified timestamp as sent by the server.
        content_type: MIME type (HEAD/GET only).
        storage_class: Storage class.
        is_dir: True for a common prefix returned by a delimited listing.
        metadata: User metadata (``x-amz-meta-*``) without the prefix.
    """

    bucket: str
    key: str
    size: int = 0
    etag: str = ""
    last_modified: str = ""
    content_type: str | None = None
    storage_class: str = "STANDARD"
    is_dir: bool = False
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class IncompleteUpload:
    """A multipart upload that was started but neither completed nor aborted."""

    bucket: str
    key: str
    upload_id: str
    initiated: str = ""


@dataclass
class ListObjectsPage:
    """One page of ListObjectsV2.

    Attributes:
        objects: Objects on this page.
        common_prefixes: Collapsed prefix strings.
        is_truncated: Whether more results are available.
        next_continuation_token: Token for the next page.
    """

    objects: list[ObjectInfo] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: str | None = None


@dataclass
class ListUploadsPage:
    """One page of ListMultipartUploads."""

    uploads: list[IncompleteUpload] = field(default_factory=list)
    is_truncated: bool = False
    next_key_marker: str | None = None
    next_upload_id_marker: str | None = None


@dataclass
class ListPartsPage:
    """One page of ListParts."""

    parts: list[UploadPart] = field(default_factory=list)
    is_truncated: bool = False
    next_part_number_marker: int | None = None
