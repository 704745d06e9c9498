"""Async S3 client for Minnow.

``S3Client`` ties the pure layers together: it validates names, signs each
request with :class:`~minnow.auth.RequestSigner`, sends it with
``httpx.AsyncClient`` using path-style URLs, and maps error bodies to
:class:`~minnow.errors.S3Error` subclasses. Large uploads are split by the
multipart planner and can resume an earlier incomplete upload of the same
file.

No request is ever retried.

Implements:
    - Buckets: make_bucket, list_buckets, bucket_exists, remove_bucket
    - Objects: put_object, fput_object, get_object, stat_object,
      remove_object, list_objects
    - Presigning: presigned_get_object, presigned_put_object,
      get_presigned_url, presigned_post_policy
    - Policy: get/set/delete_bucket_policy, get/set_bucket_access,
      get_bucket_accesses, set_bucket_canned_acl
    - Multipart: list_incomplete_uploads, remove_incomplete_upload
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import logging
import mimetypes
import os
import time
from collections.abc import AsyncIterator, Callable, Iterator, Mapping
from datetime import datetime, timezone
from typing import BinaryIO
from urllib.parse import urlsplit

import httpx

from minnow import metrics
from minnow.acl import apply_canned_acl
from minnow.auth import STREAMING_PAYLOAD, RequestSigner, sha256_hex
from minnow.canonical import RequestDescriptor
from minnow.chunked import ChunkedPayload, encoded_length
from minnow.config import MinnowConfig, MultipartConfig
from minnow.credentials import (
    ChainedProvider,
    Credentials,
    EnvironmentProvider,
    MinioEnvironmentProvider,
    Provider,
    StaticProvider,
)
from minnow.errors import ConstructionError, PolicyInconsistencyError, ResumeIntegrityError, S3Error
from minnow.models import Bucket, IncompleteUpload, ObjectInfo
from minnow.multipart import (
    MAX_MULTIPART_COUNT,
    MultipartSession,
    PartSpec,
    UploadPart,
    UploadPlan,
    choose_plan,
    normalize_etag,
    resume,
)
from minnow.policy import BucketPolicyDocument, PolicyType, classify, policies, set_policy
from minnow.post_policy import PostPolicy
from minnow.validation import validate_bucket_name, validate_max_keys, validate_object_key
from minnow.xml_utils import (
    parse_complete_multipart_upload,
    parse_error,
    parse_initiate_multipart_upload,
    parse_list_buckets,
    parse_list_multipart_uploads,
    parse_list_objects_v2,
    parse_list_parts,
    parse_location_constraint,
    render_complete_multipart_upload,
    render_create_bucket_configuration,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES = 7 * 24 * 3600
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _read_exact(source: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, looping over short reads until EOF."""
    chunks = []
    remaining = size
    while remaining > 0:
        data = source.read(remaining)
        if not data:
            break
        chunks.append(data)
        remaining -= len(data)
    return b"".join(chunks)


def _metadata_headers(
    content_type: str | None, metadata: Mapping[str, str] | None
) -> list[tuple[str, str]]:
    headers = []
    if content_type:
        headers.append(("Content-Type", content_type))
    for name, value in (metadata or {}).items():
        if not name.lower().startswith("x-amz-meta-"):
            name = f"x-amz-meta-{name}"
        headers.append((name, value))
    return headers


class S3Client:
    """Async client for one S3-compatible endpoint.

    Use it as an async context manager so the underlying connection pool is
    closed::

        async with S3Client("https://play.example.com", credentials) as client:
            await client.make_bucket("photos")

    Attributes:
        region: Region used for signing and bucket creation.
        signer: The request signer.
        multipart: Upload splitting settings.
    """

    def __init__(
        self,
        endpoint: str,
        credentials: Credentials | Provider | None = None,
        region: str = "us-east-1",
        multipart: MultipartConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 60.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        parts = urlsplit(endpoint)
        if parts.scheme not in _DEFAULT_PORTS or not parts.hostname:
            raise ConstructionError("endpoint", endpoint, "must be http(s)://host[:port]")
        self._scheme = parts.scheme
        self._host = parts.hostname
        if parts.port and parts.port != _DEFAULT_PORTS[parts.scheme]:
            self._host = f"{parts.hostname}:{parts.port}"

        if isinstance(credentials, Credentials):
            credentials = StaticProvider(
                credentials.access_key, credentials.secret_key, credentials.session_token
            )
        self._provider: Provider = credentials or ChainedProvider(
            [EnvironmentProvider(), MinioEnvironmentProvider()]
        )
        self.region = region
        self.signer = RequestSigner(region)
        self.multipart = multipart or MultipartConfig()
        self._clock = clock
        self._http = httpx.AsyncClient(transport=transport, timeout=timeout)

    @classmethod
    def from_config(
        cls, config: MinnowConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> S3Client:
        """Build a client from a loaded :class:`~minnow.config.MinnowConfig`."""
        provider: Provider | None = None
        if config.credentials.access_key:
            provider = StaticProvider(
                config.credentials.access_key,
                config.credentials.secret_key,
                config.credentials.session_token or None,
            )
        if config.metrics.enabled:
            metrics.init_metrics()
        return cls(
            config.endpoint.url,
            provider,
            region=config.endpoint.region,
            multipart=config.multipart,
            transport=transport,
        )

    async def __aenter__(self) -> S3Client:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def endpoint(self) -> str:
        return f"{self._scheme}://{self._host}"

    def _credentials(self) -> Credentials:
        credentials = self._provider.retrieve()
        if credentials is None:
            raise ConstructionError("credentials", None, "no credentials were found")
        return credentials

    # -- Transport -------------------------------------------------------------

    async def _execute(
        self,
        operation: str,
        method: str,
        bucket: str = "",
        key: str = "",
        query: list[tuple[str, str]] | None = None,
        headers: list[tuple[str, str]] | None = None,
        body: bytes = b"",
    ) -> httpx.Response:
        """Sign and send one request; raise the mapped ``S3Error`` on failure."""
        path = "/"
        if bucket:
            path += bucket
            if key:
                path += "/" + key

        descriptor = RequestDescriptor.build(
            method, self._host, path, query, headers, scheme=self._scheme
        )
        signed = self.signer.sign_header(
            descriptor, self._credentials(), self._clock(), sha256_hex(body)
        )
        canonical = signed.canonical_request
        url = f"{self._scheme}://{self._host}{canonical.uri}"
        if canonical.query:
            url += "?" + canonical.query

        request = self._http.build_request(method, url, headers=list(signed.headers), content=body)
        started = time.monotonic()
        try:
            response = await self._http.send(request)
        except httpx.HTTPError:
            metrics.record_request(operation, "error")
            raise
        duration_ms = (time.monotonic() - started) * 1000
        request_id = response.headers.get("x-amz-request-id", "")

        metrics.record_request(operation, response.status_code)
        logger.debug(
            "%s %s %d %.2fms",
            method,
            canonical.uri,
            response.status_code,
            duration_ms,
            extra={
                "operation": operation,
                "bucket": bucket or None,
                "key": key or None,
                "method": method,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "request_id": request_id or None,
            },
        )

        if response.status_code >= 300:
            raise parse_error(response.content, response.status_code, path, request_id)
        return response

    # -- Buckets ---------------------------------------------------------------

    async def make_bucket(self, bucket: str, region: str | None = None) -> None:
        """Create a bucket.

        Implements: PUT /{bucket}
        """
        validate_bucket_name(bucket)
        body = render_create_bucket_configuration(region or self.region).encode("utf-8")
        await self._execute("CreateBucket", "PUT", bucket, body=body)

    async def list_buckets(self) -> list[Bucket]:
        """List all buckets owned by the caller.

        Implements: GET /
        """
        response = await self._execute("ListBuckets", "GET")
        return parse_list_buckets(response.content)

    async def bucket_exists(self, bucket: str) -> bool:
        """Implements: HEAD /{bucket}"""
        validate_bucket_name(bucket)
        try:
            await self._execute("HeadBucket", "HEAD", bucket)
        except S3Error as exc:
            if exc.http_status == 404:
                return False
            raise
        return True

    async def get_bucket_location(self, bucket: str) -> str:
        """Region the bucket lives in.

        Implements: GET /{bucket}?location
        """
        validate_bucket_name(bucket)
        response = await self._execute("GetBucketLocation", "GET", bucket, query=[("location", "")])
        return parse_location_constraint(response.content)

    async def remove_bucket(self, bucket: str) -> None:
        """Implements: DELETE /{bucket}"""
        validate_bucket_name(bucket)
        await self._execute("DeleteBucket", "DELETE", bucket)

    # -- Objects ---------------------------------------------------------------

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes | BinaryIO,
        length: int | None = None,
        content_type: str = "application/octet-stream",
        metadata: Mapping[str, str] | None = None,
        part_size: int | None = None,
    ) -> str:
        """Upload an object from bytes or a binary stream.

        Bytes and small streams go up in one PUT; a stream of known length is
        sent ``aws-chunked`` so it is read only once. Anything above the
        multipart threshold, or a stream of unknown length, is uploaded in
        parts.

        Args:
            bucket: Bucket name.
            key: Object key.
            data: The payload.
            length: Stream length; ignored for bytes, None if unknown.
            content_type: MIME type stored with the object.
            metadata: User metadata (``x-amz-meta-*``).
            part_size: Part size override for multipart uploads.

        Returns:
            The object ETag.
        """
        validate_bucket_name(bucket)
        validate_object_key(key)
        if isinstance(data, bytes):
            length = len(data)
        headers = _metadata_headers(content_type, metadata)
        plan = choose_plan(
            length, self.multipart.threshold, part_size or self.multipart.part_size or None
        )

        if not plan.multipart:
            if isinstance(data, bytes):
                return await self._put_single(bucket, key, data, headers)
            return await self._put_streaming(bucket, key, data, plan.total_size or 0, headers)

        source = io.BytesIO(data) if isinstance(data, bytes) else data
        return await self._put_multipart(bucket, key, source, plan, headers, resumable=False)

    async def fput_object(
        self,
        bucket: str,
        key: str,
        file_path: str | os.PathLike[str],
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        part_size: int | None = None,
    ) -> str:
        """Upload a file, resuming an earlier incomplete upload of it when possible.

        Returns:
            The object ETag.
        """
        validate_bucket_name(bucket)
        validate_object_key(key)
        if content_type is None:
            content_type = mimetypes.guess_type(os.fspath(file_path))[0] or "application/octet-stream"
        headers = _metadata_headers(content_type, metadata)
        size = os.path.getsize(file_path)
        plan = choose_plan(size, self.multipart.threshold, part_size or self.multipart.part_size or None)

        with open(file_path, "rb") as fh:
            if not plan.multipart:
                return await self._put_single(bucket, key, fh.read(), headers)
            return await self._put_multipart(
                bucket, key, fh, plan, headers, resumable=self.multipart.resume
            )

    async def _put_single(
        self, bucket: str, key: str, data: bytes, headers: list[tuple[str, str]]
    ) -> str:
        response = await self._execute("PutObject", "PUT", bucket, key, headers=headers, body=data)
        metrics.record_upload(len(data))
        return normalize_etag(response.headers.get("etag", ""))

    async def _put_streaming(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        length: int,
        headers: list[tuple[str, str]],
    ) -> str:
        """Single PUT of ``length`` bytes framed as ``aws-chunked``."""
        credentials = self._credentials()
        timestamp = self._clock()
        headers = headers + [
            ("Content-Encoding", "aws-chunked"),
            ("x-amz-decoded-content-length", str(length)),
            ("Content-Length", str(encoded_length(length))),
        ]
        path = f"/{bucket}/{key}"
        descriptor = RequestDescriptor.build("PUT", self._host, path, None, headers, self._scheme)
        signed = self.signer.sign_header(descriptor, credentials, timestamp, STREAMING_PAYLOAD)
        payload = ChunkedPayload(self.signer, credentials, timestamp, signed.signature)

        async def frames() -> AsyncIterator[bytes]:
            for frame in payload.encode(stream, length):
                yield frame
            metrics.record_upload(length)

        url = f"{self._scheme}://{self._host}{signed.canonical_request.uri}"
        request = self._http.build_request(
            "PUT", url, headers=list(signed.headers), content=frames()
        )
        try:
            response = await self._http.send(request)
        except httpx.HTTPError:
            metrics.record_request("PutObject", "error")
            raise
        metrics.record_request("PutObject", response.status_code)
        logger.debug(
            "PUT %s %d (aws-chunked, %d bytes)",
            path,
            response.status_code,
            length,
            extra={"operation": "PutObject", "bucket": bucket, "key": key, "status": response.status_code},
        )
        if response.status_code >= 300:
            raise parse_error(
                response.content,
                response.status_code,
                path,
                response.headers.get("x-amz-request-id", ""),
            )
        return normalize_etag(response.headers.get("etag", ""))

    async def get_object(
        self, bucket: str, key: str, offset: int = 0, length: int | None = None
    ) -> bytes:
        """Download an object, or the byte range ``offset..offset+length-1``."""
        validate_bucket_name(bucket)
        validate_object_key(key)
        headers = []
        if offset or length is not None:
            if offset < 0 or (length is not None and length < 1):
                raise ConstructionError("range", (offset, length), "is not a valid byte range")
            end = "" if length is None else str(offset + length - 1)
            headers.append(("Range", f"bytes={offset}-{end}"))
        response = await self._execute("GetObject", "GET", bucket, key, headers=headers)
        metrics.record_download(len(response.content))
        return response.content

    async def stat_object(self, bucket: str, key: str) -> ObjectInfo:
        """Implements: HEAD /{bucket}/{key}"""
        validate_bucket_name(bucket)
        validate_object_key(key)
        response = await self._execute("HeadObject", "HEAD", bucket, key)
        h = response.headers
        return ObjectInfo(
            bucket=bucket,
            key=key,
            size=int(h.get("content-length", "0")),
            etag=normalize_etag(h.get("etag", "")),
            last_modified=h.get("last-modified", ""),
            content_type=h.get("content-type"),
            storage_class=h.get("x-amz-storage-class", "STANDARD"),
            metadata={
                name[len("x-amz-meta-"):]: value
                for name, value in h.items()
                if name.lower().startswith("x-amz-meta-")
            },
        )

    async def remove_object(self, bucket: str, key: str) -> None:
        """Implements: DELETE /{bucket}/{key}"""
        validate_bucket_name(bucket)
        validate_object_key(key)
        await self._execute("DeleteObject", "DELETE", bucket, key)

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = False,
        start_after: str = "",
        max_keys: int = 1000,
    ) -> AsyncIterator[ObjectInfo]:
        """Iterate over objects with ListObjectsV2, following continuation tokens.

        Without ``recursive``, keys are grouped at ``/`` and each common
        prefix is yielded once as an ``ObjectInfo`` with ``is_dir`` set.
        """
        validate_bucket_name(bucket)
        validate_max_keys(max_keys)
        token: str | None = None
        while True:
            query = [("list-type", "2"), ("max-keys", str(max_keys)), ("encoding-type", "url")]
            if prefix:
                query.append(("prefix", prefix))
            if not recursive:
                query.append(("delimiter", "/"))
            if start_after:
                query.append(("start-after", start_after))
            if token:
                query.append(("continuation-token", token))

            response = await self._execute("ListObjectsV2", "GET", bucket, query=query)
            page = parse_list_objects_v2(bucket, response.content)
            for obj in page.objects:
                yield obj
            for common_prefix in page.common_prefixes:
                yield ObjectInfo(bucket=bucket, key=common_prefix, is_dir=True)

            token = page.next_continuation_token
            if not page.is_truncated or not token:
                return

    # -- Multipart -------------------------------------------------------------

    async def _initiate(self, bucket: str, key: str, headers: list[tuple[str, str]]) -> str:
        response = await self._execute(
            "CreateMultipartUpload", "POST", bucket, key, query=[("uploads", "")], headers=headers
        )
        return parse_initiate_multipart_upload(response.content)

    async def _upload_part(self, session: MultipartSession, number: int, data: bytes) -> UploadPart:
        response = await self._execute(
            "UploadPart",
            "PUT",
            session.bucket,
            session.key,
            query=[("partNumber", str(number)), ("uploadId", session.upload_id)],
            body=data,
        )
        metrics.record_upload(len(data))
        return UploadPart(
            part_number=number,
            size=len(data),
            etag=normalize_etag(response.headers.get("etag", "")),
            upload_id=session.upload_id,
        )

    async def _complete(self, session: MultipartSession, parts: tuple[UploadPart, ...]) -> str:
        body = render_complete_multipart_upload(parts).encode("utf-8")
        response = await self._execute(
            "CompleteMultipartUpload",
            "POST",
            session.bucket,
            session.key,
            query=[("uploadId", session.upload_id)],
            headers=[("Content-Type", "application/xml")],
            body=body,
        )
        return parse_complete_multipart_upload(response.content)

    async def _abort(self, bucket: str, key: str, upload_id: str) -> None:
        await self._execute(
            "AbortMultipartUpload", "DELETE", bucket, key, query=[("uploadId", upload_id)]
        )

    async def _list_parts(self, bucket: str, key: str, upload_id: str) -> list[UploadPart]:
        parts: list[UploadPart] = []
        marker: int | None = None
        while True:
            query = [("uploadId", upload_id)]
            if marker is not None:
                query.append(("part-number-marker", str(marker)))
            response = await self._execute("ListParts", "GET", bucket, key, query=query)
            page = parse_list_parts(upload_id, response.content)
            parts.extend(page.parts)
            if not page.is_truncated or page.next_part_number_marker is None:
                return parts
            marker = page.next_part_number_marker

    def _iter_parts(
        self, source: BinaryIO, plan: UploadPlan, specs: tuple[PartSpec, ...] | None
    ) -> Iterator[tuple[int, bytes]]:
        """Read part payloads in order; ``specs`` None means read until EOF."""
        if specs is None:
            number = 0
            while True:
                data = _read_exact(source, plan.part_size)
                if not data and number > 0:
                    return
                number += 1
                if number > MAX_MULTIPART_COUNT:
                    raise ConstructionError(
                        "part_size", plan.part_size, f"stream needs more than {MAX_MULTIPART_COUNT} parts"
                    )
                yield number, data
                if len(data) < plan.part_size:
                    return

        base = source.tell() if source.seekable() else 0
        for spec in specs:
            if source.seekable():
                source.seek(base + spec.offset)
            data = _read_exact(source, spec.size)
            if len(data) != spec.size:
                raise ConstructionError(
                    "length", plan.total_size, f"stream ended inside part {spec.number}"
                )
            yield spec.number, data

    async def _upload_parts(
        self,
        session: MultipartSession,
        source: BinaryIO,
        plan: UploadPlan,
        specs: tuple[PartSpec, ...] | None,
    ) -> None:
        """Upload parts concurrently, at most ``max_workers`` in flight.

        Reading stops at the first failed part. All started tasks are
        awaited before the first error is raised.
        """
        semaphore = asyncio.Semaphore(self.multipart.max_workers)
        tasks: list[asyncio.Task[None]] = []

        async def upload(number: int, data: bytes) -> None:
            try:
                part = await self._upload_part(session, number, data)
                session.record(part)
                metrics.record_part("uploaded")
            finally:
                semaphore.release()

        def failed() -> bool:
            return any(t.done() and not t.cancelled() and t.exception() for t in tasks)

        payloads = self._iter_parts(source, plan, specs)
        try:
            while True:
                await semaphore.acquire()
                item = None if failed() else next(payloads, None)
                if item is None:
                    semaphore.release()
                    break
                tasks.append(asyncio.create_task(upload(*item)))
        finally:
            results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _find_resumable(
        self, bucket: str, key: str, source: BinaryIO, plan: UploadPlan
    ) -> tuple[str, tuple[UploadPart, ...], tuple[PartSpec, ...]] | None:
        """Look for an incomplete upload of ``key`` whose parts match ``source``."""
        candidates = [u async for u in self.list_incomplete_uploads(bucket, key) if u.key == key]
        if not candidates:
            return None
        upload = max(candidates, key=lambda u: u.initiated)
        parts = await self._list_parts(bucket, key, upload.upload_id)

        hashes: dict[int, str] = {}
        base = source.tell()
        for part in parts:
            if 1 <= part.part_number <= (plan.part_count or 0):
                spec = plan.part(part.part_number)
                source.seek(base + spec.offset)
                hashes[spec.number] = hashlib.md5(_read_exact(source, spec.size)).hexdigest()
        source.seek(base)

        try:
            outcome = resume(parts, hashes, plan)
        except ResumeIntegrityError as exc:
            logger.warning(
                "Discarding incomplete upload %s of %s/%s: %s",
                upload.upload_id,
                bucket,
                key,
                exc,
                extra={"operation": "ResumeUpload", "bucket": bucket, "key": key},
            )
            await self._abort(bucket, key, upload.upload_id)
            return None

        logger.info(
            "Resuming upload %s of %s/%s: %d parts reused, %d to upload",
            upload.upload_id,
            bucket,
            key,
            len(outcome.reused),
            len(outcome.to_upload),
            extra={"operation": "ResumeUpload", "bucket": bucket, "key": key},
        )
        return upload.upload_id, outcome.reused, outcome.to_upload

    async def _put_multipart(
        self,
        bucket: str,
        key: str,
        source: BinaryIO,
        plan: UploadPlan,
        headers: list[tuple[str, str]],
        resumable: bool,
    ) -> str:
        session = MultipartSession(bucket, key, plan.part_count)
        specs = plan.parts() if plan.part_count is not None else None

        found = None
        if resumable and plan.part_count is not None:
            found = await self._find_resumable(bucket, key, source, plan)
        if found is not None:
            upload_id, reused, specs = found
            session.start(upload_id)
            for part in reused:
                session.record(part)
                metrics.record_part("reused")
        else:
            session.start(await self._initiate(bucket, key, headers))

        try:
            await self._upload_parts(session, source, plan, specs)
            etag = await self._complete(session, session.parts_for_completion())
        except Exception:
            if resumable:
                logger.warning(
                    "Upload %s of %s/%s failed; left in place for resumption",
                    session.upload_id,
                    bucket,
                    key,
                )
            else:
                await self._abort_quietly(session)
            raise
        session.complete()
        return etag

    async def _abort_quietly(self, session: MultipartSession) -> None:
        """Abort after a failure, logging (not raising) abort errors."""
        try:
            await self._abort(session.bucket, session.key, session.upload_id)
        except (S3Error, httpx.HTTPError) as exc:
            logger.warning("Could not abort upload %s: %s", session.upload_id, exc)
        session.abort()

    async def list_incomplete_uploads(
        self, bucket: str, prefix: str = ""
    ) -> AsyncIterator[IncompleteUpload]:
        """Iterate over multipart uploads that were neither completed nor aborted."""
        validate_bucket_name(bucket)
        key_marker: str | None = None
        upload_id_marker: str | None = None
        while True:
            query = [("uploads", "")]
            if prefix:
                query.append(("prefix", prefix))
            if key_marker:
                query.append(("key-marker", key_marker))
            if upload_id_marker:
                query.append(("upload-id-marker", upload_id_marker))
            response = await self._execute("ListMultipartUploads", "GET", bucket, query=query)
            page = parse_list_multipart_uploads(bucket, response.content)
            for upload in page.uploads:
                yield upload
            if not page.is_truncated or not (page.next_key_marker or page.next_upload_id_marker):
                return
            key_marker = page.next_key_marker
            upload_id_marker = page.next_upload_id_marker

    async def remove_incomplete_upload(self, bucket: str, key: str) -> int:
        """Abort every incomplete upload of ``key``; returns how many were aborted."""
        validate_object_key(key)
        uploads = [u async for u in self.list_incomplete_uploads(bucket, key) if u.key == key]
        for upload in uploads:
            await self._abort(bucket, key, upload.upload_id)
        return len(uploads)

    # -- Presigning ------------------------------------------------------------

    def get_presigned_url(
        self,
        method: str,
        bucket: str,
        key: str = "",
        expires: int = DEFAULT_EXPIRES,
        query: Mapping[str, str] | None = None,
        request_date: datetime | None = None,
    ) -> str:
        """Presign ``method`` on ``bucket``/``key`` for ``expires`` seconds."""
        validate_bucket_name(bucket)
        path = f"/{bucket}"
        if key:
            validate_object_key(key)
            path += f"/{key}"
        descriptor = RequestDescriptor.build(method, self._host, path, query, None, self._scheme)
        return self.signer.presign(
            descriptor, self._credentials(), request_date or self._clock(), expires
        )

    def presigned_get_object(
        self,
        bucket: str,
        key: str,
        expires: int = DEFAULT_EXPIRES,
        response_headers: Mapping[str, str] | None = None,
        request_date: datetime | None = None,
    ) -> str:
        """Presigned download URL; ``response_headers`` become ``response-*`` overrides."""
        return self.get_presigned_url("GET", bucket, key, expires, response_headers, request_date)

    def presigned_put_object(
        self, bucket: str, key: str, expires: int = DEFAULT_EXPIRES, request_date: datetime | None = None
    ) -> str:
        return self.get_presigned_url("PUT", bucket, key, expires, None, request_date)

    def presigned_post_policy(
        self, policy: PostPolicy, request_date: datetime | None = None
    ) -> tuple[str, dict[str, str]]:
        """Return the form action URL and the signed form fields for ``policy``."""
        validate_bucket_name(policy.bucket)
        form = policy.form_data(self._credentials(), request_date or self._clock(), self.region)
        return f"{self.endpoint}/{policy.bucket}", form

    # -- Bucket policy ---------------------------------------------------------

    async def get_bucket_policy(self, bucket: str) -> str | None:
        """Raw policy JSON, or None if the bucket has no policy."""
        validate_bucket_name(bucket)
        try:
            response = await self._execute("GetBucketPolicy", "GET", bucket, query=[("policy", "")])
        except S3Error as exc:
            if exc.code == "NoSuchBucketPolicy":
                return None
            raise
        return response.text

    async def set_bucket_policy(self, bucket: str, policy: str | BucketPolicyDocument) -> None:
        """Store ``policy``; a document without statements deletes the policy instead."""
        validate_bucket_name(bucket)
        if isinstance(policy, str):
            policy = BucketPolicyDocument.from_json(policy)
        if not policy.statements:
            await self.delete_bucket_policy(bucket)
            return
        await self._execute(
            "PutBucketPolicy",
            "PUT",
            bucket,
            query=[("policy", "")],
            headers=[("Content-Type", "application/json")],
            body=policy.to_json().encode("utf-8"),
        )

    async def delete_bucket_policy(self, bucket: str) -> None:
        validate_bucket_name(bucket)
        await self._execute("DeleteBucketPolicy", "DELETE", bucket, query=[("policy", "")])

    async def _policy_document(self, bucket: str) -> BucketPolicyDocument:
        return BucketPolicyDocument.from_json(await self.get_bucket_policy(bucket))

    async def get_bucket_access(
        self, bucket: str, prefix: str = "", ignore_inconsistent: bool = False
    ) -> PolicyType:
        """Classify the anonymous access the bucket policy grants on ``prefix``.

        Args:
            bucket: Bucket name.
            prefix: Object key prefix; empty for the whole bucket.
            ignore_inconsistent: Report NONE instead of raising when the
                policy has statements the algebra cannot classify.

        Raises:
            PolicyInconsistencyError: Unless ``ignore_inconsistent`` is set.
        """
        document = await self._policy_document(bucket)
        try:
            return classify(document, bucket, prefix)
        except PolicyInconsistencyError as exc:
            if not ignore_inconsistent:
                raise
            logger.warning("Treating policy of %s as none: %s", bucket, exc)
            return PolicyType.NONE

    async def set_bucket_access(
        self, bucket: str, policy: PolicyType | str, prefix: str = ""
    ) -> BucketPolicyDocument:
        """Grant ``policy`` on ``prefix``, leaving other prefixes untouched.

        Returns:
            The document that was stored.
        """
        document = set_policy(await self._policy_document(bucket), bucket, prefix, PolicyType(policy))
        await self.set_bucket_policy(bucket, document)
        return document

    async def set_bucket_canned_acl(self, bucket: str, acl: str, prefix: str = "") -> BucketPolicyDocument:
        """Apply a canned ACL (``private``, ``public-read``, ...) as a bucket policy."""
        document = apply_canned_acl(await self._policy_document(bucket), bucket, acl, prefix)
        await self.set_bucket_policy(bucket, document)
        return document

    async def get_bucket_accesses(self, bucket: str) -> dict[str, PolicyType]:
        """Access level of every object resource pattern in the bucket policy."""
        return policies(await self._policy_document(bucket), bucket)

