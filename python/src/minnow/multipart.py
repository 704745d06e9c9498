"""Multipart upload planning and resumption.

Nothing in this module performs I/O. The client asks :func:`choose_plan`
how to split an upload, asks :func:`resume` which parts of an earlier
incomplete upload can be kept, and tracks the live upload in a
:class:`MultipartSession`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from minnow.errors import ConstructionError, MultipartStateError, ResumeIntegrityError

logger = logging.getLogger(__name__)

MIN_PART_SIZE = 5 * 1024 * 1024  # 5 MiB
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024  # 5 GiB
MAX_MULTIPART_COUNT = 10000
MAX_OBJECT_SIZE = 5 * 1024 * 1024 * 1024 * 1024  # 5 TiB


@dataclass(frozen=True)
class PartSpec:
    """A byte range of the source that becomes one part."""

    number: int
    offset: int
    size: int


@dataclass(frozen=True)
class UploadPlan:
    """How an upload is split.

    Attributes:
        total_size: Object size, or None when the length is not known.
        part_size: Size of every part but the last.
        part_count: Number of parts; None for an open-ended plan.
        multipart: False for a single PUT.
    """

    total_size: int | None
    part_size: int
    part_count: int | None
    multipart: bool

    def part(self, number: int) -> PartSpec:
        """The byte range of part ``number`` (1-based)."""
        if number < 1 or (self.part_count is not None and number > self.part_count):
            raise ConstructionError("part_number", number, "is outside the plan")
        offset = (number - 1) * self.part_size
        size = self.part_size
        if self.total_size is not None:
            size = min(self.part_size, self.total_size - offset)
        return PartSpec(number=number, offset=offset, size=size)

    def parts(self) -> tuple[PartSpec, ...]:
        if self.part_count is None:
            raise ConstructionError("total_size", None, "an open-ended plan has no fixed parts")
        return tuple(self.part(n) for n in range(1, self.part_count + 1))


def _check_part_size(part_size: int) -> int:
    if not MIN_PART_SIZE <= part_size <= MAX_PART_SIZE:
        raise ConstructionError(
            "part_size", part_size, f"must be between {MIN_PART_SIZE} and {MAX_PART_SIZE}"
        )
    return part_size


def optimal_part_size(total_size: int) -> int:
    """Smallest multiple of 5 MiB that fits ``total_size`` in 10000 parts."""
    per_part = -(-total_size // MAX_MULTIPART_COUNT)
    return max(MIN_PART_SIZE, -(-per_part // MIN_PART_SIZE) * MIN_PART_SIZE)


def choose_plan(
    total_size: int | None, threshold: int, part_size: int | None = None
) -> UploadPlan:
    """Decide between a single PUT and a multipart upload.

    Args:
        total_size: Object size in bytes, or None if unknown.
        threshold: Largest size sent as a single PUT.
        part_size: Fixed part size; computed from ``total_size`` when omitted.

    Returns:
        The upload plan.

    Raises:
        ConstructionError: If a size is out of range, or the size is unknown
            and no part size was given.
    """
    if not MIN_PART_SIZE <= threshold <= MAX_PART_SIZE:
        raise ConstructionError(
            "threshold", threshold, f"must be between {MIN_PART_SIZE} and {MAX_PART_SIZE}"
        )

    if total_size is None:
        if part_size is None:
            raise ConstructionError("part_size", None, "is required when the size is unknown")
        return UploadPlan(None, _check_part_size(part_size), None, True)

    if total_size < 0 or total_size > MAX_OBJECT_SIZE:
        raise ConstructionError("total_size", total_size, f"must be between 0 and {MAX_OBJECT_SIZE}")
    if total_size <= threshold:
        return UploadPlan(total_size, total_size, 1, False)

    if part_size is None:
        part_size = optimal_part_size(total_size)
    _check_part_size(part_size)
    part_count = -(-total_size // part_size)
    if part_count > MAX_MULTIPART_COUNT:
        raise ConstructionError(
            "part_size", part_size, f"splits {total_size} bytes into more than {MAX_MULTIPART_COUNT} parts"
        )
    return UploadPlan(total_size, part_size, part_count, True)


# -- Resumption ----------------------------------------------------------------


@dataclass(frozen=True)
class UploadPart:
    """A part the server has recorded for an upload."""

    part_number: int
    size: int
    etag: str
    upload_id: str = ""


def normalize_etag(etag: str) -> str:
    return etag.strip().strip('"').lower()


def etags_match(server_etag: str, local_hash: str) -> bool:
    """Compare a server ETag with a local hex MD5, ignoring quotes and case."""
    return normalize_etag(server_etag) == normalize_etag(local_hash)


@dataclass(frozen=True)
class ResumePlan:
    """Outcome of :func:`resume`.

    Attributes:
        reused: Parts ``1..k`` kept from the earlier session.
        to_upload: Everything after them.
    """

    reused: tuple[UploadPart, ...]
    to_upload: tuple[PartSpec, ...]


def resume(
    session_parts: Iterable[UploadPart],
    local_hashes: Mapping[int, str],
    plan: UploadPlan,
    comparator: Callable[[str, str], bool] = etags_match,
) -> ResumePlan:
    """Work out which recorded parts can be kept.

    Parts are kept in order starting at 1. The first gap, missing local
    hash or hash mismatch ends reuse; that part and everything after it is
    uploaded again.

    Args:
        session_parts: Parts the server reports for the incomplete upload.
        local_hashes: Hex MD5 of each planned part of the local source.
        plan: The plan for the local source.
        comparator: Compares a server ETag with a local hash.

    Raises:
        ConstructionError: If ``plan`` has no fixed part list.
        ResumeIntegrityError: If a recorded part lies past the end of the
            plan or its size contradicts the plan.
    """
    if not plan.multipart or plan.part_count is None:
        raise ConstructionError("plan", plan, "only fixed multipart plans can be resumed")

    parts = sorted(session_parts, key=lambda p: p.part_number)
    for part in parts:
        if part.part_number < 1 or part.part_number > plan.part_count:
            raise ResumeIntegrityError(
                f"part {part.part_number} is outside the {plan.part_count} planned parts",
                upload_id=part.upload_id,
                part_number=part.part_number,
            )
        expected = plan.part(part.part_number).size
        if part.size != expected:
            raise ResumeIntegrityError(
                f"part {part.part_number} has {part.size} bytes, plan expects {expected}",
                upload_id=part.upload_id,
                part_number=part.part_number,
            )

    reused: list[UploadPart] = []
    for part in parts:
        if part.part_number != len(reused) + 1:
            break
        local = local_hashes.get(part.part_number)
        if local is None or not comparator(part.etag, local):
            logger.debug("Part %d differs from the local source", part.part_number)
            break
        reused.append(part)

    return ResumePlan(
        reused=tuple(reused),
        to_upload=tuple(plan.part(n) for n in range(len(reused) + 1, plan.part_count + 1)),
    )


# -- Session -------------------------------------------------------------------


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABORTED = "aborted"


class MultipartSession:
    """State of one multipart upload as seen by the client.

    ``NOT_STARTED -> IN_PROGRESS -> COMPLETED | ABORTED``; a session that
    was never started can also be aborted. Completed and aborted sessions
    accept no further changes.

    Attributes:
        bucket: Target bucket.
        key: Target object key.
        upload_id: Server-assigned id once started.
        expected_parts: Planned part count, if known.
        state: Current :class:`SessionState`.
    """

    def __init__(self, bucket: str, key: str, expected_parts: int | None = None) -> None:
        self.bucket = bucket
        self.key = key
        self.expected_parts = expected_parts
        self.upload_id = ""
        self.state = SessionState.NOT_STARTED
        self._parts: dict[int, UploadPart] = {}

    def __repr__(self) -> str:
        return (
            f"MultipartSession(bucket={self.bucket!r}, key={self.key!r}, "
            f"upload_id={self.upload_id!r}, state={self.state.value})"
        )

    @property
    def parts(self) -> tuple[UploadPart, ...]:
        return tuple(self._parts[n] for n in sorted(self._parts))

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            raise MultipartStateError(
                f"upload {self.upload_id or '(not started)'} is {self.state.value}"
            )

    def start(self, upload_id: str) -> None:
        """Attach the server's upload id (new or resumed)."""
        self._require(SessionState.NOT_STARTED)
        if not upload_id:
            raise ConstructionError("upload_id", upload_id, "must not be empty")
        self.upload_id = upload_id
        self.state = SessionState.IN_PROGRESS

    def record(self, part: UploadPart) -> None:
        """Record an uploaded (or reused) part; a later record replaces an earlier one."""
        self._require(SessionState.IN_PROGRESS)
        if not 1 <= part.part_number <= MAX_MULTIPART_COUNT:
            raise ConstructionError("part_number", part.part_number, "must be between 1 and 10000")
        self._parts[part.part_number] = part

    def parts_for_completion(self) -> tuple[UploadPart, ...]:
        """Validate the recorded parts and return them in order.

        Raises:
            MultipartStateError: If the session is not in progress, part
                numbers are not ``1..N``, a part has no ETag, or a part
                other than the last is smaller than the minimum part size.
        """
        self._require(SessionState.IN_PROGRESS)
        parts = self.parts
        if not parts:
            raise MultipartStateError(f"upload {self.upload_id} has no parts")
        numbers = [p.part_number for p in parts]
        if numbers != list(range(1, len(parts) + 1)):
            raise MultipartStateError(f"upload {self.upload_id} has non-contiguous parts {numbers}")
        if self.expected_parts is not None and len(parts) != self.expected_parts:
            raise MultipartStateError(
                f"upload {self.upload_id} has {len(parts)} of {self.expected_parts} parts"
            )
        for part in parts:
            if not part.etag:
                raise MultipartStateError(f"part {part.part_number} has no ETag")
        for part in parts[:-1]:
            if part.size < MIN_PART_SIZE:
                raise MultipartStateError(
                    f"part {part.part_number} is {part.size} bytes, below the {MIN_PART_SIZE} minimum"
                )
        return parts

    def complete(self) -> tuple[UploadPart, ...]:
        """Move to COMPLETED and return the parts to send."""
        parts = self.parts_for_completion()
        self.state = SessionState.COMPLETED
        return parts

    def abort(self) -> None:
        """Move to ABORTED. Aborting twice is a no-op."""
        if self.state == SessionState.ABORTED:
            return
        self._require(SessionState.NOT_STARTED, SessionState.IN_PROGRESS)
        self.state = SessionState.ABORTED
