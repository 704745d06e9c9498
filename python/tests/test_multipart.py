"""Tests for multipart planning, resumption and session state."""

import pytest

from minnow.errors import ConstructionError, MultipartStateError, ResumeIntegrityError
from minnow.multipart import (
    MAX_MULTIPART_COUNT,
    MAX_OBJECT_SIZE,
    MAX_PART_SIZE,
    MIN_PART_SIZE,
    MultipartSession,
    PartSpec,
    SessionState,
    UploadPart,
    UploadPlan,
    choose_plan,
    etags_match,
    normalize_etag,
    optimal_part_size,
    resume,
)

MIB = 1024 * 1024


class TestChoosePlan:
    """Tests for choose_plan()."""

    def test_below_threshold_is_single_put(self):
        plan = choose_plan(4_999_999, 5_242_880)
        assert plan == UploadPlan(4_999_999, 4_999_999, 1, False)

    def test_at_threshold_is_single_put(self):
        assert not choose_plan(5 * MIB, 5 * MIB).multipart

    def test_empty_object(self):
        plan = choose_plan(0, 5 * MIB)
        assert not plan.multipart
        assert plan.parts() == (PartSpec(1, 0, 0),)

    def test_two_parts(self):
        plan = choose_plan(10_000_000, 5_242_880)
        assert plan.multipart
        assert plan.part_count == 2
        assert plan.parts() == (
            PartSpec(1, 0, 5_242_880),
            PartSpec(2, 5_242_880, 4_757_120),
        )

    def test_parts_cover_total(self):
        plan = choose_plan(123 * MIB + 7, 64 * MIB, part_size=16 * MIB)
        parts = plan.parts()
        assert sum(p.size for p in parts) == 123 * MIB + 7
        assert all(p.size == 16 * MIB for p in parts[:-1])
        assert parts[-1].size == 123 * MIB + 7 - 7 * 16 * MIB

    def test_explicit_part_size(self):
        plan = choose_plan(30 * MIB, 5 * MIB, part_size=10 * MIB)
        assert plan.part_count == 3

    def test_unknown_size_needs_part_size(self):
        with pytest.raises(ConstructionError):
            choose_plan(None, 64 * MIB)

    def test_unknown_size_open_ended(self):
        plan = choose_plan(None, 64 * MIB, part_size=8 * MIB)
        assert plan.multipart
        assert plan.part_count is None
        assert plan.part(3) == PartSpec(3, 16 * MIB, 8 * MIB)
        with pytest.raises(ConstructionError):
            plan.parts()

    @pytest.mark.parametrize("threshold", [MIN_PART_SIZE - 1, MAX_PART_SIZE + 1])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(ConstructionError):
            choose_plan(100, threshold)

    @pytest.mark.parametrize("part_size", [MIN_PART_SIZE - 1, MAX_PART_SIZE + 1])
    def test_part_size_out_of_range(self, part_size):
        with pytest.raises(ConstructionError):
            choose_plan(100 * MIB, 5 * MIB, part_size=part_size)

    def test_too_many_parts(self):
        with pytest.raises(ConstructionError):
            choose_plan(MIN_PART_SIZE * (MAX_MULTIPART_COUNT + 1), 5 * MIB, part_size=MIN_PART_SIZE)

    def test_object_too_large(self):
        with pytest.raises(ConstructionError):
            choose_plan(MAX_OBJECT_SIZE + 1, 5 * MIB)

    def test_negative_size(self):
        with pytest.raises(ConstructionError):
            choose_plan(-1, 5 * MIB)

    def test_part_outside_plan(self):
        plan = choose_plan(10_000_000, 5_242_880)
        with pytest.raises(ConstructionError):
            plan.part(3)
        with pytest.raises(ConstructionError):
            plan.part(0)


class TestOptimalPartSize:
    """Tests for optimal_part_size()."""

    def test_small_objects_use_minimum(self):
        assert optimal_part_size(1) == MIN_PART_SIZE

    def test_largest_object_fits(self):
        size = optimal_part_size(MAX_OBJECT_SIZE)
        assert size % MIN_PART_SIZE == 0
        assert -(-MAX_OBJECT_SIZE // size) <= MAX_MULTIPART_COUNT


class TestEtags:
    """Tests for ETag comparison."""

    def test_normalize(self):
        assert normalize_etag(' "ABCDEF" ') == "abcdef"

    def test_match_ignores_quotes_and_case(self):
        assert etags_match('"D41D8CD98F00B204E9800998ECF8427E"', "d41d8cd98f00b204e9800998ecf8427e")
        assert not etags_match('"abc"', "abd")


def _three_part_plan() -> UploadPlan:
    return choose_plan(15 * MIB, 5 * MIB, part_size=5 * MIB)


def _recorded(number: int, etag: str, size: int = 5 * MIB) -> UploadPart:
    return UploadPart(part_number=number, size=size, etag=f'"{etag}"', upload_id="u1")


class TestResume:
    """Tests for resume()."""

    def test_nothing_recorded(self):
        result = resume([], {1: "a", 2: "b", 3: "c"}, _three_part_plan())
        assert result.reused == ()
        assert [p.number for p in result.to_upload] == [1, 2, 3]

    def test_all_match(self):
        parts = [_recorded(1, "a"), _recorded(2, "b"), _recorded(3, "c")]
        result = resume(parts, {1: "a", 2: "b", 3: "c"}, _three_part_plan())
        assert result.reused == tuple(parts)
        assert result.to_upload == ()

    def test_mismatch_truncates(self):
        """Part 2 differs: part 1 is kept, parts 2 and 3 are uploaded again."""
        parts = [_recorded(1, "a"), _recorded(2, "stale"), _recorded(3, "c")]
        result = resume(parts, {1: "a", 2: "b", 3: "c"}, _three_part_plan())
        assert [p.part_number for p in result.reused] == [1]
        assert [p.number for p in result.to_upload] == [2, 3]

    def test_gap_truncates(self):
        parts = [_recorded(1, "a"), _recorded(3, "c")]
        result = resume(parts, {1: "a", 2: "b", 3: "c"}, _three_part_plan())
        assert [p.part_number for p in result.reused] == [1]
        assert [p.number for p in result.to_upload] == [2, 3]

    def test_missing_local_hash_truncates(self):
        parts = [_recorded(1, "a"), _recorded(2, "b")]
        result = resume(parts, {1: "a"}, _three_part_plan())
        assert [p.part_number for p in result.reused] == [1]

    def test_unsorted_input(self):
        parts = [_recorded(2, "b"), _recorded(1, "a")]
        result = resume(parts, {1: "a", 2: "b", 3: "c"}, _three_part_plan())
        assert [p.part_number for p in result.reused] == [1, 2]
        assert [p.number for p in result.to_upload] == [3]

    def test_custom_comparator(self):
        parts = [_recorded(1, "anything")]
        result = resume(parts, {1: "x"}, _three_part_plan(), comparator=lambda a, b: True)
        assert len(result.reused) == 1

    def test_part_beyond_plan(self):
        parts = [_recorded(1, "a"), _recorded(4, "d")]
        with pytest.raises(ResumeIntegrityError) as exc_info:
            resume(parts, {1: "a"}, _three_part_plan())
        assert exc_info.value.part_number == 4
        assert exc_info.value.upload_id == "u1"

    def test_size_mismatch(self):
        parts = [_recorded(1, "a", size=4 * MIB)]
        with pytest.raises(ResumeIntegrityError) as exc_info:
            resume(parts, {1: "a"}, _three_part_plan())
        assert exc_info.value.part_number == 1

    def test_size_checked_after_mismatch(self):
        """A bad size is reported even past the point where reuse stops."""
        parts = [_recorded(1, "stale"), _recorded(2, "b", size=1)]
        with pytest.raises(ResumeIntegrityError):
            resume(parts, {1: "a", 2: "b"}, _three_part_plan())

    def test_single_put_plan_rejected(self):
        with pytest.raises(ConstructionError):
            resume([], {}, choose_plan(100, 5 * MIB))

    def test_open_ended_plan_rejected(self):
        with pytest.raises(ConstructionError):
            resume([], {}, choose_plan(None, 5 * MIB, part_size=5 * MIB))


def _part(number: int, size: int = 5 * MIB, etag: str = "etag") -> UploadPart:
    return UploadPart(part_number=number, size=size, etag=etag)


class TestMultipartSession:
    """Tests for the MultipartSession state machine."""

    def test_happy_path(self):
        session = MultipartSession("b", "k", expected_parts=2)
        assert session.state == SessionState.NOT_STARTED
        session.start("upload-1")
        session.record(_part(2, size=10))
        session.record(_part(1))
        parts = session.complete()
        assert [p.part_number for p in parts] == [1, 2]
        assert session.state == SessionState.COMPLETED

    def test_record_replaces(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.record(_part(1, etag="old"))
        session.record(_part(1, etag="new"))
        assert session.parts == (_part(1, etag="new"),)

    def test_record_before_start(self):
        with pytest.raises(MultipartStateError):
            MultipartSession("b", "k").record(_part(1))

    def test_start_twice(self):
        session = MultipartSession("b", "k")
        session.start("u")
        with pytest.raises(MultipartStateError):
            session.start("u")

    def test_empty_upload_id(self):
        with pytest.raises(ConstructionError):
            MultipartSession("b", "k").start("")

    def test_part_number_range(self):
        session = MultipartSession("b", "k")
        session.start("u")
        with pytest.raises(ConstructionError):
            session.record(_part(0))
        with pytest.raises(ConstructionError):
            session.record(_part(MAX_MULTIPART_COUNT + 1))

    def test_complete_without_parts(self):
        session = MultipartSession("b", "k")
        session.start("u")
        with pytest.raises(MultipartStateError):
            session.complete()

    def test_complete_with_gap(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.record(_part(1))
        session.record(_part(3))
        with pytest.raises(MultipartStateError):
            session.complete()
        assert session.state == SessionState.IN_PROGRESS

    def test_complete_missing_expected_parts(self):
        session = MultipartSession("b", "k", expected_parts=3)
        session.start("u")
        session.record(_part(1))
        session.record(_part(2))
        with pytest.raises(MultipartStateError):
            session.complete()

    def test_complete_missing_etag(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.record(_part(1, etag=""))
        with pytest.raises(MultipartStateError):
            session.complete()

    def test_small_non_last_part(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.record(_part(1, size=MIN_PART_SIZE - 1))
        session.record(_part(2, size=1))
        with pytest.raises(MultipartStateError):
            session.complete()

    def test_small_last_part_allowed(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.record(_part(1, size=1))
        assert len(session.complete()) == 1

    def test_abort_twice_is_noop(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.abort()
        session.abort()
        assert session.state == SessionState.ABORTED

    def test_abort_before_start(self):
        session = MultipartSession("b", "k")
        session.abort()
        assert session.state == SessionState.ABORTED

    def test_no_changes_after_complete(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.record(_part(1))
        session.complete()
        with pytest.raises(MultipartStateError):
            session.abort()
        with pytest.raises(MultipartStateError):
            session.record(_part(2))

    def test_no_changes_after_abort(self):
        session = MultipartSession("b", "k")
        session.start("u")
        session.abort()
        with pytest.raises(MultipartStateError):
            session.record(_part(1))
        with pytest.raises(MultipartStateError):
            session.complete()
