"""Tests for client-side validation of names and listing arguments."""

import pytest

from minnow.errors import ConstructionError
from minnow.validation import validate_bucket_name, validate_max_keys, validate_object_key


class TestValidateBucketName:
    """Tests for validate_bucket_name()."""

    @pytest.mark.parametrize("name", ["abc", "my-bucket", "my.bucket.1", "a" * 63, "123bucket"])
    def test_valid(self, name):
        validate_bucket_name(name)

    @pytest.mark.parametrize(
        "name",
        [
            "",
            "ab",
            "a" * 64,
            "MyBucket",
            "-bucket",
            "bucket-",
            "bucket_name",
            "192.168.1.1",
            "xn--bucket",
            "my..bucket",
            "my.-bucket",
            "my-.bucket",
        ],
    )
    def test_invalid(self, name):
        with pytest.raises(ConstructionError) as exc_info:
            validate_bucket_name(name)
        assert exc_info.value.field == "bucket"


class TestValidateObjectKey:
    """Tests for validate_object_key()."""

    def test_valid(self):
        validate_object_key("dir/sub/file name.txt")
        validate_object_key("k" * 1024)

    def test_empty(self):
        with pytest.raises(ConstructionError):
            validate_object_key("")

    def test_length_in_utf8_bytes(self):
        with pytest.raises(ConstructionError):
            validate_object_key("é" * 513)

    @pytest.mark.parametrize("key", ["dir/../secret.txt", "./a", "a/.", "..", "a/./b"])
    def test_dot_segments(self, key):
        with pytest.raises(ConstructionError):
            validate_object_key(key)

    def test_dots_inside_segments(self):
        validate_object_key("a..b/.hidden/v1.2.txt/...")


class TestValidateMaxKeys:
    """Tests for validate_max_keys()."""

    @pytest.mark.parametrize("value", [1, 500, 1000])
    def test_valid(self, value):
        assert validate_max_keys(value) == value

    @pytest.mark.parametrize("value", [0, -1, 1001, True, "10"])
    def test_invalid(self, value):
        with pytest.raises(ConstructionError):
            validate_max_keys(value)
