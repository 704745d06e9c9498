"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from minnow.config import (
    EndpointConfig,
    MinnowConfig,
    MultipartConfig,
    load_config,
)

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent.parent / "minnow.example.yaml"


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "minnow.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    """Default values of the configuration models."""

    def test_minnow_config_defaults(self):
        config = MinnowConfig()
        assert config.endpoint.url == "http://localhost:9000"
        assert config.endpoint.region == "us-east-1"
        assert config.credentials.access_key == ""
        assert config.multipart.threshold == 64 * 1024 * 1024
        assert config.multipart.part_size == 0
        assert config.multipart.max_workers == 4
        assert config.multipart.resume is True
        assert config.logging.level == "INFO"
        assert config.logging.format == "text"
        assert config.metrics.enabled is False

    def test_secret_not_in_repr(self):
        config = MinnowConfig()
        config.credentials.secret_key = "topsecret"
        assert "topsecret" not in repr(config.credentials)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_example_file(self):
        config = load_config(EXAMPLE_CONFIG)
        assert config.endpoint.url == "http://localhost:9000"
        assert config.credentials.access_key == "minioadmin"
        assert config.multipart.threshold == 67108864
        assert config.multipart.max_workers == 4

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == MinnowConfig()

    def test_partial_sections(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "endpoint": {"url": "https://s3.example.com/", "region": "eu-west-1"},
                "multipart": {"max_workers": 8},
            },
        )
        config = load_config(path)
        assert config.endpoint.url == "https://s3.example.com"
        assert config.endpoint.region == "eu-west-1"
        assert config.multipart.max_workers == 8
        assert config.multipart.threshold == 64 * 1024 * 1024
        assert config.logging.level == "INFO"

    def test_null_part_size_means_computed(self, tmp_path):
        path = _write(tmp_path, {"multipart": {"part_size": None}})
        assert load_config(path).multipart.part_size == 0

    def test_null_credentials(self, tmp_path):
        path = _write(tmp_path, {"credentials": {"access_key": None, "secret_key": None}})
        config = load_config(path)
        assert config.credentials.access_key == ""
        assert config.credentials.secret_key == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_threshold(self, tmp_path):
        path = _write(tmp_path, {"multipart": {"threshold": 1024}})
        with pytest.raises(ValidationError):
            load_config(path)


class TestValidators:
    """Field validators."""

    @pytest.mark.parametrize("url", ["ftp://host", "localhost:9000", "http://"])
    def test_bad_endpoint(self, url):
        with pytest.raises(ValidationError):
            EndpointConfig(url=url)

    def test_part_size_bounds(self):
        assert MultipartConfig(part_size=5 * 1024 * 1024).part_size == 5 * 1024 * 1024
        with pytest.raises(ValidationError):
            MultipartConfig(part_size=1024)

    def test_max_workers(self):
        with pytest.raises(ValidationError):
            MultipartConfig(max_workers=0)
