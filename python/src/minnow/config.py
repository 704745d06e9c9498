"""Configuration loading and Pydantic models for Minnow."""

from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, Field, field_validator

from minnow.multipart import MAX_PART_SIZE, MIN_PART_SIZE


class EndpointConfig(BaseModel):
    """Where the S3-compatible service lives."""

    url: str = "http://localhost:9000"
    region: str = "us-east-1"

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"endpoint url must be http(s)://host[:port], got {value!r}")
        return value.rstrip("/")


class CredentialsConfig(BaseModel):
    """Static credentials; empty keys fall back to the environment."""

    access_key: str = ""
    secret_key: str = Field(default="", repr=False)
    session_token: str = Field(default="", repr=False)


class MultipartConfig(BaseModel):
    """Upload splitting and resumption settings."""

    threshold: int = 64 * 1024 * 1024
    part_size: int = 0
    max_workers: int = 4
    resume: bool = True

    @field_validator("threshold")
    @classmethod
    def _check_threshold(cls, value: int) -> int:
        if not MIN_PART_SIZE <= value <= MAX_PART_SIZE:
            raise ValueError(f"threshold must be between {MIN_PART_SIZE} and {MAX_PART_SIZE}")
        return value

    @field_validator("part_size")
    @classmethod
    def _check_part_size(cls, value: int) -> int:
        if value and not MIN_PART_SIZE <= value <= MAX_PART_SIZE:
            raise ValueError(f"part_size must be 0 or between {MIN_PART_SIZE} and {MAX_PART_SIZE}")
        return value

    @field_validator("max_workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_workers must be at least 1")
        return value


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = "INFO"
    format: str = "text"


class MetricsConfig(BaseModel):
    """Prometheus counters on/off."""

    enabled: bool = False


class MinnowConfig(BaseModel):
    """Top-level Minnow configuration."""

    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    multipart: MultipartConfig = Field(default_factory=MultipartConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def _parse_endpoint(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the endpoint section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "url": data.get("url", "http://localhost:9000"),
        "region": data.get("region", "us-east-1"),
    }


def _parse_credentials(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the credentials section from YAML data."""
    if data is None:
        return {}
    return {
        "access_key": data.get("access_key") or "",
        "secret_key": data.get("secret_key") or "",
        "session_token": data.get("session_token") or "",
    }


def _parse_multipart(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the multipart section from YAML data.

    ``part_size`` may be omitted or null, both meaning "computed".
    """
    if data is None:
        return {}
    result: dict[str, Any] = {}
    for key in ("threshold", "max_workers", "resume"):
        if key in data:
            result[key] = data[key]
    result["part_size"] = data.get("part_size") or 0
    return result


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def _parse_metrics(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the metrics section from YAML data."""
    if data is None:
        return {}
    return {"enabled": data.get("enabled", False)}


def load_config(path: Path) -> MinnowConfig:
    """Load a MinnowConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated MinnowConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value is out of range.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return MinnowConfig(
        endpoint=EndpointConfig(**_parse_endpoint(raw.get("endpoint"))),
        credentials=CredentialsConfig(**_parse_credentials(raw.get("credentials"))),
        multipart=MultipartConfig(**_parse_multipart(raw.get("multipart"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
        metrics=MetricsConfig(**_parse_metrics(raw.get("metrics"))),
    )
