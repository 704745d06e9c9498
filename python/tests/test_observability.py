"""Tests for structured logging and Prometheus counters."""

import json
import logging
import sys

from prometheus_client import REGISTRY

from minnow import metrics
from minnow.logging_config import JSONFormatter, configure_logging


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("minnow.client", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "minnow.client"
        assert entry["message"] == "hello"
        assert "timestamp" in entry

    def test_request_extras(self):
        line = JSONFormatter().format(
            _record(operation="PutObject", bucket="b", key="k", status=200, duration_ms=1.5)
        )
        entry = json.loads(line)
        assert entry["operation"] == "PutObject"
        assert entry["bucket"] == "b"
        assert entry["key"] == "k"
        assert entry["status"] == 200
        assert entry["duration_ms"] == 1.5
        assert "request_id" not in entry

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "minnow", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_handler(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            configure_logging("DEBUG", "json")
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_unknown_level_defaults_to_info(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            configure_logging("CHATTY", "text")
            assert root.level == logging.INFO
            assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])


class TestMetrics:
    """Tests for the Prometheus counters."""

    def test_record_before_init_is_noop(self, monkeypatch):
        monkeypatch.setattr(metrics, "s3_requests_total", None)
        monkeypatch.setattr(metrics, "multipart_parts_total", None)
        metrics.record_request("GetObject", 200)
        metrics.record_part("uploaded")

    def test_init_is_idempotent(self):
        metrics.init_metrics()
        counter = metrics.s3_requests_total
        metrics.init_metrics()
        assert metrics.s3_requests_total is counter

    def test_request_counter(self):
        metrics.init_metrics()
        labels = {"operation": "HeadObject", "status": "404"}
        before = REGISTRY.get_sample_value("minnow_s3_requests_total", labels) or 0.0
        metrics.record_request("HeadObject", 404)
        assert REGISTRY.get_sample_value("minnow_s3_requests_total", labels) == before + 1

    def test_byte_counters(self):
        metrics.init_metrics()
        up = REGISTRY.get_sample_value("minnow_bytes_uploaded_total") or 0.0
        down = REGISTRY.get_sample_value("minnow_bytes_downloaded_total") or 0.0
        metrics.record_upload(100)
        metrics.record_upload(0)
        metrics.record_download(7)
        assert REGISTRY.get_sample_value("minnow_bytes_uploaded_total") == up + 100
        assert REGISTRY.get_sample_value("minnow_bytes_downloaded_total") == down + 7

    def test_part_counter(self):
        metrics.init_metrics()
        labels = {"outcome": "reused"}
        before = REGISTRY.get_sample_value("minnow_multipart_parts_total", labels) or 0.0
        metrics.record_part("reused")
        assert REGISTRY.get_sample_value("minnow_multipart_parts_total", labels) == before + 1
