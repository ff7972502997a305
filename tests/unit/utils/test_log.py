"""Unit tests for JSON logging."""

import json
import logging
from datetime import datetime
from pathlib import Path

from stowage.utils.log import JsonFormatter, init_log


def make_record(msg="hello %s", args=("world",), **extra):
    record = logging.LogRecord(
        name="stowage.storage.aliyun",
        level=logging.WARNING,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
        func="put",
    )
    record.__dict__.update(extra)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self):
        """Test that the message is rendered with its location."""
        output = json.loads(JsonFormatter().format(make_record()))

        assert output["level"] == "WARNING"
        assert output["logger"] == "stowage.storage.aliyun"
        assert output["msg"] == "hello world"
        assert output["function"] == "put"
        assert output["file"].endswith("test_log.py:42")

    def test_extra_fields(self):
        """Test that record extras and formatter extras are serialized."""
        formatter = JsonFormatter({"service": "uploader"})
        record = make_record(
            path=Path("/tmp/a.txt"),
            payload=b"\x00\x01",
            at=datetime(2024, 1, 2, 3, 4, 5),
        )

        output = json.loads(formatter.format(record))

        assert output["service"] == "uploader"
        assert output["path"] == "/tmp/a.txt"
        assert output["payload"] == "AAE="
        assert output["at"] == "2024-01-02T03:04:05"

    def test_exception(self):
        """Test that tracebacks are included."""
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = make_record()
            record.exc_info = sys.exc_info()

        output = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in output["exception"]


class TestInitLog:
    """Tests for handler setup."""

    def test_file_logging(self, tmp_path):
        """Test that a named log writes JSON lines to the directory."""
        handlers = logging.root.handlers
        level = logging.root.level
        try:
            init_log(name="stowage", dir=str(tmp_path), level=logging.DEBUG)
            logging.getLogger("stowage.test").debug("written", extra={"disk": "local"})

            for handler in logging.root.handlers:
                handler.flush()

            files = list(tmp_path.glob("*_stowage_*.log"))
            assert len(files) == 1

            line = json.loads(files[0].read_text().splitlines()[0])
            assert line["msg"] == "written"
            assert line["disk"] == "local"
        finally:
            for handler in logging.root.handlers:
                handler.close()
            logging.root.handlers = handlers
            logging.root.setLevel(level)
