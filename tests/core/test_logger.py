"""
Tests for the context-aware logger and the daily log file sink.
"""

import asyncio
import logging
import sys
import threading
from datetime import datetime, timezone

from wabridge.core.logging.context import (
    get_current_phone_number_context,
    get_current_user_context,
    request_context,
)
from wabridge.core.logging.logger import (
    CompactFormatter,
    DailyFileHandler,
    get_logger,
    install_exception_hooks,
    log_loop_exception,
    setup_logging,
)


def _record(message: str, created: float, name: str = "wabridge.core.events.dispatcher"):
    return logging.makeLogRecord(
        {
            "name": name,
            "msg": message,
            "levelname": "INFO",
            "levelno": logging.INFO,
            "created": created,
        }
    )


class TestContextLogger:
    """Test context prefixes and payload rendering."""

    def test_no_prefix_without_context(self, caplog):
        caplog.set_level(logging.INFO)
        get_logger("wabridge.test").info("plain")
        assert caplog.records[-1].getMessage() == "plain"

    def test_prefix_from_request_context(self, caplog):
        caplog.set_level(logging.INFO)
        logger = get_logger("wabridge.test")
        with request_context("106540352242922", "15551234567"):
            logger.info("inside")
        logger.info("outside")

        messages = [record.getMessage() for record in caplog.records]
        assert messages[-2] == "[P:106540352242922][U:15551234567] inside"
        assert messages[-1] == "outside"

    def test_request_context_restores_previous_values(self):
        with request_context("outer-phone", "outer-user"):
            with request_context("inner-phone", None):
                assert get_current_phone_number_context() == "inner-phone"
                assert get_current_user_context() is None
            assert get_current_phone_number_context() == "outer-phone"
            assert get_current_user_context() == "outer-user"
        assert get_current_phone_number_context() is None
        assert get_current_user_context() is None

    def test_payload_rendered_as_json(self, caplog):
        caplog.set_level(logging.INFO)
        get_logger("wabridge.test").info("with payload", payload={"a": 1, "b": "ü"})
        assert caplog.records[-1].getMessage() == (
            'with payload\n{\n  "a": 1,\n  "b": "ü"\n}'
        )


class TestCompactFormatter:
    def test_shortens_module_names_and_uses_utc(self):
        formatter = CompactFormatter("%(asctime)s|%(name)s|%(message)s")
        created = datetime(2024, 3, 1, 12, 30, 45, 123000, tzinfo=timezone.utc).timestamp()

        line = formatter.format(_record("hi", created))

        assert line == "2024-03-01T12:30:45.123Z|events.dispatcher|hi"

    def test_leaves_other_names_alone(self):
        formatter = CompactFormatter("%(name)s")
        assert formatter.format(_record("x", 0, name="uvicorn.error")) == "uvicorn.error"


class TestDailyFileHandler:
    """Test the per-UTC-day log file."""

    def test_writes_to_dated_file(self, tmp_path):
        handler = DailyFileHandler(tmp_path / "logs")
        handler.setFormatter(logging.Formatter("%(message)s"))
        created = datetime(2024, 3, 1, 23, 59, 59, tzinfo=timezone.utc).timestamp()

        try:
            handler.emit(_record("first", created))
        finally:
            handler.close()

        path = tmp_path / "logs" / "webhook-2024-03-01.log"
        assert path.read_text(encoding="utf-8") == "first\n"

    def test_switches_file_at_utc_midnight(self, tmp_path):
        handler = DailyFileHandler(tmp_path)
        handler.setFormatter(logging.Formatter("%(message)s"))
        before = datetime(2024, 3, 1, 23, 59, 59, tzinfo=timezone.utc).timestamp()
        after = datetime(2024, 3, 2, 0, 0, 1, tzinfo=timezone.utc).timestamp()

        try:
            handler.emit(_record("day one", before))
            handler.emit(_record("day two", after))
            handler.emit(_record("day two again", after))
        finally:
            handler.close()

        assert (tmp_path / "webhook-2024-03-01.log").read_text(encoding="utf-8") == "day one\n"
        assert (tmp_path / "webhook-2024-03-02.log").read_text(encoding="utf-8") == (
            "day two\nday two again\n"
        )

    def test_setup_logging_installs_file_sink(self, tmp_path, restore_root_logging):
        setup_logging(level="debug", log_dir=tmp_path)

        root = logging.getLogger()
        file_handlers = [h for h in root.handlers if isinstance(h, DailyFileHandler)]
        assert root.level == logging.DEBUG
        assert len(file_handlers) == 1

        get_logger("wabridge.core.test").info("written to disk")
        file_handlers[0].flush()

        today = datetime.now(timezone.utc).date().isoformat()
        content = (tmp_path / f"webhook-{today}.log").read_text(encoding="utf-8")
        assert "INFO | core.test | written to disk" in content


class TestCrashLogging:
    """Test process-wide exception hooks."""

    def test_uncaught_exception_is_logged(self, monkeypatch, caplog):
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        monkeypatch.setattr(threading, "excepthook", threading.excepthook)
        install_exception_hooks()

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            sys.excepthook(*sys.exc_info())

        assert "✗ Uncaught Exception" in caplog.text
        assert "boom" in caplog.text

    def test_thread_exception_is_logged(self, monkeypatch, caplog):
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)
        monkeypatch.setattr(threading, "excepthook", threading.excepthook)
        install_exception_hooks()

        def worker():
            raise ValueError("thread boom")

        thread = threading.Thread(target=worker, name="worker-1")
        thread.start()
        thread.join()

        assert "Uncaught Exception in thread worker-1" in caplog.text

    def test_loop_exception_is_logged(self, caplog):
        loop = asyncio.new_event_loop()
        try:
            log_loop_exception(
                loop, {"message": "Task exception was never retrieved", "exception": KeyError("k")}
            )
        finally:
            loop.close()

        assert "✗ Unhandled Rejection: Task exception was never retrieved" in caplog.text
