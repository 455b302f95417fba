"""
Rich-based logger with phone number and user context for wabridge.

Console output goes through Rich; a daily file sink keeps one human-readable
log per UTC calendar day. Log calls may attach a structured payload that is
rendered as pretty-printed JSON under the message line.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOG_FILE_PREFIX = "webhook"


def _utc_date(timestamp: float) -> date:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()


class CompactFormatter(logging.Formatter):
    """Formatter that shortens wabridge module names and stamps times in UTC ISO-8601."""

    def format(self, record: logging.LogRecord) -> str:
        if record.name.startswith("wabridge."):
            # wabridge.core.events.dispatcher -> events.dispatcher
            parts = record.name.split(".")
            if len(parts) > 2:
                record = logging.makeLogRecord(record.__dict__)
                record.name = ".".join(parts[-2:])
        return super().format(record)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return moment.strftime(datefmt)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DailyFileHandler(logging.FileHandler):
    """
    Append-only file handler writing to ``<log_dir>/webhook-YYYY-MM-DD.log``.

    The file is chosen by the UTC date of each record, so a long-running server
    starts a new file at UTC midnight. Writes are serialised by the handler lock.
    """

    def __init__(
        self,
        log_dir: str | os.PathLike,
        prefix: str = LOG_FILE_PREFIX,
        encoding: str = "utf-8",
    ):
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._current_date = _utc_date(datetime.now(timezone.utc).timestamp())
        super().__init__(
            self.path_for(self._current_date), mode="a", encoding=encoding, delay=True
        )

    def path_for(self, day: date) -> Path:
        """Log file path for a given UTC date."""
        return self.log_dir / f"{self.prefix}-{day.isoformat()}.log"

    def emit(self, record: logging.LogRecord) -> None:
        day = _utc_date(record.created)
        if day != self._current_date:
            self._current_date = day
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self.baseFilename = os.path.abspath(self.path_for(day))
        super().emit(record)


# Rich theme for colored output
_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim white",
    }
)
_console = Console(theme=_theme)


def get_console() -> Console:
    """Shared Rich console (used by the CLI banner)."""
    return _console


def render_payload(payload: Any) -> str:
    """Pretty-print a log payload as JSON, falling back to ``str`` for odd values."""
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


class ContextLogger:
    """
    Logger wrapper that adds phone number and user context to messages.

    Context is added as a message prefix (``[P:<phone_number_id>][U:<user>]``)
    read fresh from the context variables on every call. Every method accepts an
    optional ``payload`` that is appended as pretty-printed JSON.
    """

    def __init__(
        self,
        logger: logging.Logger,
        phone_number_id: str | None = None,
        user_id: str | None = None,
    ):
        self.logger = logger
        self.phone_number_id = phone_number_id or "---"
        self.user_id = user_id or "---"

    def _format_message(self, message: str, payload: Any = None) -> str:
        """Add context prefix and optional payload to message."""
        from .context import get_current_phone_number_context, get_current_user_context

        current_phone = get_current_phone_number_context() or self.phone_number_id
        current_user = get_current_user_context() or self.user_id

        prefix = ""
        if current_phone and current_phone != "---":
            prefix += f"[P:{current_phone}]"
        if current_user and current_user != "---":
            prefix += f"[U:{current_user}]"
        if prefix:
            message = f"{prefix} {message}"
        if payload is not None:
            message = f"{message}\n{render_payload(payload)}"
        return message

    def debug(self, message: str, *args, payload: Any = None, **kwargs) -> None:
        """Log debug message with context."""
        self.logger.debug(self._format_message(message, payload), *args, **kwargs)

    def info(self, message: str, *args, payload: Any = None, **kwargs) -> None:
        """Log info message with context."""
        self.logger.info(self._format_message(message, payload), *args, **kwargs)

    def warning(self, message: str, *args, payload: Any = None, **kwargs) -> None:
        """Log warning message with context."""
        self.logger.warning(self._format_message(message, payload), *args, **kwargs)

    def error(self, message: str, *args, payload: Any = None, **kwargs) -> None:
        """Log error message with context."""
        self.logger.error(self._format_message(message, payload), *args, **kwargs)

    def critical(self, message: str, *args, payload: Any = None, **kwargs) -> None:
        """Log critical message with context."""
        self.logger.critical(self._format_message(message, payload), *args, **kwargs)

    def exception(self, message: str, *args, payload: Any = None, **kwargs) -> None:
        """Log exception message with context."""
        self.logger.exception(self._format_message(message, payload), *args, **kwargs)


def setup_logging(
    *,
    level: str = "INFO",
    log_dir: str | os.PathLike | None = None,
    console_fmt: str | None = None,
    file_fmt: str | None = None,
) -> None:
    """
    Initialize the root logger with Rich console output and the daily file sink.

    Parameters
    ----------
    level : str
        Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
    log_dir : str, optional
        Directory for daily log files; console only when omitted
    console_fmt : str, optional
        Console format string
    file_fmt : str, optional
        File format string
    """
    lvl = level.upper()
    lvl = lvl if lvl in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"

    # RichHandler already shows level and time
    console_format = console_fmt or "[%(name)s] %(message)s"
    file_format = file_fmt or "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

    rich_handler = RichHandler(
        console=_console,
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        markup=False,
    )
    rich_handler.setFormatter(CompactFormatter(console_format))

    handlers: list[logging.Handler] = [rich_handler]

    if log_dir:
        file_handler = DailyFileHandler(log_dir)
        file_handler.setFormatter(CompactFormatter(file_format))
        handlers.append(file_handler)

    logging.basicConfig(level=lvl, handlers=handlers, force=True)

    # Keep third-party chatter at the configured level or quieter
    logging.getLogger("aiohttp").setLevel(max(logging.getLevelName(lvl), logging.INFO))

    setup_logger = logging.getLogger("wabridge.logging")
    setup_logger.info(
        f"Logging initialized ({lvl})"
        + (f", daily files in {Path(log_dir).resolve()}" if log_dir else "")
    )


def get_logger(name: str) -> ContextLogger:
    """
    Get a logger that automatically uses request context variables.

    Args:
        name: Logger name (usually __name__)

    Returns:
        ContextLogger instance with automatic context from context variables
    """
    from .context import get_current_phone_number_context, get_current_user_context

    return ContextLogger(
        logging.getLogger(name),
        phone_number_id=get_current_phone_number_context(),
        user_id=get_current_user_context(),
    )


def get_app_logger() -> ContextLogger:
    """Logger for application lifecycle events (startup, shutdown, crashes)."""
    return get_logger("wabridge.app")


def _log_uncaught(exc_type, exc_value, exc_traceback) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    get_app_logger().critical(
        "✗ Uncaught Exception",
        payload={"error": str(exc_value), "type": exc_type.__name__},
        exc_info=(exc_type, exc_value, exc_traceback),
    )


def _log_thread_exception(args: threading.ExceptHookArgs) -> None:
    if args.exc_type is SystemExit:
        return
    thread_name = args.thread.name if args.thread else "unknown"
    get_app_logger().critical(
        f"✗ Uncaught Exception in thread {thread_name}",
        payload={"error": str(args.exc_value), "type": args.exc_type.__name__},
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def log_loop_exception(
    loop: asyncio.AbstractEventLoop, context: dict[str, Any]
) -> None:
    """
    asyncio exception handler: log unhandled task errors instead of letting them vanish.

    Installed on the server's event loop; the loop keeps running afterwards.
    """
    exception = context.get("exception")
    details = {
        key: value for key, value in context.items() if key not in ("exception",)
    }
    get_app_logger().error(
        f"✗ Unhandled Rejection: {context.get('message', 'unhandled error in event loop')}",
        payload=details,
        exc_info=(type(exception), exception, exception.__traceback__)
        if exception
        else None,
    )


def install_exception_hooks() -> None:
    """
    Route process-wide uncaught exceptions to the log.

    Covers the main thread (``sys.excepthook``) and worker threads
    (``threading.excepthook``). The event loop handler is installed separately
    with ``install_loop_exception_handler`` once a loop is running.
    """
    sys.excepthook = _log_uncaught
    threading.excepthook = _log_thread_exception


def install_loop_exception_handler(
    loop: asyncio.AbstractEventLoop | None = None,
) -> None:
    """Install ``log_loop_exception`` on the given (or running) event loop."""
    (loop or asyncio.get_running_loop()).set_exception_handler(log_loop_exception)
