from .context import request_context
from .logger import (
    ContextLogger,
    DailyFileHandler,
    get_app_logger,
    get_logger,
    install_exception_hooks,
    install_loop_exception_handler,
    setup_logging,
)

__all__ = [
    "ContextLogger",
    "DailyFileHandler",
    "get_app_logger",
    "get_logger",
    "install_exception_hooks",
    "install_loop_exception_handler",
    "request_context",
    "setup_logging",
]
