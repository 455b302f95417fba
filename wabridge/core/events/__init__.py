from .dispatcher import DispatchOutcome, DispatchReport, EventDispatcher
from .message_handler import (
    DEFAULT_REPLY_RULES,
    MessageHandler,
    ReplyRule,
    match_reply_rule,
)
from .status_handler import StatusHandler

__all__ = [
    "DEFAULT_REPLY_RULES",
    "DispatchOutcome",
    "DispatchReport",
    "EventDispatcher",
    "MessageHandler",
    "ReplyRule",
    "StatusHandler",
    "match_reply_rule",
]
