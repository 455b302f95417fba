"""
Request context management using contextvars for automatic propagation.

The dispatcher sets the phone number id and the sender for each item it handles,
and every log line emitted while that item is processed (including reply tasks
spawned from it, which copy the context) carries them as a prefix.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_phone_number_context: ContextVar[str | None] = ContextVar(
    "phone_number_id", default=None
)  # From ChangeValue.metadata
_user_context: ContextVar[str | None] = ContextVar(
    "user_id", default=None
)  # Message sender or status recipient


@contextmanager
def request_context(
    phone_number_id: str | None = None,
    user_id: str | None = None,
) -> Iterator[None]:
    """Temporarily bind context values, restoring the previous ones on exit."""
    phone_token = _phone_number_context.set(phone_number_id)
    user_token = _user_context.set(user_id)
    try:
        yield
    finally:
        _user_context.reset(user_token)
        _phone_number_context.reset(phone_token)


def get_current_phone_number_context() -> str | None:
    """Get the current phone number id, or None if not set."""
    return _phone_number_context.get()


def get_current_user_context() -> str | None:
    """Get the current user id, or None if not set."""
    return _user_context.get()

