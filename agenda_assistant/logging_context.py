"""User-id logging context for tracing turns across modules.

Every inbound message is handled as its own asyncio task, so a
``ContextVar`` holds the id of the user whose turn is being processed.
``UserIdFilter`` copies it onto each log record, which lets the root
format string include ``%(user_id)s``.

Usage:
    from agenda_assistant.logging_context import set_user_id

    set_user_id("whatsapp:+5511999990000")
    logger.info("Processing turn")  # → ... [whatsapp:+5511999990000]: Processing turn
"""

import logging
from contextvars import ContextVar

_user_id: ContextVar[str] = ContextVar("user_id", default="-")


def set_user_id(user_id: str) -> None:
    """Set the user id for the current async context."""
    _user_id.set(user_id)


def get_user_id() -> str:
    """Retrieve the current user id."""
    return _user_id.get()


class UserIdFilter(logging.Filter):
    """Injects user_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = _user_id.get()  # type: ignore[attr-defined]
        return True
