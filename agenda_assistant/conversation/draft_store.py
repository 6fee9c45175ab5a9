"""
Per-user draft storage with per-user serialization and expiry.

Turns for the same user must run strictly one after another, because a
turn reads the draft, awaits the extractor and the directory, and then
writes the draft back. ``locked(user_id)`` gives each user their own
asyncio.Lock; different users never wait on each other.

Drafts are volatile. A draft not written for ``ttl_minutes`` is discarded
the next time it is read.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Optional

from agenda_assistant.schemas.draft_schema import ConversationDraft

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class DraftStore:
    """In-memory draft map keyed by user id."""

    def __init__(
        self, ttl_minutes: int = 30, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._drafts: dict[str, ConversationDraft] = {}
        self._locks: dict[str, _LockEntry] = {}
        self._ttl_seconds = ttl_minutes * 60
        self._clock = clock

    @asynccontextmanager
    async def locked(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock for the duration of one turn."""
        entry = self._locks.get(user_id)
        if entry is None:
            entry = self._locks[user_id] = _LockEntry()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[user_id]

    def get(self, user_id: str) -> Optional[ConversationDraft]:
        """Return the user's open draft, discarding it first if expired."""
        draft = self._drafts.get(user_id)
        if draft is None:
            return None
        if self._ttl_seconds and self._clock() - draft.updated_at > self._ttl_seconds:
            logger.info("Discarding draft idle for more than %ds", self._ttl_seconds)
            del self._drafts[user_id]
            return None
        return draft

    def put(self, user_id: str, draft: ConversationDraft) -> None:
        draft.updated_at = self._clock()
        self._drafts[user_id] = draft

    def clear(self, user_id: str) -> bool:
        """Remove the user's draft. Returns True if one existed."""
        return self._drafts.pop(user_id, None) is not None

    def active_users(self) -> list[str]:
        return list(self._drafts)

    def pending_locks(self) -> int:
        """Number of users with a turn in flight or waiting."""
        return len(self._locks)
