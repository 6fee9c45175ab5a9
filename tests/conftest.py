"""Shared test fixtures and fakes."""

import asyncio
from datetime import date
from typing import Any, Optional

import pytest

from agenda_assistant.conversation.dialogue_controller import DialogueController
from agenda_assistant.conversation.dispatcher import EventDispatcher
from agenda_assistant.conversation.draft_merge import DraftMergeEngine
from agenda_assistant.conversation.draft_store import DraftStore
from agenda_assistant.conversation.guest_resolver import GuestResolver
from agenda_assistant.errors import DirectoryError
from agenda_assistant.schemas.contact_schema import ContactEntry
from agenda_assistant.schemas.extraction_schema import ExtractionResult, parse_extraction
from agenda_assistant.tools.calendar import InMemoryCalendarProvider
from agenda_assistant.tools.contacts import InMemoryContactDirectory
from agenda_assistant.tools.extraction import ExtractionClient

TODAY = date(2025, 6, 30)


class ScriptedExtractor(ExtractionClient):
    """Returns queued outputs in order and records every call.

    Queue entries may be an ExtractionResult, a raw model string (decoded
    with parse_extraction, like a real provider reply), or an exception.
    """

    def __init__(self) -> None:
        self.queue: list[Any] = []
        self.calls: list[tuple[str, Optional[dict], date]] = []
        self.gate: Optional[asyncio.Event] = None

    def push(self, *outputs: Any) -> None:
        self.queue.extend(outputs)

    async def extract(self, text, context, today) -> ExtractionResult:
        self.calls.append((text, context, today))
        if self.gate is not None:
            await self.gate.wait()
        output = self.queue.pop(0)
        if isinstance(output, Exception):
            raise output
        if isinstance(output, str):
            return parse_extraction(output)
        return output


class CountingDirectory(InMemoryContactDirectory):
    """In-memory directory that counts upserts and can be made to fail."""

    def __init__(self, contacts: Optional[dict[str, str]] = None) -> None:
        super().__init__(contacts)
        self.upserts: list[tuple[str, str]] = []
        self.lookups: list[str] = []
        self.fail = False

    async def lookup(self, name: str) -> Optional[str]:
        self.lookups.append(name)
        if self.fail:
            raise DirectoryError("directory unavailable")
        return await super().lookup(name)

    async def upsert(self, name: str, email: str) -> ContactEntry:
        self.upserts.append((name, email))
        if self.fail:
            raise DirectoryError("directory unavailable")
        return await super().upsert(name, email)


@pytest.fixture
def directory():
    return CountingDirectory({"vini": "v@z.com", "Ana Souza": "ana@exemplo.com"})


@pytest.fixture
def resolver(directory):
    return GuestResolver(directory)


@pytest.fixture
def merge_engine(resolver):
    return DraftMergeEngine(resolver)


@pytest.fixture
def calendar():
    return InMemoryCalendarProvider()


@pytest.fixture
def dispatcher(calendar):
    return EventDispatcher(calendar, timezone="America/Sao_Paulo", timeout=1.0)


@pytest.fixture
def extractor():
    return ScriptedExtractor()


@pytest.fixture
def store():
    return DraftStore(ttl_minutes=30)


@pytest.fixture
def controller(extractor, merge_engine, directory, dispatcher, store):
    return DialogueController(
        extractor=extractor,
        merger=merge_engine,
        directory=directory,
        dispatcher=dispatcher,
        store=store,
        today=lambda: TODAY,
    )
