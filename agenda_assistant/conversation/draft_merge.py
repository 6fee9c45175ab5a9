"""
Draft merge engine: combine a turn's extracted fields with the open draft.

Merging is last-write-wins per field. Guest tokens are replaced, never
accumulated, and are re-resolved against the directory on every merge,
so a draft's attendees always reflect the latest stated guest list.

Usage:
    engine = DraftMergeEngine(GuestResolver(directory))
    result = await engine.merge(existing_draft, ScheduleFields(date="2025-07-01"))
    if not result.missing:
        ...  # ready to dispatch
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from agenda_assistant.conversation.guest_resolver import GuestResolver
from agenda_assistant.schemas.draft_schema import ConversationDraft
from agenda_assistant.schemas.extraction_schema import ScheduleFields

logger = logging.getLogger(__name__)

# Reporting order is fixed so prompts are reproducible.
REQUIRED_FIELDS: tuple[str, ...] = ("title", "date", "time", "guests")


@dataclass
class MergeResult:
    """Merged draft plus what is still needed before it can be dispatched."""

    draft: ConversationDraft
    missing: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


def draft_to_fields(draft: Optional[ConversationDraft]) -> ScheduleFields:
    """Project a draft back onto the extractor's field shape."""
    if draft is None:
        return ScheduleFields()
    return ScheduleFields(
        title=draft.title,
        date=draft.date,
        time=draft.time,
        duration=draft.duration_minutes,
        guests=list(draft.raw_guests) or None,
    )


def merge_fields(
    existing: Optional[ConversationDraft], incoming: ScheduleFields
) -> ConversationDraft:
    """Pure last-write-wins merge. Resolved guests are left for the resolver."""
    merged = draft_to_fields(existing).overlay(incoming)
    return ConversationDraft(
        title=merged.title,
        date=merged.date,
        time=merged.time,
        duration_minutes=merged.duration,
        raw_guests=list(merged.guests or []),
        resolved_guests=list(existing.resolved_guests) if existing else [],
    )


def compute_missing(draft: ConversationDraft) -> list[str]:
    """Required fields still unset, in REQUIRED_FIELDS order."""
    present = {
        "title": bool(draft.title and draft.title.strip()),
        "date": draft.date is not None,
        "time": draft.time is not None,
        "guests": bool(draft.resolved_guests),
    }
    return [name for name in REQUIRED_FIELDS if not present[name]]


class DraftMergeEngine:
    """Merge + guest resolution + completeness check for one turn."""

    def __init__(self, resolver: GuestResolver) -> None:
        self._resolver = resolver

    async def merge(
        self, existing: Optional[ConversationDraft], incoming: ScheduleFields
    ) -> MergeResult:
        draft = merge_fields(existing, incoming)
        resolution = await self._resolver.resolve(draft.raw_guests)
        draft.resolved_guests = resolution.resolved
        missing = compute_missing(draft)
        logger.debug(
            "Merged draft: present=%s missing=%s unresolved=%s",
            sorted(incoming.present()), missing, resolution.unresolved,
        )
        return MergeResult(draft=draft, missing=missing, unresolved=resolution.unresolved)
