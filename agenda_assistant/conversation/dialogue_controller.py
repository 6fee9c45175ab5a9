"""
Dialogue controller: the single entry point for inbound messages.

Each call to ``handle_turn`` runs one full turn under the user's lock:
Extraction -> Merge -> Resolve -> completion check -> Dispatch, then the
resulting dialogue state decides whether the draft is stored or cleared.
Every outcome, including failures, becomes a reply string.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from agenda_assistant.conversation.dispatcher import EventDispatcher
from agenda_assistant.conversation.draft_merge import DraftMergeEngine
from agenda_assistant.conversation.draft_store import DraftStore
from agenda_assistant.conversation.state_machine import (
    DialogueState,
    DialogueStateMachine,
    TransitionTrigger,
)
from agenda_assistant.errors import DirectoryError, DuplicateContactError, ExtractionError
from agenda_assistant.logging_context import set_user_id
from agenda_assistant.prompts.prompt_templates import (
    CONTACT_CLARIFICATION_REPLY,
    DIRECTORY_APOLOGY_REPLY,
    GREETING_REPLY,
    RETRY_REPLY,
    UNKNOWN_INTENT_REPLY,
    UNRELATED_REPLY,
    build_contact_saved_reply,
    build_duplicate_contact_reply,
    build_missing_fields_reply,
    build_unresolved_guests_notice,
)
from agenda_assistant.schemas.draft_schema import ConversationDraft
from agenda_assistant.schemas.extraction_schema import (
    GreetingIntent,
    SaveContactIntent,
    ScheduleIntent,
    UnrelatedIntent,
)
from agenda_assistant.tools.contacts import ContactDirectory
from agenda_assistant.tools.extraction import ExtractionClient
from agenda_assistant.utils import looks_like_email

logger = logging.getLogger(__name__)


class DialogueController:
    """Owns per-user draft state and orchestrates one turn at a time per user."""

    def __init__(
        self,
        extractor: ExtractionClient,
        merger: DraftMergeEngine,
        directory: ContactDirectory,
        dispatcher: EventDispatcher,
        store: Optional[DraftStore] = None,
        timezone: str = "America/Sao_Paulo",
        drop_unresolved_guests: bool = True,
        save_contact_clears_draft: bool = True,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._extractor = extractor
        self._merger = merger
        self._directory = directory
        self._dispatcher = dispatcher
        self._store = store or DraftStore()
        self._machine = DialogueStateMachine()
        self._zone = ZoneInfo(timezone)
        self._drop_unresolved = drop_unresolved_guests
        self._contact_clears_draft = save_contact_clears_draft
        self._today = today or (lambda: datetime.now(self._zone).date())

    @property
    def store(self) -> DraftStore:
        return self._store

    async def handle_turn(self, user_id: str, text: str) -> str:
        """Process one inbound message and return the reply for ``user_id``."""
        set_user_id(user_id)
        async with self._store.locked(user_id):
            return await self._handle_locked(user_id, text)

    async def _handle_locked(self, user_id: str, text: str) -> str:
        draft = self._store.get(user_id)
        state = DialogueState.DRAFTING if draft else DialogueState.EMPTY
        logger.info("Turn received (state: %s)", state.value)

        try:
            result = await self._extractor.extract(
                text, draft.to_context() if draft else None, self._today()
            )
        except ExtractionError as exc:
            logger.warning("Extraction failed, state untouched: %s", exc)
            return RETRY_REPLY

        if isinstance(result, ScheduleIntent):
            return await self._handle_schedule(user_id, state, draft, result)
        if isinstance(result, SaveContactIntent):
            return await self._handle_save_contact(user_id, state, result)
        if isinstance(result, GreetingIntent):
            self._abandon(user_id, state)
            return GREETING_REPLY
        if isinstance(result, UnrelatedIntent):
            self._abandon(user_id, state)
            return UNRELATED_REPLY

        logger.warning("Unrecognized intent '%s', ignoring turn", result.intent)
        return UNKNOWN_INTENT_REPLY

    async def _handle_schedule(
        self,
        user_id: str,
        state: DialogueState,
        draft: Optional[ConversationDraft],
        result: ScheduleIntent,
    ) -> str:
        try:
            merged = await self._merger.merge(draft, result.fields)
        except DirectoryError as exc:
            logger.error("Guest resolution failed, draft untouched: %s", exc)
            return DIRECTORY_APOLOGY_REPLY

        notice = ""
        if merged.unresolved:
            notice = build_unresolved_guests_notice(merged.unresolved, self._drop_unresolved)
        blocked = bool(merged.unresolved) and not self._drop_unresolved

        if merged.missing or blocked:
            state = self._machine.transition(state, TransitionTrigger.FIELDS_MISSING)
            self._apply(user_id, state, merged.draft)
            parts = [build_missing_fields_reply(merged.missing)] if merged.missing else []
            if notice:
                parts.append(notice)
            return " ".join(parts)

        state = self._machine.transition(state, TransitionTrigger.FIELDS_COMPLETE)
        outcome = await self._dispatcher.dispatch(merged.draft)
        trigger = (
            TransitionTrigger.DISPATCH_SUCCEEDED
            if outcome.success
            else TransitionTrigger.DISPATCH_FAILED
        )
        state = self._machine.transition(state, trigger)
        self._apply(user_id, state, merged.draft)
        return f"{outcome.message} {notice}".strip()

    async def _handle_save_contact(
        self, user_id: str, state: DialogueState, result: SaveContactIntent
    ) -> str:
        name = result.fields.name
        email = result.fields.email
        if not name or not email or not looks_like_email(email):
            return CONTACT_CLARIFICATION_REPLY

        try:
            entry = await self._directory.upsert(name, email)
        except DuplicateContactError as exc:
            logger.info("Contact not saved, email already in use: %s", exc)
            return build_duplicate_contact_reply(exc.email, exc.existing_name)
        except DirectoryError as exc:
            logger.error("Contact upsert failed: %s", exc)
            return DIRECTORY_APOLOGY_REPLY

        if self._contact_clears_draft:
            self._apply(user_id, self._machine.transition(state, TransitionTrigger.CONTACT_SAVED))
        return build_contact_saved_reply(entry.name, entry.email)

    def _abandon(self, user_id: str, state: DialogueState) -> None:
        self._apply(user_id, self._machine.transition(state, TransitionTrigger.ABANDONED))

    def _apply(
        self,
        user_id: str,
        state: DialogueState,
        draft: Optional[ConversationDraft] = None,
    ) -> None:
        """Make the store reflect ``state``: a stored draft iff DRAFTING."""
        if state == DialogueState.DRAFTING and draft is not None:
            self._store.put(user_id, draft)
        elif state == DialogueState.EMPTY and self._store.clear(user_id):
            logger.info("Draft cleared")
