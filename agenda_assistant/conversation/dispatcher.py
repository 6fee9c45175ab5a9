"""
Event dispatcher: complete draft -> calendar event -> reply text.

Start and end timestamps are computed in one fixed reference zone, so
the same draft always produces the same request. Provider failures and
timeouts become a failure reply; nothing is retried here.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from agenda_assistant.errors import DispatchError
from agenda_assistant.prompts.prompt_templates import (
    build_event_confirmation,
    build_event_description,
    build_event_failure,
)
from agenda_assistant.schemas.calendar_schema import DispatchOutcome, EventRequest
from agenda_assistant.schemas.draft_schema import ConversationDraft
from agenda_assistant.tools.calendar import CalendarProvider

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Builds event requests and hands them to a CalendarProvider."""

    def __init__(
        self,
        provider: CalendarProvider,
        timezone: str = "America/Sao_Paulo",
        default_duration_minutes: int = 60,
        timeout: float = 15.0,
    ) -> None:
        self._provider = provider
        self._timezone = timezone
        self._zone = ZoneInfo(timezone)
        self._default_duration = default_duration_minutes
        self._timeout = timeout

    def build_request(self, draft: ConversationDraft) -> EventRequest:
        """Translate a complete draft into a provider-neutral event request."""
        if not (draft.title and draft.date and draft.time):
            raise ValueError("Cannot build an event from an incomplete draft")
        start = datetime.combine(
            date.fromisoformat(draft.date),
            time.fromisoformat(draft.time),
            tzinfo=self._zone,
        )
        duration = draft.duration_minutes or self._default_duration
        return EventRequest(
            summary=draft.title,
            description=build_event_description(draft.resolved_guests),
            start=start,
            end=start + timedelta(minutes=duration),
            time_zone=self._timezone,
            attendees=list(draft.resolved_guests),
        )

    async def dispatch(self, draft: ConversationDraft) -> DispatchOutcome:
        try:
            request = self.build_request(draft)
        except (OverflowError, ValueError) as exc:
            logger.error("Draft cannot become an event: %s", exc)
            return DispatchOutcome(success=False, message=build_event_failure(str(exc)))
        try:
            confirmation = await asyncio.wait_for(
                self._provider.create_event(request), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.error("Calendar provider timed out after %ss", self._timeout)
            return DispatchOutcome(
                success=False,
                message=build_event_failure(f"tempo limite de {self._timeout:g}s excedido"),
            )
        except DispatchError as exc:
            logger.error("Calendar provider rejected event: %s", exc)
            return DispatchOutcome(success=False, message=build_event_failure(str(exc)))

        logger.info(
            "Event '%s' created at %s with %d attendee(s)",
            request.summary, request.start.isoformat(), len(request.attendees),
        )
        return DispatchOutcome(
            success=True,
            message=build_event_confirmation(request.summary, confirmation.link),
            link=confirmation.link or None,
        )
