"""
Calendar provider adapters.

GoogleCalendarProvider inserts events through the Google Calendar v3 API
using an authorized-user token file. InMemoryCalendarProvider records
requests and returns ``mock://`` links for the console demo and tests.
"""

import asyncio
import logging
import uuid
from typing import Any, Optional

from agenda_assistant.errors import DispatchError
from agenda_assistant.schemas.calendar_schema import EventConfirmation, EventRequest

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


class CalendarProvider:
    """Interface shared by all calendar adapters."""

    async def create_event(self, request: EventRequest) -> EventConfirmation:
        """Persist an event.

        Raises:
            DispatchError: If the provider rejects or fails to create the event.
        """
        raise NotImplementedError


class GoogleCalendarProvider(CalendarProvider):
    """Google Calendar v3 adapter. Blocking client calls run in a worker thread."""

    def __init__(self, token_file: str, calendar_id: str = "primary") -> None:
        self._token_file = token_file
        self._calendar_id = calendar_id

    def _build_service(self) -> Any:
        """Build a fresh client; httplib2 transports are not shared across threads."""
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from googleapiclient.discovery import build

        creds = Credentials.from_authorized_user_file(self._token_file, SCOPES)
        if not creds.valid and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        return build("calendar", "v3", credentials=creds, cache_discovery=False)

    def _insert(self, body: dict[str, Any]) -> dict[str, Any]:
        service = self._build_service()
        return (
            service.events()
            .insert(calendarId=self._calendar_id, body=body, sendUpdates="all")
            .execute()
        )

    async def create_event(self, request: EventRequest) -> EventConfirmation:
        from google.auth.exceptions import GoogleAuthError
        from googleapiclient.errors import HttpError

        try:
            event = await asyncio.to_thread(self._insert, request.to_google_body())
        except HttpError as exc:
            raise DispatchError(f"Calendar API error: {exc.reason}") from exc
        except (GoogleAuthError, OSError, ValueError) as exc:
            raise DispatchError(f"Calendar authorization failed: {exc}") from exc

        logger.info("Created event %s", event.get("id"))
        return EventConfirmation(event_id=event.get("id", ""), link=event.get("htmlLink", ""))


class InMemoryCalendarProvider(CalendarProvider):
    """Records every request; optionally fails with a fixed error."""

    def __init__(self, fail_with: Optional[str] = None) -> None:
        self.requests: list[EventRequest] = []
        self.fail_with = fail_with

    async def create_event(self, request: EventRequest) -> EventConfirmation:
        self.requests.append(request)
        if self.fail_with:
            raise DispatchError(self.fail_with)
        event_id = f"mock_{uuid.uuid4().hex[:10]}"
        logger.info("MOCK create event %s", event_id)
        return EventConfirmation(event_id=event_id, link=f"mock://{event_id}")

    def reset(self) -> None:
        """Clear recorded requests. Used by test fixtures for isolation."""
        self.requests.clear()
        self.fail_with = None
