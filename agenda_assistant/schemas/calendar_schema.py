"""Calendar event request and dispatch result models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventRequest(BaseModel):
    """Calendar-event creation request built from a complete draft."""
    summary: str
    description: str
    start: datetime
    end: datetime
    time_zone: str
    attendees: list[str] = Field(default_factory=list)

    def to_google_body(self) -> dict[str, Any]:
        """Render the Google Calendar v3 ``events.insert`` body."""
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"dateTime": self.start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": self.end.isoformat(), "timeZone": self.time_zone},
            "attendees": [{"email": email} for email in self.attendees],
        }


class EventConfirmation(BaseModel):
    """Provider acknowledgement of a created event."""
    event_id: str
    link: str = ""


class DispatchOutcome(BaseModel):
    """Result of a dispatch attempt, already phrased for the user."""
    success: bool
    message: str
    link: Optional[str] = None
