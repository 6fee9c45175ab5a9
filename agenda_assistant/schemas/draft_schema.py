"""Per-user scheduling draft."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ConversationDraft:
    """
    Accumulating, not-yet-complete booking request for one user.

    Lives in the DraftStore only while the user has an open booking.
    ``resolved_guests`` behaves as a set: de-duplicated, lower-cased,
    kept in first-seen order so attendee lists are reproducible.
    """
    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    duration_minutes: Optional[int] = None
    raw_guests: list[str] = field(default_factory=list)
    resolved_guests: list[str] = field(default_factory=list)
    updated_at: float = 0.0

    def to_context(self) -> dict[str, Any]:
        """Serialize the draft as conversational context for the extractor."""
        return {
            "title": self.title,
            "date": self.date,
            "time": self.time,
            "duration": self.duration_minutes,
            "guests": list(self.raw_guests),
        }
