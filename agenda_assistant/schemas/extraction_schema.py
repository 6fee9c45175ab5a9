"""
Extraction result variants and their defensive decoder.

The extractor is an LLM, so its output is untrusted: any JSON that does
not decode into one of the variants below is reported as
ExtractionFormatError and never reaches the dialogue state.
"""

import json
from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from agenda_assistant.errors import ExtractionFormatError
from agenda_assistant.utils import strip_json_decoration

# One day; longer events are rejected as decode failures.
MAX_DURATION_MINUTES = 24 * 60


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ScheduleFields(BaseModel):
    """Booking attributes stated in a single turn. None means absent."""

    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0, le=MAX_DURATION_MINUTES)
    guests: Optional[list[str]] = None

    @field_validator("title", "date", "time", "duration", mode="before")
    @classmethod
    def _strip_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return datetime.strptime(value, "%Y-%m-%d").strftime("%Y-%m-%d")

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                return datetime.strptime(value, fmt).strftime("%H:%M")
            except ValueError:
                continue
        raise ValueError(f"time must be HH:MM, got {value!r}")

    @field_validator("guests", mode="before")
    @classmethod
    def _coerce_guests(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ValueError("guests must be a list of strings")
        tokens = []
        for item in value:
            if not isinstance(item, str):
                raise ValueError("guest entries must be strings")
            if item.strip():
                tokens.append(item.strip())
        return tokens or None

    def present(self) -> dict[str, Any]:
        """Return only the fields this turn actually stated."""
        return self.model_dump(exclude_none=True)

    def overlay(self, other: "ScheduleFields") -> "ScheduleFields":
        """Copy of self where every field present in ``other`` wins."""
        return self.model_copy(update=other.present())


class ContactFields(BaseModel):
    """Contact attributes stated in a save_contact turn."""

    name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name", "email", mode="before")
    @classmethod
    def _strip_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ScheduleIntent(BaseModel):
    intent: Literal["schedule"] = "schedule"
    fields: ScheduleFields = Field(default_factory=ScheduleFields)


class SaveContactIntent(BaseModel):
    intent: Literal["save_contact"] = "save_contact"
    fields: ContactFields = Field(default_factory=ContactFields)


class GreetingIntent(BaseModel):
    intent: Literal["greeting"] = "greeting"


class UnrelatedIntent(BaseModel):
    intent: Literal["unrelated"] = "unrelated"


class UnknownIntent(BaseModel):
    """Any intent label the controller does not recognize."""
    intent: str


ExtractionResult = Union[
    ScheduleIntent, SaveContactIntent, GreetingIntent, UnrelatedIntent, UnknownIntent
]

_INTENT_MODELS: dict[str, type[BaseModel]] = {
    "schedule": ScheduleIntent,
    "save_contact": SaveContactIntent,
    "greeting": GreetingIntent,
    "unrelated": UnrelatedIntent,
}


def parse_extraction(text: str) -> ExtractionResult:
    """
    Decode raw extractor output into an ExtractionResult variant.

    Code fences and prose around the JSON object are stripped first.
    When the payload has no ``fields`` object, the remaining top-level
    keys are taken as the fields.

    Raises:
        ExtractionFormatError: If the output is not a JSON object with a
            string ``intent`` or its fields do not match the intent's shape.
    """
    payload = strip_json_decoration(text or "")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ExtractionFormatError(f"Extractor output is not JSON: {payload[:200]!r}") from exc

    if not isinstance(data, dict):
        raise ExtractionFormatError(f"Extractor output is not an object: {type(data).__name__}")

    intent = data.get("intent")
    if not isinstance(intent, str) or not intent.strip():
        raise ExtractionFormatError("Extractor output has no intent")
    intent = intent.strip().lower()

    model = _INTENT_MODELS.get(intent)
    if model is None:
        return UnknownIntent(intent=intent)

    if "fields" in data:
        fields = data["fields"] if data["fields"] is not None else {}
    else:
        fields = {k: v for k, v in data.items() if k != "intent"}
    if not isinstance(fields, dict):
        raise ExtractionFormatError("Extractor fields must be an object")

    try:
        return model.model_validate({"intent": intent, "fields": fields})  # type: ignore[return-value]
    except ValidationError as exc:
        raise ExtractionFormatError(f"Extractor fields do not match '{intent}': {exc}") from exc
