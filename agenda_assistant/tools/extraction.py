"""
Extraction adapters: raw user text -> classified intent and fields.

OpenAIExtractionClient asks a chat model for JSON and decodes it with
parse_extraction. KeywordExtractionClient is an offline heuristic used by
the console demo when no model is configured.
"""

import asyncio
import logging
import re
from datetime import date, timedelta
from typing import Any, Optional

import openai

from pydantic import ValidationError

from agenda_assistant.errors import ExtractionError, ExtractionFormatError
from agenda_assistant.prompts.prompt_templates import build_extraction_prompt
from agenda_assistant.prompts.system_prompts import EXTRACTION_SYSTEM_PROMPT
from agenda_assistant.schemas.extraction_schema import (
    ContactFields,
    ExtractionResult,
    GreetingIntent,
    SaveContactIntent,
    ScheduleFields,
    ScheduleIntent,
    UnrelatedIntent,
    parse_extraction,
)

logger = logging.getLogger(__name__)


class ExtractionClient:
    """Interface shared by all extraction adapters."""

    async def extract(
        self, text: str, context: Optional[dict[str, Any]], today: date
    ) -> ExtractionResult:
        """Classify ``text`` and extract its fields.

        Raises:
            ExtractionFormatError: If the provider output cannot be decoded.
            ExtractionError: If the provider fails or times out.
        """
        raise NotImplementedError


class OpenAIExtractionClient(ExtractionClient):
    """Chat-completions extractor with a bounded per-call timeout."""

    def __init__(
        self,
        client: Any = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.0,
        timeout: float = 15.0,
        api_key: Optional[str] = None,
    ) -> None:
        self._client = client or openai.AsyncOpenAI(api_key=api_key or None)
        self._model = model
        self._temperature = temperature
        self._timeout = timeout

    async def extract(
        self, text: str, context: Optional[dict[str, Any]], today: date
    ) -> ExtractionResult:
        prompt = build_extraction_prompt(text, context, today)
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    temperature=self._temperature,
                    response_format={"type": "json_object"},
                    messages=[
                        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExtractionError(f"Extraction timed out after {self._timeout}s") from exc
        except openai.OpenAIError as exc:
            raise ExtractionError(f"Extraction provider failed: {exc}") from exc

        if not response.choices:
            raise ExtractionFormatError("Extractor returned no choices")
        content = response.choices[0].message.content or ""
        logger.debug("Extractor raw output: %s", content)
        return parse_extraction(content)


_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_TIME_RE = re.compile(r"\b(\d{1,2})(?::(\d{2})|h(\d{2})?)(?!\w)")
_DURATION_RE = re.compile(r"\b(\d+)\s*min(?:utos)?\b")
_GUESTS_RE = re.compile(r"\bcom\s+(.+)$")
_GUEST_SPLIT_RE = re.compile(r"\s*,\s*|\s+e\s+")
_TITLE_RE = re.compile(
    r"\b(?:agendar|marcar)\s+(?:uma\s+|um\s+)?(.+?)"
    r"(?=\s+(?:dia|para|no|na|em|às|as|com|amanhã|hoje)\b|\s*[,.!?]|$)"
)
_CONTACT_RE = re.compile(
    r"\b(?:salvar|salve|adicionar|adicione)\s+(?:o\s+)?contato\s+(?:d[oae]\s+)?(.*)$"
)
_SCHEDULE_WORDS_RE = re.compile(r"\b(agendar|marcar|reuni[aã]o|convid\w+)\b")
_CONTINUE_WORDS_RE = re.compile(r"\b(tentar de novo|de novo|sim|ok|pode)\b")
_GREETINGS = {"oi", "olá", "ola", "bom dia", "boa tarde", "boa noite", "e aí", "e ai", "hello"}


class KeywordExtractionClient(ExtractionClient):
    """Offline pt-BR keyword extractor. No network, no model."""

    async def extract(
        self, text: str, context: Optional[dict[str, Any]], today: date
    ) -> ExtractionResult:
        lowered = text.strip().lower()

        contact = _CONTACT_RE.search(lowered)
        if contact:
            return self._extract_contact(text, contact.start(1))

        if lowered.strip(" !.?,") in _GREETINGS:
            return GreetingIntent()

        fields = self._extract_schedule_fields(text, lowered, today)
        if fields.present() or _SCHEDULE_WORDS_RE.search(lowered):
            return ScheduleIntent(fields=fields)
        if context and _CONTINUE_WORDS_RE.search(lowered):
            return ScheduleIntent()
        return UnrelatedIntent()

    @staticmethod
    def _extract_contact(text: str, start: int) -> SaveContactIntent:
        rest = text.strip()[start:]
        email_match = _EMAIL_RE.search(rest)
        email = email_match.group(0) if email_match else None
        name = _EMAIL_RE.sub("", rest).strip(" ,:-")
        try:
            return SaveContactIntent(fields=ContactFields(name=name or None, email=email))
        except ValidationError as exc:
            raise ExtractionFormatError(f"Contact fields not understood: {exc}") from exc

    @staticmethod
    def _extract_schedule_fields(text: str, lowered: str, today: date) -> ScheduleFields:
        values: dict[str, Any] = {}

        date_match = _DATE_RE.search(lowered)
        if date_match:
            values["date"] = date_match.group(1)
        elif re.search(r"\bamanhã\b", lowered):
            values["date"] = (today + timedelta(days=1)).isoformat()
        elif re.search(r"\bhoje\b", lowered):
            values["date"] = today.isoformat()

        time_match = _TIME_RE.search(lowered)
        if time_match:
            hour = int(time_match.group(1))
            minute = int(time_match.group(2) or time_match.group(3) or 0)
            if hour < 24 and minute < 60:
                values["time"] = f"{hour:02d}:{minute:02d}"

        duration_match = _DURATION_RE.search(lowered)
        if duration_match:
            values["duration"] = int(duration_match.group(1))

        title_match = _TITLE_RE.search(lowered)
        if title_match:
            start, end = title_match.span(1)
            values["title"] = text.strip()[start:end].strip()

        guests: list[str] = []
        guests_match = _GUESTS_RE.search(lowered)
        if guests_match:
            start, end = guests_match.span(1)
            segment = text.strip()[start:end].strip(" .!?")
            guests.extend(t for t in _GUEST_SPLIT_RE.split(segment) if t)
        for email in _EMAIL_RE.findall(text):
            if email not in guests:
                guests.append(email)
        if guests:
            values["guests"] = guests

        try:
            return ScheduleFields(**values)
        except ValidationError as exc:
            raise ExtractionFormatError(f"Schedule fields not understood: {exc}") from exc
