"""Integration tests: controller + merge engine + resolver + dispatcher together."""

import asyncio

import pytest

from agenda_assistant.conversation.dialogue_controller import DialogueController
from agenda_assistant.errors import ExtractionError, ExtractionFormatError
from agenda_assistant.prompts.prompt_templates import (
    CONTACT_CLARIFICATION_REPLY,
    DIRECTORY_APOLOGY_REPLY,
    GREETING_REPLY,
    RETRY_REPLY,
    UNKNOWN_INTENT_REPLY,
    UNRELATED_REPLY,
)
from agenda_assistant.schemas.draft_schema import ConversationDraft
from agenda_assistant.schemas.extraction_schema import (
    ContactFields,
    GreetingIntent,
    SaveContactIntent,
    ScheduleFields,
    ScheduleIntent,
    UnknownIntent,
    UnrelatedIntent,
)
from agenda_assistant.tools.extraction import KeywordExtractionClient
from conftest import TODAY

USER = "whatsapp:+5511999990000"
OTHER = "whatsapp:+5511888880000"


def schedule(**fields) -> ScheduleIntent:
    return ScheduleIntent(fields=ScheduleFields(**fields))


def complete(**overrides) -> ScheduleIntent:
    values = dict(title="Reunião", date="2025-07-01", time="15:00", guests=["vini"])
    values.update(overrides)
    return schedule(**values)


class TestScenarioA:
    """Title first, then the rest: draft stored, then dispatched and cleared."""

    @pytest.mark.asyncio
    async def test_slot_filling_then_dispatch(self, controller, extractor, store, calendar):
        extractor.push(schedule(title="reunião"))
        reply = await controller.handle_turn(USER, "agendar reunião")
        assert "data, hora, convidados" in reply
        assert "título" not in reply
        assert store.get(USER).title == "reunião"

        extractor.push(schedule(date="2025-07-01", time="15:00", guests=["vini"]))
        reply = await controller.handle_turn(USER, "dia 2025-07-01 às 15:00 com vini")
        assert "reunião" in reply
        assert "✅" in reply
        assert store.get(USER) is None
        assert len(calendar.requests) == 1
        assert calendar.requests[0].attendees == ["v@z.com"]
        assert calendar.requests[0].summary == "reunião"

    @pytest.mark.asyncio
    async def test_extractor_receives_draft_context(self, controller, extractor):
        extractor.push(schedule(title="reunião"), schedule(guests=["vini"]))
        await controller.handle_turn(USER, "agendar reunião")
        await controller.handle_turn(USER, "e convide o vini")
        assert extractor.calls[0][1] is None
        assert extractor.calls[1][1]["title"] == "reunião"
        assert extractor.calls[1][2] == TODAY

    @pytest.mark.asyncio
    async def test_with_keyword_extractor(self, merge_engine, directory, dispatcher, calendar):
        controller = DialogueController(
            KeywordExtractionClient(), merge_engine, directory, dispatcher, today=lambda: TODAY
        )
        first = await controller.handle_turn(USER, "agendar reunião")
        assert "data, hora, convidados" in first
        second = await controller.handle_turn(USER, "dia 2025-07-01 às 15:00 com vini")
        assert "reunião" in second
        assert calendar.requests[0].start.isoformat() == "2025-07-01T15:00:00-03:00"


class TestScenarioB:
    """An unrelated message abandons the open draft."""

    @pytest.mark.asyncio
    async def test_unrelated_clears_then_fresh_draft(self, controller, extractor, store):
        extractor.push(schedule(title="reunião"))
        await controller.handle_turn(USER, "agendar reunião")

        extractor.push(UnrelatedIntent())
        reply = await controller.handle_turn(USER, "qual o clima?")
        assert reply == UNRELATED_REPLY
        assert store.get(USER) is None

        extractor.push(schedule(date="2025-07-01", time="15:00"))
        reply = await controller.handle_turn(USER, "sim, 2025-07-01 15:00")
        assert extractor.calls[-1][1] is None
        assert "título, convidados" in reply
        draft = store.get(USER)
        assert draft.date == "2025-07-01"
        assert draft.time == "15:00"
        assert draft.title is None

    @pytest.mark.asyncio
    async def test_greeting_clears_draft(self, controller, extractor, store):
        extractor.push(schedule(title="reunião"), GreetingIntent())
        await controller.handle_turn(USER, "agendar reunião")
        reply = await controller.handle_turn(USER, "oi")
        assert reply == GREETING_REPLY
        assert store.get(USER) is None

    @pytest.mark.asyncio
    async def test_greeting_without_draft(self, controller, extractor, store):
        extractor.push(GreetingIntent())
        assert await controller.handle_turn(USER, "oi") == GREETING_REPLY
        assert store.get(USER) is None


class TestScenarioC:
    """save_contact upserts exactly once and overwrites by name."""

    @pytest.mark.asyncio
    async def test_save_contact(self, controller, extractor, directory):
        extractor.push(SaveContactIntent(fields=ContactFields(name="Vini", email="vini@x.com")))
        reply = await controller.handle_turn(USER, "salvar contato Vini vini@x.com")
        assert directory.upserts == [("Vini", "vini@x.com")]
        assert "Vini" in reply
        assert "vini@x.com" in reply

    @pytest.mark.asyncio
    async def test_second_save_overwrites_email(self, controller, extractor, directory):
        extractor.push(
            SaveContactIntent(fields=ContactFields(name="Vini", email="vini@x.com")),
            SaveContactIntent(fields=ContactFields(name="Vini", email="vini@novo.com")),
        )
        await controller.handle_turn(USER, "salvar contato Vini vini@x.com")
        await controller.handle_turn(USER, "salvar contato Vini vini@novo.com")
        assert await directory.lookup("vini") == "vini@novo.com"

    @pytest.mark.asyncio
    async def test_missing_email_asks_for_clarification(self, controller, extractor, store, directory):
        store.put(USER, ConversationDraft(title="reunião"))
        extractor.push(SaveContactIntent(fields=ContactFields(name="Vini")))
        reply = await controller.handle_turn(USER, "salvar contato Vini")
        assert reply == CONTACT_CLARIFICATION_REPLY
        assert directory.upserts == []
        assert store.get(USER).title == "reunião"

    @pytest.mark.asyncio
    async def test_invalid_email_asks_for_clarification(self, controller, extractor, directory):
        extractor.push(SaveContactIntent(fields=ContactFields(name="Vini", email="vini")))
        assert await controller.handle_turn(USER, "x") == CONTACT_CLARIFICATION_REPLY
        assert directory.upserts == []

    @pytest.mark.asyncio
    async def test_save_contact_clears_open_draft(self, controller, extractor, store):
        store.put(USER, ConversationDraft(title="reunião"))
        extractor.push(SaveContactIntent(fields=ContactFields(name="Vini", email="vini@x.com")))
        await controller.handle_turn(USER, "salvar contato Vini vini@x.com")
        assert store.get(USER) is None

    @pytest.mark.asyncio
    async def test_save_contact_can_keep_draft(self, extractor, merge_engine, directory, dispatcher, store):
        controller = DialogueController(
            extractor, merge_engine, directory, dispatcher, store=store,
            save_contact_clears_draft=False, today=lambda: TODAY,
        )
        store.put(USER, ConversationDraft(title="reunião"))
        extractor.push(SaveContactIntent(fields=ContactFields(name="Vini", email="vini@x.com")))
        await controller.handle_turn(USER, "salvar contato Vini vini@x.com")
        assert store.get(USER).title == "reunião"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_informational(self, controller, extractor, directory, store):
        store.put(USER, ConversationDraft(title="reunião"))
        extractor.push(SaveContactIntent(fields=ContactFields(name="Outro", email="v@z.com")))
        reply = await controller.handle_turn(USER, "salvar contato Outro v@z.com")
        assert "v@z.com" in reply
        assert "vini" in reply
        assert await directory.lookup("outro") is None
        assert store.get(USER).title == "reunião"

    @pytest.mark.asyncio
    async def test_directory_failure_on_save(self, controller, extractor, directory, store):
        store.put(USER, ConversationDraft(title="reunião"))
        directory.fail = True
        extractor.push(SaveContactIntent(fields=ContactFields(name="Vini", email="vini@x.com")))
        assert await controller.handle_turn(USER, "x") == DIRECTORY_APOLOGY_REPLY
        assert store.get(USER).title == "reunião"


class TestExtractionFailures:
    @pytest.mark.asyncio
    async def test_format_error_leaves_draft_untouched(self, controller, extractor, store):
        draft = ConversationDraft(title="reunião", date="2025-07-01")
        store.put(USER, draft)
        extractor.push("Desculpe, não consegui gerar o JSON.")
        reply = await controller.handle_turn(USER, "???")
        assert reply == RETRY_REPLY
        assert store.get(USER) is draft

    @pytest.mark.asyncio
    async def test_format_error_without_draft(self, controller, extractor, store):
        extractor.push(ExtractionFormatError("bad shape"))
        assert await controller.handle_turn(USER, "???") == RETRY_REPLY
        assert store.get(USER) is None

    @pytest.mark.asyncio
    async def test_provider_timeout_is_retry(self, controller, extractor, store):
        store.put(USER, ConversationDraft(title="reunião"))
        extractor.push(ExtractionError("timed out"))
        assert await controller.handle_turn(USER, "x") == RETRY_REPLY
        assert store.get(USER).title == "reunião"

    @pytest.mark.asyncio
    async def test_fenced_model_output_is_accepted(self, controller, extractor, store):
        extractor.push('```json\n{"intent": "schedule", "fields": {"title": "Daily"}}\n```')
        await controller.handle_turn(USER, "agendar daily")
        assert store.get(USER).title == "Daily"

    @pytest.mark.asyncio
    async def test_unknown_intent_is_noop(self, controller, extractor, store):
        draft = ConversationDraft(title="reunião")
        store.put(USER, draft)
        extractor.push(UnknownIntent(intent="weather"))
        assert await controller.handle_turn(USER, "x") == UNKNOWN_INTENT_REPLY
        assert store.get(USER) is draft


class TestDispatchOutcomes:
    @pytest.mark.asyncio
    async def test_dispatch_failure_keeps_draft(self, controller, extractor, store, calendar):
        calendar.fail_with = "Calendar API error: backendError"
        extractor.push(complete())
        reply = await controller.handle_turn(USER, "agendar tudo")
        assert "backendError" in reply
        assert "tentar de novo" in reply
        draft = store.get(USER)
        assert draft.title == "Reunião"
        assert draft.resolved_guests == ["v@z.com"]

    @pytest.mark.asyncio
    async def test_retry_after_failure_uses_kept_draft(self, controller, extractor, store, calendar):
        calendar.fail_with = "backendError"
        extractor.push(complete())
        await controller.handle_turn(USER, "agendar tudo")

        calendar.fail_with = None
        extractor.push(schedule())
        reply = await controller.handle_turn(USER, "tentar de novo")
        assert "✅" in reply
        assert store.get(USER) is None
        assert len(calendar.requests) == 2

    @pytest.mark.asyncio
    async def test_redelivered_message_dispatches_twice(self, controller, extractor, calendar):
        extractor.push(complete(), complete())
        await controller.handle_turn(USER, "reunião amanhã 15h com vini")
        await controller.handle_turn(USER, "reunião amanhã 15h com vini")
        assert len(calendar.requests) == 2

    @pytest.mark.asyncio
    async def test_duration_flows_to_event(self, controller, extractor, calendar):
        extractor.push(complete(duration=30))
        await controller.handle_turn(USER, "x")
        request = calendar.requests[0]
        assert (request.end - request.start).total_seconds() == 30 * 60


class TestGuestResolution:
    @pytest.mark.asyncio
    async def test_unresolved_guest_surfaced_on_dispatch(self, controller, extractor, calendar):
        extractor.push(complete(guests=["vini", "fulano"]))
        reply = await controller.handle_turn(USER, "x")
        assert "✅" in reply
        assert "fulano" in reply
        assert calendar.requests[0].attendees == ["v@z.com"]

    @pytest.mark.asyncio
    async def test_only_unresolved_guests_keep_drafting(self, controller, extractor, store, calendar):
        extractor.push(complete(guests=["fulano"]))
        reply = await controller.handle_turn(USER, "x")
        assert "convidados" in reply
        assert "fulano" in reply
        assert store.get(USER).raw_guests == ["fulano"]
        assert calendar.requests == []

    @pytest.mark.asyncio
    async def test_strict_mode_blocks_on_unresolved(
        self, extractor, merge_engine, directory, dispatcher, store, calendar
    ):
        controller = DialogueController(
            extractor, merge_engine, directory, dispatcher, store=store,
            drop_unresolved_guests=False, today=lambda: TODAY,
        )
        extractor.push(complete(guests=["vini", "fulano"]))
        reply = await controller.handle_turn(USER, "x")
        assert "fulano" in reply
        assert "Informe o e-mail" in reply
        assert calendar.requests == []
        assert store.get(USER) is not None

    @pytest.mark.asyncio
    async def test_directory_failure_leaves_draft(self, controller, extractor, store, directory):
        draft = ConversationDraft(title="reunião")
        store.put(USER, draft)
        directory.fail = True
        extractor.push(schedule(guests=["vini"]))
        assert await controller.handle_turn(USER, "com vini") == DIRECTORY_APOLOGY_REPLY
        assert store.get(USER) is draft


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_user_turns_are_serialized(self, controller, extractor, store):
        extractor.push(schedule(title="reunião"), schedule(date="2025-07-01"))
        await asyncio.gather(
            controller.handle_turn(USER, "agendar reunião"),
            controller.handle_turn(USER, "dia 2025-07-01"),
        )
        assert extractor.calls[1][1]["title"] == "reunião"
        draft = store.get(USER)
        assert draft.title == "reunião"
        assert draft.date == "2025-07-01"

    @pytest.mark.asyncio
    async def test_other_users_proceed_while_one_waits(self, controller, extractor, store):
        extractor.gate = asyncio.Event()
        extractor.push(schedule(title="lenta"), schedule(title="rápida"))

        slow = asyncio.create_task(controller.handle_turn(USER, "agendar lenta"))
        await asyncio.sleep(0)
        fast = asyncio.create_task(controller.handle_turn(OTHER, "agendar rápida"))
        await asyncio.sleep(0)
        assert len(extractor.calls) == 2

        extractor.gate.set()
        await asyncio.gather(slow, fast)
        assert store.get(USER).title == "lenta"
        assert store.get(OTHER).title == "rápida"

    @pytest.mark.asyncio
    async def test_drafts_are_per_user(self, controller, extractor, store):
        extractor.push(schedule(title="A"), UnrelatedIntent())
        await controller.handle_turn(USER, "agendar A")
        await controller.handle_turn(OTHER, "qual o clima?")
        assert store.get(USER).title == "A"


class TestUnparseableUserInput:
    @pytest.fixture
    def keyword_controller(self, merge_engine, directory, dispatcher, store):
        return DialogueController(
            KeywordExtractionClient(), merge_engine, directory, dispatcher, store,
            today=lambda: TODAY,
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text", ["agendar reunião dia 2025-02-30", "agendar reunião 0 min", "agendar reunião 99999 min"]
    )
    async def test_invalid_fields_get_retry_reply(self, keyword_controller, store, text):
        draft = ConversationDraft(title="anterior")
        store.put(USER, draft)
        assert await keyword_controller.handle_turn(USER, text) == RETRY_REPLY
        assert store.get(USER) is draft

    @pytest.mark.asyncio
    async def test_event_beyond_calendar_range_keeps_draft(self, controller, extractor, store, calendar):
        extractor.push(
            '{"intent": "schedule", "fields": {"title": "R", "date": "9999-12-31",'
            ' "time": "23:30", "guests": ["vini"]}}'
        )
        reply = await controller.handle_turn(USER, "agendar R")
        assert "tentar de novo" in reply
        assert calendar.requests == []
        assert store.get(USER).date == "9999-12-31"
