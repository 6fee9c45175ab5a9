"""
Console transport for the scheduling assistant.

Wires the extractor, contact directory and calendar provider from
configuration and feeds each typed line to ``DialogueController.handle_turn``,
the same call a messaging webhook would make. ``--offline`` (or
MOCK_SERVICES=true) swaps every external service for its in-memory or
keyword stand-in, so no API keys are needed.

Usage:
    Interactive:    python main.py
    Offline demo:   python main.py --offline --scenario booking
"""

import argparse
import asyncio
import logging

from agenda_assistant.config import AppConfig, settings
from agenda_assistant.conversation import (
    DialogueController,
    DraftMergeEngine,
    DraftStore,
    EventDispatcher,
    GuestResolver,
)
from agenda_assistant.tools.calendar import (
    CalendarProvider,
    GoogleCalendarProvider,
    InMemoryCalendarProvider,
)
from agenda_assistant.tools.contacts import (
    ContactDirectory,
    InMemoryContactDirectory,
    SqlContactDirectory,
)
from agenda_assistant.tools.extraction import (
    ExtractionClient,
    KeywordExtractionClient,
    OpenAIExtractionClient,
)

logger = logging.getLogger(__name__)

BLUE = "\033[94m"
GREEN = "\033[92m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

# Pre-scripted conversations for the --scenario flag
SCENARIOS: dict[str, list[str]] = {
    "booking": [
        "oi",
        "salvar contato Vini vini@exemplo.com",
        "agendar reunião de planejamento",
        "dia 2025-07-01 às 15:00 com Vini",
    ],
    "abandon": [
        "agendar revisão de sprint",
        "qual o clima?",
        "sim, 2025-07-01 15:00",
    ],
    "unresolved": [
        "agendar almoço amanhã 12:30 com Fulano e ana@exemplo.com",
    ],
}


async def build_controller(config: AppConfig = settings, offline: bool = False) -> DialogueController:
    """Assemble a controller from configuration."""
    offline = offline or config.mock_services

    extractor: ExtractionClient
    if offline or not config.model.openai_api_key:
        logger.info("Extraction running in keyword mode")
        extractor = KeywordExtractionClient()
    else:
        extractor = OpenAIExtractionClient(
            model=config.model.llm_model,
            temperature=config.model.llm_temperature,
            timeout=config.model.extraction_timeout_sec,
            api_key=config.model.openai_api_key,
        )

    directory: ContactDirectory
    if offline or not config.directory.database_url:
        logger.info("Contact directory running in memory")
        directory = InMemoryContactDirectory()
    else:
        sql_directory = SqlContactDirectory.from_url(
            config.directory.database_url, echo=config.directory.echo_sql
        )
        await sql_directory.create_tables()
        directory = sql_directory

    provider: CalendarProvider
    if offline:
        logger.info("Calendar running in MOCK mode")
        provider = InMemoryCalendarProvider()
    else:
        provider = GoogleCalendarProvider(
            token_file=config.calendar.token_file,
            calendar_id=config.calendar.calendar_id,
        )

    return DialogueController(
        extractor=extractor,
        merger=DraftMergeEngine(GuestResolver(directory)),
        directory=directory,
        dispatcher=EventDispatcher(
            provider,
            timezone=config.calendar.timezone,
            default_duration_minutes=config.calendar.default_duration_minutes,
            timeout=config.calendar.dispatch_timeout_sec,
        ),
        store=DraftStore(ttl_minutes=config.dialogue.draft_ttl_minutes),
        timezone=config.calendar.timezone,
        drop_unresolved_guests=config.dialogue.drop_unresolved_guests,
        save_contact_clears_draft=config.dialogue.save_contact_clears_draft,
    )


def _banner(title: str) -> None:
    print()
    print(f"{BOLD}{'=' * 60}{RESET}")
    print(f"{BOLD}  {settings.assistant_name.upper()} - {title}{RESET}")
    print(f"{BOLD}{'=' * 60}{RESET}")


async def _say(controller: DialogueController, user_id: str, text: str) -> None:
    reply = await controller.handle_turn(user_id, text)
    print(f"{GREEN}{BOLD}[{settings.assistant_name}]{RESET} {GREEN}{reply}{RESET}")
    open_draft = controller.store.get(user_id)
    print(f"{DIM}  >> draft: {open_draft.to_context() if open_draft else None}{RESET}")


async def run_scenario(controller: DialogueController, user_id: str, scenario: str) -> None:
    """Auto-play a pre-scripted scenario."""
    steps = SCENARIOS.get(scenario)
    if not steps:
        raise SystemExit(f"Unknown scenario: {scenario}. Available: {sorted(SCENARIOS)}")
    _banner(f"Scenario: {scenario}")
    for step in steps:
        print(f"\n{BLUE}[{user_id}] {RESET}{step}")
        await _say(controller, user_id, step)


async def run_interactive(controller: DialogueController, user_id: str) -> None:
    _banner("Console (type 'quit' to exit)")
    while True:
        text = (await asyncio.to_thread(input, f"\n{BLUE}[{user_id}] {RESET}")).strip()
        if not text:
            continue
        if text.lower() in ("quit", "exit", "q"):
            print(f"\n{DIM}Session ended.{RESET}")
            return
        await _say(controller, user_id, text)


async def _main(args: argparse.Namespace) -> None:
    controller = await build_controller(offline=args.offline)
    if args.scenario:
        await run_scenario(controller, args.user, args.scenario)
    else:
        await run_interactive(controller, args.user)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Scheduling assistant console")
    parser.add_argument("--user", default="console:local", help="user id for the conversation")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), help="play a scripted scenario")
    parser.add_argument("--offline", action="store_true", help="use in-memory stand-ins only")
    try:
        asyncio.run(_main(parser.parse_args()))
    except (KeyboardInterrupt, EOFError):
        print(f"\n{DIM}Session ended.{RESET}")
