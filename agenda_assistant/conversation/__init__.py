from agenda_assistant.conversation.dialogue_controller import DialogueController
from agenda_assistant.conversation.dispatcher import EventDispatcher
from agenda_assistant.conversation.draft_merge import DraftMergeEngine, MergeResult
from agenda_assistant.conversation.draft_store import DraftStore
from agenda_assistant.conversation.guest_resolver import GuestResolver, ResolutionResult
from agenda_assistant.conversation.state_machine import (
    DialogueState,
    DialogueStateMachine,
    TransitionTrigger,
)

__all__ = [
    "DialogueController",
    "DialogueState",
    "DialogueStateMachine",
    "TransitionTrigger",
    "DraftMergeEngine",
    "MergeResult",
    "DraftStore",
    "EventDispatcher",
    "GuestResolver",
    "ResolutionResult",
]
