"""
Finite state machine for the per-user scheduling dialogue.

Three states: EMPTY (no draft), DRAFTING (draft stored, fields missing)
and COMPLETE (transient, being dispatched, never stored). Every turn
moves through explicit transitions, so the controller's decision to keep
or clear a draft follows from the resulting state rather than ad hoc
branches.

Usage:
    sm = DialogueStateMachine()
    state = sm.transition(DialogueState.EMPTY, TransitionTrigger.FIELDS_MISSING)
    assert state == DialogueState.DRAFTING
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class DialogueState(str, Enum):
    """Per-user dialogue states."""
    EMPTY = "empty"
    DRAFTING = "drafting"
    COMPLETE = "complete"


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    FIELDS_MISSING = "fields_missing"
    FIELDS_COMPLETE = "fields_complete"
    DISPATCH_SUCCEEDED = "dispatch_succeeded"
    DISPATCH_FAILED = "dispatch_failed"
    ABANDONED = "abandoned"
    CONTACT_SAVED = "contact_saved"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: DialogueState
    to_state: DialogueState
    trigger: TransitionTrigger


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the given state."""


class DialogueStateMachine:
    """
    Table-driven transition function.

    Stateless: the current state of a user is derived from the DraftStore
    (a stored draft means DRAFTING), so the machine holds no per-user data.
    """

    TRANSITIONS: list[Transition] = [
        # --- Slot filling ---
        Transition(DialogueState.EMPTY, DialogueState.DRAFTING,
                   TransitionTrigger.FIELDS_MISSING),
        Transition(DialogueState.DRAFTING, DialogueState.DRAFTING,
                   TransitionTrigger.FIELDS_MISSING),
        Transition(DialogueState.EMPTY, DialogueState.COMPLETE,
                   TransitionTrigger.FIELDS_COMPLETE),
        Transition(DialogueState.DRAFTING, DialogueState.COMPLETE,
                   TransitionTrigger.FIELDS_COMPLETE),

        # --- Dispatch result ---
        Transition(DialogueState.COMPLETE, DialogueState.EMPTY,
                   TransitionTrigger.DISPATCH_SUCCEEDED),
        Transition(DialogueState.COMPLETE, DialogueState.DRAFTING,
                   TransitionTrigger.DISPATCH_FAILED),

        # --- Abandonment ---
        Transition(DialogueState.EMPTY, DialogueState.EMPTY,
                   TransitionTrigger.ABANDONED),
        Transition(DialogueState.DRAFTING, DialogueState.EMPTY,
                   TransitionTrigger.ABANDONED),
        Transition(DialogueState.EMPTY, DialogueState.EMPTY,
                   TransitionTrigger.CONTACT_SAVED),
        Transition(DialogueState.DRAFTING, DialogueState.EMPTY,
                   TransitionTrigger.CONTACT_SAVED),
    ]

    def transition(
        self, state: DialogueState, trigger: TransitionTrigger
    ) -> DialogueState:
        """
        Resolve the state reached from ``state`` on ``trigger``.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == state and t.trigger == trigger:
                logger.debug(
                    "State transition: %s -> %s (trigger: %s)",
                    state.value, t.to_state.value, trigger.value,
                )
                return t.to_state

        valid = [t.value for t in self.get_valid_triggers(state)]
        raise InvalidTransitionError(
            f"No valid transition from '{state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self, state: DialogueState) -> list[TransitionTrigger]:
        """Return all triggers valid from ``state``."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == state]
