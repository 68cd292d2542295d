from enum import Enum


class RenameState(str, Enum):
    IDLE = "idle"
    SUGGESTIONS_OFFERED = "suggestions_offered"
    AWAITING_PROMPT = "awaiting_prompt"
    COMMITTING = "committing"


VALID_TRANSITIONS = {
    # A button from an older message can still ask for a custom prompt
    RenameState.IDLE: [RenameState.SUGGESTIONS_OFFERED, RenameState.AWAITING_PROMPT],
    RenameState.SUGGESTIONS_OFFERED: [
        RenameState.SUGGESTIONS_OFFERED,
        RenameState.AWAITING_PROMPT,
        RenameState.COMMITTING,
        RenameState.IDLE,
    ],
    RenameState.AWAITING_PROMPT: [
        RenameState.AWAITING_PROMPT,
        RenameState.SUGGESTIONS_OFFERED,
        RenameState.COMMITTING,
        RenameState.IDLE,
    ],
    # A failed write keeps the options, so the key goes back to offered
    RenameState.COMMITTING: [RenameState.IDLE, RenameState.SUGGESTIONS_OFFERED],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: RenameState, to_state: RenameState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: RenameState, to_state: RenameState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: RenameState, to_state: RenameState) -> RenameState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state
