from stravach.services.result import Result
from stravach.services.state_machine import (
    InvalidTransitionError,
    RenameState,
    can_transition,
    transition,
)
