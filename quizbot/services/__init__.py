from quizbot.services.quiz_engine import (
    advance_quiz,
    complete_quiz,
    end_quiz,
    start_quiz,
)
from quizbot.services.state_machine import (
    InvalidTransitionError,
    ParticipantStatus,
    SessionStatus,
    can_transition,
    transition,
)

__all__ = [
    "start_quiz",
    "advance_quiz",
    "complete_quiz",
    "end_quiz",
    "SessionStatus",
    "ParticipantStatus",
    "InvalidTransitionError",
    "can_transition",
    "transition",
]
