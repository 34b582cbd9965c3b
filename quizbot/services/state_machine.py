from enum import Enum


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ENDED = "ended"


class ParticipantStatus(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    COMPLETED = "completed"
    ENDED = "ended"


VALID_SESSION_TRANSITIONS = {
    SessionStatus.ACTIVE: [SessionStatus.COMPLETED, SessionStatus.ENDED],
    SessionStatus.COMPLETED: [],
    SessionStatus.ENDED: [],
}

VALID_PARTICIPANT_TRANSITIONS = {
    ParticipantStatus.NEW: [ParticipantStatus.ACTIVE],
    ParticipantStatus.ACTIVE: [ParticipantStatus.COMPLETED, ParticipantStatus.ENDED],
    ParticipantStatus.COMPLETED: [ParticipantStatus.ACTIVE],
    ParticipantStatus.ENDED: [ParticipantStatus.ACTIVE],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: Enum, to_state: Enum):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: Enum, to_state: Enum) -> bool:
    """Check if transition is valid."""
    if isinstance(from_state, SessionStatus):
        allowed = VALID_SESSION_TRANSITIONS.get(from_state, [])
    else:
        allowed = VALID_PARTICIPANT_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: Enum, to_state: Enum) -> Enum:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def complete_session(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.COMPLETED)


def end_session(current: SessionStatus) -> SessionStatus:
    """Administrative reset of an in-progress session."""
    return transition(current, SessionStatus.ENDED)


def activate_participant(current: ParticipantStatus) -> ParticipantStatus:
    """Participant starts (or restarts) a quiz."""
    return transition(current, ParticipantStatus.ACTIVE)

def complete_participant(current: ParticipantStatus) -> ParticipantStatus:
    return transition(current, ParticipantStatus.COMPLETED)


def end_participant(current: ParticipantStatus) -> ParticipantStatus:
    return transition(current, ParticipantStatus.ENDED)
