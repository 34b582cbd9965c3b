from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from quizbot.models import Answer, Participant, Question, QuizSession
from quizbot.services.result import Lookup
from quizbot.services.state_machine import ParticipantStatus, SessionStatus
from quizbot.services.storage import read, storage_guard


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_participant(db: Session, sender_id: str) -> Lookup[Participant]:
    return read(
        "get_participant",
        lambda: db.query(Participant).filter(Participant.sender_id == sender_id).first(),
    )


def get_or_create_participant(db: Session, sender_id: str) -> Participant:
    """Find participant by sender id or create a new one."""
    participant = get_participant(db, sender_id).require()
    if participant:
        return participant

    with storage_guard("create_participant"):
        participant = Participant(
            sender_id=sender_id,
            status=ParticipantStatus.NEW.value,
            total_score=0,
            completed_sessions=0,
            created_at=utcnow(),
        )
        db.add(participant)
        db.flush()
    return participant


def get_active_session(db: Session, participant_id: UUID) -> Lookup[QuizSession]:
    return read(
        "get_active_session",
        lambda: (
            db.query(QuizSession)
            .filter(QuizSession.participant_id == participant_id, QuizSession.status == SessionStatus.ACTIVE.value)
            .order_by(QuizSession.started_at.desc())
            .first()
        ),
    )


def get_active_session_for_sender(db: Session, sender_id: str) -> Lookup[QuizSession]:
    return read(
        "get_active_session_for_sender",
        lambda: (
            db.query(QuizSession)
            .join(Participant, Participant.id == QuizSession.participant_id)
            .filter(Participant.sender_id == sender_id, QuizSession.status == SessionStatus.ACTIVE.value)
            .order_by(QuizSession.started_at.desc())
            .first()
        ),
    )


def list_sessions(db: Session, participant_id: UUID) -> Lookup[list[QuizSession]]:
    return read(
        "list_sessions",
        lambda: (
            db.query(QuizSession)
            .filter(QuizSession.participant_id == participant_id)
            .order_by(QuizSession.started_at.asc())
            .all()
        ),
    )


def create_session(db: Session, participant: Participant) -> QuizSession:
    with storage_guard("create_session"):
        session = QuizSession(
            participant_id=participant.id,
            status=SessionStatus.ACTIVE.value,
            current_position=None,
            current_question_id=None,
            score=0,
            started_at=utcnow(),
        )
        db.add(session)
        db.flush()
    return session


def move_session_to(db: Session, session: QuizSession, question: Question) -> None:
    """Point the session at the question just delivered, using its actual sequence key."""
    with storage_guard("move_session"):
        session.current_position = question.sequence_key
        session.current_question_id = question.id
        db.flush()


def find_answer(db: Session, session_id: UUID, question_id: UUID) -> Lookup[Answer]:
    return read(
        "find_answer",
        lambda: db.query(Answer).filter(Answer.session_id == session_id, Answer.question_id == question_id).first(),
    )


def record_answer(db: Session, session: QuizSession, question: Question, raw_input: str, points: int) -> Answer:
    """Append an answer; a second answer for the same question is a ConcurrentModification."""
    with storage_guard("record_answer"):
        answer = Answer(
            session_id=session.id,
            question_id=question.id,
            raw_input=raw_input,
            points_awarded=points,
            created_at=utcnow(),
        )
        db.add(answer)
        session.score = (session.score or 0) + points
        db.flush()
    return answer


def sum_session_points(db: Session, session_id: UUID) -> int:
    lookup = read(
        "sum_session_points",
        lambda: db.query(func.coalesce(func.sum(Answer.points_awarded), 0))
        .filter(Answer.session_id == session_id)
        .scalar(),
    )
    return int(lookup.require() or 0)


def completed_totals(db: Session, participant_id: UUID) -> tuple[int, int]:
    """(sum of completed session scores, number of completed sessions)."""
    lookup = read(
        "completed_totals",
        lambda: db.query(func.coalesce(func.sum(QuizSession.score), 0), func.count(QuizSession.id))
        .filter(QuizSession.participant_id == participant_id, QuizSession.status == SessionStatus.COMPLETED.value)
        .one(),
    )
    total, count = lookup.require() or (0, 0)
    return int(total or 0), int(count or 0)


def answer_count(db: Session, session_id: UUID) -> int:
    lookup = read(
        "answer_count",
        lambda: db.query(func.count(Answer.id)).filter(Answer.session_id == session_id).scalar(),
    )
    return int(lookup.require() or 0)


def completed_leaderboard(db: Session, limit: int) -> Lookup[list[tuple[QuizSession, str]]]:
    """Completed sessions with their sender id, best score first, earliest finisher wins ties."""
    return read(
        "completed_leaderboard",
        lambda: (
            db.query(QuizSession, Participant.sender_id)
            .join(Participant, Participant.id == QuizSession.participant_id)
            .filter(QuizSession.status == SessionStatus.COMPLETED.value)
            .order_by(QuizSession.score.desc(), QuizSession.ended_at.asc(), QuizSession.id.asc())
            .limit(limit)
            .all()
        ),
    )


def profile_counts(db: Session) -> dict[str, int]:
    lookup = read(
        "profile_counts",
        lambda: db.query(Participant.profile, func.count(Participant.id)).group_by(Participant.profile).all(),
    )
    return {profile: int(count) for profile, count in lookup.require() or []}


def session_totals(db: Session) -> tuple[int, int, float]:
    """(all sessions, completed sessions, average completed score)."""
    completed = func.sum(case((QuizSession.status == SessionStatus.COMPLETED.value, 1), else_=0))
    average = func.avg(case((QuizSession.status == SessionStatus.COMPLETED.value, QuizSession.score)))
    lookup = read(
        "session_totals",
        lambda: db.query(func.count(QuizSession.id), completed, average).one(),
    )
    total, done, avg_score = lookup.require() or (0, 0, None)
    return int(total or 0), int(done or 0), float(avg_score or 0)
