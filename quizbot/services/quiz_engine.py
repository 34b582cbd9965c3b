"""Quiz session lifecycle: start, advance, complete, end.

Invalid answers are re-prompted: no Answer row is written and the session stays
on the current question until a valid token arrives (or an operator resets it).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from quizbot.logging_config import get_logger
from quizbot.models import Participant, Question, QuizSession
from quizbot.services.errors import InvalidAnswerToken, NoActiveQuestionBank
from quizbot.services.question_bank import (
    first_question,
    get_question,
    list_questions,
    question_after,
    question_progress,
)
from quizbot.services.quiz_repository import (
    answer_count,
    completed_totals,
    completed_leaderboard,
    create_session,
    find_answer,
    get_active_session,
    get_or_create_participant,
    get_participant,
    list_sessions,
    move_session_to,
    profile_counts,
    record_answer,
    session_totals,
    sum_session_points,
    utcnow,
)
from quizbot.services.state_machine import (
    ParticipantStatus,
    SessionStatus,
    activate_participant,
    complete_participant,
    complete_session,
    end_participant,
    end_session,
)
from quizbot.services.storage import read, storage_guard
from quizbot.services.text_utils import normalize_token

logger = get_logger("quiz_engine")

MSG_WELCOME = "🎉 Welcome to the quiz! Reply to each question with the number or keyword of your choice."
MSG_INVALID_ANSWER = '❌ "{answer}" is not a valid answer. Please reply with one of: {tokens}.'
MSG_COMPLETED = (
    "🎉 Congratulations! You finished the quiz with a score of {score} points.\n\n"
    "Your profile: {profile}\n\n"
    "Thank you for taking part!"
)

VIP_MIN_SESSIONS = 5
VIP_MIN_SCORE = 50
ACTIVE_MIN_SESSIONS = 2
ACTIVE_MIN_SCORE = 20


class StepKind(str, Enum):
    STARTED = "started"
    RESUMED = "resumed"
    NEXT_QUESTION = "next_question"
    REPROMPT = "reprompt"
    COMPLETED = "completed"


@dataclass
class QuizStep:
    reply: str
    session_id: UUID
    kind: StepKind
    score: Optional[int] = None


def classify_profile(total_score: int, completed_sessions: int) -> str:
    if completed_sessions >= VIP_MIN_SESSIONS and total_score >= VIP_MIN_SCORE:
        return "vip"
    if completed_sessions >= ACTIVE_MIN_SESSIONS or total_score >= ACTIVE_MIN_SCORE:
        return "active"
    return "discovery"


def evaluate_answer(question: Question, raw_text: str) -> int:
    """Points for raw_text; raises InvalidAnswerToken when it is not a valid token."""
    tokens = [str(token) for token in (question.answer_tokens or [])]
    answer = normalize_token(raw_text)
    if not answer or answer not in {normalize_token(token) for token in tokens}:
        raise InvalidAnswerToken(raw_text, tokens)

    if question.correct_tokens is None:
        return question.points or 0
    correct = {normalize_token(str(token)) for token in question.correct_tokens}
    return (question.points or 0) if answer in correct else 0


def format_question(question: Question, number: int, total: int) -> str:
    lines = [f"📋 Question {number}/{total}", "", question.text]

    if question.options:
        lines += ["", "Options:"]
        lines += [f"{index}. {option}" for index, option in enumerate(question.options, start=1)]
    elif question.answer_tokens:
        lines += ["", f"💡 Reply with: {' / '.join(str(token) for token in question.answer_tokens)}"]

    if question.points:
        lines.append(f"🏆 Possible points: {question.points}")
    if question.category:
        lines.append(f"📂 Category: {question.category}")
    return "\n".join(lines)


def render_question(db: Session, question: Question) -> str:
    number, total = question_progress(db, question).require()
    return format_question(question, number, total)


def _activate(participant: Participant) -> None:
    current = ParticipantStatus(participant.status)
    if current != ParticipantStatus.ACTIVE:
        participant.status = activate_participant(current).value
    participant.updated_at = utcnow()


def _require_first_question(db: Session) -> Question:
    question = first_question(db).require()
    if question is None:
        raise NoActiveQuestionBank("No active questions in the question bank")
    return question


def _current_question(db: Session, session: QuizSession) -> Optional[Question]:
    return get_question(db, session.current_question_id).require()


def start_quiz(db: Session, sender_id: str) -> QuizStep:
    """Start a quiz, or resend the current question if one is already running."""
    participant = get_or_create_participant(db, sender_id)

    active = get_active_session(db, participant.id).require()
    if active:
        question = _current_question(db, active) or question_after(db, active.current_position).require()
        if question is None:
            question = _require_first_question(db)
        logger.info(
            "Quiz already active, resending current question",
            extra={"context": {"sender_id": sender_id, "session_id": str(active.id)}},
        )
        return QuizStep(render_question(db, question), active.id, StepKind.RESUMED)

    question = _require_first_question(db)

    with storage_guard("start_quiz"):
        _activate(participant)
        session = create_session(db, participant)
        move_session_to(db, session, question)

    logger.info(
        "Quiz session started",
        extra={"context": {"sender_id": sender_id, "session_id": str(session.id), "position": question.sequence_key}},
    )
    return QuizStep(f"{MSG_WELCOME}\n\n{render_question(db, question)}", session.id, StepKind.STARTED)


def advance_quiz(db: Session, session: QuizSession, raw_text: str) -> QuizStep:
    """Record the answer to the current question and move to the next one (or complete)."""
    if session.current_position is None:
        question = _require_first_question(db)
        move_session_to(db, session, question)
        return QuizStep(render_question(db, question), session.id, StepKind.NEXT_QUESTION)

    current = _current_question(db, session)
    if current is None:
        logger.warning(
            "Current question is no longer active, skipping it",
            extra={"context": {"session_id": str(session.id), "question_id": str(session.current_question_id)}},
        )
    else:
        try:
            points = evaluate_answer(current, raw_text)
        except InvalidAnswerToken as e:
            logger.info(
                "Invalid answer, re-prompting",
                extra={"context": {"session_id": str(session.id), "answer": raw_text}},
            )
            message = MSG_INVALID_ANSWER.format(answer=raw_text.strip(), tokens=", ".join(e.valid_tokens))
            return QuizStep(f"{message}\n\n{render_question(db, current)}", session.id, StepKind.REPROMPT)

        if find_answer(db, session.id, current.id).require() is None:
            record_answer(db, session, current, raw_text.strip(), points)
        else:
            logger.info(
                "Question already answered, not recording again",
                extra={"context": {"session_id": str(session.id), "question_id": str(current.id)}},
            )

    next_question = question_after(db, session.current_position).require()
    if next_question is None:
        if current is None and not list_questions(db).require():
            raise NoActiveQuestionBank("Question bank emptied during an active session")
        return complete_quiz(db, session)

    move_session_to(db, session, next_question)
    return QuizStep(render_question(db, next_question), session.id, StepKind.NEXT_QUESTION)


def complete_quiz(db: Session, session: QuizSession) -> QuizStep:
    """Close the session; the score is recomputed from its answers, not trusted."""
    with storage_guard("complete_quiz"):
        session.status = complete_session(SessionStatus(session.status)).value
        session.ended_at = utcnow()
        session.score = sum_session_points(db, session.id)
        db.flush()

        participant = session.participant
        total_score, completed = completed_totals(db, participant.id)
        participant.total_score = total_score
        participant.completed_sessions = completed
        participant.profile = classify_profile(total_score, completed)
        participant.status = complete_participant(ParticipantStatus(participant.status)).value
        participant.updated_at = utcnow()
        db.flush()

    logger.info(
        "Quiz session completed",
        extra={"context": {"session_id": str(session.id), "score": session.score, "profile": participant.profile}},
    )
    reply = MSG_COMPLETED.format(score=session.score, profile=participant.profile.upper())
    return QuizStep(reply, session.id, StepKind.COMPLETED, score=session.score)


def end_quiz(db: Session, sender_id: str) -> int:
    """Force any active session of the participant to ended. Returns how many were ended."""
    participant = get_participant(db, sender_id).require()
    if participant is None:
        return 0

    active_sessions = read(
        "active_sessions",
        lambda: db.query(QuizSession)
        .filter(QuizSession.participant_id == participant.id, QuizSession.status == SessionStatus.ACTIVE.value)
        .all(),
    ).require() or []

    with storage_guard("end_quiz"):
        for session in active_sessions:
            session.status = end_session(SessionStatus(session.status)).value
            session.ended_at = utcnow()
        if active_sessions:
            participant.status = end_participant(ParticipantStatus(participant.status)).value
            participant.updated_at = utcnow()
        db.flush()

    logger.info(
        "Quiz sessions ended",
        extra={"context": {"sender_id": sender_id, "ended": len(active_sessions)}},
    )
    return len(active_sessions)


def participant_summary(db: Session, sender_id: str) -> Optional[dict]:
    participant = get_participant(db, sender_id).require()
    if participant is None:
        return None

    sessions = list_sessions(db, participant.id).require() or []
    return {
        "sender_id": participant.sender_id,
        "status": participant.status,
        "total_score": participant.total_score,
        "completed_sessions": participant.completed_sessions,
        "profile": participant.profile,
        "sessions": [
            {
                "id": session.id,
                "status": session.status,
                "score": session.score,
                "current_position": session.current_position,
                "answers": answer_count(db, session.id),
                "started_at": session.started_at,
                "ended_at": session.ended_at,
            }
            for session in sessions
        ],
    }


def leaderboard(db: Session, limit: int = 10) -> list[dict]:
    rows = completed_leaderboard(db, limit).require() or []
    entries = []
    for session, sender_id in rows:
        seconds = None
        if session.started_at and session.ended_at:
            seconds = int((session.ended_at - session.started_at).total_seconds())
        entries.append(
            {
                "rank": len(entries) + 1,
                "sender_id": sender_id,
                "session_id": session.id,
                "score": session.score,
                "started_at": session.started_at,
                "completed_at": session.ended_at,
                "completion_seconds": seconds,
            }
        )
    return entries


def quiz_stats(db: Session) -> dict:
    """Participant profile breakdown plus completion figures across all sessions."""
    breakdown = {"discovery": 0, "active": 0, "vip": 0}
    breakdown.update(profile_counts(db))
    total, completed, average = session_totals(db)
    return {
        "total_participants": sum(breakdown.values()),
        "profile_breakdown": breakdown,
        "total_sessions": total,
        "completed_sessions": completed,
        "average_score": round(average, 2),
        "completion_rate": round(completed / total, 4) if total else 0.0,
    }
