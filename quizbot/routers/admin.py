"""Operator endpoints: inspect a participant, force-end their quiz, leaderboard and stats."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from quizbot.config import settings
from quizbot.database import get_db
from quizbot.logging_config import get_logger
from quizbot.schemas.admin import LeaderboardEntry, ParticipantSummary, QuizStats, ResetResponse
from quizbot.services.errors import DependencyTimeout, QuizBotError
from quizbot.services.message_router import MessageRouter, get_message_router
from quizbot.services.quiz_engine import end_quiz, leaderboard, participant_summary, quiz_stats
from quizbot.services.storage import storage_guard

logger = get_logger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])


def _require_admin_token(provided: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_TOKEN not configured",
        )
    if not provided or provided != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


def _storage_error(e: QuizBotError) -> HTTPException:
    code = status.HTTP_504_GATEWAY_TIMEOUT if isinstance(e, DependencyTimeout) else status.HTTP_503_SERVICE_UNAVAILABLE
    return HTTPException(status_code=code, detail=e.message)


@router.post("/participants/{sender_id}/reset", response_model=ResetResponse)
def reset_participant(
    sender_id: str,
    db: Session = Depends(get_db),
    message_router: MessageRouter = Depends(get_message_router),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    try:
        with message_router.locks.hold(sender_id, message_router.lock_timeout_seconds):
            ended = end_quiz(db, sender_id)
            with storage_guard("reset_participant"):
                db.commit()
    except QuizBotError as e:
        db.rollback()
        logger.error("Participant reset failed", extra={"context": {"sender_id": sender_id, "error": e.message}})
        raise _storage_error(e)

    message = f"Ended {ended} active session(s)" if ended else "No active session"
    return ResetResponse(success=True, sender_id=sender_id, ended_sessions=ended, message=message)


@router.get("/participants/{sender_id}", response_model=ParticipantSummary)
def get_participant_summary(
    sender_id: str,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    try:
        summary = participant_summary(db, sender_id)
    except QuizBotError as e:
        raise _storage_error(e)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")
    return summary


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def get_leaderboard(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    try:
        return leaderboard(db, limit)
    except QuizBotError as e:
        raise _storage_error(e)


@router.get("/stats", response_model=QuizStats)
def get_stats(
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    try:
        return quiz_stats(db)
    except QuizBotError as e:
        raise _storage_error(e)
