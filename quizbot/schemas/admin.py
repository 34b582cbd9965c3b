from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class SessionSummary(BaseModel):
    id: UUID
    status: str
    score: int
    current_position: Optional[int] = None
    answers: int
    started_at: datetime
    ended_at: Optional[datetime] = None


class ParticipantSummary(BaseModel):
    sender_id: str
    status: str
    total_score: int
    completed_sessions: int
    profile: str
    sessions: list[SessionSummary]


class ResetResponse(BaseModel):
    success: bool
    sender_id: str
    ended_sessions: int
    message: str


class LeaderboardEntry(BaseModel):
    rank: int
    sender_id: str
    session_id: UUID
    score: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    completion_seconds: Optional[int] = None


class QuizStats(BaseModel):
    total_participants: int
    profile_breakdown: dict[str, int]
    total_sessions: int
    completed_sessions: int
    average_score: float
    completion_rate: float
