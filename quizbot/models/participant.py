import uuid

from sqlalchemy import Column, DateTime, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from quizbot.database import Base


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id = Column(Text, nullable=False, unique=True)  # phone number / wa_id
    status = Column(Text, nullable=False, default="new")  # new, active, completed, ended
    total_score = Column(Integer, nullable=False, default=0)
    completed_sessions = Column(Integer, nullable=False, default=0)
    profile = Column(Text, nullable=False, default="discovery")  # discovery, active, vip
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True))

    sessions = relationship("QuizSession", back_populates="participant", order_by="QuizSession.started_at")
