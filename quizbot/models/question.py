import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Text, Uuid

from quizbot.database import Base


class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sequence_key = Column(Integer, nullable=False, index=True)  # may have gaps and duplicates
    text = Column(Text, nullable=False)
    answer_tokens = Column(JSON, nullable=False, default=list)
    correct_tokens = Column(JSON)  # None: every valid token earns the points
    options = Column(JSON)  # display labels, rendered as a numbered list
    points = Column(Integer, nullable=False, default=0)
    category = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
