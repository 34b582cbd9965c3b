import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, Uuid, text
from sqlalchemy.orm import relationship

from quizbot.database import Base


class QuizSession(Base):
    __tablename__ = "quiz_sessions"
    __table_args__ = (
        Index(
            "uq_quiz_sessions_one_active",
            "participant_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id = Column(Uuid, ForeignKey("participants.id"), nullable=False, index=True)
    status = Column(Text, nullable=False, default="active")  # active, completed, ended
    current_position = Column(Integer)  # sequence key of last delivered question, NULL = not started
    current_question_id = Column(Uuid, ForeignKey("questions.id"))
    score = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True))
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    participant = relationship("Participant", back_populates="sessions")
    answers = relationship("Answer", back_populates="session", order_by="Answer.created_at")
