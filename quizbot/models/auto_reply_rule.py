import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Text, Uuid

from quizbot.database import Base


class AutoReplyRule(Base):
    __tablename__ = "auto_reply_rules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    trigger_words = Column(JSON, nullable=False, default=list)
    response = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    use_regex = Column(Boolean, nullable=False, default=False)
    variables = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
