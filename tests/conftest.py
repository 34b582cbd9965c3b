import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CREATE_TABLES", "false")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402

import quizbot.models  # noqa: E402,F401
from quizbot.database import Base, SessionLocal, engine  # noqa: E402
from quizbot.models import AutoReplyRule, Question  # noqa: E402
from quizbot.services.dedup_service import MemoryDeduplicator  # noqa: E402
from quizbot.services.locks import ParticipantLocks  # noqa: E402
from quizbot.services.message_router import MessageRouter  # noqa: E402

FALLBACK_TEXT = "Thanks, your message was received."


@pytest.fixture
def db():
    """In-memory SQLite session with a fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def add_question(db):
    created = []

    def _add(sequence_key, text=None, tokens=("1", "2"), points=5, correct=None, options=None, is_active=True):
        question = Question(
            sequence_key=sequence_key,
            text=text or f"Question {sequence_key}",
            answer_tokens=list(tokens),
            correct_tokens=list(correct) if correct is not None else None,
            options=options,
            points=points,
            is_active=is_active,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=len(created)),
        )
        db.add(question)
        db.commit()
        created.append(question)
        return question

    return _add


@pytest.fixture
def add_rule(db):
    created = []

    def _add(triggers, response, priority=0, use_regex=False, variables=None, is_active=True):
        rule = AutoReplyRule(
            trigger_words=list(triggers),
            response=response,
            priority=priority,
            use_regex=use_regex,
            variables=variables or {},
            is_active=is_active,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=len(created)),
        )
        db.add(rule)
        db.commit()
        created.append(rule)
        return rule

    return _add


@pytest.fixture
def message_router():
    return MessageRouter(
        deduplicator=MemoryDeduplicator(window_seconds=60),
        locks=ParticipantLocks(),
        fallback_text=FALLBACK_TEXT,
        lock_timeout_seconds=1.0,
    )
