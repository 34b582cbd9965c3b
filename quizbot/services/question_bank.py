"""Read-only access to the quiz questions.

Progression always goes through ``question_after``: the next question is the one
with the smallest sequence key strictly greater than the current position, found
by a live query. Sequence keys may have gaps or duplicates; duplicates are
ordered by (created_at, id) so the choice is deterministic.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from quizbot.models import Question
from quizbot.services.result import Lookup
from quizbot.services.storage import read


def _active_questions(db: Session):
    return db.query(Question).filter(Question.is_active.is_(True))


def _ordered(query):
    return query.order_by(Question.sequence_key.asc(), Question.created_at.asc(), Question.id.asc())


def list_questions(db: Session) -> Lookup[list[Question]]:
    return read("list_questions", lambda: _ordered(_active_questions(db)).all())


def question_after(db: Session, position: Optional[int]) -> Lookup[Question]:
    """Question with the smallest sequence key > position (position None = before the first)."""

    def _query() -> Optional[Question]:
        query = _active_questions(db)
        if position is not None:
            query = query.filter(Question.sequence_key > position)
        return _ordered(query).first()

    return read("question_after", _query)


def first_question(db: Session) -> Lookup[Question]:
    return question_after(db, None)


def get_question(db: Session, question_id: Optional[UUID]) -> Lookup[Question]:
    if question_id is None:
        return Lookup.not_found()
    return read(
        "get_question",
        lambda: _active_questions(db).filter(Question.id == question_id).first(),
    )


def question_progress(db: Session, question: Question) -> Lookup[tuple[int, int]]:
    """(number, total) for display, counted over distinct sequence keys."""

    def _query() -> tuple[int, int]:
        total = _active_questions(db).with_entities(func.count(distinct(Question.sequence_key))).scalar() or 0
        before = (
            _active_questions(db)
            .filter(Question.sequence_key < question.sequence_key)
            .with_entities(func.count(distinct(Question.sequence_key)))
            .scalar()
            or 0
        )
        return before + 1, max(total, before + 1)

    return read("question_progress", _query)
