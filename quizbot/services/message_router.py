"""Routing of one inbound message to exactly one responder.

Order is fixed, first match wins:

1. continuation - the sender has an active quiz session; the quiz engine owns the reply
2. start        - the text contains a quiz-start trigger
3. auto_reply   - a configured rule matches
4. fallback     - static acknowledgment, or the optional LLM responder

Only steps 1-2 write, and they run under the sender's lock. A delivery id is
admitted once before anything else happens.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from quizbot.config import settings as app_settings
from quizbot.logging_config import ContextLogger, get_logger
from quizbot.schemas.message import InboundMessage
from quizbot.services.auto_reply_service import find_auto_reply
from quizbot.services.dedup_service import Admission, Deduplicator, build_deduplicator
from quizbot.services.errors import (
    ConcurrentModification,
    DependencyTimeout,
    FallbackUnavailable,
    NoActiveQuestionBank,
    QuizBotError,
    StorageUnavailable,
)
from quizbot.services.fallback_service import FallbackResponder, build_fallback_responder
from quizbot.services.locks import ParticipantLocks
from quizbot.services.quiz_engine import QuizStep, advance_quiz, start_quiz
from quizbot.services.quiz_repository import get_active_session_for_sender
from quizbot.services.storage import storage_guard
from quizbot.services.text_utils import contains_token

logger = get_logger("router")

QUIZ_START_TRIGGERS = (
    # en
    "quiz",
    "start",
    "play",
    "game",
    "challenge",
    # fr
    "jeu",
    "jouer",
    "commencer",
    "demarrer",
    "concours",
    "defi",
    "questionnaire",
    # es
    "juego",
    "jugar",
    "empezar",
    "concurso",
    # pt
    "jogo",
    "jogar",
    "comecar",
)

MSG_TEMPORARY_FAILURE = "⚠️ Sorry, we could not process your message right now. Please try again in a moment."
MSG_QUIZ_UNAVAILABLE = "⚠️ The quiz is not available at the moment. Please try again later."
MSG_BUSY = "⚠️ We are still processing your previous message. Please send your answer again in a moment."

ERROR_REPLIES = {
    NoActiveQuestionBank.code: MSG_QUIZ_UNAVAILABLE,
    ConcurrentModification.code: MSG_BUSY,
    DependencyTimeout.code: MSG_TEMPORARY_FAILURE,
    StorageUnavailable.code: MSG_TEMPORARY_FAILURE,
    FallbackUnavailable.code: MSG_TEMPORARY_FAILURE,
}


class RouteKind(str, Enum):
    DUPLICATE = "duplicate"
    CONTINUATION = "continuation"
    START = "start"
    AUTO_REPLY = "auto_reply"
    FALLBACK = "fallback"


@dataclass
class RouteOutcome:
    kind: RouteKind
    reply: Optional[str]
    sender_id: str
    session_id: Optional[UUID] = None


def is_quiz_trigger(text: str) -> bool:
    return any(contains_token(text, trigger) for trigger in QUIZ_START_TRIGGERS)


def reply_for_error(error: QuizBotError) -> str:
    """User-facing text for a failed route; never the completion or fallback text."""
    return ERROR_REPLIES.get(error.code, MSG_TEMPORARY_FAILURE)


class MessageRouter:
    def __init__(
        self,
        deduplicator: Deduplicator,
        locks: ParticipantLocks,
        fallback_text: str,
        lock_timeout_seconds: float,
        fallback_responder: Optional[FallbackResponder] = None,
    ):
        self.deduplicator = deduplicator
        self.locks = locks
        self.fallback_text = fallback_text
        self.lock_timeout_seconds = lock_timeout_seconds
        self.fallback_responder = fallback_responder

    def route(self, db: Session, message: InboundMessage) -> RouteOutcome:
        log = ContextLogger(logger, {"sender_id": message.sender_id, "delivery_id": message.delivery_id})

        if self.deduplicator.admit(message.delivery_id) == Admission.DUPLICATE:
            return RouteOutcome(RouteKind.DUPLICATE, None, message.sender_id)

        try:
            outcome = self._route_admitted(db, message)
        except Exception:
            db.rollback()
            self.deduplicator.release(message.delivery_id)
            raise

        log.info("Message routed", context={"route": outcome.kind.value})
        return outcome

    def _route_admitted(self, db: Session, message: InboundMessage) -> RouteOutcome:
        with self.locks.hold(message.sender_id, self.lock_timeout_seconds):
            outcome = self._with_retry(db, message, self._quiz_step)
        if outcome is not None:
            return outcome

        reply = find_auto_reply(db, message.text)
        if reply is not None:
            return RouteOutcome(RouteKind.AUTO_REPLY, reply, message.sender_id)

        return RouteOutcome(RouteKind.FALLBACK, self._fallback_reply(message.text), message.sender_id)

    def _with_retry(
        self,
        db: Session,
        message: InboundMessage,
        step: Callable[[Session, InboundMessage], Optional[RouteOutcome]],
    ) -> Optional[RouteOutcome]:
        """Run a read-modify-write step and commit; one retry on a lost race."""
        try:
            return self._commit(db, step(db, message))
        except ConcurrentModification as e:
            db.rollback()
            logger.warning(
                "Concurrent modification, retrying once",
                extra={"context": {"sender_id": message.sender_id, "error": e.message}},
            )
        return self._commit(db, step(db, message))

    def _commit(self, db: Session, outcome: Optional[RouteOutcome]) -> Optional[RouteOutcome]:
        if outcome is not None:
            with storage_guard("commit"):
                db.commit()
        return outcome

    def _quiz_step(self, db: Session, message: InboundMessage) -> Optional[RouteOutcome]:
        session = get_active_session_for_sender(db, message.sender_id).require()
        if session is not None:
            step: QuizStep = advance_quiz(db, session, message.text)
            return RouteOutcome(RouteKind.CONTINUATION, step.reply, message.sender_id, step.session_id)

        if is_quiz_trigger(message.text):
            step = start_quiz(db, message.sender_id)
            return RouteOutcome(RouteKind.START, step.reply, message.sender_id, step.session_id)

        return None

    def _fallback_reply(self, text: str) -> str:
        if self.fallback_responder is None:
            return self.fallback_text

        result = self.fallback_responder.respond(text)
        if result.ok:
            return result.value
        if result.error_code == DependencyTimeout.code:
            raise DependencyTimeout(result.error or "Fallback responder timed out")
        raise FallbackUnavailable(result.error or "Fallback responder failed")


def build_message_router(settings) -> MessageRouter:
    return MessageRouter(
        deduplicator=build_deduplicator(settings),
        locks=ParticipantLocks(),
        fallback_text=settings.fallback_text,
        lock_timeout_seconds=settings.participant_lock_timeout_seconds,
        fallback_responder=build_fallback_responder(settings),
    )


_message_router: Optional[MessageRouter] = None


def get_message_router() -> MessageRouter:
    """Process-wide router; dedup state and participant locks must be shared by all requests."""
    global _message_router
    if _message_router is None:
        _message_router = build_message_router(app_settings)
    return _message_router
