from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from quizbot.database import get_db
from quizbot.logging_config import get_logger
from quizbot.schemas.message import InboundMessage, MessageResponse
from quizbot.services.errors import QuizBotError
from quizbot.services.message_router import MessageRouter, RouteKind, get_message_router, reply_for_error

logger = get_logger("message")

router = APIRouter()


@router.post("/message", response_model=MessageResponse)
def handle_message(
    request: InboundMessage,
    db: Session = Depends(get_db),
    message_router: MessageRouter = Depends(get_message_router),
):
    """Route one inbound message and return the reply instead of sending it."""
    try:
        outcome = message_router.route(db, request)
    except QuizBotError as e:
        logger.error(
            "Message routing failed",
            extra={"context": {"sender_id": request.sender_id, "code": e.code, "error": e.message}},
        )
        return MessageResponse(success=False, reply=reply_for_error(e), error_code=e.code)

    if outcome.kind == RouteKind.DUPLICATE:
        return MessageResponse(success=True, route=outcome.kind.value, reply=None)

    return MessageResponse(
        success=True,
        route=outcome.kind.value,
        reply=outcome.reply,
        session_id=outcome.session_id,
    )
