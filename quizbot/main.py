from fastapi import Depends, FastAPI
from sqlalchemy.orm import Session

from quizbot.config import settings
from quizbot.database import Base, engine, get_db
from quizbot.logging_config import get_logger, setup_logging
from quizbot.models import AutoReplyRule, Participant, Question, QuizSession
from quizbot.routers import admin, message, webhook

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Quizbot API",
    description="WhatsApp quiz and auto-reply message routing",
    version="0.1.0",
    debug=settings.debug,
)

app.include_router(webhook.router)
app.include_router(message.router)
app.include_router(admin.router)


@app.on_event("startup")
def create_tables() -> None:
    if settings.create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    participants_count = db.query(Participant).count()
    active_sessions_count = db.query(QuizSession).filter(QuizSession.status == "active").count()
    questions_count = db.query(Question).filter(Question.is_active.is_(True)).count()
    rules_count = db.query(AutoReplyRule).filter(AutoReplyRule.is_active.is_(True)).count()
    return {
        "status": "ok",
        "participants": participants_count,
        "active_sessions": active_sessions_count,
        "questions": questions_count,
        "auto_reply_rules": rules_count,
    }
