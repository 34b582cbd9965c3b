from sqlalchemy.orm import Session

from quizbot.models import AutoReplyRule
from quizbot.services.result import Lookup
from quizbot.services.storage import read


def list_active_rules(db: Session) -> Lookup[list[AutoReplyRule]]:
    """Active rules, highest priority first; ties keep creation order."""
    return read(
        "list_active_rules",
        lambda: (
            db.query(AutoReplyRule)
            .filter(AutoReplyRule.is_active.is_(True))
            .order_by(AutoReplyRule.priority.desc(), AutoReplyRule.created_at.asc(), AutoReplyRule.id.asc())
            .all()
        ),
    )
