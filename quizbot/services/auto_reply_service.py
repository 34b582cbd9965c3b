import re
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from quizbot.config import settings
from quizbot.logging_config import get_logger
from quizbot.models import AutoReplyRule
from quizbot.services.rule_set import list_active_rules
from quizbot.services.text_utils import contains_token

logger = get_logger("auto_reply")

_VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def rule_matches(text: str, rule: AutoReplyRule) -> bool:
    triggers = [str(word) for word in (rule.trigger_words or []) if str(word).strip()]
    if not triggers:
        return False

    if rule.use_regex:
        try:
            pattern = re.compile("|".join(triggers), re.IGNORECASE)
        except re.error as e:
            logger.warning(
                "Invalid regex in auto-reply rule",
                extra={"context": {"rule_id": str(rule.id), "error": str(e)}},
            )
            return False
        return pattern.search(text or "") is not None

    return any(contains_token(text, word) for word in triggers)


def match(text: str, rules: Iterable[AutoReplyRule]) -> Optional[AutoReplyRule]:
    """First matching rule; rules must already be in priority order."""
    for rule in rules:
        if rule_matches(text, rule):
            return rule
    return None


def render_response(rule: AutoReplyRule, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    values = {
        "date": now.strftime("%d/%m/%Y"),
        "time": now.strftime("%H:%M:%S"),
        "company": settings.company_name,
        "support_email": settings.support_email,
    }
    values.update({str(k): str(v) for k, v in (rule.variables or {}).items()})

    def _substitute(found: re.Match) -> str:
        return values.get(found.group(1), found.group(0))

    return _VARIABLE_PATTERN.sub(_substitute, rule.response)


def find_auto_reply(db: Session, text: str) -> Optional[str]:
    """Rendered response of the best matching rule, or None to fall through."""
    lookup = list_active_rules(db)
    if lookup.is_failure:
        logger.warning("Auto-reply rules unreachable, falling through", extra={"context": {"reason": lookup.reason}})
        return None

    rule = match(text, lookup.value or [])
    if rule is None:
        return None

    logger.info("Auto-reply rule matched", extra={"context": {"rule_id": str(rule.id), "priority": rule.priority}})
    return render_response(rule)
