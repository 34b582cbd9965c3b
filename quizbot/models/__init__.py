from quizbot.models.answer import Answer
from quizbot.models.auto_reply_rule import AutoReplyRule
from quizbot.models.participant import Participant
from quizbot.models.question import Question
from quizbot.models.quiz_session import QuizSession

__all__ = [
    "Participant",
    "Question",
    "QuizSession",
    "Answer",
    "AutoReplyRule",
]
