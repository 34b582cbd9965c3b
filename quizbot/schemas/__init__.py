from quizbot.schemas.admin import LeaderboardEntry, ParticipantSummary, QuizStats, ResetResponse
from quizbot.schemas.message import InboundMessage, MessageResponse
from quizbot.schemas.webhook import WebhookResponse, WhatsAppWebhookPayload

__all__ = [
    "InboundMessage",
    "MessageResponse",
    "WhatsAppWebhookPayload",
    "WebhookResponse",
    "LeaderboardEntry",
    "ParticipantSummary",
    "QuizStats",
    "ResetResponse",
]
