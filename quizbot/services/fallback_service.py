from typing import Optional

import httpx

from quizbot.logging_config import get_logger
from quizbot.services.llm import LLMProvider, LLMProviderError, OpenAIProvider
from quizbot.services.result import Result

logger = get_logger("fallback")

SYSTEM_PROMPT = """You are a customer service assistant for a telecom company.
Your goal is to help customers with their inquiries, issues, and requests.
Be professional, courteous, and solution-oriented. Keep answers short: they are sent over WhatsApp."""


class FallbackResponder:
    """Text in, text out. Used only when no quiz step and no auto-reply rule applies."""

    def __init__(self, provider: LLMProvider, timeout_seconds: float):
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    def respond(self, text: str) -> Result[str]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ]
        try:
            response = self.provider.generate(messages, timeout_seconds=self.timeout_seconds)
        except httpx.TimeoutException as e:
            logger.error("Fallback responder timed out", extra={"context": {"error": str(e)}})
            return Result.failure(str(e) or "timeout", "timeout")
        except (httpx.HTTPError, LLMProviderError) as e:
            logger.error("Fallback responder failed", extra={"context": {"error": str(e)}})
            return Result.failure(str(e), "fallback_unavailable")

        content = (response.content or "").strip()
        if not content:
            return Result.failure("Empty completion", "fallback_unavailable")
        return Result.success(content)


def build_fallback_responder(settings) -> Optional[FallbackResponder]:
    if not settings.fallback_llm_enabled:
        return None
    if not settings.llm_api_key:
        logger.warning("LLM fallback enabled but LLM_API_KEY is missing, using static fallback text")
        return None
    provider = OpenAIProvider(settings.llm_api_key, settings.llm_api_url, settings.llm_model)
    return FallbackResponder(provider, settings.llm_timeout_seconds)
