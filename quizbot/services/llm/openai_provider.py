from typing import List, Optional

import httpx

from quizbot.logging_config import get_logger
from quizbot.services.llm.base import LLMProvider, LLMResponse

logger = get_logger("llm.openai")


class LLMProviderError(Exception):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"LLM API error: {status_code} - {body[:200]}")


class OpenAIProvider(LLMProvider):
    """Any OpenAI-compatible chat completions endpoint (OpenAI, Groq)."""

    def __init__(self, api_key: str, api_url: str, default_model: str):
        self.api_key = api_key
        self.api_url = api_url
        self.default_model = default_model

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 512,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        timeout = timeout_seconds if timeout_seconds is not None else 30.0

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(f"LLM request: model={model}, messages_count={len(messages)}")

        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )

        if response.status_code != 200:
            logger.error(f"LLM error: status={response.status_code}, body={response.text[:200]}")
            raise LLMProviderError(response.status_code, response.text)

        try:
            data = response.json()
            content = ""
            choices = data.get("choices") or []
            if choices:
                content = (choices[0].get("message") or {}).get("content") or ""
        except (ValueError, AttributeError, IndexError, KeyError, TypeError):
            content = None
        if not isinstance(content, str):
            logger.error(f"LLM returned an unreadable body: {response.text[:200]}")
            raise LLMProviderError(response.status_code, response.text)

        return LLMResponse(content=content, model=data.get("model", model), usage=data.get("usage"))
