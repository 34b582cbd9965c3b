from quizbot.services.llm.base import LLMProvider, LLMResponse
from quizbot.services.llm.openai_provider import LLMProviderError, OpenAIProvider

__all__ = ["LLMProvider", "LLMResponse", "LLMProviderError", "OpenAIProvider"]
