from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from quizbot.services.fallback_service import SYSTEM_PROMPT, FallbackResponder, build_fallback_responder
from quizbot.services.llm import LLMProviderError, LLMResponse, OpenAIProvider


def llm_settings(**overrides):
    values = dict(
        fallback_llm_enabled=True,
        llm_api_key="test-key",
        llm_api_url="https://api.groq.com/openai/v1/chat/completions",
        llm_model="llama3-70b-8192",
        llm_timeout_seconds=8.0,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestFallbackResponder:
    def test_returns_generated_text(self):
        provider = Mock()
        provider.generate.return_value = LLMResponse(content="  Your balance is shown with *123#.  ", model="m")

        result = FallbackResponder(provider, timeout_seconds=5).respond("balance?")

        assert result.ok is True
        assert result.value == "Your balance is shown with *123#."
        messages = provider.generate.call_args.args[0]
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[1] == {"role": "user", "content": "balance?"}
        assert provider.generate.call_args.kwargs["timeout_seconds"] == 5

    def test_timeout(self):
        provider = Mock()
        provider.generate.side_effect = httpx.ReadTimeout("timed out")
        result = FallbackResponder(provider, timeout_seconds=5).respond("hi")
        assert result.ok is False
        assert result.error_code == "timeout"

    def test_provider_error(self):
        provider = Mock()
        provider.generate.side_effect = LLMProviderError(500, "upstream error")
        result = FallbackResponder(provider, timeout_seconds=5).respond("hi")
        assert result.error_code == "fallback_unavailable"

    def test_empty_completion_is_failure(self):
        provider = Mock()
        provider.generate.return_value = LLMResponse(content="   ", model="m")
        result = FallbackResponder(provider, timeout_seconds=5).respond("hi")
        assert result.ok is False
        assert result.error_code == "fallback_unavailable"


class TestBuildFallbackResponder:
    def test_disabled(self):
        assert build_fallback_responder(llm_settings(fallback_llm_enabled=False)) is None

    def test_missing_key(self):
        assert build_fallback_responder(llm_settings(llm_api_key=None)) is None

    def test_enabled(self):
        responder = build_fallback_responder(llm_settings())
        assert isinstance(responder, FallbackResponder)
        assert isinstance(responder.provider, OpenAIProvider)
        assert responder.timeout_seconds == 8.0


class TestOpenAIProvider:
    @patch("quizbot.services.llm.openai_provider.httpx.Client")
    def test_parses_completion(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.json.return_value = {
            "model": "llama3-70b-8192",
            "choices": [{"message": {"content": "Hello!"}}],
            "usage": {"total_tokens": 12},
        }
        mock_client.post.return_value = mock_response

        provider = OpenAIProvider("key", "https://example.invalid/v1/chat/completions", "llama3-70b-8192")
        response = provider.generate([{"role": "user", "content": "hi"}], timeout_seconds=2)

        assert response.content == "Hello!"
        assert response.usage == {"total_tokens": 12}
        mock_client_class.assert_called_once_with(timeout=2)
        assert mock_client.post.call_args.kwargs["json"]["model"] == "llama3-70b-8192"

    @patch("quizbot.services.llm.openai_provider.httpx.Client")
    def test_error_status_raises(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 429
        mock_response.text = "rate limited"
        mock_client.post.return_value = mock_response

        provider = OpenAIProvider("key", "https://example.invalid/v1/chat/completions", "m")
        with pytest.raises(LLMProviderError) as exc_info:
            provider.generate([{"role": "user", "content": "hi"}])
        assert exc_info.value.status_code == 429

    @patch("quizbot.services.llm.openai_provider.httpx.Client")
    def test_non_json_body_raises_provider_error(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.text = "<html>gateway</html>"
        mock_response.json.side_effect = ValueError("Expecting value")
        mock_client.post.return_value = mock_response

        provider = OpenAIProvider("key", "https://example.invalid/v1/chat/completions", "m")
        with pytest.raises(LLMProviderError) as exc_info:
            provider.generate([{"role": "user", "content": "hi"}])
        assert exc_info.value.status_code == 200

    @patch("quizbot.services.llm.openai_provider.httpx.Client")
    def test_unexpected_json_shape_raises_provider_error(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.text = '["not", "an", "object"]'
        mock_response.json.return_value = ["not", "an", "object"]
        mock_client.post.return_value = mock_response

        provider = OpenAIProvider("key", "https://example.invalid/v1/chat/completions", "m")
        with pytest.raises(LLMProviderError):
            provider.generate([{"role": "user", "content": "hi"}])

    @patch("quizbot.services.llm.openai_provider.httpx.Client")
    def test_non_json_body_is_fallback_failure(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.text = "not json"
        mock_response.json.side_effect = ValueError("Expecting value")
        mock_client.post.return_value = mock_response

        provider = OpenAIProvider("key", "https://example.invalid/v1/chat/completions", "m")
        result = FallbackResponder(provider, timeout_seconds=5).respond("hi")

        assert result.ok is False
        assert result.error_code == "fallback_unavailable"
