import hashlib
import hmac
from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from quizbot.config import settings
from quizbot.services.whatsapp_service import send_text_message, verify_signature


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "whatsapp_access_token", "test-token")
    monkeypatch.setattr(settings, "whatsapp_phone_number_id", "123456")
    monkeypatch.setattr(settings, "whatsapp_api_url", "https://graph.facebook.com/v19.0")


class TestSendTextMessage:
    def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "whatsapp_access_token", None)
        result = send_text_message("2250700000001", "hello")
        assert result.ok is False
        assert result.error_code == "not_configured"

    @patch("quizbot.services.whatsapp_service.httpx.Client")
    def test_sends_text(self, mock_client_class, configured):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"messages": [{"id": "wamid.out"}]}
        mock_client.post.return_value = mock_response

        result = send_text_message("2250700000001", "hello", timeout=3)

        assert result.ok is True
        assert result.value == "wamid.out"
        mock_client_class.assert_called_once_with(timeout=3)
        url = mock_client.post.call_args.args[0]
        kwargs = mock_client.post.call_args.kwargs
        assert url == "https://graph.facebook.com/v19.0/123456/messages"
        assert kwargs["json"]["to"] == "2250700000001"
        assert kwargs["json"]["text"]["body"] == "hello"
        assert kwargs["headers"]["Authorization"] == "Bearer test-token"

    @patch("quizbot.services.whatsapp_service.httpx.Client")
    def test_http_error(self, mock_client_class, configured):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_response = Mock()
        mock_response.status_code = 401
        mock_response.text = "invalid token"
        mock_client.post.return_value = mock_response

        result = send_text_message("2250700000001", "hello")

        assert result.ok is False
        assert result.error_code == "http_error"

    @patch("quizbot.services.whatsapp_service.httpx.Client")
    def test_timeout(self, mock_client_class, configured):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.side_effect = httpx.ReadTimeout("timed out")

        result = send_text_message("2250700000001", "hello")

        assert result.ok is False
        assert result.error_code == "timeout"

    @patch("quizbot.services.whatsapp_service.httpx.Client")
    def test_connection_error(self, mock_client_class, configured):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.side_effect = httpx.ConnectError("refused")

        result = send_text_message("2250700000001", "hello")

        assert result.error_code == "send_error"

    def test_empty_body(self, configured):
        assert send_text_message("2250700000001", "").error_code == "send_error"


class TestVerifySignature:
    def test_no_secret_accepts(self, monkeypatch):
        monkeypatch.setattr(settings, "whatsapp_app_secret", None)
        assert verify_signature(b"{}", None) is True

    def test_valid(self, monkeypatch):
        monkeypatch.setattr(settings, "whatsapp_app_secret", "s3cret")
        digest = hmac.new(b"s3cret", b'{"a":1}', hashlib.sha256).hexdigest()
        assert verify_signature(b'{"a":1}', f"sha256={digest}") is True

    def test_tampered_body(self, monkeypatch):
        monkeypatch.setattr(settings, "whatsapp_app_secret", "s3cret")
        digest = hmac.new(b"s3cret", b'{"a":1}', hashlib.sha256).hexdigest()
        assert verify_signature(b'{"a":2}', f"sha256={digest}") is False

    def test_missing_header(self, monkeypatch):
        monkeypatch.setattr(settings, "whatsapp_app_secret", "s3cret")
        assert verify_signature(b"{}", None) is False
        assert verify_signature(b"{}", "md5=abc") is False
