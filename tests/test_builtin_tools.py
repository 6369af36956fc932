"""Tests for the official tools."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agent_engine.builtin_tools import (
    DatabaseQueryTool,
    HttpRequestTool,
    SendEmailTool,
    SlackNotifyTool,
    WebSearchTool,
    default_registry,
)
from agent_engine.exceptions import ToolExecutionError
from agent_engine.settings import EngineSettings


def mock_http_response(status_code=200, json_data=None, text="", reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.reason_phrase = reason
    response.text = text
    response.json.return_value = json_data or {}
    return response


class TestWebSearch:
    @pytest.mark.asyncio
    async def test_without_api_key_returns_placeholder(self, monkeypatch):
        monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
        result = await WebSearchTool().execute({"query": "python"})

        assert result.success is True
        assert result.data["query"] == "python"
        assert "PERPLEXITY_API_KEY" in result.data["results"][0]["snippet"]

    @pytest.mark.asyncio
    async def test_with_api_key_calls_perplexity(self):
        response = mock_http_response(
            json_data={
                "choices": [{"message": {"content": "Python is a language."}}],
                "citations": ["https://python.org"],
            }
        )
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = response

            result = await WebSearchTool(api_key="pplx-test").execute({"query": "python"})

            payload = mock_instance.post.call_args.kwargs["json"]
            assert payload["model"] == "sonar"
            assert payload["messages"][0]["content"] == "python"

        assert result.success is True
        assert result.data == {
            "query": "python",
            "answer": "Python is a language.",
            "sources": ["https://python.org"],
        }

    @pytest.mark.asyncio
    async def test_api_error_raises_tool_error(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_http_response(status_code=429)

            with pytest.raises(ToolExecutionError, match="Perplexity API error"):
                await WebSearchTool(api_key="pplx-test").execute({"query": "python"})


class TestPlaceholderTools:
    @pytest.mark.asyncio
    async def test_send_email(self):
        result = await SendEmailTool().execute(
            {"to": "a@example.com", "subject": "Hi", "body": "Hello"}
        )
        assert result.success is True
        assert result.data["message"] == "Email queued to a@example.com"

    @pytest.mark.asyncio
    async def test_database_query(self):
        result = await DatabaseQueryTool().execute({"query": "SELECT 1"})
        assert result.success is True
        assert result.data["query"] == "SELECT 1"

    @pytest.mark.asyncio
    async def test_slack_without_webhook(self, monkeypatch):
        monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
        result = await SlackNotifyTool().execute({"channel": "#ops", "message": "deployed"})
        assert result.success is True
        assert result.data["message"] == "Notification queued for channel #ops"


class TestSlackWebhook:
    @pytest.mark.asyncio
    async def test_posts_to_webhook(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_http_response()

            tool = SlackNotifyTool(webhook_url="https://hooks.slack.test/abc")
            result = await tool.execute({"channel": "#ops", "message": "deployed"})

            url = mock_instance.post.call_args.args[0]
            assert url == "https://hooks.slack.test/abc"
            assert mock_instance.post.call_args.kwargs["json"] == {
                "channel": "#ops",
                "text": "deployed",
            }

        assert result.success is True


class TestHttpRequest:
    @pytest.mark.asyncio
    async def test_success(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.request.return_value = mock_http_response(text='{"ok": true}')

            result = await HttpRequestTool().execute(
                {"method": "post", "url": "https://api.test/items", "body": {"a": 1}}
            )

            args = mock_instance.request.call_args
            assert args.args == ("POST", "https://api.test/items")
            assert args.kwargs["json"] == {"a": 1}
            assert args.kwargs["headers"]["Content-Type"] == "application/json"

        assert result.success is True
        assert result.data == {"status": 200, "status_text": "OK", "body": '{"ok": true}'}

    @pytest.mark.asyncio
    async def test_error_status_is_unsuccessful(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.request.return_value = mock_http_response(
                status_code=404, text="missing", reason="Not Found"
            )

            result = await HttpRequestTool().execute({"method": "GET", "url": "https://api.test/x"})

        assert result.success is False
        assert result.error == "HTTP 404"
        assert result.data["status"] == 404


class TestDefaultRegistry:
    def test_registers_all_official_tools(self):
        executor = default_registry(EngineSettings(_env_file=None))
        assert set(executor.tools) == {
            "web_search",
            "send_email",
            "database_query",
            "http_request",
            "slack_notify",
        }

    @pytest.mark.asyncio
    async def test_missing_required_argument_fails_softly(self):
        executor = default_registry(EngineSettings(_env_file=None))
        result = await executor.execute("send_email", {"to": "a@example.com"})
        assert result.success is False
        assert "Invalid arguments" in result.error
