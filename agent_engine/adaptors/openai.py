"""OpenAI API adaptor for agent-engine."""

import json
import logging
import os
from typing import Optional

import httpx

from agent_engine.agent import ToolSpec
from agent_engine.exceptions import ProviderError
from agent_engine.execution import Message, ToolCall, Usage
from agent_engine.model import ChatOptions, ChatResponse, ModelAdaptor

logger = logging.getLogger(__name__)


class OpenAIAdaptor(ModelAdaptor):
    """OpenAI chat-completions adaptor.

    Sends the conversation verbatim, system message included, with tools in
    OpenAI's native function-calling shape. Claims ``gpt-`` and ``o1-`` models.

    Args:
        api_key: OpenAI API key. Falls back to OPENAI_API_KEY environment variable.
        base_url: Base URL for the API (default: https://api.openai.com/v1).
        timeout: Request timeout in seconds (default: 60).
    """

    name = "openai"
    prefixes = ("gpt-", "o1-")

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key not provided. "
                "Pass api_key argument or set OPENAI_API_KEY environment variable."
            )

        self.base_url = base_url or "https://api.openai.com/v1"
        self.timeout = timeout

    async def chat(self, messages: list[Message], options: ChatOptions) -> ChatResponse:
        """Call the OpenAI API.

        Raises:
            ProviderError: If the request fails or the response is malformed.
        """
        payload = {
            "model": options.model,
            "messages": self._convert_messages(messages),
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }

        if options.tools:
            payload["tools"] = [self._convert_tool(tool) for tool in options.tools]
            payload["tool_choice"] = "auto"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        if response.status_code != 200:
            raise ProviderError(f"OpenAI API error: {self._error_message(response)}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("OpenAI returned a malformed response: body is not JSON") from e
        return self._parse_response(data)

    def _error_message(self, response) -> str:
        try:
            error_data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        return error_data.get("error", {}).get("message", "Unknown error")

    def _convert_messages(self, messages: list[Message]) -> list[dict]:
        openai_messages = []
        for msg in messages:
            if msg.role == "tool":
                if msg.tool_call_id:
                    openai_messages.append({
                        "role": "tool",
                        "tool_call_id": msg.tool_call_id,
                        "content": msg.content,
                    })
                else:
                    # Without a call id only the legacy function role can carry it
                    openai_messages.append({
                        "role": "function",
                        "name": msg.name or "tool",
                        "content": msg.content,
                    })
                continue

            openai_msg = {"role": msg.role, "content": msg.content}
            if msg.role == "assistant" and msg.tool_calls:
                openai_msg["tool_calls"] = self._format_tool_calls(msg.tool_calls)
            openai_messages.append(openai_msg)
        return openai_messages

    def _format_tool_calls(self, tool_calls: list[ToolCall]) -> list[dict]:
        return [
            {
                "id": tool_call.id,
                "type": "function",
                "function": {
                    "name": tool_call.tool_name,
                    "arguments": json.dumps(tool_call.arguments),
                },
            }
            for tool_call in tool_calls
        ]

    def _convert_tool(self, tool: ToolSpec) -> dict:
        return tool.to_function_schema()

    def _parse_response(self, data: dict) -> ChatResponse:
        if not isinstance(data, dict):
            raise ProviderError("OpenAI returned a malformed response: body is not an object")
        if not data.get("choices"):
            raise ProviderError("OpenAI response missing 'choices' field")

        message = data["choices"][0].get("message", {})
        tool_calls = [
            self._parse_tool_call(tool_call_data)
            for tool_call_data in message.get("tool_calls") or []
        ]

        usage = data.get("usage") or {}
        return ChatResponse(
            content=message.get("content") or "",
            tool_calls=tool_calls,
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
            ),
            model=data.get("model"),
        )

    def _parse_tool_call(self, tool_call_data: dict) -> ToolCall:
        try:
            function = tool_call_data["function"]
            call_id = tool_call_data["id"]
            name = function["name"]
        except (KeyError, TypeError) as e:
            raise ProviderError(
                f"OpenAI returned a malformed response: tool call missing {e}"
            ) from e
        raw_arguments = function.get("arguments") or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            raise ProviderError(
                f"OpenAI returned invalid JSON arguments for tool '{name}'"
            ) from e
        if not isinstance(arguments, dict):
            raise ProviderError(
                f"OpenAI returned non-object arguments for tool '{name}'"
            )
        return ToolCall(
            id=call_id,
            tool_name=name,
            arguments=arguments,
        )
