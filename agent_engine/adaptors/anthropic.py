"""Anthropic API adaptor for agent-engine."""

import os
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from agent_engine.agent import ToolSpec
from agent_engine.exceptions import ProviderError
from agent_engine.execution import Message, ToolCall, Usage
from agent_engine.model import ChatOptions, ChatResponse, ModelAdaptor

ANTHROPIC_MAX_TEMPERATURE = 1.0


class AnthropicAdaptor(ModelAdaptor):
    """Anthropic model adaptor using the official SDK.

    The system message travels in the top-level ``system`` field and never in
    the turn list. Anthropic accepts temperatures in [0, 1] only, so higher
    values are clamped to 1. Claims ``claude-`` models.

    Args:
        api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY environment variable.
    """

    name = "anthropic"
    prefixes = ("claude-",)

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key not provided. "
                "Pass api_key argument or set ANTHROPIC_API_KEY environment variable."
            )

        self.client = AsyncAnthropic(api_key=self.api_key)

    async def chat(self, messages: list[Message], options: ChatOptions) -> ChatResponse:
        system = self._extract_system(messages)
        create_kwargs = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "temperature": min(options.temperature, ANTHROPIC_MAX_TEMPERATURE),
            "messages": self._convert_messages(messages),
        }
        if system:
            create_kwargs["system"] = system
        if options.tools:
            create_kwargs["tools"] = [self._convert_tool(tool) for tool in options.tools]

        try:
            response = await self.client.messages.create(**create_kwargs)
        except anthropic.APIError as e:
            raise ProviderError(f"Anthropic API error: {e}") from e
        return self._parse_response(response)

    def _extract_system(self, messages: list[Message]) -> str:
        for msg in messages:
            if msg.role == "system":
                return msg.content
        return ""

    def _convert_messages(self, messages: list[Message]) -> list[dict]:
        anthropic_messages = []
        for msg in messages:
            if msg.role == "system":
                continue
            if msg.role == "user":
                anthropic_messages.append({"role": "user", "content": msg.content})
            elif msg.role == "assistant":
                content_blocks = []
                if msg.content:
                    content_blocks.append({"type": "text", "text": msg.content})
                if msg.tool_calls:
                    for tc in msg.tool_calls:
                        content_blocks.append({
                            "type": "tool_use",
                            "id": tc.id,
                            "name": tc.tool_name,
                            "input": tc.arguments,
                        })
                anthropic_messages.append({
                    "role": "assistant",
                    "content": content_blocks or msg.content,
                })
            elif msg.role == "tool":
                if msg.tool_call_id:
                    anthropic_messages.append({
                        "role": "user",
                        "content": [{
                            "type": "tool_result",
                            "tool_use_id": msg.tool_call_id,
                            "content": msg.content,
                        }],
                    })
                else:
                    anthropic_messages.append({
                        "role": "user",
                        "content": f"[{msg.name or 'tool'} result] {msg.content}",
                    })
        return anthropic_messages

    def _convert_tool(self, tool: ToolSpec) -> dict:
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters,
        }

    def _parse_response(self, response) -> ChatResponse:
        text = ""
        tool_calls = []
        for block in response.content:
            if block.type == "text" and not text:
                text = block.text
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, tool_name=block.name, arguments=dict(block.input or {}))
                )

        return ChatResponse(
            content=text,
            tool_calls=tool_calls,
            usage=Usage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
            ),
            model=response.model,
        )
