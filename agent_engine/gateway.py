"""Uniform chat interface over the configured model providers."""

import logging
from typing import Iterable, Optional

from agent_engine.exceptions import UnsupportedModel
from agent_engine.execution import Message
from agent_engine.model import ChatOptions, ChatResponse, ModelAdaptor
from agent_engine.settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)


class LLMGateway:
    """Route chat calls to the adaptor that claims the model identifier.

    Adaptors are checked in order; the first whose ``supports`` accepts the
    model wins. The gateway holds no per-execution state and is safe to share
    between concurrent executions.
    """

    def __init__(self, adaptors: Iterable[ModelAdaptor]):
        self._adaptors = tuple(adaptors)

    @classmethod
    def from_settings(cls, settings: Optional[EngineSettings] = None) -> "LLMGateway":
        """Build a gateway with every provider that has an API key configured."""
        from agent_engine.adaptors.anthropic import AnthropicAdaptor
        from agent_engine.adaptors.openai import OpenAIAdaptor

        settings = settings or get_settings()
        adaptors: list[ModelAdaptor] = []
        if settings.openai_api_key:
            adaptors.append(
                OpenAIAdaptor(
                    api_key=settings.openai_api_key,
                    base_url=settings.openai_base_url,
                    timeout=settings.request_timeout_seconds,
                )
            )
        else:
            logger.warning("OPENAI_API_KEY not configured, OpenAI models unavailable")
        if settings.anthropic_api_key:
            adaptors.append(AnthropicAdaptor(api_key=settings.anthropic_api_key))
        else:
            logger.warning("ANTHROPIC_API_KEY not configured, Anthropic models unavailable")
        return cls(adaptors)

    @property
    def adaptors(self) -> tuple[ModelAdaptor, ...]:
        return self._adaptors

    def route(self, model: str) -> ModelAdaptor:
        for adaptor in self._adaptors:
            if adaptor.supports(model):
                return adaptor
        raise UnsupportedModel(f"Unsupported model: {model}")

    async def chat(self, messages: list[Message], options: ChatOptions) -> ChatResponse:
        system_count = sum(1 for msg in messages if msg.role == "system")
        if system_count > 1:
            raise ValueError("At most one system message is allowed per chat call")

        adaptor = self.route(options.model)
        logger.debug(
            "LLM chat request: model=%s provider=%s messages=%d tools=%d",
            options.model,
            adaptor.name,
            len(messages),
            len(options.tools),
        )
        try:
            return await adaptor.chat(messages, options)
        except Exception as e:
            logger.error("LLM chat error (%s): %s", adaptor.name, e)
            raise
