"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Key differences from the OpenAI adapter:
    - System prompt is a separate parameter, not a message in the list
    - Tool calls come back as ``tool_use`` content blocks
    - Tool results go back as ``tool_result`` blocks inside a *user* turn,
      so consecutive tool messages are merged into one user message
"""

from __future__ import annotations

from typing import Any, Sequence

import anthropic
import structlog

from kickflip.config.settings import Settings
from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.models.conversation import ConversationMessage, LLMTurn, ToolCall, ToolSpec
from kickflip.utils.errors import LLMError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


def _to_anthropic_messages(messages: Sequence[ConversationMessage]) -> list[dict[str, Any]]:
    """Translate the neutral transcript into Messages API payloads."""
    payload: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": message.tool_call_id or "",
                "content": message.content,
                "is_error": message.is_error,
            }
            previous = payload[-1] if payload else None
            # Results for one assistant turn share a single user message.
            if (
                previous is not None
                and previous["role"] == "user"
                and isinstance(previous["content"], list)
                and all(b.get("type") == "tool_result" for b in previous["content"])
            ):
                previous["content"].append(block)
            else:
                payload.append({"role": "user", "content": [block]})
        elif message.role == "assistant":
            content: list[dict[str, Any]] = []
            if message.content:
                content.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                content.append(
                    {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
                )
            payload.append({"role": "assistant", "content": content or message.content})
        else:
            payload.append({"role": "user", "content": message.content})
    return payload


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Claude API.

    Uses ``claude-sonnet-4-20250514`` unless ``ANTHROPIC_MODEL`` says
    otherwise.  *timeout* overrides the chat timeout; the crawler builds a
    second instance with a longer one.
    """

    def __init__(self, settings: Settings, timeout: float | None = None) -> None:
        self._settings = settings
        self._api_key = settings.anthropic_api_key
        self._timeout = timeout if timeout is not None else settings.chat_llm_timeout_seconds
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=0,
        )
        self._model = settings.anthropic_model

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> str:
        """Generate a text completion via the Anthropic Messages API."""
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.APIError as exc:
            raise self._wrap_error(exc) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return "\n".join(text_blocks)

    async def converse(
        self,
        system_prompt: str,
        messages: Sequence[ConversationMessage],
        tools: Sequence[ToolSpec] = (),
        max_tokens: int = 4096,
        allow_tool_calls: bool = True,
    ) -> LLMTurn:
        """Run one Messages API turn with optional tool definitions."""
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": _to_anthropic_messages(messages),
        }
        if tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]
            if not allow_tool_calls:
                kwargs["tool_choice"] = {"type": "none"}
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise self._wrap_error(exc) from exc

        texts: list[str] = []
        calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                arguments = block.input if isinstance(block.input, dict) else {}
                calls.append(ToolCall(id=block.id, name=block.name, arguments=arguments))

        logger.info(
            "anthropic_turn",
            model=self._model,
            tool_calls=len(calls),
            stop_reason=response.stop_reason,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return LLMTurn(
            text="\n".join(texts),
            tool_calls=tuple(calls),
            stop_reason=response.stop_reason or "",
        )

    def is_available(self) -> bool:
        """Return ``True`` if an Anthropic API key is configured."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "anthropic"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _wrap_error(self, exc: anthropic.APIError) -> Exception:
        """Map SDK errors onto the retryable/non-retryable error types."""
        name = self.get_provider_name()
        if isinstance(exc, anthropic.RateLimitError):
            return RateLimitError(message=f"Anthropic rate limited: {exc}", provider_name=name)
        if isinstance(exc, anthropic.APIConnectionError):
            # APITimeoutError is a subclass of APIConnectionError.
            return ProviderUnavailableError(
                message=f"Anthropic unreachable: {exc}", provider_name=name
            )
        if isinstance(exc, anthropic.InternalServerError):
            return ProviderUnavailableError(
                message=f"Anthropic server error: {exc}", provider_name=name
            )
        return LLMError(message=f"Anthropic API error: {exc}", provider_name=name)
