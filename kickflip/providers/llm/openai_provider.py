"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``openai_base_url`` is configured (TogetherAI, Groq, Fireworks...)
the client points at that URL instead of the default OpenAI endpoint, so
one adapter covers every OpenAI-compatible chat API that supports
function calling.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import openai
import structlog

from kickflip.config.settings import Settings
from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.models.conversation import ConversationMessage, LLMTurn, ToolCall, ToolSpec
from kickflip.utils.errors import LLMError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


def _to_openai_messages(
    system_prompt: str, messages: Sequence[ConversationMessage]
) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in messages:
        if message.role == "tool":
            payload.append(
                {
                    "role": "tool",
                    "tool_call_id": message.tool_call_id or "",
                    "content": message.content,
                }
            )
        elif message.role == "assistant":
            entry: dict[str, Any] = {"role": "assistant", "content": message.content or None}
            if message.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments),
                        },
                    }
                    for call in message.tool_calls
                ]
            payload.append(entry)
        else:
            payload.append({"role": "user", "content": message.content})
    return payload


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    # Models occasionally emit malformed argument JSON; treat it as empty.
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible API.

    Uses ``gpt-4o-mini`` by default; ``openai_text_model`` overrides it for
    compatible providers.
    """

    def __init__(self, settings: Settings, timeout: float | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key
        self._timeout = timeout if timeout is not None else settings.chat_llm_timeout_seconds

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(self._timeout, connect=5.0),
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._text_model = settings.openai_text_model or "gpt-4o-mini"
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

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
        """Generate a text completion via the chat completions API."""
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise self._wrap_error(exc) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._text_model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    async def converse(
        self,
        system_prompt: str,
        messages: Sequence[ConversationMessage],
        tools: Sequence[ToolSpec] = (),
        max_tokens: int = 4096,
        allow_tool_calls: bool = True,
    ) -> LLMTurn:
        """Run one chat-completions turn with optional function tools."""
        kwargs: dict[str, Any] = {
            "model": self._text_model,
            "messages": _to_openai_messages(system_prompt, messages),
            "max_tokens": max_tokens,
        }
        if tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.parameters,
                    },
                }
                for t in tools
            ]
            if not allow_tool_calls:
                kwargs["tool_choice"] = "none"
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APIError as exc:
            raise self._wrap_error(exc) from exc

        choice = response.choices[0]
        calls = tuple(
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=_parse_arguments(call.function.arguments),
            )
            for call in (choice.message.tool_calls or [])
        )
        logger.info(
            "openai_turn",
            model=self._text_model,
            provider=self._provider_label,
            tool_calls=len(calls),
            finish_reason=choice.finish_reason,
        )
        return LLMTurn(
            text=choice.message.content or "",
            tool_calls=calls,
            stop_reason=choice.finish_reason or "",
        )

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._provider_label

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _wrap_error(self, exc: openai.APIError) -> Exception:
        name = self.get_provider_name()
        if isinstance(exc, openai.RateLimitError):
            return RateLimitError(
                message=f"{self._provider_label} rate limited: {exc}", provider_name=name
            )
        if isinstance(exc, openai.APITimeoutError):
            return ProviderUnavailableError(
                message=f"{self._provider_label} timed out after {self._timeout:.0f}s",
                provider_name=name,
            )
        if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
            return ProviderUnavailableError(
                message=f"{self._provider_label} unreachable: {exc}", provider_name=name
            )
        return LLMError(message=f"{self._provider_label} API error: {exc}", provider_name=name)
