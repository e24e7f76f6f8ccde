"""Abstract base class for LLM service providers.

Defines the contract for any large-language-model backend Kickflip talks
to: plain text completion (the Formatter) and multi-turn tool use (live
discovery and the batch crawler).  Concrete adapters wrap a vendor SDK and
translate the provider-neutral conversation models in
:mod:`kickflip.models.conversation` to that vendor's wire format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from kickflip.models.conversation import ConversationMessage, LLMTurn, ToolSpec


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider
# Located in: kickflip/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the query pipeline and crawler."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> str:
        """Generate a single text completion.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        kickflip.utils.errors.LLMError
            If the API call fails or returns no text.
        kickflip.utils.errors.ProviderUnavailableError
            On timeouts and connection failures (retryable).
        kickflip.utils.errors.RateLimitError
            When the provider throttles the request (retryable).
        """

    @abstractmethod
    async def converse(
        self,
        system_prompt: str,
        messages: Sequence[ConversationMessage],
        tools: Sequence[ToolSpec] = (),
        max_tokens: int = 4096,
        allow_tool_calls: bool = True,
    ) -> LLMTurn:
        """Run one model turn over a tool-calling transcript.

        Parameters
        ----------
        system_prompt:
            Instructions for the whole conversation.
        messages:
            Transcript so far, oldest first.  ``tool`` messages must follow
            the ``assistant`` message whose tool call they answer.
        tools:
            Tools declared on this turn.
        max_tokens:
            Upper bound on the number of tokens in the reply.
        allow_tool_calls:
            When ``False`` the tools stay declared (a transcript that holds
            earlier tool calls needs them) but the model must answer in text.

        Returns
        -------
        LLMTurn
            The reply text and any tool calls the model requested.

        Raises
        ------
        kickflip.utils.errors.LLMError
            If the API call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"anthropic"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has credentials configured."""
