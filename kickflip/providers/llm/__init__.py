"""LLM provider adapters."""

from kickflip.providers.llm.anthropic_provider import AnthropicLLMProvider
from kickflip.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
