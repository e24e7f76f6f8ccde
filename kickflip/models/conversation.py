"""Provider-neutral message types for tool-using LLM conversations.

Anthropic and OpenAI shape tool calls differently (``tool_use`` content
blocks vs. ``tool_calls`` on the assistant message; ``tool_result`` blocks
inside a user turn vs. ``role="tool"`` messages).  These models are the
common vocabulary; each LLM adapter translates them to its own wire format.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolSpec(BaseModel):
    """A tool the model may call.  ``parameters`` is a JSON Schema object."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    """One tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ConversationMessage(BaseModel):
    """One entry in a conversation transcript.

    - ``user``: plain prompt text.
    - ``assistant``: model text plus any tool calls it made.
    - ``tool``: the result of a single tool call, linked by ``tool_call_id``.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "tool"]
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    is_error: bool = False


class LLMTurn(BaseModel):
    """The model's reply to one ``converse`` call."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    stop_reason: str = ""

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)
