"""Bounded tool-using LLM conversation.

Live discovery and the batch crawler both hand the model a ``web_search``
tool and let it search until it is ready to answer.  This module is that
loop, written as an explicit state machine so it is easy to test and
guaranteed to terminate:

    state0 = conversation.start(prompt)
    state1, step = await conversation.advance(state0)   # one LLM call
    if not step.done:
        state1 = await conversation.execute_tools(state1, step.tool_calls)
    ...

``advance`` never mutates its input; it returns a new frozen
:class:`ConversationState`.  On the last allowed turn tool calls are
disabled, so the model has to answer in text.  ``run`` drives the whole
thing and returns the final text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.interfaces.web_search_provider import IWebSearchProvider
from kickflip.models.conversation import ConversationMessage, ToolCall, ToolSpec
from kickflip.utils.logging import get_logger
from kickflip.utils.retry import with_retry

ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]

DEFAULT_MAX_TURNS = 6


@dataclass(frozen=True)
class Tool:
    """A tool definition plus the coroutine that executes it."""

    spec: ToolSpec
    handler: ToolHandler


class ConversationState(BaseModel):
    """Immutable snapshot of a conversation between LLM turns."""

    model_config = ConfigDict(frozen=True)

    turn: int = 0
    transcript: tuple[ConversationMessage, ...] = ()
    done: bool = False
    final_text: str = ""


class ConversationStep(BaseModel):
    """What one :meth:`ToolConversation.advance` call produced.

    Either the model asked for tools (``done=False``, ``tool_calls`` set)
    or it finished (``done=True``, ``result`` holds its text).
    """

    model_config = ConfigDict(frozen=True)

    done: bool
    tool_calls: tuple[ToolCall, ...] = ()
    result: str = ""


def web_search_tool(search: IWebSearchProvider, num_results: int = 8) -> Tool:
    """Build the ``web_search`` tool backed by *search*."""

    async def _handler(arguments: dict[str, Any]) -> str:
        query = arguments.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValueError("web_search requires a non-empty 'query' string")
        results = await search.search(query.strip(), num_results=num_results)
        return json.dumps([r.to_tool_payload() for r in results])

    return Tool(
        spec=ToolSpec(
            name="web_search",
            description=(
                "Search the web for current event listings. Returns a JSON array of "
                "{title, url, snippet} objects."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search terms."},
                },
                "required": ["query"],
            },
        ),
        handler=_handler,
    )


class ToolConversation:
    """Drives one bounded, tool-using conversation with an LLM.

    Parameters
    ----------
    llm:
        Provider used for every turn.
    system_prompt:
        Instructions for the whole conversation.
    tools:
        Tools declared on every turn; calls are disabled on the last one.
    max_turns:
        Hard cap on LLM calls.  The last call may not use tools.
    max_tokens:
        Per-turn output budget.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        system_prompt: str,
        tools: Sequence[Tool] = (),
        max_turns: int = DEFAULT_MAX_TURNS,
        max_tokens: int = 4096,
    ) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._llm = llm
        self._system_prompt = system_prompt
        self._tools = {tool.spec.name: tool for tool in tools}
        self._max_turns = max_turns
        self._max_tokens = max_tokens
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def start(self, prompt: str) -> ConversationState:
        """Initial state holding just the user prompt."""
        return ConversationState(
            transcript=(ConversationMessage(role="user", content=prompt),)
        )

    async def advance(
        self, state: ConversationState
    ) -> tuple[ConversationState, ConversationStep]:
        """Make one LLM call and return the next state plus what happened."""
        if state.done:
            return state, ConversationStep(done=True, result=state.final_text)

        final_turn = state.turn + 1 >= self._max_turns
        specs = [tool.spec for tool in self._tools.values()]
        reply = await with_retry(
            lambda: self._llm.converse(
                self._system_prompt,
                state.transcript,
                specs,
                self._max_tokens,
                allow_tool_calls=not final_turn,
            ),
            label="conversation_turn",
        )

        if reply.tool_calls and not final_turn:
            assistant = ConversationMessage(
                role="assistant", content=reply.text, tool_calls=reply.tool_calls
            )
            next_state = state.model_copy(
                update={"turn": state.turn + 1, "transcript": state.transcript + (assistant,)}
            )
            return next_state, ConversationStep(done=False, tool_calls=reply.tool_calls)

        # Tool calls on the final turn are ignored; the text is the answer.
        assistant = ConversationMessage(role="assistant", content=reply.text)
        next_state = state.model_copy(
            update={
                "turn": state.turn + 1,
                "transcript": state.transcript + (assistant,),
                "done": True,
                "final_text": reply.text,
            }
        )
        return next_state, ConversationStep(done=True, result=reply.text)

    async def execute_tools(
        self, state: ConversationState, calls: Sequence[ToolCall]
    ) -> ConversationState:
        """Run each requested tool and append its result to the transcript.

        A failing or unknown tool produces an error result instead of an
        exception, so the model can recover on its next turn.
        """
        results: list[ConversationMessage] = []
        for call in calls:
            tool = self._tools.get(call.name)
            if tool is None:
                results.append(
                    ConversationMessage(
                        role="tool",
                        tool_call_id=call.id,
                        content=f"Unknown tool: {call.name}",
                        is_error=True,
                    )
                )
                continue
            try:
                output = await tool.handler(call.arguments)
            except Exception as exc:  # noqa: BLE001 -- reported back to the model
                self._logger.warning(
                    "tool_call_failed", tool=call.name, turn=state.turn, error=str(exc)
                )
                results.append(
                    ConversationMessage(
                        role="tool",
                        tool_call_id=call.id,
                        content=f"Tool error: {exc}",
                        is_error=True,
                    )
                )
                continue
            results.append(ConversationMessage(role="tool", tool_call_id=call.id, content=output))
        return state.model_copy(update={"transcript": state.transcript + tuple(results)})

    async def run(self, prompt: str) -> str:
        """Run the conversation to completion and return the final text."""
        state = self.start(prompt)
        while True:
            state, step = await self.advance(state)
            if step.done:
                self._logger.info("conversation_complete", turns=state.turn)
                return step.result
            self._logger.debug(
                "conversation_tool_calls",
                turn=state.turn,
                tools=[call.name for call in step.tool_calls],
            )
            state = await self.execute_tools(state, step.tool_calls)
