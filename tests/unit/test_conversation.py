"""Unit tests for the bounded tool-calling conversation."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from kickflip.models.conversation import LLMTurn, ToolCall
from kickflip.pipeline.conversation import ToolConversation, web_search_tool
from kickflip.utils.errors import SearchError


def _search_call(query: str = "jazz seattle", call_id: str = "call_1") -> ToolCall:
    return ToolCall(id=call_id, name="web_search", arguments={"query": query})


class TestToolConversation:
    @pytest.mark.asyncio
    async def test_tool_round_then_answer(self, mock_llm, mock_search) -> None:
        mock_llm.converse = AsyncMock(
            side_effect=[
                LLMTurn(tool_calls=(_search_call(),), stop_reason="tool_use"),
                LLMTurn(text='{"events": []}', stop_reason="end_turn"),
            ]
        )
        conversation = ToolConversation(mock_llm, "system", tools=[web_search_tool(mock_search)])
        result = await conversation.run("find jazz")

        assert result == '{"events": []}'
        mock_search.search.assert_awaited_once_with("jazz seattle", num_results=8)
        second_transcript = mock_llm.converse.call_args_list[1].args[1]
        roles = [m.role for m in second_transcript]
        assert roles == ["user", "assistant", "tool"]
        tool_message = second_transcript[-1]
        assert tool_message.tool_call_id == "call_1"
        assert json.loads(tool_message.content)[0]["url"] == "https://theroyalroom.com/events"

    @pytest.mark.asyncio
    async def test_turn_cap_and_final_turn_disables_tools(self, mock_llm, mock_search) -> None:
        mock_llm.converse = AsyncMock(
            return_value=LLMTurn(text="still looking", tool_calls=(_search_call(),))
        )
        conversation = ToolConversation(
            mock_llm, "system", tools=[web_search_tool(mock_search)], max_turns=3
        )
        result = await conversation.run("find jazz")

        assert mock_llm.converse.await_count == 3
        calls = mock_llm.converse.call_args_list
        assert [len(call.args[2]) for call in calls] == [1, 1, 1]
        assert [call.kwargs["allow_tool_calls"] for call in calls] == [True, True, False]
        assert result == "still looking"

    @pytest.mark.asyncio
    async def test_unknown_tool_reported_as_error(self, mock_llm, mock_search) -> None:
        mock_llm.converse = AsyncMock(
            side_effect=[
                LLMTurn(tool_calls=(ToolCall(id="x", name="fetch_page", arguments={}),)),
                LLMTurn(text="done"),
            ]
        )
        conversation = ToolConversation(mock_llm, "system", tools=[web_search_tool(mock_search)])
        await conversation.run("go")
        tool_message = mock_llm.converse.call_args_list[1].args[1][-1]
        assert tool_message.is_error is True
        assert "Unknown tool" in tool_message.content

    @pytest.mark.asyncio
    async def test_failing_tool_reported_as_error(self, mock_llm, mock_search) -> None:
        mock_search.search = AsyncMock(side_effect=SearchError("ratelimited"))
        conversation = ToolConversation(mock_llm, "system", tools=[web_search_tool(mock_search)])
        state = conversation.start("go")
        state = await conversation.execute_tools(state, [_search_call()])
        assert state.transcript[-1].is_error is True
        assert state.transcript[-1].content.startswith("Tool error")

    @pytest.mark.asyncio
    async def test_empty_search_query_is_rejected(self, mock_llm, mock_search) -> None:
        conversation = ToolConversation(mock_llm, "system", tools=[web_search_tool(mock_search)])
        state = await conversation.execute_tools(
            conversation.start("go"), [ToolCall(id="c", name="web_search", arguments={"query": " "})]
        )
        assert state.transcript[-1].is_error is True
        mock_search.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_advance_does_not_mutate_state(self, mock_llm) -> None:
        mock_llm.converse = AsyncMock(return_value=LLMTurn(text="answer"))
        conversation = ToolConversation(mock_llm, "system")
        initial = conversation.start("go")
        state, step = await conversation.advance(initial)
        assert initial.turn == 0 and len(initial.transcript) == 1
        assert state.turn == 1 and state.done is True
        assert step.done is True and step.result == "answer"

    @pytest.mark.asyncio
    async def test_advance_on_finished_state_is_a_noop(self, mock_llm) -> None:
        mock_llm.converse = AsyncMock(return_value=LLMTurn(text="answer"))
        conversation = ToolConversation(mock_llm, "system")
        state, _ = await conversation.advance(conversation.start("go"))
        again, step = await conversation.advance(state)
        assert again is state
        assert step.result == "answer"
        assert mock_llm.converse.await_count == 1

    def test_max_turns_must_be_positive(self, mock_llm) -> None:
        with pytest.raises(ValueError):
            ToolConversation(mock_llm, "system", max_turns=0)
