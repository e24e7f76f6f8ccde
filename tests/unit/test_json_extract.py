"""Unit tests for kickflip.utils.json_extract."""

from __future__ import annotations

import pytest

from kickflip.utils.errors import JSONExtractionError
from kickflip.utils.json_extract import extract_json


class TestExtractJson:
    def test_plain_object(self) -> None:
        assert extract_json('{"text": "hi", "events": ["a"]}') == {"text": "hi", "events": ["a"]}

    def test_code_fence(self) -> None:
        raw = '```json\n{"text": "hi", "events": []}\n```'
        assert extract_json(raw) == {"text": "hi", "events": []}

    def test_prose_before_and_after(self) -> None:
        raw = 'Sure! Here you go: {"text": "Jazz tonight", "events": ["e1"]} Enjoy.'
        assert extract_json(raw, expect=dict) == {"text": "Jazz tonight", "events": ["e1"]}

    def test_think_block_is_dropped(self) -> None:
        raw = '<think>maybe {"text": "wrong"}</think>{"text": "right", "events": []}'
        assert extract_json(raw, expect=dict)["text"] == "right"

    def test_unterminated_think_block_keeps_tail(self) -> None:
        raw = 'thinking about {"a": 1}</think>[{"title": "Show"}]'
        assert extract_json(raw) == [{"title": "Show"}]

    def test_expect_skips_other_types(self) -> None:
        raw = 'ids [1, 2] then {"text": "x"}'
        assert extract_json(raw, expect=dict) == {"text": "x"}

    def test_expect_tuple_accepts_list(self) -> None:
        assert extract_json('[{"title": "A"}]', expect=(dict, list)) == [{"title": "A"}]

    def test_unbalanced_braces_are_skipped(self) -> None:
        raw = 'broken { "text": and then [{"title": "B"}]'
        assert extract_json(raw, expect=list) == [{"title": "B"}]

    @pytest.mark.parametrize("raw", [None, "", "   ", "no json at all", "{not: json}"])
    def test_failure_raises(self, raw: str | None) -> None:
        with pytest.raises(JSONExtractionError):
            extract_json(raw)

    def test_scalar_json_is_not_accepted(self) -> None:
        with pytest.raises(JSONExtractionError):
            extract_json('"just a string"')

    @pytest.mark.parametrize("raw", ["[" * 100_000, "{\"a\": " * 5_000, "x " + "[{" * 60_000])
    def test_pathologically_nested_input_is_a_miss(self, raw: str) -> None:
        with pytest.raises(JSONExtractionError):
            extract_json(raw)

    def test_value_after_deeply_nested_junk_is_found(self) -> None:
        raw = "[" * 100_000 + ' then {"text": "ok", "events": []}'
        assert extract_json(raw, expect=dict) == {"text": "ok", "events": []}
