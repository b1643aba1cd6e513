"""Tests for context_engine.llm.reassembler.StreamReassembler."""

from __future__ import annotations

import pytest

from context_engine.llm.reassembler import StreamReassembler
from context_engine.llm.types import ContentDelta, EndOfTurn, ToolCallDelta

from tests.mock_providers import (
    malformed_tool_call_events,
    multi_tool_call_events,
    tool_call_events,
)


def _feed(events, **kwargs):
    r = StreamReassembler(**kwargs)
    for e in events:
        r.consume(e)
    return r


class TestText:
    def test_text_is_concatenated(self):
        r = _feed([ContentDelta("Hello "), ContentDelta("world"), EndOfTurn("stop")])
        result = r.finalize()
        assert result.text == "Hello world"
        assert result.tool_calls == []
        assert not result.has_tool_calls

    def test_on_content_called_in_arrival_order(self):
        seen = []
        _feed([ContentDelta("a"), ContentDelta("b"), ContentDelta("c")], on_content=seen.append)
        assert seen == ["a", "b", "c"]

    def test_empty_deltas_are_ignored(self):
        seen = []
        r = _feed([ContentDelta(""), ContentDelta("x")], on_content=seen.append)
        assert seen == ["x"]
        assert r.text == "x"

    def test_end_of_turn_records_finish_reason(self):
        r = _feed([EndOfTurn("length")])
        assert r.ended
        assert r.finish_reason == "length"


class TestToolCalls:
    def test_fragments_are_reassembled(self):
        r = _feed(tool_call_events("getFileContent", {"filePath": "src/a.py"}, call_id="c1"))
        result = r.finalize()
        assert len(result.tool_calls) == 1
        tc = result.tool_calls[0]
        assert tc.id == "c1"
        assert tc.name == "getFileContent"
        assert tc.arguments == {"filePath": "src/a.py"}

    def test_narration_before_call_is_forwarded(self):
        seen = []
        r = _feed(
            tool_call_events("echo", {"message": "x"}, content_prefix="Let me check. "),
            on_content=seen.append,
        )
        result = r.finalize()
        assert seen == ["Let me check. "]
        assert result.text == "Let me check. "
        assert result.has_tool_calls

    def test_first_id_wins(self):
        r = _feed(
            [
                ToolCallDelta(index=0, id="first", name="echo"),
                ToolCallDelta(index=0, id="second", arguments="{}"),
            ]
        )
        assert r.finalize().tool_calls[0].id == "first"

    def test_calls_ordered_by_index(self):
        r = _feed(
            [
                ToolCallDelta(index=1, id="b", name="second", arguments="{}"),
                ToolCallDelta(index=0, id="a", name="first", arguments="{}"),
            ]
        )
        assert [c.name for c in r.finalize().tool_calls] == ["first", "second"]

    def test_multiple_interleaved_calls(self):
        r = _feed(
            multi_tool_call_events(
                [("echo", {"message": "1"}, "c1"), ("echo", {"message": "2"}, "c2")]
            )
        )
        calls = r.finalize().tool_calls
        assert [c.id for c in calls] == ["c1", "c2"]
        assert calls[1].arguments == {"message": "2"}

    def test_arguments_kept_verbatim(self):
        raw = '{"a":1,  "b":[1,2]}'
        r = _feed([ToolCallDelta(index=0, id="x", name="t", arguments=raw)])
        assert r.finalize().tool_calls[0].arguments_json == raw


class TestDropped:
    def test_invalid_json_is_dropped(self):
        result = _feed(malformed_tool_call_events()).finalize()
        assert result.tool_calls == []
        assert result.dropped == [0]

    def test_missing_id_is_dropped(self):
        result = _feed([ToolCallDelta(index=0, name="echo", arguments="{}")]).finalize()
        assert result.tool_calls == []
        assert result.dropped == [0]

    def test_missing_name_is_dropped(self):
        result = _feed([ToolCallDelta(index=0, id="x", arguments="{}")]).finalize()
        assert result.dropped == [0]

    def test_truncated_arguments_drop_only_that_call(self):
        result = _feed(
            [
                ToolCallDelta(index=0, id="ok", name="echo", arguments='{"message": "hi"}'),
                ToolCallDelta(index=1, id="cut", name="echo", arguments='{"mess'),
            ]
        ).finalize()
        assert [c.id for c in result.tool_calls] == ["ok"]
        assert result.dropped == [1]


class TestLifecycle:
    def test_consume_after_finalize_raises(self):
        r = StreamReassembler()
        r.finalize()
        with pytest.raises(RuntimeError):
            r.consume(ContentDelta("late"))

    def test_unknown_event_type_raises(self):
        r = StreamReassembler()
        with pytest.raises(TypeError):
            r.consume("not an event")


class TestInterleaving:
    def test_text_independent_of_tool_delta_positions(self):
        events = [
            ToolCallDelta(index=0, id="a", name="ec"),
            ContentDelta("one "),
            ToolCallDelta(index=0, name="ho", arguments='{"message"'),
            ContentDelta("two "),
            ToolCallDelta(index=2, id="b", name="echo", arguments="{}"),
            ToolCallDelta(index=0, arguments=': "x"}'),
            ContentDelta("three"),
            EndOfTurn("tool_calls"),
        ]
        result = _feed(events).finalize()
        assert result.text == "one two three"
        assert [c.id for c in result.tool_calls] == ["a", "b"]
        assert result.tool_calls[0].name == "echo"
