import itertools
import json

from llm_bridge.events import ToolCall
from llm_bridge.streaming.accumulator import ToolCallAccumulator, parse_arguments
from llm_bridge.streaming.signals import ToolCallFragment

ARGUMENTS = json.dumps({"city": "Zürich", "units": "metric", "days": [1, 2, 3]})


def _partitions(text: str, max_cuts: int = 2):
    for cuts in range(max_cuts + 1):
        for points in itertools.combinations(range(1, len(text)), cuts):
            bounds = (0, *points, len(text))
            yield [text[a:b] for a, b in itertools.pairwise(bounds)]


def test_any_partition_of_arguments_reassembles():
    expected = json.loads(ARGUMENTS)
    for pieces in _partitions(ARGUMENTS):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="call_a", name="weather"))
        for piece in pieces:
            acc.feed(ToolCallFragment(index=0, arguments=piece))
        assert acc.flush() == [ToolCall("call_a", "weather", expected)]


def test_slots_by_index_flush_in_first_seen_order():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(index=1, call_id="b", name="second", arguments='{"x"'))
    acc.feed(ToolCallFragment(index=0, call_id="a", name="first", arguments="{}"))
    acc.feed(ToolCallFragment(index=1, arguments=": 1}"))

    calls = acc.flush()
    assert [c.name for c in calls] == ["second", "first"]
    assert calls[0].arguments == {"x": 1}


def test_slot_by_call_id_when_index_missing():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(call_id="c1", name="one", arguments='{"a":'))
    acc.feed(ToolCallFragment(call_id="c2", name="two", arguments="{}"))
    acc.feed(ToolCallFragment(call_id="c1", arguments=" 1}"))

    assert acc.flush() == [
        ToolCall("c1", "one", {"a": 1}),
        ToolCall("c2", "two", {}),
    ]


def test_fragments_without_index_or_id_share_slot_zero():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(name="legacy", arguments='{"q": '))
    acc.feed(ToolCallFragment(arguments='"x"}'))

    assert acc.flush() == [ToolCall("call_0", "legacy", {"q": "x"})]


def test_first_id_and_name_win():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(index=0, call_id="first", name="alpha"))
    acc.feed(ToolCallFragment(index=0, call_id="second", name="beta"))
    [call] = acc.flush()
    assert (call.id, call.name) == ("first", "alpha")


def test_missing_ids_are_synthesized_by_position():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(index=0, name="a"))
    acc.feed(ToolCallFragment(index=1, name="b"))
    assert [c.id for c in acc.flush()] == ["call_0", "call_1"]


def test_flush_happens_once_and_later_fragments_are_ignored():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(index=0, name="a"))
    assert len(acc.flush()) == 1
    acc.feed(ToolCallFragment(index=1, name="late"))
    assert acc.flush() == []
    assert acc.flushed
    assert acc.pending == []


def test_replace_discards_partial_slots():
    acc = ToolCallAccumulator()
    acc.feed(ToolCallFragment(index=0, call_id="partial", arguments='{"trunc'))
    acc.replace(
        [
            ToolCallFragment(call_id="x", name="full", arguments='{"ok": true}'),
            ToolCallFragment(name="other"),
        ]
    )
    assert acc.flush() == [
        ToolCall("x", "full", {"ok": True}),
        ToolCall("call_1", "other", {}),
    ]


def test_parse_arguments_edge_cases():
    assert parse_arguments("") == {}
    assert parse_arguments("   ") == {}
    assert parse_arguments("not json") == {"value": "not json"}
    assert parse_arguments("[1, 2]") == {"value": [1, 2]}
    assert parse_arguments('"text"') == {"value": "text"}
    assert parse_arguments('{"a": null}') == {"a": None}
