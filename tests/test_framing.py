import pytest

from llm_bridge.api_client import parse_sse_line
from llm_bridge.streaming.framing import Frame, Framing, parse_line, parse_ndjson_line


@pytest.mark.parametrize(
    "line",
    ["", "   ", ": keep-alive", "event: message", "id: 42", "retry: 1000"],
)
def test_sse_non_data_lines_are_ignored(line):
    assert parse_sse_line(line) is Frame.IGNORE


def test_sse_done_sentinel():
    assert parse_sse_line("data: [DONE]") is Frame.DONE
    assert parse_sse_line("data:[DONE]") is Frame.DONE


def test_sse_payload_is_decoded():
    assert parse_sse_line('data: {"a": 1}') == {"a": 1}
    assert parse_sse_line('data:{"a": [1, 2]}  ') == {"a": [1, 2]}


def test_sse_malformed_json_is_logged_and_ignored(caplog):
    with caplog.at_level("WARNING"):
        assert parse_sse_line('data: {"a": ') is Frame.IGNORE
    assert "malformed SSE line" in caplog.text


def test_ndjson_plain_lines():
    assert parse_ndjson_line('{"candidates": []}') == {"candidates": []}
    assert parse_ndjson_line("   ") is Frame.IGNORE


@pytest.mark.parametrize(
    "line",
    ['[{"a": 1},', '{"a": 1},', ',{"a": 1}', '{"a": 1}]', '[{"a": 1}]'],
)
def test_ndjson_tolerates_array_punctuation(line):
    result = parse_ndjson_line(line)
    assert result == {"a": 1} or result == [{"a": 1}]


@pytest.mark.parametrize("line", ["[", "]", ","])
def test_ndjson_bare_punctuation_is_ignored(line):
    assert parse_ndjson_line(line) is Frame.IGNORE


def test_ndjson_malformed_is_ignored():
    assert parse_ndjson_line('{"a": ') is Frame.IGNORE


def test_parse_line_dispatches_on_framing():
    assert parse_line('{"a": 1}', Framing.NDJSON) == {"a": 1}
    assert parse_line('{"a": 1}', Framing.SSE) is Frame.IGNORE
