from llm_bridge.streaming.decoder import ChunkDecoder


def _decode(chunks: list[bytes]) -> list[str]:
    decoder = ChunkDecoder()
    lines: list[str] = []
    for chunk in chunks:
        lines.extend(decoder.feed(chunk))
    lines.extend(decoder.flush())
    return lines


PAYLOAD = (
    'data: {"text": "héllo wörld ✓"}\r\n'
    "\n"
    'data: {"text": "日本語 🚀"}\n'
    "data: [DONE]"
).encode()


def test_unsplit_payload_lines():
    assert _decode([PAYLOAD]) == [
        'data: {"text": "héllo wörld ✓"}',
        "",
        'data: {"text": "日本語 🚀"}',
        "data: [DONE]",
    ]


def test_every_two_way_split_decodes_identically():
    expected = _decode([PAYLOAD])
    for cut in range(len(PAYLOAD) + 1):
        assert _decode([PAYLOAD[:cut], PAYLOAD[cut:]]) == expected, cut


def test_byte_at_a_time_decodes_identically():
    expected = _decode([PAYLOAD])
    assert _decode([PAYLOAD[i:i + 1] for i in range(len(PAYLOAD))]) == expected


def test_partial_line_is_buffered_until_newline():
    decoder = ChunkDecoder()
    assert decoder.feed(b"data: {") == []
    assert decoder.pending == "data: {"
    assert decoder.feed(b'}\nnext') == ["data: {}"]
    assert decoder.pending == "next"


def test_flush_emits_trailing_line_once():
    decoder = ChunkDecoder()
    decoder.feed(b"tail\r")
    assert decoder.flush() == ["tail"]
    assert decoder.flush() == []


def test_split_multibyte_character_is_not_mangled():
    data = "€\n".encode()
    decoder = ChunkDecoder()
    assert decoder.feed(data[:1]) == []
    assert decoder.feed(data[1:2]) == []
    assert decoder.feed(data[2:]) == ["€"]


def test_string_chunks_are_accepted():
    decoder = ChunkDecoder()
    assert decoder.feed("a\nb\n") == ["a", "b"]
