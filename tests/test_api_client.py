import httpx
import pytest

from helpers import RecordingHandler, make_model, make_provider, mock_transport, openai_delta, sse_lines
from llm_bridge.api_client import (
    STREAMING_UNSUPPORTED_MESSAGE,
    invoke_chat_completion,
    stream_chat_completion,
)
from llm_bridge.errors import ConfigurationError
from llm_bridge.events import Done, Error, TextDelta
from llm_bridge.models import ChatRequestOptions, Message, ProviderType


async def _collect(provider, options, http):
    return [e async for e in stream_chat_completion(provider, make_model(), options, http=http)]


@pytest.mark.asyncio
async def test_invoke_builds_messages_from_options():
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "pong"}}]})
    )
    http = mock_transport(handler)
    options = ChatRequestOptions(
        prompt="ping",
        conversation=[Message(role="system", content="reply in one word")],
        temperature=0.1,
        override_max_output_tokens=20_000,
    )
    response = await invoke_chat_completion(make_provider(), make_model(), options, http=http)
    await http.close()

    assert response.response_text == "pong"
    payload = handler.last_json
    assert payload["messages"] == [
        {"role": "system", "content": "reply in one word"},
        {"role": "user", "content": "ping"},
    ]
    assert payload["max_tokens"] == 8192
    assert payload["temperature"] == 0.1
    assert "top_p" not in payload


@pytest.mark.asyncio
async def test_invoke_without_endpoint_raises_before_request():
    handler = RecordingHandler(lambda request: httpx.Response(200))
    http = mock_transport(handler)
    with pytest.raises(ConfigurationError):
        await invoke_chat_completion(
            make_provider(endpoint="  "), make_model(), ChatRequestOptions(prompt="x"), http=http
        )
    await http.close()
    assert handler.requests == []


@pytest.mark.asyncio
async def test_stream_generic_provider():
    handler = RecordingHandler(
        lambda request: httpx.Response(
            200, content=sse_lines(openai_delta("Hello "), openai_delta("World"))
        )
    )
    http = mock_transport(handler)
    provider = make_provider(ProviderType.GENERIC, endpoint="http://localhost:1234/v1")
    events = await _collect(provider, ChatRequestOptions(prompt="hi"), http)
    await http.close()

    assert events == [TextDelta("Hello "), TextDelta("World"), Done("Hello World")]
    assert str(handler.requests[0].url) == "http://localhost:1234/v1/chat/completions"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider_type", [ProviderType.ANTHROPIC, ProviderType.GOOGLE])
async def test_stream_non_openai_provider_yields_exactly_one_error(provider_type):
    handler = RecordingHandler(lambda request: httpx.Response(200))
    http = mock_transport(handler)
    events = await _collect(make_provider(provider_type), ChatRequestOptions(prompt="hi"), http)
    await http.close()

    assert events == [Error(STREAMING_UNSUPPORTED_MESSAGE)]
    assert handler.requests == []


@pytest.mark.asyncio
async def test_stream_missing_key_yields_configuration_error():
    handler = RecordingHandler(lambda request: httpx.Response(200))
    http = mock_transport(handler)
    events = await _collect(make_provider(api_key=None), ChatRequestOptions(prompt="hi"), http)
    await http.close()

    assert len(events) == 1
    assert isinstance(events[0].error, ConfigurationError)
    assert "unconfigured API key" in events[0].message
