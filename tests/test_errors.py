import httpx
import pytest

from llm_bridge.errors import (
    AbortedError,
    APIError,
    AuthError,
    ConfigurationError,
    RateLimitError,
    TransportError,
    UpstreamServerError,
    classify_exception,
    classify_status,
    extract_error_detail,
    read_response_error,
)


@pytest.mark.parametrize(
    "status, error_cls",
    [
        (400, APIError),
        (401, AuthError),
        (403, AuthError),
        (404, APIError),
        (429, RateLimitError),
        (500, UpstreamServerError),
        (503, UpstreamServerError),
    ],
)
def test_classify_status(status, error_cls):
    error = classify_status(status, "Reason")
    assert type(error) is error_cls
    assert error.status_code == status


def test_message_format_with_detail():
    error = classify_status(401, "Unauthorized", '{"error": {"message": "bad key"}}')
    assert str(error) == "401 Unauthorized - bad key"
    assert error.detail == "bad key"
    assert error.reason == "Unauthorized"


def test_message_format_without_body():
    assert str(classify_status(502, "Bad Gateway")) == "502 Bad Gateway"


@pytest.mark.parametrize(
    "body, detail",
    [
        ('{"error": "quota exceeded"}', "quota exceeded"),
        ('{"error": {"message": "model not found", "type": "x"}}', "model not found"),
        ('{"detail": "nope"}', '{"detail": "nope"}'),
        ("plain text failure", "plain text failure"),
        ("", None),
    ],
)
def test_extract_error_detail(body, detail):
    assert extract_error_detail(body) == detail


@pytest.mark.asyncio
async def test_read_response_error_reads_streamed_body():
    async def body():
        yield b'{"error": {"message": "slow down"}}'

    response = httpx.Response(429, content=body())
    error = await read_response_error(response)
    assert isinstance(error, RateLimitError)
    assert str(error) == "429 Too Many Requests - slow down"


def test_classify_exception():
    request = httpx.Request("POST", "https://api.example.test")

    timeout = classify_exception(httpx.ReadTimeout("read timed out", request=request))
    assert isinstance(timeout, TransportError)
    assert "timed out" in str(timeout)

    network = classify_exception(httpx.ConnectError("refused", request=request))
    assert isinstance(network, TransportError)
    assert str(network).startswith("Network error")

    response = httpx.Response(500, request=request, content=b"boom")
    status = classify_exception(
        httpx.HTTPStatusError("500", request=request, response=response)
    )
    assert isinstance(status, UpstreamServerError)
    assert str(status) == "500 Internal Server Error - boom"

    passthrough = ConfigurationError("x")
    assert classify_exception(passthrough) is passthrough


def test_aborted_error_message():
    assert str(AbortedError()) == "aborted"
