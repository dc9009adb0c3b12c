import json

import httpx
import pytest

from askgpt.chat import DONE, ChatClient, parse_sse_line
from askgpt.config import AskConfig
from askgpt.exceptions import ChatRequestError
from askgpt.models import Message


def _delta(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


def _client(handler) -> ChatClient:
    return ChatClient("sk-test", http_client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestParseSseLine:
    def test_content_delta(self):
        assert parse_sse_line(_delta("Hi")) == "Hi"

    def test_done_marker(self):
        assert parse_sse_line("data: [DONE]") is DONE

    @pytest.mark.parametrize(
        "line",
        [
            "",
            ": keep-alive",
            "event: ping",
            "data: {oops",
            'data: {"choices": []}',
            'data: {"choices": {"a": 1}}',
            'data: {"choices": "text"}',
            'data: {"choices": [{"delta": {"role": "assistant"}}]}',
        ],
    )
    def test_lines_without_text(self, line):
        assert parse_sse_line(line) is None


def test_stream_completion_yields_deltas():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        body = "\n\n".join(
            [_delta("Hello"), ": keep-alive", _delta(" world"), "data: [DONE]", _delta("late")]
        )
        return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

    with _client(handler) as client:
        chunks = list(client.stream_completion([Message("user", "hi")]))

    assert chunks == ["Hello", " world"]
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {
        "model": "gpt-3.5-turbo",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": True,
    }


def test_stream_completion_raises_on_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="invalid key")

    with pytest.raises(ChatRequestError, match="401") as excinfo:
        list(_client(handler).stream_completion([Message("user", "hi")]))

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == "invalid key"


def test_complete_returns_message_content():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["stream"] is False
        return httpx.Response(200, json={"choices": [{"message": {"content": " Done. "}}]})

    assert _client(handler).complete([Message("user", "hi")]) == "Done."


def test_complete_without_choices_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(ChatRequestError, match="No choices"):
        _client(handler).complete([Message("user", "hi")])


def test_from_config_uses_configured_model():
    config = AskConfig(model="gpt-4o", api_url="https://example.test/v1/chat")

    client = ChatClient.from_config("sk-test", config)
    try:
        assert client.model == "gpt-4o"
        assert client.api_url == "https://example.test/v1/chat"
        assert client.build_payload([], stream=False)["model"] == "gpt-4o"
    finally:
        client.close()
