"""Chat completion client streaming Server-Sent Events over httpx."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import httpx

from .config import AskConfig
from .exceptions import ChatRequestError
from .models import Message

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE = object()


def parse_sse_line(line: str) -> object:
    """Extract the delta text from one Server-Sent-Events line.

    Args:
        line: A single line of the response body, without its newline.

    Returns:
        The delta content as a string, `DONE` for the end-of-stream marker, or
        None for lines that carry no text (comments, keep-alives, role-only
        deltas, undecodable payloads).

    Examples:
        parse_sse_line('data: {"choices": [{"delta": {"content": "Hi"}}]}')  # "Hi"
        parse_sse_line("data: [DONE]") is DONE  # True
    """
    if line.startswith(DATA_PREFIX + "[DONE]"):
        return DONE
    if not line.startswith(DATA_PREFIX + "{"):
        return None

    try:
        payload = json.loads(line[len(DATA_PREFIX) :])
    except json.JSONDecodeError:
        logger.debug("Ignoring undecodable event: %r", line)
        return None

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content")
    return content if isinstance(content, str) else None


class ChatClient:
    """Minimal client for an OpenAI-compatible chat completions endpoint.

    Args:
        api_key: Bearer token sent with every request.
        model: Model identifier.
        api_url: Chat completions endpoint.
        timeout: Request timeout in seconds.
        http_client: Preconfigured client, mainly for tests; closed by its owner.

    Examples:
        with ChatClient.from_config(api_key, config) as client:
            for text in client.stream_completion(messages):
                print(text, end="")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        api_url: str = "https://api.openai.com/v1/chat/completions",
        timeout: float = 60.0,
        http_client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls, api_key: str, config: AskConfig, http_client: httpx.Client | None = None
    ) -> ChatClient:
        return cls(
            api_key,
            model=config.model,
            api_url=config.api_url,
            timeout=config.request_timeout,
            http_client=http_client,
        )

    def __enter__(self) -> ChatClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def build_payload(self, messages: list[Message], stream: bool) -> dict[str, object]:
        return {
            "model": self.model,
            "messages": [message.to_dict() for message in messages],
            "stream": stream,
        }

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def stream_completion(self, messages: list[Message]) -> Iterator[str]:
        """Yield answer text as it streams in.

        Raises:
            ChatRequestError: If the endpoint answers with a non-success status.
            httpx.HTTPError: On transport failures.
        """
        payload = self.build_payload(messages, stream=True)
        logger.debug("Streaming %d messages to %s (%s)", len(messages), self.api_url, self.model)
        with self._client.stream(
            "POST", self.api_url, headers=self._headers(), json=payload
        ) as response:
            if not response.is_success:
                response.read()
                raise ChatRequestError(response.status_code, response.text)
            for line in response.iter_lines():
                content = parse_sse_line(line)
                if content is DONE:
                    logger.debug("Stream finished")
                    break
                if content:
                    yield content

    def complete(self, messages: list[Message]) -> str:
        """Request a whole answer at once.

        Raises:
            ChatRequestError: If the endpoint fails or returns no choices.
            httpx.HTTPError: On transport failures.
        """
        payload = self.build_payload(messages, stream=False)
        response = self._client.post(self.api_url, headers=self._headers(), json=payload)
        if not response.is_success:
            raise ChatRequestError(response.status_code, response.text)

        choices = response.json().get("choices") or []
        if not choices:
            raise ChatRequestError(response.status_code, "No choices were returned by the API.")
        message = choices[0].get("message") or {}
        return str(message.get("content", "")).strip()
