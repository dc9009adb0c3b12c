"""Package-specific exception types."""

from __future__ import annotations


class AskGptError(Exception):
    """Base class for errors raised by askgpt."""


class ScannerInvariantError(AskGptError):
    """Raised when the tokenizer reaches a state it has no transition for.

    This signals a defect in the state table, never bad input.

    Args:
        state: Name of the scanner state involved.
        detail: Short description of the failed transition.
    """

    def __init__(self, state: str, detail: str):
        self.state = state
        self.detail = detail
        super().__init__(f"Scanner invariant violated in state {state}: {detail}")


class ApiKeyMissingError(AskGptError):
    """Raised when no API key file is available.

    Args:
        path: Location where the key was expected.
    """

    def __init__(self, path):
        self.path = path
        super().__init__(
            "No API key found. Please put your API key in a file located at:\n\n"
            f"{path}\n\n"
            "You can get your API key from:\n\n"
            "https://platform.openai.com/account/api-keys\n"
        )


class ChatRequestError(AskGptError):
    """Raised when the chat completion endpoint rejects a request.

    Args:
        status_code: HTTP status code returned by the server.
        body: Response body, used to surface the API's error message.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Request failed with status code {status_code}:\n\n{body}")


class HistoryError(AskGptError):
    """Raised when the chat history file cannot be read or written."""
