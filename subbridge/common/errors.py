"""Error types shared by clients, the orchestrator and the HTTP layer.

Every failure that reaches a handler is turned into `(status, message)` by
`error_status_and_message`; the status comes from the failing call when it
reported one, otherwise 500.
"""


class BridgeError(Exception):
    """Base error carrying the HTTP status the caller should see."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(BridgeError):
    """Client input is missing or malformed."""

    status_code = 400


class ConfigurationError(BridgeError):
    """A required setting is missing or unusable."""


class UpstreamError(BridgeError):
    """An external API rejected the call."""

    def __init__(self, message: str, status_code: int | None = None, dependency: str = "") -> None:
        super().__init__(message, status_code)
        self.dependency = dependency


def error_status_and_message(exc: Exception) -> tuple[int, str]:
    """Map any exception to the status code and message reported to the caller."""

    if isinstance(exc, BridgeError):
        return exc.status_code, exc.message or "Unknown error"
    return 500, str(exc) or "Unknown error"
