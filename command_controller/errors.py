"""Failure taxonomy for the orb's voice and assistant paths."""

from __future__ import annotations


class OrbError(RuntimeError):
    """Structured, locally recoverable failure.

    ``code`` names the class for logs and UI; ``retryable`` says whether the
    UI should offer a retry bound to the original request.
    """

    code = "orb_error"
    retryable = False

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class InputUnsupported(OrbError):
    code = "input_unsupported"


class NoContextBound(OrbError):
    code = "no_context"


class RequestAborted(OrbError):
    code = "aborted"
    retryable = True


class NetworkFailure(OrbError):
    code = "network"
    retryable = True


class UpstreamAuthError(OrbError):
    code = "upstream_auth"

    def __init__(self, message: str = "Invalid or missing OpenAI API key", *, status: int | None = 401) -> None:
        super().__init__(message, status=status)


class UpstreamGenericError(OrbError):
    code = "upstream"
    retryable = True
