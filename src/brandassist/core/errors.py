"""
Error taxonomy shared by the orchestration loop and the tool adapters.

Adapters raise :class:`ToolFailure` subclasses; the tool executor turns them into error
``ToolResult`` objects so the model always gets a well-formed turn outcome.  Only
:class:`ModelCallError` is allowed to escape a run.
"""

from enum import Enum

import httpx


class ToolErrorKind(str, Enum):
    """Category of a failed tool invocation."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    UNKNOWN_TOOL = "unknown_tool"
    INTERNAL = "internal"


class ToolFailure(RuntimeError):
    """Base class for failures an adapter reports back to the model."""

    kind: ToolErrorKind = ToolErrorKind.INTERNAL

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def describe(self) -> str:
        """Return the text fed back to the model."""
        if self.hint:
            return f"{self.message}\n\n{self.hint}"
        return self.message


class ToolConfigurationError(ToolFailure):
    """Credentials or endpoints for a tool are missing."""

    kind = ToolErrorKind.CONFIGURATION


class ToolValidationError(ToolFailure):
    """Tool input is malformed or out of range."""

    kind = ToolErrorKind.VALIDATION


class UpstreamError(ToolFailure):
    """The remote API behind a tool failed."""

    kind = ToolErrorKind.UPSTREAM

    def __init__(self, message: str, hint: str | None = None, status_code: int | None = None):
        super().__init__(message, hint)
        self.status_code = status_code


class ModelCallError(RuntimeError):
    """The language-model endpoint could not produce a response."""


# ---------------------------------------------------------------------------
# httpx error translation
# ---------------------------------------------------------------------------
_STATUS_HINTS = {
    401: "Check that the {service} credentials are set and still valid.",
    403: "Check that the {service} credentials are set and still valid.",
    404: "The requested {service} resource was not found; double-check the identifier.",
    429: "{service} is rate limiting requests. Wait a moment before trying again.",
}


def upstream_failure(service: str, exc: Exception) -> UpstreamError:
    """Translate a transport/HTTP error from *service* into an :class:`UpstreamError`."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        reason = exc.response.reason_phrase or "error"
        hint = _STATUS_HINTS.get(status)
        if hint is None and status >= 500:
            hint = "{service} is having trouble right now. Try again shortly."
        return UpstreamError(
            f"{service} request failed: HTTP {status} {reason}",
            hint.format(service=service) if hint else None,
            status_code=status,
        )
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamError(
            f"{service} request timed out",
            f"{service} did not answer in time. Try again or narrow the request.",
        )
    if isinstance(exc, httpx.RequestError):
        return UpstreamError(
            f"Could not reach {service}: {exc}",
            f"Check network connectivity to {service}.",
        )
    return UpstreamError(f"{service} request failed: {exc}")
