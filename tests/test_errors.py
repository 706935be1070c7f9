import httpx

from brandassist.core.errors import (
    ToolConfigurationError,
    ToolErrorKind,
    upstream_failure,
)


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.example.test/x")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("bad status", request=request, response=response)


def test_describe_includes_hint() -> None:
    err = ToolConfigurationError("Not configured.", "Set THE_KEY.")
    assert err.kind is ToolErrorKind.CONFIGURATION
    assert err.describe() == "Not configured.\n\nSet THE_KEY."
    assert ToolConfigurationError("Bare").describe() == "Bare"


def test_status_errors_get_hints() -> None:
    err = upstream_failure("Exa", _status_error(401))
    assert err.status_code == 401
    assert err.message == "Exa request failed: HTTP 401 Unauthorized"
    assert "credentials" in err.hint

    assert "rate limiting" in upstream_failure("Exa", _status_error(429)).hint
    assert "trouble" in upstream_failure("Exa", _status_error(502)).hint
    assert upstream_failure("Exa", _status_error(418)).hint is None


def test_transport_errors() -> None:
    request = httpx.Request("GET", "https://api.example.test/x")
    timeout = upstream_failure("Mem0", httpx.ReadTimeout("slow", request=request))
    assert timeout.message == "Mem0 request timed out"

    refused = upstream_failure("Mem0", httpx.ConnectError("refused", request=request))
    assert refused.message.startswith("Could not reach Mem0")
    assert refused.kind is ToolErrorKind.UPSTREAM
