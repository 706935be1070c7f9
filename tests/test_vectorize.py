"""Vectorizer.AI client and the vectorize_image tool."""

from urllib.parse import parse_qs

import httpx
import pytest
from conftest import mock_http

from brandassist.core.errors import (
    ToolConfigurationError,
    UpstreamError,
)
from brandassist.core.schema import (
    ChatFile,
    ToolContext,
)
from brandassist.integrations.vectorizer_ai import (
    VectorizeOptions,
    VectorizerClient,
)
from brandassist.tools import (
    EmptyInput,
    vectorize,
)
from brandassist.tools.vectorize import (
    NO_IMAGE_MESSAGE,
    VectorizeInput,
)

SVG = b'<svg xmlns="http://www.w3.org/2000/svg"><rect width="1" height="1"/></svg>'


def _svg_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        content=SVG,
        headers={
            "content-type": "image/svg+xml; charset=utf-8",
            "X-Image-Token": "tok123",
            "X-Credits-Charged": "0.2",
        },
    )


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def client(requests_seen):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        return _svg_response(request)

    return VectorizerClient("id", "secret", http=mock_http(handler), base_url="https://vec.test/v1/")


@pytest.fixture
def use_client(client, monkeypatch):
    monkeypatch.setattr(vectorize, "get_vectorizer_client", lambda: client)
    return client


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
def test_vectorize_url_form_fields(client, requests_seen) -> None:
    result = client.vectorize_url(
        "https://img.test/logo.png", VectorizeOptions(mode="test", max_colors=4)
    )
    assert result.content_type == "image/svg+xml"
    assert result.image_token == "tok123"
    assert result.credits_charged == pytest.approx(0.2)

    request = requests_seen[0]
    assert str(request.url) == "https://vec.test/v1/vectorize"
    assert request.headers["authorization"].startswith("Basic ")
    form = parse_qs(request.content.decode())
    assert form["image.url"] == ["https://img.test/logo.png"]
    assert form["mode"] == ["test"]
    assert form["processing.max_colors"] == ["4"]
    assert form["output.file_format"] == ["svg"]


def test_vectorize_bytes_is_multipart(client, requests_seen) -> None:
    client.vectorize_bytes(b"\x89PNG", "logo.png", VectorizeOptions())
    request = requests_seen[0]
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'filename="logo.png"' in request.content


def test_auth_error_has_hint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid credentials", "code": 1006}})

    client = VectorizerClient("id", "bad", http=mock_http(handler))
    with pytest.raises(UpstreamError) as info:
        client.vectorize_url("https://img.test/a.png", VectorizeOptions())
    assert info.value.status_code == 401
    assert "Invalid credentials" in info.value.message
    assert "VECTORIZER_AI_API_ID" in info.value.hint


def test_account_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/account")
        return httpx.Response(
            200, json={"subscriptionPlan": "pro", "subscriptionState": "active", "credits": 5}
        )

    status = VectorizerClient("id", "secret", http=mock_http(handler)).account_status()
    assert status.subscription_plan == "pro"
    assert status.credits == 5


@pytest.mark.parametrize(
    "body",
    [
        {"content": b"<html>Too Many Requests</html>"},
        {"json": ["unexpected"]},
        {"json": {"error": "rate limited"}},
    ],
)
def test_odd_error_bodies_keep_hints(body) -> None:
    client = VectorizerClient(
        "id", "secret", http=mock_http(lambda request: httpx.Response(429, **body))
    )
    with pytest.raises(UpstreamError) as info:
        client.vectorize_url("https://img.test/a.png", VectorizeOptions())
    assert info.value.status_code == 429
    assert "Too many requests" in info.value.hint


def test_account_status_not_json() -> None:
    client = VectorizerClient(
        "id", "secret", http=mock_http(lambda request: httpx.Response(200, content=b"maintenance"))
    )
    with pytest.raises(UpstreamError, match="account status"):
        client.account_status()


# ---------------------------------------------------------------------------
# vectorize_image
# ---------------------------------------------------------------------------
def test_input_allows_one_source() -> None:
    with pytest.raises(ValueError):
        VectorizeInput(imageUrl="https://a", fileId="F1")


def test_vectorize_from_url(use_client, context) -> None:
    text = vectorize.vectorize_image(VectorizeInput(imageUrl="https://img.test/logo.png"), context)
    assert text.startswith("**Image Vectorization Complete** (preview mode, includes watermark)")
    assert "**Input:** image from https://img.test/logo.png" in text
    assert "```svg\n<svg" in text
    assert "**Credits charged:** 0.2" in text


def test_vectorize_latest_upload(use_client, context, workspace, requests_seen) -> None:
    workspace.image = ChatFile(id="F77", name="logo.png", mimetype="image/png")
    workspace.files["F77"] = (b"\x89PNG", "logo.png")

    text = vectorize.vectorize_image(VectorizeInput(), context)

    assert "**Input:** uploaded image (logo.png)" in text
    assert b'filename="logo.png"' in requests_seen[0].content
    assert "is searching for uploaded images in the conversation..." in workspace.statuses


def test_vectorize_without_upload(use_client, context, requests_seen) -> None:
    assert vectorize.vectorize_image(VectorizeInput(), context) == NO_IMAGE_MESSAGE
    assert requests_seen == []


def test_vectorize_upload_needs_workspace(use_client) -> None:
    with pytest.raises(ToolConfigurationError):
        vectorize.vectorize_image(VectorizeInput(fileId="F1"), ToolContext(channel="C1"))


def test_large_output_is_summarized(context, monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"%PDF" + b"0" * 20480, headers={"content-type": "application/pdf"})

    client = VectorizerClient("id", "secret", http=mock_http(handler))
    monkeypatch.setattr(vectorize, "get_vectorizer_client", lambda: client)
    text = vectorize.vectorize_image(
        VectorizeInput(imageUrl="https://a.test/x.png", options={"mode": "production", "outputFormat": "pdf"}),
        context,
    )
    assert "**File generated:** PDF document (20.0 KB)" in text
    assert "watermark" not in text


def test_account_status_low_credits(context, monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"subscriptionPlan": "starter", "subscriptionState": "active", "credits": 3}
        )

    client = VectorizerClient("id", "secret", http=mock_http(handler))
    monkeypatch.setattr(vectorize, "get_vectorizer_client", lambda: client)
    text = vectorize.vectorizer_account_status(EmptyInput(), context)
    assert "**Subscription:** starter" in text
    assert "low credits" in text
