"""Exa client, search_web and research_company."""

import json
from datetime import (
    datetime,
    timezone,
)

import httpx
import pytest
from conftest import mock_http

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    UpstreamError,
)
from brandassist.integrations.exa import (
    ExaClient,
    lookback_start,
)
from brandassist.tools import web_search
from brandassist.tools.web_search import (
    CompanyResearchInput,
    WebSearchInput,
    brand_snippet,
    build_research_queries,
    trend_snippet,
)


def _exa(handler) -> ExaClient:
    return ExaClient("exa-key", http=mock_http(handler), url="https://exa.test/search")


@pytest.fixture
def bodies():
    return []


@pytest.fixture
def use_exa(monkeypatch, bodies):
    def _use(results):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["x-api-key"] == "exa-key"
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"results": results})

        monkeypatch.setattr(web_search, "get_exa_client", lambda: _exa(handler))

    return _use


def test_lookback_start() -> None:
    now = datetime(2025, 6, 30, tzinfo=timezone.utc)
    assert lookback_start(7, now) == "2025-06-23T00:00:00+00:00"


def test_client_requires_key() -> None:
    with pytest.raises(ToolConfigurationError):
        ExaClient.from_settings(Settings(EXA_API_KEY=None))


def test_client_status_error() -> None:
    client = _exa(lambda request: httpx.Response(429, json={"error": "slow down"}))
    with pytest.raises(UpstreamError) as info:
        client.search("x")
    assert info.value.status_code == 429


def test_snippets_center_on_keywords() -> None:
    text = "x" * 500 + " this tumbler is trending " + "y" * 1000
    snippet = trend_snippet(text)
    assert "trending" in snippet
    assert snippet.endswith("...")
    assert len(snippet) < len(text)

    assert trend_snippet(None) == "No content preview available"
    assert brand_snippet("") == "No content available"
    assert brand_snippet("short") == "short"


def test_search_web_request_and_format(use_exa, bodies, context, workspace) -> None:
    use_exa(
        [
            {
                "title": "Stanley cups go viral",
                "url": "https://news.test/stanley",
                "publishedDate": "2025-05-01T12:00:00Z",
                "text": "The Stanley cup went viral on TikTok.",
            }
        ]
    )
    params = WebSearchInput(
        query="viral drinkware", includeDomains=["tiktok.com"], dateFilter="past_week"
    )
    text = web_search.search_web(params, context)

    body = bodies[0]
    assert body["query"] == "viral drinkware"
    assert body["includeDomains"] == ["tiktok.com"]
    assert body["numResults"] == 5
    assert body["contents"] == {"text": True, "livecrawl": "always"}
    assert "startPublishedDate" in body

    assert text.startswith(
        'Found 1 results for "viral drinkware" (sources: tiktok.com, timeframe: past week, '
        "mode: neural):"
    )
    assert "**1. Stanley cups go viral** (Published: 2025-05-01)" in text
    assert workspace.statuses == ['is searching for "viral drinkware" on tiktok.com, from past week...']


def test_search_web_any_date_has_no_filter(use_exa, bodies, context) -> None:
    use_exa([])
    text = web_search.search_web(WebSearchInput(query="pens", dateFilter="any"), context)
    assert "startPublishedDate" not in bodies[0]
    assert text.startswith('No web search results found for "pens"')


def test_research_queries() -> None:
    queries = build_research_queries(CompanyResearchInput(companyName="Patagonia"))
    assert [q["label"] for q in queries] == [
        "Company discovery",
        "Sustainability focus",
        "Company culture",
    ]

    queries = build_research_queries(
        CompanyResearchInput(
            companyName="Patagonia",
            companyWebsite="patagonia.com",
            focusAreas=["diversity", "recent_news"],
        )
    )
    assert queries[0]["include_domains"] == ["patagonia.com"]
    assert [q["label"] for q in queries[1:]] == ["Diversity initiatives", "Recent developments"]
    assert "start_published_date" in queries[-1]


def test_recent_news_can_be_switched_off() -> None:
    queries = build_research_queries(
        CompanyResearchInput(
            companyName="Acme", focusAreas=["recent_news"], includeRecentNews=False
        )
    )
    assert [q["label"] for q in queries] == ["Company discovery"]


def test_research_company_skips_failed_queries(context, monkeypatch) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append(body["query"])
        if "sustainability" in body["query"]:
            return httpx.Response(503)
        return httpx.Response(
            200,
            json={"results": [{"title": "About us", "url": "https://acme.test", "text": "Our mission"}]},
        )

    monkeypatch.setattr(web_search, "get_exa_client", lambda: _exa(handler))
    text = web_search.research_company(CompanyResearchInput(companyName="Acme"), context)

    assert len(calls) == 3
    assert text.startswith("**Company Research: Acme**")
    assert "### Company discovery" in text
    assert "### Sustainability focus" not in text
    assert "**Total sources:** 2" in text


def test_research_company_nothing_found(use_exa, context) -> None:
    use_exa([])
    text = web_search.research_company(CompanyResearchInput(companyName="Nobody Inc"), context)
    assert text.startswith("Unable to find comprehensive information about Nobody Inc.")


def test_search_web_tolerates_untitled_and_malformed_hits(use_exa, context) -> None:
    use_exa(
        [
            {"title": None, "url": "https://blog.test/a", "text": "A trending tote."},
            {"title": "Ok", "url": "https://blog.test/b", "text": "Another tote."},
            {"title": "Broken", "url": ["not", "a", "string"]},
        ]
    )
    text = web_search.search_web(WebSearchInput(query="totes", dateFilter="any"), context)

    assert text.startswith('Found 2 results for "totes"')
    assert "**1. Untitled**" in text
    assert "**2. Ok**" in text
    assert "Broken" not in text
