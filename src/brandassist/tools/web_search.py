"""Web search and company research tools backed by Exa."""

import logging
from functools import lru_cache
from typing import (
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import Field

from brandassist.common import keyword_snippet
from brandassist.config import settings
from brandassist.core.errors import ToolFailure
from brandassist.core.schema import ToolContext
from brandassist.integrations.exa import (
    ExaClient,
    SearchHit,
    lookback_start,
)
from brandassist.tools import (
    ToolInput,
    register_tool,
)

logger = logging.getLogger(__name__)

DateFilter = Literal["past_day", "past_week", "past_month", "past_3_months", "past_year", "any"]
FocusArea = Literal[
    "mission",
    "values",
    "culture",
    "products",
    "sustainability",
    "diversity",
    "leadership",
    "recent_news",
    "employee_benefits",
]

DATE_FILTER_DAYS: Dict[str, int] = {
    "past_day": 1,
    "past_week": 7,
    "past_month": 30,
    "past_3_months": 90,
    "past_year": 365,
}

TREND_KEYWORDS = (
    "trending",
    "viral",
    "popular",
    "hot",
    "new",
    "latest",
    "growing",
    "emerging",
    "rise",
    "boom",
)

BRAND_KEYWORDS = (
    "mission",
    "vision",
    "values",
    "culture",
    "purpose",
    "believe",
    "committed",
    "sustainability",
    "environment",
    "social",
    "diversity",
    "inclusion",
    "equity",
    "employees",
    "team",
    "workplace",
    "innovation",
    "quality",
    "customer",
    "community",
)

RESEARCH_RESULTS_PER_QUERY = 3


@lru_cache(maxsize=1)
def get_exa_client() -> ExaClient:
    return ExaClient.from_settings(settings)


def trend_snippet(text: Optional[str]) -> str:
    if not text:
        return "No content preview available"
    return keyword_snippet(text, TREND_KEYWORDS, default_length=600, before=150, after=450)


def brand_snippet(text: Optional[str]) -> str:
    if not text:
        return "No content available"
    return keyword_snippet(text, BRAND_KEYWORDS, default_length=800, before=200, after=600)


# ---------------------------------------------------------------------------
# search_web
# ---------------------------------------------------------------------------
class WebSearchInput(ToolInput):
    query: str = Field(..., min_length=1, description="What to search the web for")
    include_domains: Optional[List[str]] = Field(
        None,
        description="Only search these domains, e.g. ['tiktok.com', 'instagram.com', "
        "'reddit.com'] for trends on social platforms",
    )
    exclude_domains: Optional[List[str]] = Field(
        None, description="Domains to leave out of the results"
    )
    date_filter: DateFilter = Field(
        "past_3_months",
        description="Only return pages published within this window. Use 'past_week' for very "
        "recent trends.",
    )
    num_results: int = Field(5, ge=1, le=10, description="Number of results (1-10)")
    search_type: Literal["neural", "keyword"] = Field(
        "neural", description="'neural' for semantic search, 'keyword' for exact matches"
    )


def _format_hit(index: int, hit: SearchHit) -> str:
    published = f" (Published: {hit.published_date[:10]})" if hit.published_date else ""
    return f"**{index}. {hit.title}**{published}\nSource: {hit.url}\n{trend_snippet(hit.text)}"


@register_tool(
    "search_web",
    description="Search the web for current information, trending products and viral "
    "merchandise. Supports domain filters and recency windows.",
    input_model=WebSearchInput,
)
def search_web(params: WebSearchInput, context: ToolContext) -> str:
    client = get_exa_client()

    details = []
    if params.include_domains:
        details.append(f"on {', '.join(params.include_domains)}")
    if params.date_filter != "any":
        details.append(f"from {params.date_filter.replace('_', ' ')}")
    context.report_status(
        f'is searching for "{params.query}"' + (f" {', '.join(details)}" if details else "") + "..."
    )

    start = None
    if params.date_filter != "any":
        start = lookback_start(DATE_FILTER_DAYS[params.date_filter])

    hits = client.search(
        params.query,
        num_results=params.num_results,
        search_type=params.search_type,
        include_domains=params.include_domains,
        exclude_domains=params.exclude_domains,
        start_published_date=start,
    )
    if not hits:
        return (
            f'No web search results found for "{params.query}". Try rephrasing the query or '
            "searching for more general terms."
        )

    filters = []
    if params.include_domains:
        filters.append(f"sources: {', '.join(params.include_domains)}")
    if params.exclude_domains:
        filters.append(f"excluded: {', '.join(params.exclude_domains)}")
    if params.date_filter != "any":
        filters.append(f"timeframe: {params.date_filter.replace('_', ' ')}")
    filters.append(f"mode: {params.search_type}")

    body = "\n\n".join(_format_hit(i, hit) for i, hit in enumerate(hits, start=1))
    return f'Found {len(hits)} results for "{params.query}" ({", ".join(filters)}):\n\n{body}'


# ---------------------------------------------------------------------------
# research_company
# ---------------------------------------------------------------------------
class CompanyResearchInput(ToolInput):
    company_name: str = Field(..., min_length=1, description="Company to research, e.g. 'Patagonia'")
    company_website: Optional[str] = Field(
        None, description="Company website domain, e.g. 'patagonia.com'. Discovered if omitted."
    )
    focus_areas: List[FocusArea] = Field(
        default_factory=lambda: ["mission", "values", "culture", "sustainability"],
        description="Areas to focus the research on",
    )
    include_recent_news: bool = Field(
        True, description="Include recent news when 'recent_news' is a focus area"
    )


def build_research_queries(params: CompanyResearchInput) -> List[Dict]:
    """One query per relevant focus area; the website/discovery query always comes first."""
    name = params.company_name
    queries: List[Dict] = []
    if params.company_website:
        queries.append(
            {
                "label": "Company website",
                "query": f"{name} mission values culture",
                "include_domains": [params.company_website],
            }
        )
    else:
        queries.append(
            {"label": "Company discovery", "query": f"{name} official website mission values"}
        )

    areas = set(params.focus_areas)
    if "sustainability" in areas:
        queries.append(
            {
                "label": "Sustainability focus",
                "query": f"{name} sustainability environmental social responsibility ESG "
                "initiatives",
            }
        )
    if "diversity" in areas:
        queries.append(
            {
                "label": "Diversity initiatives",
                "query": f"{name} diversity equity inclusion DEI initiatives programs",
            }
        )
    if "culture" in areas:
        queries.append(
            {
                "label": "Company culture",
                "query": f"{name} company culture employee experience workplace values",
            }
        )
    if "recent_news" in areas and params.include_recent_news:
        queries.append(
            {
                "label": "Recent developments",
                "query": f"{name} recent news initiatives announcements",
                "start_published_date": lookback_start(DATE_FILTER_DAYS["past_3_months"]),
            }
        )
    return queries


@register_tool(
    "research_company",
    description="Research a company's mission, values, culture, sustainability and recent news "
    "before matching products to its brand.",
    input_model=CompanyResearchInput,
)
def research_company(params: CompanyResearchInput, context: ToolContext) -> str:
    client = get_exa_client()
    name = params.company_name
    context.report_status(f"is researching {name} company background and values...")

    sections = []
    total = 0
    for spec in build_research_queries(params):
        label = spec["label"]
        context.report_status(f"is analyzing {name} {label.lower()}...")
        try:
            hits = client.search(
                spec["query"],
                num_results=RESEARCH_RESULTS_PER_QUERY,
                include_domains=spec.get("include_domains"),
                start_published_date=spec.get("start_published_date"),
            )
        except ToolFailure as exc:
            logger.warning("Company research query failed for %s: %s", label, exc.message)
            continue
        if not hits:
            continue
        total += len(hits)
        entries = "\n\n".join(
            f"**{hit.title}**\nSource: {hit.url}\n{brand_snippet(hit.text)}" for hit in hits
        )
        sections.append(f"### {label}\n{entries}")

    if not sections:
        return (
            f"Unable to find comprehensive information about {name}. Try providing their website "
            "or check the company name spelling."
        )

    summary = [
        f"**Key areas analyzed:** {', '.join(params.focus_areas)}",
        f"**Total sources:** {total}",
    ]
    if params.include_recent_news and "recent_news" in params.focus_areas:
        summary.append("**Includes recent developments:** yes")
    return (
        f"**Company Research: {name}**\n\n"
        + "\n\n".join(sections)
        + "\n\n---\n"
        + "\n".join(summary)
        + f"\n\nUse this research to align product suggestions with {name}'s values and mission."
    )
