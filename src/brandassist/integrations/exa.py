"""Minimal Exa search client (``POST /search`` with page contents)."""

import logging
from datetime import (
    datetime,
    timedelta,
    timezone,
)
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Sequence,
)

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    UpstreamError,
    upstream_failure,
)

logger = logging.getLogger(__name__)

EXA_SEARCH_URL = "https://api.exa.ai/search"


class SearchHit(BaseModel):
    """One Exa result with its crawled text."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = "Untitled"
    url: str = ""
    text: Optional[str] = None
    published_date: Optional[str] = Field(None, alias="publishedDate")

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "Untitled"
        return value


def lookback_start(days: int, now: datetime | None = None) -> str:
    """ISO timestamp *days* before *now* (UTC)."""
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(days=days)).isoformat()


class ExaClient:
    """Exa ``/search`` wrapper; results always include live-crawled page text."""

    SERVICE_NAME = "Exa"

    def __init__(
        self,
        api_key: str,
        http: httpx.Client | None = None,
        timeout: float = 30.0,
        url: str = EXA_SEARCH_URL,
    ) -> None:
        self._api_key = api_key
        self._http = http or httpx.Client(timeout=timeout)
        self.url = url

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExaClient":
        if not settings.EXA_API_KEY:
            raise ToolConfigurationError(
                "Web search is not configured.", "Set EXA_API_KEY in the environment."
            )
        return cls(settings.EXA_API_KEY, timeout=settings.HTTP_TIMEOUT)

    def search(
        self,
        query: str,
        *,
        num_results: int = 5,
        search_type: str = "neural",
        include_domains: Sequence[str] | None = None,
        exclude_domains: Sequence[str] | None = None,
        start_published_date: str | None = None,
    ) -> List[SearchHit]:
        body: Dict[str, Any] = {
            "query": query,
            "type": search_type,
            "numResults": num_results,
            "contents": {"text": True, "livecrawl": "always"},
        }
        if include_domains:
            body["includeDomains"] = list(include_domains)
        if exclude_domains:
            body["excludeDomains"] = list(exclude_domains)
        if start_published_date:
            body["startPublishedDate"] = start_published_date

        logger.debug("Exa search request: %s", body)
        try:
            resp = self._http.post(
                self.url,
                json=body,
                headers={"x-api-key": self._api_key, "Content-Type": "application/json"},
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Exa search failed for %r: %s", query, exc)
            raise upstream_failure(self.SERVICE_NAME, exc) from exc
        except ValueError as exc:
            raise UpstreamError("Exa returned a response that is not JSON.") from exc

        hits = []
        for item in payload.get("results") or []:
            try:
                hits.append(SearchHit.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed Exa result for %r: %s", query, exc)
        return hits
