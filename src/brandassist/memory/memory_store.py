"""
Long-term memory backed by the Mem0 platform REST API.

Memories are scoped to a *subject* (``user_id``), optionally narrowed by ``agent_id``.  Mem0
answers some endpoints with a bare list and others with ``{"results": [...]}``; both shapes are
accepted everywhere.
"""

import logging
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
)

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    UpstreamError,
    upstream_failure,
)

logger = logging.getLogger(__name__)


class MemoryRecord(BaseModel):
    """One stored memory (or one add/update event)."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    memory: str = ""
    event: Optional[str] = None
    score: Optional[float] = None
    created_at: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


def _results(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get("results") or []
    return []


class Mem0Store:
    """Thin wrapper around the Mem0 ``/v1/memories`` endpoints."""

    SERVICE_NAME = "Mem0"

    def __init__(
        self,
        api_key: str,
        host: str = "https://api.mem0.ai",
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._http = http or httpx.Client(timeout=timeout)
        self._headers = {"Authorization": f"Token {api_key}"}
        self.host = host.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mem0Store":
        if not settings.MEM0_API_KEY:
            raise ToolConfigurationError(
                "Memory is not available - Mem0 is not configured.",
                "Set MEM0_API_KEY in the environment.",
            )
        return cls(settings.MEM0_API_KEY, host=settings.MEM0_HOST, timeout=settings.HTTP_TIMEOUT)

    def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = self._http.request(
                method, f"{self.host}{path}", headers=self._headers, **kwargs
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Mem0 %s %s failed: %s", method, path, exc)
            raise upstream_failure(self.SERVICE_NAME, exc) from exc
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError("Mem0 returned a response that is not JSON.") from exc

    @staticmethod
    def _scope(user_id: str, agent_id: str | None) -> Dict[str, str]:
        scope = {"user_id": user_id}
        if agent_id:
            scope["agent_id"] = agent_id
        return scope

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def add(
        self,
        messages: Sequence[Dict[str, str]],
        user_id: str,
        agent_id: str | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> List[MemoryRecord]:
        """Extract and store memories from *messages*; returns the resulting events."""
        body: Dict[str, Any] = {"messages": list(messages), **self._scope(user_id, agent_id)}
        if metadata:
            body["metadata"] = metadata
        logger.info("Adding %d message(s) to memory for %s", len(messages), user_id)
        payload = self._call("POST", "/v1/memories/", json=body)
        return [MemoryRecord.model_validate(item) for item in _results(payload)]

    def search(
        self, query: str, user_id: str, agent_id: str | None = None, limit: int = 5
    ) -> List[MemoryRecord]:
        body = {"query": query, "top_k": limit, **self._scope(user_id, agent_id)}
        payload = self._call("POST", "/v1/memories/search/", json=body)
        return [MemoryRecord.model_validate(item) for item in _results(payload)][:limit]

    def get_all(
        self, user_id: str, agent_id: str | None = None, limit: int = 20
    ) -> List[MemoryRecord]:
        params = {**self._scope(user_id, agent_id), "page_size": limit}
        payload = self._call("GET", "/v1/memories/", params=params)
        return [MemoryRecord.model_validate(item) for item in _results(payload)][:limit]

    def history(self, memory_id: str) -> List[Dict[str, Any]]:
        payload = self._call("GET", f"/v1/memories/{memory_id}/history/")
        return [entry for entry in _results(payload) if isinstance(entry, dict)]

    def delete(self, memory_id: str) -> None:
        self._call("DELETE", f"/v1/memories/{memory_id}/")
