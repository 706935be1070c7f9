"""Internal knowledge base tools."""

import logging
from functools import lru_cache

from pydantic import Field

from brandassist.common import truncate
from brandassist.config import settings
from brandassist.core.errors import UpstreamError
from brandassist.core.schema import ToolContext
from brandassist.memory.vector_memory import KnowledgeIndex
from brandassist.tools import (
    EmptyInput,
    ToolInput,
    register_tool,
)

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 300


@lru_cache(maxsize=1)
def get_knowledge_index() -> KnowledgeIndex:
    try:
        return KnowledgeIndex(
            collection_name=settings.KNOWLEDGE_COLLECTION,
            host=settings.KNOWLEDGE_DB_HOST,
            port=settings.KNOWLEDGE_DB_PORT,
        )
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Could not connect to the knowledge base: %s", exc)
        raise UpstreamError(
            f"Could not connect to the knowledge base: {exc}",
            "Check KNOWLEDGE_DB_HOST and KNOWLEDGE_DB_PORT, and that the vector store is running.",
        ) from exc


class KnowledgeSearchInput(ToolInput):
    query: str = Field(..., min_length=1, description="What to look up in the knowledge base")
    max_results: int = Field(5, ge=1, le=10, description="Maximum number of documents (1-10)")


@register_tool(
    "search_knowledge",
    description="Search internal company documents: policies, procedures, pricing guidelines, "
    "supplier and client information. Prefer this over web search for company-specific "
    "questions.",
    input_model=KnowledgeSearchInput,
)
def search_knowledge(params: KnowledgeSearchInput, context: ToolContext) -> str:
    index = get_knowledge_index()
    context.report_status(f'is searching company knowledge base for "{params.query}"...')

    hits = index.search(params.query, k=params.max_results, min_score=settings.KNOWLEDGE_MIN_SCORE)
    if not hits:
        return (
            f'No relevant information found in the company knowledge base for "{params.query}". '
            "The information may not be indexed; try different keywords, or use web search for "
            "external information."
        )

    entries = []
    for i, hit in enumerate(hits, start=1):
        link = f"\nView: {hit.web_view_link}" if hit.web_view_link else ""
        entries.append(
            f"**{i}. {hit.file_name}** ({round(hit.score * 100)}% relevant)\n"
            f"{truncate(hit.content, PREVIEW_LENGTH)}{link}"
        )
    noun = "document" if len(hits) == 1 else "documents"
    return f"Found {len(hits)} relevant {noun} for \"{params.query}\":\n\n" + "\n\n".join(entries)


@register_tool(
    "knowledge_stats",
    description="Report how many document chunks are indexed in the knowledge base.",
    input_model=EmptyInput,
)
def knowledge_stats(params: EmptyInput, context: ToolContext) -> str:
    index = get_knowledge_index()
    context.report_status("is retrieving knowledge base statistics...")
    count = index.count()
    return (
        f"Knowledge base '{index.collection_name}' holds {count:,} indexed chunks. "
        "Each chunk is part of a document; one document can span several chunks."
    )
