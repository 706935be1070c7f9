"""Long-term memory tools (Mem0)."""

import json
import logging
from functools import lru_cache
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from brandassist.config import settings
from brandassist.core.schema import ToolContext
from brandassist.memory.memory_store import Mem0Store
from brandassist.tools import (
    ToolInput,
    register_tool,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_memory_store() -> Mem0Store:
    return Mem0Store.from_settings(settings)


class SubjectInput(ToolInput):
    user_id: Optional[str] = Field(
        None, description="Memory subject; defaults to the current Slack user"
    )
    agent_id: Optional[str] = Field(None, description="Optional agent scope")

    def subject(self, context: ToolContext) -> str:
        return self.user_id or context.memory_subject()


class SearchMemoryInput(SubjectInput):
    query: str = Field(..., min_length=1, description="What to look for in stored memories")
    limit: int = Field(5, ge=1, le=50, description="Maximum number of memories")


class SaveMemoryInput(SubjectInput):
    content: str = Field(..., min_length=1, description="Information or preference to remember")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Extra metadata to store")


class GetAllMemoriesInput(SubjectInput):
    limit: int = Field(20, ge=1, le=100, description="Maximum number of memories")


class MemoryIdInput(ToolInput):
    memory_id: str = Field(..., min_length=1, description="ID of the memory")


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class AddConversationInput(SubjectInput):
    messages: List[ConversationMessage] = Field(
        ..., min_length=1, description="Conversation messages, oldest first"
    )
    metadata: Optional[Dict[str, Any]] = Field(None, description="Extra metadata to store")


def _saved_summary(prefix: str, records: List[Any]) -> str:
    added = "\n".join(f"- {r.memory}" for r in records if r.event in (None, "ADD") and r.memory)
    return f"{prefix} Created {len(records)} memory(ies):\n\n{added}".rstrip()


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------
@register_tool(
    "search_memory",
    description="Search stored memories (past conversations, preferences, decisions) for relevant "
    "context. Do this before answering questions about preferences or past work.",
    input_model=SearchMemoryInput,
)
def search_memory(params: SearchMemoryInput, context: ToolContext) -> str:
    store = get_memory_store()
    context.report_status("is searching memories...")
    records = store.search(
        params.query, params.subject(context), agent_id=params.agent_id, limit=params.limit
    )
    if not records:
        return f'No relevant memories found for query: "{params.query}"'

    lines = []
    for i, record in enumerate(records, start=1):
        score = f" (relevance: {record.score:.2f})" if record.score is not None else ""
        lines.append(f"{i}. {record.memory}{score}")
    return f"Found {len(records)} relevant memories:\n\n" + "\n".join(lines)


@register_tool(
    "save_memory",
    description="Save important information, a preference or a decision to long-term memory.",
    input_model=SaveMemoryInput,
)
def save_memory(params: SaveMemoryInput, context: ToolContext) -> str:
    store = get_memory_store()
    records = store.add(
        [{"role": "user", "content": params.content}],
        params.subject(context),
        agent_id=params.agent_id,
        metadata=params.metadata,
    )
    if not records:
        return "No new memories were created; the information may already be known."
    return _saved_summary("Memory saved.", records)


@register_tool(
    "get_memory_history",
    description="Show the change history of one memory.",
    input_model=MemoryIdInput,
)
def get_memory_history(params: MemoryIdInput, context: ToolContext) -> str:
    store = get_memory_store()
    history = store.history(params.memory_id)
    if not history:
        return f"No history found for memory ID: {params.memory_id}"
    entries = "\n\n".join(
        f"{i}. {json.dumps(entry, indent=2, default=str)}" for i, entry in enumerate(history, 1)
    )
    return f"Memory history for ID {params.memory_id}:\n\n{entries}"


@register_tool(
    "get_all_memories",
    description="List all stored memories for a user to understand their full context.",
    input_model=GetAllMemoriesInput,
)
def get_all_memories(params: GetAllMemoriesInput, context: ToolContext) -> str:
    store = get_memory_store()
    subject = params.subject(context)
    records = store.get_all(subject, agent_id=params.agent_id, limit=params.limit)
    if not records:
        agent = f" and agent: {params.agent_id}" if params.agent_id else ""
        return f"No memories found for user: {subject}{agent}"

    lines = []
    for i, record in enumerate(records, start=1):
        created = record.created_at[:10] if record.created_at else "unknown date"
        lines.append(f"{i}. {record.memory} (id: {record.id}, created: {created})")
    return f"Found {len(records)} memories:\n\n" + "\n".join(lines)


@register_tool(
    "delete_memory",
    description="Delete one memory by ID. Only do this when the user asks for it.",
    input_model=MemoryIdInput,
)
def delete_memory(params: MemoryIdInput, context: ToolContext) -> str:
    store = get_memory_store()
    store.delete(params.memory_id)
    logger.info("Deleted memory %s", params.memory_id)
    return f"Successfully deleted memory with ID: {params.memory_id}"


@register_tool(
    "add_conversation_to_memory",
    description="Store a whole discussion in long-term memory when it matters later.",
    input_model=AddConversationInput,
)
def add_conversation_to_memory(params: AddConversationInput, context: ToolContext) -> str:
    store = get_memory_store()
    metadata: Dict[str, Any] = {
        "conversation_type": "slack_thread",
        "channel": context.channel,
        "thread_ts": context.thread_ts,
        "message_count": len(params.messages),
        **(params.metadata or {}),
    }
    records = store.add(
        [m.model_dump() for m in params.messages],
        params.subject(context),
        agent_id=params.agent_id,
        metadata=metadata,
    )
    if not records:
        return "The conversation was processed but no new memories were created."
    return _saved_summary(
        f"Saved conversation with {len(params.messages)} messages.", records
    )
