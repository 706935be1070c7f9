"""Conversation tools: history, status narration and thread titles."""

import logging
from typing import List

from pydantic import Field

from brandassist.core.errors import (
    ToolConfigurationError,
    ToolValidationError,
)
from brandassist.core.schema import (
    ChatMessage,
    ConversationKind,
    ToolContext,
    Workspace,
)
from brandassist.tools import (
    ToolInput,
    register_tool,
)

logger = logging.getLogger(__name__)


class HistoryInput(ToolInput):
    limit: int = Field(20, ge=1, le=100, description="Number of messages to read (1-100)")


class StatusInput(ToolInput):
    status: str = Field(
        ...,
        min_length=1,
        description='Short progress note shown to the user, e.g. "is searching for products..."',
    )


class TitleInput(ToolInput):
    title: str = Field(..., min_length=1, max_length=100, description="New conversation title")


def _workspace(context: ToolContext) -> Workspace:
    if context.workspace is None:
        raise ToolConfigurationError(
            "Chat history is not available in this session.",
            "The assistant is not connected to a Slack workspace.",
        )
    return context.workspace


def _require_channel(context: ToolContext) -> str:
    if not context.channel:
        raise ToolValidationError("No channel is associated with this conversation.")
    return context.channel


def format_history(messages: List[ChatMessage], bot_id: str | None = None) -> str:
    """Render chat messages as ``speaker: text`` lines, oldest first."""
    lines = []
    for msg in messages:
        if msg.bot_id and (bot_id is None or msg.bot_id == bot_id):
            speaker = "assistant"
        else:
            speaker = f"<@{msg.user}>" if msg.user else "unknown"
        text = msg.text.strip()
        if msg.files:
            names = ", ".join(f.name or f.id for f in msg.files)
            text = f"{text} [files: {names}]".strip()
        if text:
            lines.append(f"{speaker}: {text}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------
@register_tool(
    "get_channel_messages",
    description="Read the most recent messages of the current channel for context about earlier "
    "discussions.",
    input_model=HistoryInput,
)
def get_channel_messages(params: HistoryInput, context: ToolContext) -> str:
    workspace = _workspace(context)
    channel = _require_channel(context)
    context.report_status("is reading the channel history...")

    messages = workspace.channel_messages(channel, limit=params.limit)
    history = format_history(messages, context.bot_id)
    if not history:
        return "The channel has no earlier messages."
    return f"Last {len(messages)} message(s) in the channel:\n{history}"


@register_tool(
    "get_thread_messages",
    description="Read the messages of the current thread. Use this first when replying in a "
    "thread.",
    input_model=HistoryInput,
    kinds=[ConversationKind.CHANNEL],
)
def get_thread_messages(params: HistoryInput, context: ToolContext) -> str:
    workspace = _workspace(context)
    channel = _require_channel(context)
    if not context.thread_ts:
        raise ToolValidationError(
            "This conversation is not in a thread.", "Use get_channel_messages instead."
        )
    context.report_status("is reading the thread...")

    messages = workspace.thread_messages(channel, context.thread_ts, limit=params.limit)
    history = format_history(messages, context.bot_id)
    if not history:
        return "The thread has no earlier messages."
    return f"{len(messages)} message(s) in the thread:\n{history}"


@register_tool(
    "update_agent_status",
    description="Tell the user what you are doing right now. Keep it short and non-technical.",
    input_model=StatusInput,
)
def update_agent_status(params: StatusInput, context: ToolContext) -> str:
    context.report_status(params.status)
    return f"Status updated: {params.status}"


@register_tool(
    "update_chat_title",
    description="Set the title of the current conversation to reflect its topic. Call it for new "
    "conversations and when the topic changes.",
    input_model=TitleInput,
)
def update_chat_title(params: TitleInput, context: ToolContext) -> str:
    workspace = _workspace(context)
    channel = _require_channel(context)
    if not context.thread_ts:
        raise ToolValidationError("There is no assistant thread to rename.")

    workspace.set_title(channel, context.thread_ts, params.title)
    logger.info("Conversation %s/%s renamed to %r", channel, context.thread_ts, params.title)
    return f'Title set to "{params.title}". Do not mention the title change to the user.'
