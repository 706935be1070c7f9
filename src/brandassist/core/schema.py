"""
Schema definitions for model <-> orchestration loop <-> tool messages.

These data models serve as the contract between the language model backends, the orchestration
loop, and individual tools.  We keep them separate from runtime logic so they can be imported
anywhere without side-effects.
"""

from __future__ import annotations

import logging
from dataclasses import (
    dataclass,
    field,
)
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from brandassist.core.errors import ToolErrorKind

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Transcript message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ConversationKind(str, Enum):
    """Where the inbound message was posted; decides which tools are enabled."""

    DIRECT_MESSAGE = "dm"
    CHANNEL = "channel"


class RunState(str, Enum):
    """States of one orchestration run."""

    RUNNING = "running"
    ANSWERED = "answered"
    BUDGET_EXHAUSTED = "budget_exhausted"


class ToolCall(BaseModel):
    """A call that the model wants the loop to execute."""

    id: str = Field(..., description="Provider-issued call id, echoed back in the tool result")
    name: str = Field(..., description="Registered tool name")
    args: Dict[str, Any] = Field(default_factory=dict, description="Structured tool input")
    argument_error: Optional[str] = Field(
        None, description="Set when the model's raw arguments could not be decoded"
    )


class Message(BaseModel):
    """One transcript entry."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: Sequence[ToolCall] = ()) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=list(tool_calls))


class ModelResponse(BaseModel):
    """What a model backend returns for one turn."""

    text: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)


class ToolOutput(BaseModel):
    """Adapter output richer than plain text (e.g. Slack Block Kit blocks)."""

    text: str
    blocks: Optional[List[Dict[str, Any]]] = None


class ToolResult(BaseModel):
    """Normalized outcome of executing one tool call, success or failure."""

    call_id: str
    name: str
    content: str
    is_error: bool = False
    error_kind: Optional[ToolErrorKind] = None
    blocks: Optional[List[Dict[str, Any]]] = None

    def to_message(self) -> Message:
        """Return the transcript entry for this result."""
        return Message(
            role=Role.TOOL, content=self.content, tool_call_id=self.call_id, name=self.name
        )


class Transcript:
    """Append-only message history for one orchestration run."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: List[Message] = list(messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))


class OrchestrationResult(BaseModel):
    """Outcome of :func:`brandassist.agent.agent_loop.run_orchestration`."""

    text: str
    state: RunState
    model_calls: int
    transcript: List[Message]
    tool_results: List[ToolResult] = Field(default_factory=list)

    @property
    def latest_blocks(self) -> Optional[List[Dict[str, Any]]]:
        """Blocks of the most recent successful tool result that produced any."""
        for result in reversed(self.tool_results):
            if result.blocks and not result.is_error:
                return result.blocks
        return None


# ---------------------------------------------------------------------------
# Chat workspace collaborator
# ---------------------------------------------------------------------------
class ChatFile(BaseModel):
    """A file attached to a chat message."""

    id: str
    name: str = ""
    mimetype: str = ""
    size: int = 0
    url_private: Optional[str] = None

    @property
    def is_image(self) -> bool:
        if self.mimetype.startswith("image/"):
            return True
        return self.name.lower().endswith((".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff"))


class ChatMessage(BaseModel):
    """A message read back from the chat workspace."""

    ts: str
    text: str = ""
    user: Optional[str] = None
    bot_id: Optional[str] = None
    files: List[ChatFile] = Field(default_factory=list)


class Workspace(Protocol):
    """Chat workspace operations the tools rely on."""

    def post_status(self, channel: str, thread_ts: Optional[str], text: str) -> None:
        ...

    def channel_messages(self, channel: str, limit: int = 20) -> List[ChatMessage]:
        ...

    def thread_messages(self, channel: str, thread_ts: str, limit: int = 20) -> List[ChatMessage]:
        ...

    def set_title(self, channel: str, thread_ts: str, title: str) -> None:
        ...

    def recent_image_file(self, channel: str, thread_ts: Optional[str]) -> Optional[ChatFile]:
        ...

    def download_file(self, file_id: str) -> Tuple[bytes, str]:
        ...


@dataclass(frozen=True)
class ToolContext:
    """
    Ambient identifiers for one run, passed beside (never inside) the transcript.

    The model never sees these fields; tools use them to reach the right conversation.
    """

    channel: Optional[str] = None
    thread_ts: Optional[str] = None
    user_id: Optional[str] = None
    bot_id: Optional[str] = None
    workspace: Optional[Workspace] = field(default=None, repr=False, compare=False)

    def report_status(self, text: str) -> None:
        """Narrate progress to the conversation.  Never raises."""
        if self.workspace is None or not self.channel:
            logger.debug("Status (not posted): %s", text)
            return
        try:
            self.workspace.post_status(self.channel, self.thread_ts, text)
        except Exception:  # pylint: disable=broad-except
            logger.warning("Status update failed: %s", text, exc_info=True)

    def memory_subject(self) -> str:
        """Default long-term memory subject for this run."""
        return f"slack_{self.user_id or self.bot_id or 'unknown'}"
