"""Shared fixtures: a scripted model backend and a recording chat workspace."""

from typing import (
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import httpx
import pytest

from brandassist.agent.planner_interface import BasePlanner
from brandassist.core.schema import (
    ChatFile,
    ChatMessage,
    Message,
    ModelResponse,
    ToolCall,
    ToolContext,
)
from brandassist.tools import ToolSchema


class ScriptedPlanner(BasePlanner):
    """Returns pre-recorded responses in order and remembers what it was sent."""

    def __init__(self, responses: Sequence[Union[ModelResponse, Exception]]):
        self._responses = list(responses)
        self.calls: List[Tuple[List[Message], List[str]]] = []

    def complete(self, messages: Sequence[Message], tools: Sequence[ToolSchema]) -> ModelResponse:
        self.calls.append((list(messages), [tool["name"] for tool in tools]))
        if not self._responses:
            raise AssertionError("ScriptedPlanner ran out of responses")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeWorkspace:
    """Records status posts, titles and replies; serves canned history."""

    def __init__(self) -> None:
        self.statuses: List[str] = []
        self.titles: List[Tuple[str, str, str]] = []
        self.posted: List[Dict] = []
        self.channel_history: List[ChatMessage] = []
        self.thread_history: List[ChatMessage] = []
        self.image: Optional[ChatFile] = None
        self.files: Dict[str, Tuple[bytes, str]] = {}
        self.bot_user_id = "UBOT"
        self.fail_status = False

    def post_status(self, channel: str, thread_ts: Optional[str], text: str) -> None:
        if self.fail_status:
            raise RuntimeError("status endpoint down")
        self.statuses.append(text)

    def channel_messages(self, channel: str, limit: int = 20) -> List[ChatMessage]:
        return self.channel_history[-limit:]

    def thread_messages(self, channel: str, thread_ts: str, limit: int = 20) -> List[ChatMessage]:
        return self.thread_history[:limit]

    def set_title(self, channel: str, thread_ts: str, title: str) -> None:
        self.titles.append((channel, thread_ts, title))

    def recent_image_file(self, channel: str, thread_ts: Optional[str]) -> Optional[ChatFile]:
        return self.image

    def download_file(self, file_id: str) -> Tuple[bytes, str]:
        return self.files[file_id]

    def post_message(self, channel: str, text: str, thread_ts=None, blocks=None) -> None:
        entry = {"channel": channel, "text": text, "thread_ts": thread_ts}
        if blocks is not None:
            entry["blocks"] = blocks
        self.posted.append(entry)


def text_reply(text: str) -> ModelResponse:
    return ModelResponse(text=text)


def tool_request(*calls: Tuple[str, Dict], text: str = "") -> ModelResponse:
    return ModelResponse(
        text=text,
        tool_calls=[
            ToolCall(id=f"call_{i}", name=name, args=args) for i, (name, args) in enumerate(calls)
        ],
    )


def mock_http(handler) -> httpx.Client:
    """An httpx client whose requests are answered by *handler*."""
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def workspace() -> FakeWorkspace:
    return FakeWorkspace()


@pytest.fixture
def context(workspace: FakeWorkspace) -> ToolContext:
    return ToolContext(
        channel="C123", thread_ts="1700000000.000100", user_id="U42", bot_id="UBOT",
        workspace=workspace,
    )
