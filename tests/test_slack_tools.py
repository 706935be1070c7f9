"""Conversation tools against the recording workspace."""

import pytest

from brandassist.core.errors import (
    ToolConfigurationError,
    ToolValidationError,
)
from brandassist.core.schema import (
    ChatFile,
    ChatMessage,
    ToolContext,
)
from brandassist.tools import slack_tools
from brandassist.tools.slack_tools import (
    HistoryInput,
    StatusInput,
    TitleInput,
    format_history,
)


def test_format_history_labels_speakers() -> None:
    messages = [
        ChatMessage(ts="1", text="Need 200 mugs", user="U42"),
        ChatMessage(ts="2", text="Sure, looking now", bot_id="UBOT"),
        ChatMessage(ts="3", text="", user="U42", files=[ChatFile(id="F1", name="logo.png")]),
        ChatMessage(ts="4", text="   ", user="U42"),
    ]
    assert format_history(messages, "UBOT") == (
        "<@U42>: Need 200 mugs\nassistant: Sure, looking now\n<@U42>: [files: logo.png]"
    )


def test_channel_messages(context, workspace) -> None:
    workspace.channel_history = [ChatMessage(ts=str(i), text=f"m{i}", user="U1") for i in range(5)]
    text = slack_tools.get_channel_messages(HistoryInput(limit=2), context)

    assert text == "Last 2 message(s) in the channel:\n<@U1>: m3\n<@U1>: m4"
    assert workspace.statuses == ["is reading the channel history..."]


def test_channel_messages_empty(context) -> None:
    assert slack_tools.get_channel_messages(HistoryInput(), context) == (
        "The channel has no earlier messages."
    )


def test_thread_messages(context, workspace) -> None:
    workspace.thread_history = [ChatMessage(ts="1", text="kickoff", user="U9")]
    text = slack_tools.get_thread_messages(HistoryInput(), context)
    assert text == "1 message(s) in the thread:\n<@U9>: kickoff"


def test_thread_messages_needs_thread(workspace) -> None:
    context = ToolContext(channel="C1", workspace=workspace)
    with pytest.raises(ToolValidationError):
        slack_tools.get_thread_messages(HistoryInput(), context)


def test_history_needs_workspace() -> None:
    with pytest.raises(ToolConfigurationError):
        slack_tools.get_channel_messages(HistoryInput(), ToolContext(channel="C1"))


def test_history_limit_bounds() -> None:
    with pytest.raises(ValueError):
        HistoryInput(limit=101)


def test_update_agent_status(context, workspace) -> None:
    text = slack_tools.update_agent_status(StatusInput(status="is checking stock..."), context)
    assert text == "Status updated: is checking stock..."
    assert workspace.statuses == ["is checking stock..."]


def test_status_failures_are_swallowed(context, workspace) -> None:
    workspace.fail_status = True
    text = slack_tools.update_agent_status(StatusInput(status="is busy..."), context)
    assert text.startswith("Status updated")


def test_update_chat_title(context, workspace) -> None:
    text = slack_tools.update_chat_title(TitleInput(title="Holiday gifts"), context)
    assert text == 'Title set to "Holiday gifts". Do not mention the title change to the user.'
    assert workspace.titles == [("C123", "1700000000.000100", "Holiday gifts")]


def test_update_chat_title_needs_thread(workspace) -> None:
    with pytest.raises(ToolValidationError):
        slack_tools.update_chat_title(
            TitleInput(title="x"), ToolContext(channel="D1", workspace=workspace)
        )


def test_update_chat_title_twice_is_harmless(context, workspace) -> None:
    first = slack_tools.update_chat_title(TitleInput(title="Holiday gifts"), context)
    second = slack_tools.update_chat_title(TitleInput(title="Holiday gifts"), context)
    assert first == second
    assert workspace.titles[0] == workspace.titles[1]
