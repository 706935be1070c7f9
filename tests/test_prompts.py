from datetime import datetime

import pytest

from brandassist.agent.prompts import (
    PERSONAS,
    build_system_prompt,
)
from brandassist.core.schema import ConversationKind

NOW = datetime(2025, 3, 14, 9, 30)


def test_dm_prompt_mentions_direct_message() -> None:
    prompt = build_system_prompt("general", ConversationKind.DIRECT_MESSAGE, now=NOW)
    assert "You are in a direct message with the user." in prompt
    assert "Current date: 2025-03-14 (Friday, March 14, 2025)" in prompt


def test_channel_prompt() -> None:
    prompt = build_system_prompt("trend", ConversationKind.CHANNEL, now=NOW)
    assert "You are not in a direct message with the user." in prompt
    assert prompt.startswith(PERSONAS["trend"])
    assert "update_chat_title" in prompt


def test_persona_lookup_is_case_insensitive() -> None:
    assert build_system_prompt("GENERAL", ConversationKind.CHANNEL, now=NOW).startswith(
        PERSONAS["general"]
    )


def test_unknown_persona() -> None:
    with pytest.raises(ValueError, match="Unknown persona"):
        build_system_prompt("pirate", ConversationKind.CHANNEL)
