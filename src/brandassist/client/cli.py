"""Local CLI for brandassist: runs the orchestration loop in-process against a console workspace."""

from __future__ import annotations

import logging
import time
from typing import (
    List,
    Optional,
    Tuple,
)

from brandassist.agent.agent_loop import respond_to_message
from brandassist.agent.planner_interface import BasePlanner
from brandassist.common import (
    AnsiColors,
    colored_print,
)
from brandassist.core.errors import (
    ModelCallError,
    ToolConfigurationError,
)
from brandassist.core.schema import (
    ChatFile,
    ChatMessage,
    ConversationKind,
    Message,
    ToolContext,
)

logger = logging.getLogger(__name__)

CONSOLE_CHANNEL = "console"
CONSOLE_USER = "local"
CONSOLE_BOT = "assistant"


# ---------------------------------------------------------------------------
# Console workspace
# ---------------------------------------------------------------------------
class ConsoleWorkspace:
    """In-memory stand-in for a chat workspace: history is the REPL session itself."""

    def __init__(self) -> None:
        self.history: List[ChatMessage] = []
        self.title: Optional[str] = None

    def record(self, text: str, from_assistant: bool = False) -> None:
        self.history.append(
            ChatMessage(
                ts=f"{time.time():.6f}",
                text=text,
                user=None if from_assistant else CONSOLE_USER,
                bot_id=CONSOLE_BOT if from_assistant else None,
            )
        )

    def post_status(self, channel: str, thread_ts: Optional[str], text: str) -> None:
        colored_print(f"  ... assistant {text}", AnsiColors.GREY)

    def channel_messages(self, channel: str, limit: int = 20) -> List[ChatMessage]:
        return self.history[-limit:]

    def thread_messages(self, channel: str, thread_ts: str, limit: int = 20) -> List[ChatMessage]:
        return self.history[-limit:]

    def set_title(self, channel: str, thread_ts: str, title: str) -> None:
        self.title = title
        colored_print(f"  [title: {title}]", AnsiColors.GREY)

    def recent_image_file(self, channel: str, thread_ts: Optional[str]) -> Optional[ChatFile]:
        return None

    def download_file(self, file_id: str) -> Tuple[bytes, str]:
        raise ToolConfigurationError(
            "File uploads are not available in the console.",
            "Pass an image URL or base64 data instead.",
        )


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def run_cli(
    kind: ConversationKind = ConversationKind.DIRECT_MESSAGE,
    persona: str | None = None,
    planner: BasePlanner | None = None,
) -> None:
    """Run an interactive session; every line is one inbound message."""
    workspace = ConsoleWorkspace()
    context = ToolContext(
        channel=CONSOLE_CHANNEL,
        thread_ts="0" if kind is ConversationKind.CHANNEL else None,
        user_id=CONSOLE_USER,
        bot_id=CONSOLE_BOT,
        workspace=workspace,
    )
    transcript: List[Message] = []

    colored_print(
        f"\nBrand Solutions Assistant ({kind.value}) - type 'exit' or 'quit' (or Ctrl+C) to exit",
        AnsiColors.GREEN,
    )
    while True:
        colored_print("\nYou: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        transcript.append(Message.user(user_msg))
        try:
            reply = respond_to_message(transcript, kind, context, planner=planner, persona=persona)
        except ModelCallError as exc:
            logger.error("Model call failed: %s", exc)
            colored_print(f"Model error: {exc}", AnsiColors.RED)
            transcript.pop()
            continue

        workspace.record(user_msg)
        workspace.record(reply, from_assistant=True)
        transcript.append(Message.assistant(reply))
        colored_print(reply or "(no answer)", AnsiColors.YELLOW)


if __name__ == "__main__":
    run_cli()
