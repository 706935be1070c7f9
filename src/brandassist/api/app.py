"""
Slack-facing HTTP backend for brandassist.

It exposes the following endpoints:
- **GET /health**        - liveness probe for health checks.
- **POST /slack/events** - Slack Events API receiver (URL verification, mentions and DMs).

Events are acknowledged immediately; the orchestration run happens in a background task and the
answer is posted back into the conversation thread.
"""

import json
import logging
import re
from functools import lru_cache
from typing import (
    List,
    Optional,
    Union,
)

from fastapi import (
    BackgroundTasks,
    FastAPI,
    HTTPException,
    Request,
)
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from slack_sdk.errors import SlackApiError
from slack_sdk.signature import SignatureVerifier

from brandassist.agent.agent_loop import answer_message
from brandassist.agent.planner_interface import BasePlanner
from brandassist.api.models import (
    AckResponse,
    ChallengeResponse,
    SlackEnvelope,
    SlackMessageEvent,
)
from brandassist.common import (
    AnsiColors,
    colored_print,
)
from brandassist.config import settings
from brandassist.core.errors import (
    ModelCallError,
    ToolFailure,
)
from brandassist.core.schema import (
    ConversationKind,
    Message,
    ToolContext,
)
from brandassist.integrations.slack import SlackWorkspace

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, I ran into a problem while working on that. Please try again in a moment."
EMPTY_ANSWER = "Sorry, I couldn't put together an answer for that. Could you rephrase the request?"
RESULTS_FALLBACK = "Search results"

# Message subtypes that are edits, deletions or bot chatter rather than user input
_IGNORED_SUBTYPES = {
    "bot_message",
    "message_changed",
    "message_deleted",
    "channel_join",
    "channel_leave",
    "assistant_app_thread",
}
_MENTION_RE = re.compile(r"<@[A-Z0-9]+>\s*")

app = FastAPI(
    title="Brand Solutions Assistant",
    version="0.1.0",
    description="Slack assistant that answers with tool-calling language models",
)


@lru_cache(maxsize=1)
def get_workspace() -> SlackWorkspace:
    return SlackWorkspace.from_settings(settings)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------
def classify_event(
    event: SlackMessageEvent, bot_user_id: Optional[str] = None
) -> Optional[ConversationKind]:
    """Return the conversation kind for an event the assistant should answer, else ``None``."""
    if event.bot_id or event.subtype in _IGNORED_SUBTYPES:
        return None
    if bot_user_id and event.user == bot_user_id:
        return None
    if not event.channel or not (event.text.strip() or event.files):
        return None
    if event.type == "app_mention":
        return ConversationKind.CHANNEL
    if event.type == "message" and event.channel_type == "im":
        return ConversationKind.DIRECT_MESSAGE
    return None


def strip_mentions(text: str) -> str:
    return _MENTION_RE.sub("", text).strip()


def build_transcript(
    event: SlackMessageEvent, workspace: SlackWorkspace, bot_user_id: Optional[str]
) -> List[Message]:
    """
    Turn the conversation so far into transcript messages.

    In a thread, the whole thread is replayed (assistant turns recognized by bot id); otherwise the
    transcript is the single inbound message.
    """
    if event.thread_ts and event.channel:
        try:
            history = workspace.thread_messages(event.channel, event.thread_ts, limit=50)
        except ToolFailure as exc:
            logger.warning("Could not read thread %s: %s", event.thread_ts, exc.message)
            history = []

        messages = []
        for msg in history:
            text = strip_mentions(msg.text)
            if not text:
                continue
            if msg.bot_id or (bot_user_id and msg.user == bot_user_id):
                messages.append(Message.assistant(text))
            else:
                messages.append(Message.user(text))
        if messages:
            return messages

    return [Message.user(strip_mentions(event.text) or "(shared a file)")]


def handle_message_event(
    event: SlackMessageEvent,
    kind: ConversationKind,
    workspace: Optional[SlackWorkspace] = None,
    planner: Optional[BasePlanner] = None,
) -> None:
    """Answer one inbound message and post the reply into its thread."""
    workspace = workspace or get_workspace()
    channel = event.channel or ""
    thread_ts = event.thread_ts or event.ts
    bot_user_id = workspace.bot_user_id

    context = ToolContext(
        channel=channel,
        thread_ts=thread_ts,
        user_id=event.user,
        bot_id=bot_user_id,
        workspace=workspace,
    )
    context.report_status("is thinking...")

    blocks = None
    try:
        messages = build_transcript(event, workspace, bot_user_id)
        result = answer_message(messages, kind, context, planner=planner)
        reply = result.text or EMPTY_ANSWER
        blocks = result.latest_blocks
    except ModelCallError:
        logger.exception("Model call failed for channel=%s thread=%s", channel, thread_ts)
        reply = APOLOGY
    except Exception:  # pylint: disable=broad-except
        logger.exception("Could not answer message in channel=%s thread=%s", channel, thread_ts)
        reply = APOLOGY

    try:
        workspace.post_message(channel, reply, thread_ts=thread_ts)
        if blocks:
            workspace.post_message(channel, RESULTS_FALLBACK, thread_ts=thread_ts, blocks=blocks)
    except SlackApiError as exc:
        logger.error("Could not post reply to %s: %s", channel, exc)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.post(
    "/slack/events",
    response_model=Union[ChallengeResponse, AckResponse],
    summary="Slack Events API receiver",
)
async def slack_events(
    request: Request, background_tasks: BackgroundTasks
) -> Union[ChallengeResponse, AckResponse]:
    """Verify, acknowledge and dispatch one Slack event."""
    body = await request.body()

    if settings.SLACK_SIGNING_SECRET:
        verifier = SignatureVerifier(settings.SLACK_SIGNING_SECRET)
        if not verifier.is_valid(
            body=body,
            timestamp=request.headers.get("X-Slack-Request-Timestamp"),
            signature=request.headers.get("X-Slack-Signature"),
        ):
            logger.warning("Rejected Slack request with an invalid signature")
            raise HTTPException(status_code=401, detail="invalid signature")

    try:
        envelope = SlackEnvelope.model_validate(json.loads(body or b"{}"))
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail="malformed event payload") from exc

    if envelope.type == "url_verification" and envelope.challenge:
        logger.info("Answering Slack URL verification challenge")
        return ChallengeResponse(challenge=envelope.challenge)

    # Slack retries when the ack is slow; the first delivery is already being handled
    if request.headers.get("X-Slack-Retry-Num"):
        logger.debug("Ignoring Slack retry %s", request.headers.get("X-Slack-Retry-Num"))
        return AckResponse()

    if envelope.type == "event_callback" and envelope.event is not None:
        try:
            workspace = get_workspace()
        except ToolFailure as exc:
            logger.error("Cannot answer Slack events: %s", exc.describe())
            return AckResponse()
        bot_user_id = await run_in_threadpool(lambda: workspace.bot_user_id)
        kind = classify_event(envelope.event, bot_user_id)
        if kind is not None:
            logger.info(
                "Dispatching %s event %s (%s)", envelope.event.type, envelope.event_id, kind.value
            )
            background_tasks.add_task(handle_message_event, envelope.event, kind)
    return AckResponse()


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev docker-compose).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn out of pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:
        log_level = settings.LOG_LEVEL

    if not settings.SLACK_SIGNING_SECRET:
        logger.warning("SLACK_SIGNING_SECRET is not set; Slack signatures will not be verified")

    logger.info(
        "Starting Brand Solutions Assistant at %s:%d (reload=%s, log_level=%s)",
        host,
        port,
        reload,
        log_level,
    )
    colored_print(
        f"Slack events endpoint: http://localhost:{port}/slack/events",
        AnsiColors.GREEN,
    )
    uvicorn.run(
        "brandassist.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m brandassist.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
