"""
Slack workspace collaborator.

Implements the :class:`~brandassist.core.schema.Workspace` operations (status narration, history,
thread titles, file access) plus reply delivery on top of ``slack_sdk``.  Status updates are
fire-and-forget: they run on a small thread pool and their failures are only logged.
"""

import logging
from concurrent.futures import (
    Future,
    ThreadPoolExecutor,
)
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Tuple,
)

import httpx
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    UpstreamError,
    upstream_failure,
)
from brandassist.core.schema import (
    ChatFile,
    ChatMessage,
)

logger = logging.getLogger(__name__)

_SLACK_HINTS = {
    "not_in_channel": "Invite the assistant to the channel so it can read the history.",
    "channel_not_found": "The channel could not be found or the assistant has no access to it.",
    "missing_scope": "The Slack app is missing an OAuth scope for this call; reinstall it with "
    "the required scopes.",
    "invalid_auth": "Check SLACK_BOT_TOKEN.",
    "not_authed": "Check SLACK_BOT_TOKEN.",
    "ratelimited": "Slack is rate limiting requests. Wait a moment before trying again.",
    "file_not_found": "The file no longer exists or was not shared with the assistant.",
}


def slack_failure(action: str, exc: SlackApiError) -> UpstreamError:
    """Translate a Slack Web API error into an :class:`UpstreamError`."""
    code = exc.response.get("error", "unknown_error") if exc.response is not None else "unknown"
    return UpstreamError(f"Slack could not {action}: {code}", _SLACK_HINTS.get(code))


def _log_status_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning("Slack status update failed: %s", exc)


def _to_chat_message(raw: Dict[str, Any]) -> ChatMessage:
    files = [
        ChatFile(
            id=f.get("id", ""),
            name=f.get("name") or "",
            mimetype=f.get("mimetype") or "",
            size=f.get("size") or 0,
            url_private=f.get("url_private"),
        )
        for f in raw.get("files") or []
    ]
    return ChatMessage(
        ts=raw.get("ts", ""),
        text=raw.get("text") or "",
        user=raw.get("user"),
        bot_id=raw.get("bot_id"),
        files=files,
    )


class SlackWorkspace:
    """Slack Web API wrapper used by tools and the event handler."""

    def __init__(
        self,
        client: WebClient,
        token: str | None = None,
        executor: ThreadPoolExecutor | None = None,
        timeout: float = 30.0,
        http: httpx.Client | None = None,
    ) -> None:
        self.client = client
        self._token = token or client.token
        self._http = http or httpx.Client(timeout=timeout, follow_redirects=True)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="slack-status"
        )
        self._bot_user_id: Optional[str] = None
        self._auth_checked = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "SlackWorkspace":
        if not settings.SLACK_BOT_TOKEN:
            raise ToolConfigurationError(
                "Slack access is not configured.", "Set SLACK_BOT_TOKEN in the environment."
            )
        return cls(
            WebClient(token=settings.SLACK_BOT_TOKEN),
            token=settings.SLACK_BOT_TOKEN,
            timeout=settings.HTTP_TIMEOUT,
        )

    @property
    def bot_user_id(self) -> Optional[str]:
        """User id of the assistant itself (``auth.test``, asked at most once)."""
        if not self._auth_checked:
            self._auth_checked = True
            try:
                self._bot_user_id = self.client.auth_test().get("user_id")
            except (SlackApiError, OSError) as exc:
                logger.error("Slack auth.test failed: %s", exc)
        return self._bot_user_id

    # ------------------------------------------------------------------ #
    # Status reporter
    # ------------------------------------------------------------------ #
    def post_status(self, channel: str, thread_ts: Optional[str], text: str) -> None:
        """Set the assistant thread status without waiting for Slack."""
        if not thread_ts:
            logger.debug("No thread for status update in %s: %s", channel, text)
            return
        future = self._executor.submit(
            self.client.assistant_threads_setStatus,
            channel_id=channel,
            thread_ts=thread_ts,
            status=text,
        )
        future.add_done_callback(_log_status_failure)

    # ------------------------------------------------------------------ #
    # History provider
    # ------------------------------------------------------------------ #
    def channel_messages(self, channel: str, limit: int = 20) -> List[ChatMessage]:
        """Recent channel messages, oldest first."""
        try:
            response = self.client.conversations_history(channel=channel, limit=limit)
        except SlackApiError as exc:
            raise slack_failure("read the channel history", exc) from exc
        # conversations.history is newest first
        return [_to_chat_message(raw) for raw in reversed(response.get("messages") or [])]

    def thread_messages(self, channel: str, thread_ts: str, limit: int = 20) -> List[ChatMessage]:
        """Thread messages, oldest first."""
        try:
            response = self.client.conversations_replies(channel=channel, ts=thread_ts, limit=limit)
        except SlackApiError as exc:
            raise slack_failure("read the thread", exc) from exc
        return [_to_chat_message(raw) for raw in response.get("messages") or []]

    # ------------------------------------------------------------------ #
    # Renamer
    # ------------------------------------------------------------------ #
    def set_title(self, channel: str, thread_ts: str, title: str) -> None:
        try:
            self.client.assistant_threads_setTitle(
                channel_id=channel, thread_ts=thread_ts, title=title
            )
        except SlackApiError as exc:
            raise slack_failure("update the conversation title", exc) from exc

    # ------------------------------------------------------------------ #
    # Files
    # ------------------------------------------------------------------ #
    def recent_image_file(
        self, channel: str, thread_ts: Optional[str], limit: int = 10
    ) -> Optional[ChatFile]:
        """Most recent image uploaded to the thread (or channel when there is no thread)."""
        if thread_ts:
            messages = self.thread_messages(channel, thread_ts, limit=limit)
        else:
            messages = self.channel_messages(channel, limit=limit)
        for message in reversed(messages):
            for file in message.files:
                if file.is_image:
                    return file
        return None

    def download_file(self, file_id: str) -> Tuple[bytes, str]:
        """Return ``(content, filename)`` of a private Slack file."""
        try:
            info = self.client.files_info(file=file_id)
        except SlackApiError as exc:
            raise slack_failure("look up the file", exc) from exc

        file = info.get("file") or {}
        url = file.get("url_private_download") or file.get("url_private")
        if not url:
            raise UpstreamError(
                "Slack did not return a download URL for the file.",
                "Re-upload the image as a file attachment.",
            )

        try:
            resp = self._http.get(url, headers={"Authorization": f"Bearer {self._token}"})
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            failure = upstream_failure("Slack file download", exc)
            failure.hint = (
                "Make sure the file is a valid image (JPG, PNG, GIF, BMP, TIFF), re-upload it as "
                "a file attachment, and check that the assistant can access files in this channel."
            )
            raise failure from exc
        return resp.content, file.get("name") or url.rsplit("/", 1)[-1]

    # ------------------------------------------------------------------ #
    # Delivery
    # ------------------------------------------------------------------ #
    def post_message(
        self,
        channel: str,
        text: str,
        thread_ts: Optional[str] = None,
        blocks: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.client.chat_postMessage(channel=channel, text=text, thread_ts=thread_ts, blocks=blocks)
