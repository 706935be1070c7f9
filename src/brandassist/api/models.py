"""
Pydantic models for the Slack Events API payloads handled by brandassist.
Only the fields the assistant uses are declared; everything else Slack sends is ignored.
"""

from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# ---------------------------------------------------------------------------
# Slack event payloads
# ---------------------------------------------------------------------------
class SlackFile(BaseModel):
    """File attached to a message event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    mimetype: Optional[str] = None


class SlackMessageEvent(BaseModel):
    """The inner ``event`` of an ``event_callback`` (``message`` or ``app_mention``)."""

    model_config = ConfigDict(extra="ignore")

    type: str
    subtype: Optional[str] = None
    channel: Optional[str] = None
    channel_type: Optional[str] = None
    user: Optional[str] = None
    bot_id: Optional[str] = None
    text: str = ""
    ts: Optional[str] = None
    thread_ts: Optional[str] = None
    files: List[SlackFile] = Field(default_factory=list)


class SlackEnvelope(BaseModel):
    """Outer Events API request body."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., description="url_verification or event_callback")
    challenge: Optional[str] = None
    team_id: Optional[str] = None
    event_id: Optional[str] = None
    event: Optional[SlackMessageEvent] = None


class ChallengeResponse(BaseModel):
    challenge: str


class AckResponse(BaseModel):
    ok: bool = True
