from typing import Literal, Optional
from pydantic import BaseModel, Field


class SessionStartedMessage(BaseModel):
    """The transcription service opened a session."""

    type: Literal["session_started"] = "session_started"
    session_id: str = Field(..., min_length=1)


class TranscriptFragmentMessage(BaseModel):
    """A partial or final piece of live transcript."""

    type: Literal["transcript_fragment"] = "transcript_fragment"
    text: str
    is_partial: bool = False
    timestamp: Optional[float] = Field(default=None, description="Epoch seconds; receive time if absent")


class SessionEndedMessage(BaseModel):
    """The transcription service closed the session."""

    type: Literal["session_ended"] = "session_ended"
