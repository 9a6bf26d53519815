import time
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    ENDED = "ended"


class TranscriptFragment(BaseModel):
    """A piece of live transcript text. Partial fragments are provisional."""

    text: str
    is_partial: bool = False
    timestamp: float = Field(default_factory=time.time)


class Session(BaseModel):
    """One live recording session, identified by the transcription service."""

    id: str = Field(..., min_length=1, description="Session identifier issued by the transcription service")
    status: SessionStatus = SessionStatus.IDLE
    transcript_fragments: List[TranscriptFragment] = Field(default_factory=list)

    def apply_fragment(self, fragment: TranscriptFragment) -> bool:
        """Make ``fragment`` the current fragment.

        A trailing partial fragment is replaced rather than appended to.
        Fragments older than the current one are stale and dropped.

        Returns:
            True if the fragment was applied
        """
        if self.transcript_fragments:
            current = self.transcript_fragments[-1]
            if fragment.timestamp < current.timestamp:
                return False
            if current.is_partial:
                self.transcript_fragments[-1] = fragment
                return True
        self.transcript_fragments.append(fragment)
        return True

    @property
    def current_fragment(self) -> Optional[TranscriptFragment]:
        return self.transcript_fragments[-1] if self.transcript_fragments else None

    @property
    def current_text(self) -> str:
        fragment = self.current_fragment
        return fragment.text if fragment else ""

    def get_full_transcript(self) -> str:
        """Final fragments joined in order, followed by any provisional tail."""
        return " ".join(
            f.text.strip() for f in self.transcript_fragments if f.text.strip()
        )
