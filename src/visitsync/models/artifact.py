from enum import Enum
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class ArtifactType(str, Enum):
    """Kinds of backend-produced artifacts the client waits for."""

    VISIT_NOTE = "visit_note"
    TRANSCRIPT = "transcript"
    CARE_PLAN = "care_plan"
    SPECIALIST = "specialist"


class ArtifactKey(BaseModel):
    """Identifies one polled artifact: its type plus, for specialists, the category."""

    model_config = ConfigDict(frozen=True)

    type: ArtifactType
    category: Optional[str] = Field(default=None, description="Specialist dataCategory")

    @classmethod
    def visit_note(cls) -> "ArtifactKey":
        return cls(type=ArtifactType.VISIT_NOTE)

    @classmethod
    def transcript(cls) -> "ArtifactKey":
        return cls(type=ArtifactType.TRANSCRIPT)

    @classmethod
    def care_plan(cls) -> "ArtifactKey":
        return cls(type=ArtifactType.CARE_PLAN)

    @classmethod
    def specialist(cls, category: str) -> "ArtifactKey":
        return cls(type=ArtifactType.SPECIALIST, category=category)

    def __str__(self) -> str:
        if self.category:
            return f"{self.type.value}:{self.category}"
        return self.type.value


class ArtifactRequest(BaseModel):
    """Mutable polling bookkeeping for one artifact, owned by its PollingFetcher."""

    key: ArtifactKey
    session_id: Optional[str] = None
    attempt: int = Field(default=0, ge=0)
    max_attempts: int = Field(..., ge=1)
    interval_seconds: float = Field(..., gt=0)


class FailureReason(str, Enum):
    EXHAUSTED = "exhausted"
    MISSING_KEY = "missing_key"


class Pending(BaseModel):
    """Still waiting on the backend. ``attempt`` counts attempts already made."""

    model_config = ConfigDict(frozen=True)

    status: Literal["pending"] = "pending"
    attempt: int = 0
    max_attempts: int = 0
    last_error: Optional[str] = None


class Ready(BaseModel):
    """Terminal: the readiness predicate accepted the payload."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: Literal["ready"] = "ready"
    payload: Any = None
    attempts: int = 0


class Failed(BaseModel):
    """Terminal until a manual retry resets the artifact."""

    model_config = ConfigDict(frozen=True)

    status: Literal["failed"] = "failed"
    reason: FailureReason
    attempts: int = 0
    last_error: Optional[str] = None


ArtifactResult = Union[Pending, Ready, Failed]


def is_terminal(result: ArtifactResult) -> bool:
    return isinstance(result, (Ready, Failed))
