"""
Data models shared by the reconciliation engine and the live session controller.
"""

from .artifact import (
    ArtifactKey,
    ArtifactRequest,
    ArtifactResult,
    ArtifactType,
    Failed,
    FailureReason,
    Pending,
    Ready,
    is_terminal,
)
from .session import Session, SessionStatus, TranscriptFragment
from .visit import (
    CarePlanRecord,
    CategoryEntry,
    ConversationEntry,
    SpecialistResult,
    Transcript,
    VisitRecord,
)

__all__ = [
    "ArtifactKey",
    "ArtifactRequest",
    "ArtifactResult",
    "ArtifactType",
    "Failed",
    "FailureReason",
    "Pending",
    "Ready",
    "is_terminal",
    "Session",
    "SessionStatus",
    "TranscriptFragment",
    "CarePlanRecord",
    "CategoryEntry",
    "ConversationEntry",
    "SpecialistResult",
    "Transcript",
    "VisitRecord",
]
