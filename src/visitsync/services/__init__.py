from .backend_service import BackendService
from .polling_fetcher import PollingFetcher
from .readiness import (
    Complete,
    Incomplete,
    care_plan_readiness,
    partition_by_category,
    specialist_readiness,
    transcript_readiness,
    visit_note_readiness,
)
from .recording_session import RecordingSessionController
from .retry_scheduler import RetryDecision, RetryHandle, RetryOutcome, RetryScheduler
from .visit_aggregator import VisitDataAggregator

__all__ = [
    "BackendService",
    "PollingFetcher",
    "Complete",
    "Incomplete",
    "care_plan_readiness",
    "partition_by_category",
    "specialist_readiness",
    "transcript_readiness",
    "visit_note_readiness",
    "RecordingSessionController",
    "RetryDecision",
    "RetryHandle",
    "RetryOutcome",
    "RetryScheduler",
    "VisitDataAggregator",
]
