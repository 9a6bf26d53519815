"""
Visit data aggregation.

Runs one PollingFetcher per artifact the visit page waits for and merges
their results into a single read-only snapshot.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..config.settings import (
    ArtifactPollingConfig,
    Config,
    DEFAULT_SPECIALISTS,
    SpecialistCategory,
)
from ..models.artifact import (
    ArtifactKey,
    ArtifactResult,
    Failed,
    Ready,
    is_terminal,
)
from ..providers.base import ArtifactFetchError, VisitBackend
from ..security.audit_logger import AuditLogger
from .polling_fetcher import PollingFetcher
from .readiness import (
    DEFAULT_CARE_PLAN_KEYS,
    care_plan_readiness,
    partition_by_category,
    specialist_readiness,
    transcript_readiness,
    visit_note_readiness,
)
from .retry_scheduler import RetryScheduler

logger = logging.getLogger(__name__)

Snapshot = Mapping[ArtifactKey, ArtifactResult]
SnapshotListener = Callable[[Snapshot], None]

STATUS_GENERATED = "Recommendations generated"
STATUS_NONE = "No recommendations"
STATUS_LOADING = "Loading..."

NO_RECOMMENDATIONS_MESSAGE = "No recommendations available for this specialist"
DETAIL_ERROR_MESSAGE = "Error loading recommendations"


class CategoryListSource:
    """Single-flight access to the per-category artifact list.

    The care plan and every specialist read the same backend list. Concurrent
    callers share the in-flight request instead of issuing their own.
    """

    def __init__(self, backend: VisitBackend):
        self.backend = backend
        self._inflight: Optional[asyncio.Future] = None

    async def fetch(self, visit_id: str) -> List[Dict[str, Any]]:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(
                self.backend.fetch_visit_artifacts_by_category(visit_id)
            )
        return await asyncio.shield(self._inflight)

    def reset(self) -> None:
        """Forget the in-flight request so the next caller starts a fresh one."""
        self._inflight = None


class VisitDataAggregator:
    """Merged, read-only view of every artifact polled for one visit."""

    def __init__(
        self,
        backend: VisitBackend,
        session_id: Optional[str],
        polling: Optional[ArtifactPollingConfig] = None,
        specialists: Optional[Sequence[SpecialistCategory]] = None,
        care_plan_keys: Sequence[str] = DEFAULT_CARE_PLAN_KEYS,
        scheduler: Optional[RetryScheduler] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.backend = backend
        self.session_id = session_id
        self.polling = polling or ArtifactPollingConfig()
        self.specialists = list(DEFAULT_SPECIALISTS if specialists is None else specialists)
        self.audit_logger = audit_logger
        self.scheduler = scheduler or RetryScheduler()

        self._category_source = CategoryListSource(backend)
        self._listeners: List[SnapshotListener] = []
        self._settled_event = asyncio.Event()
        self._closed = False

        self._fetchers: Dict[ArtifactKey, PollingFetcher] = {}
        self._add_fetcher(
            ArtifactKey.visit_note(), backend.fetch_visit_record, visit_note_readiness, self.polling.visit_note
        )
        self._add_fetcher(
            ArtifactKey.transcript(), backend.fetch_transcript, transcript_readiness, self.polling.transcript
        )
        self._add_fetcher(
            ArtifactKey.care_plan(),
            self._category_source.fetch,
            care_plan_readiness(care_plan_keys),
            self.polling.care_plan
        )
        for specialist in self.specialists:
            self._add_fetcher(
                ArtifactKey.specialist(specialist.data_category),
                self._category_source.fetch,
                specialist_readiness(specialist.data_category),
                self.polling.specialist
            )

        self._snapshot: Snapshot = MappingProxyType(
            {key: fetcher.result for key, fetcher in self._fetchers.items()}
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        backend: VisitBackend,
        session_id: Optional[str],
        **kwargs
    ) -> "VisitDataAggregator":
        return cls(
            backend=backend,
            session_id=session_id,
            polling=config.polling,
            specialists=config.specialists,
            care_plan_keys=config.care_plan.completeness_keys,
            **kwargs
        )

    def _add_fetcher(self, key: ArtifactKey, fetch, readiness, policy) -> None:
        self._fetchers[key] = PollingFetcher(
            key=key,
            session_id=self.session_id,
            fetch=fetch,
            readiness=readiness,
            policy=policy,
            scheduler=self.scheduler,
            on_update=self._on_update
        )

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def keys(self) -> List[ArtifactKey]:
        return list(self._fetchers)

    @property
    def is_settled(self) -> bool:
        return all(is_terminal(result) for result in self._snapshot.values())

    def result(self, key: ArtifactKey) -> ArtifactResult:
        return self._snapshot[key]

    def start(self) -> None:
        """Start polling every artifact."""
        logger.info(f"Polling {len(self._fetchers)} artifact(s) for visit {self.session_id}")
        for fetcher in self._fetchers.values():
            fetcher.start()

    def refresh(self) -> None:
        """Cancel every loop and poll everything again from attempt 1."""
        if self._closed:
            return
        logger.info(f"🔄 Refreshing all artifacts for visit {self.session_id}")
        if self.audit_logger:
            self.audit_logger.log_refresh(self.session_id, "all")

        for fetcher in self._fetchers.values():
            fetcher.cancel()
        self._category_source.reset()
        for fetcher in self._fetchers.values():
            fetcher.retry()

    def retry(self, key: ArtifactKey) -> None:
        """Poll one artifact again from attempt 1, leaving the others alone."""
        if self._closed:
            return
        fetcher = self._fetchers.get(key)
        if fetcher is None:
            raise KeyError(f"Unknown artifact: {key}")
        if self.audit_logger:
            self.audit_logger.log_refresh(self.session_id, str(key))
        fetcher.retry()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a snapshot listener.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_settled(self) -> Snapshot:
        """Wait until every artifact is Ready or Failed, or the aggregator is closed."""
        await self._settled_event.wait()
        return self._snapshot

    def specialist_statuses(self) -> Dict[str, str]:
        """Card status per specialist category."""
        statuses: Dict[str, str] = {}
        for specialist in self.specialists:
            result = self._snapshot.get(ArtifactKey.specialist(specialist.data_category))
            if isinstance(result, Ready):
                statuses[specialist.data_category] = STATUS_GENERATED
            elif isinstance(result, Failed):
                statuses[specialist.data_category] = STATUS_NONE
            else:
                statuses[specialist.data_category] = STATUS_LOADING
        return statuses

    async def specialist_detail(self, category: str) -> str:
        """
        Look up one category's recommendation with a single fresh request.

        Args:
            category: Specialist ``dataCategory``

        Returns:
            The recommendation text, or a message saying there is none or it failed to load
        """
        try:
            payload = await self.backend.fetch_visit_artifacts_by_category(self.session_id)
        except ArtifactFetchError as e:
            logger.error(f"Error fetching {category} recommendations: {e}")
            return DETAIL_ERROR_MESSAGE
        except Exception as e:
            logger.error(f"Unexpected error fetching {category} recommendations: {e}", exc_info=True)
            return DETAIL_ERROR_MESSAGE

        entry = partition_by_category(payload).get(category)
        if entry is None or not (entry.expert_result or "").strip():
            return NO_RECOMMENDATIONS_MESSAGE
        return entry.expert_result

    def close(self) -> None:
        """Cancel every loop, drop all listeners and release settle waiters."""
        if self._closed:
            return
        self._closed = True
        for fetcher in self._fetchers.values():
            fetcher.cancel()
        self._listeners.clear()
        # Release waiters; they get the last snapshot, which may still hold Pending results
        self._settled_event.set()
        logger.debug(f"Aggregator for visit {self.session_id} closed")

    def _on_update(self, key: ArtifactKey, result: ArtifactResult) -> None:
        if self._closed:
            return
        updated = dict(self._snapshot)
        updated[key] = result
        self._snapshot = MappingProxyType(updated)

        if is_terminal(result) and self.audit_logger:
            self.audit_logger.log_artifact_settled(self.session_id, key, result)

        if self.is_settled:
            self._settled_event.set()
        else:
            self._settled_event.clear()

        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener failed: {e}", exc_info=True)

    def summary(self) -> Dict[str, int]:
        """Count of artifacts per status."""
        counts = {"pending": 0, "ready": 0, "failed": 0}
        for result in self._snapshot.values():
            counts[result.status] += 1
        return counts

