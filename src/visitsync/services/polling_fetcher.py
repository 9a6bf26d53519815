import logging
from typing import Any, Awaitable, Callable, Optional
from ..config.settings import PollingConfig
from ..models.artifact import (
    ArtifactKey,
    ArtifactRequest,
    ArtifactResult,
    Failed,
    FailureReason,
    Pending,
    Ready,
)
from ..providers.base import ArtifactFetchError, MissingKeyError
from .readiness import Complete, ReadinessPredicate
from .retry_scheduler import RetryDecision, RetryHandle, RetryOutcome, RetryScheduler

logger = logging.getLogger(__name__)

FetchOperation = Callable[[str], Awaitable[Any]]
UpdateSink = Callable[[ArtifactKey, ArtifactResult], None]


class PollingFetcher:
    """Polls one artifact until it is ready, attempts run out, or the key is missing.

    Results are published through ``on_update`` as ``Pending``, ``Ready`` or
    ``Failed``. Responses that arrive after ``cancel()`` or ``retry()`` belong
    to an old loop and are dropped.
    """

    def __init__(
        self,
        key: ArtifactKey,
        session_id: Optional[str],
        fetch: FetchOperation,
        readiness: ReadinessPredicate,
        policy: PollingConfig,
        scheduler: RetryScheduler,
        on_update: Optional[UpdateSink] = None
    ):
        self.request = ArtifactRequest(
            key=key,
            session_id=session_id,
            max_attempts=policy.max_attempts,
            interval_seconds=policy.interval_seconds
        )
        self._fetch = fetch
        self._readiness = readiness
        self._scheduler = scheduler
        self._on_update = on_update

        self._result: ArtifactResult = Pending(attempt=0, max_attempts=policy.max_attempts)
        self._handle: Optional[RetryHandle] = None
        self._token: Optional[object] = None
        self._started = False
        self._ready_payload: Any = None
        self._last_error: Optional[str] = None

    @property
    def key(self) -> ArtifactKey:
        return self.request.key

    @property
    def result(self) -> ArtifactResult:
        return self._result

    @property
    def is_running(self) -> bool:
        return self._handle is not None and not self._handle.done

    def start(self) -> None:
        """Begin polling. Calling it again is a no-op; use ``retry()`` to restart."""
        if self._started:
            logger.debug(f"Fetcher for {self.key} already started")
            return
        self._begin()

    def retry(self) -> None:
        """Drop the current loop and any terminal state, then poll again from attempt 1."""
        logger.info(f"Manual retry for {self.key}")
        self.cancel()
        self._begin()

    def cancel(self) -> None:
        """Stop polling. The last published result is kept."""
        self._token = None
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _begin(self) -> None:
        self._started = True
        self.request.attempt = 0
        self._ready_payload = None
        self._last_error = None

        if not self.request.session_id:
            logger.warning(f"No session ID available for {self.key}")
            self._publish(Failed(
                reason=FailureReason.MISSING_KEY,
                attempts=0,
                last_error="No session ID available"
            ))
            return

        token = object()
        self._token = token
        self._publish(Pending(attempt=0, max_attempts=self.request.max_attempts))
        self._handle = self._scheduler.schedule(
            lambda attempt: self._attempt(attempt, token),
            max_attempts=self.request.max_attempts,
            interval_seconds=self.request.interval_seconds,
            on_settled=lambda outcome: self._settled(outcome, token)
        )

    async def _attempt(self, attempt: int, token: object) -> RetryDecision:
        self.request.attempt = attempt
        logger.debug(f"Polling {self.key} (attempt {attempt}/{self.request.max_attempts})")

        try:
            payload = await self._fetch(self.request.session_id)
        except MissingKeyError as e:
            if token is self._token:
                self._last_error = str(e)
            return RetryDecision.ABORT
        except ArtifactFetchError as e:
            if token is not self._token:
                return RetryDecision.ABORT
            logger.warning(f"Fetch for {self.key} failed on attempt {attempt}: {e}")
            self._last_error = str(e)
        except Exception as e:
            if token is not self._token:
                return RetryDecision.ABORT
            logger.error(f"Unexpected error fetching {self.key}: {e}", exc_info=True)
            self._last_error = str(e)
        else:
            if token is not self._token:
                return RetryDecision.ABORT
            readiness = self._readiness(payload)
            if isinstance(readiness, Complete):
                self._ready_payload = readiness.payload
                return RetryDecision.SUCCESS
            self._last_error = readiness.reason

        if token is not self._token:
            return RetryDecision.ABORT
        if attempt < self.request.max_attempts:
            self._publish(Pending(
                attempt=attempt,
                max_attempts=self.request.max_attempts,
                last_error=self._last_error
            ))
        return RetryDecision.RETRY

    def _settled(self, outcome: RetryOutcome, token: object) -> None:
        if token is not self._token:
            return
        attempts = self.request.attempt
        self._handle = None

        if outcome is RetryOutcome.COMPLETED:
            logger.info(f"✅ {self.key} ready after {attempts} attempt(s)")
            self.request.attempt = 0
            self._publish(Ready(payload=self._ready_payload, attempts=attempts))
        elif outcome is RetryOutcome.ABORTED:
            logger.warning(f"{self.key} aborted: {self._last_error}")
            self._publish(Failed(
                reason=FailureReason.MISSING_KEY,
                attempts=attempts,
                last_error=self._last_error
            ))
        elif outcome is RetryOutcome.EXHAUSTED:
            logger.warning(f"❌ {self.key} still not ready after {attempts} attempts")
            self._publish(Failed(
                reason=FailureReason.EXHAUSTED,
                attempts=attempts,
                last_error=self._last_error
            ))

    def _publish(self, result: ArtifactResult) -> None:
        self._result = result
        if self._on_update is not None:
            self._on_update(self.key, result)
