import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class RetryDecision(str, Enum):
    """What an action asks the scheduler to do after one invocation."""

    SUCCESS = "success"
    RETRY = "retry"
    ABORT = "abort"


class RetryOutcome(str, Enum):
    """How a scheduled retry loop settled."""

    COMPLETED = "completed"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class Timer(Protocol):
    """The slice of the asyncio event loop API the scheduler needs."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any: ...

    def time(self) -> float: ...


RetryAction = Callable[[int], Awaitable[RetryDecision]]
SettledCallback = Callable[[RetryOutcome], None]


class RetryHandle:
    """Cancellable handle for one bounded retry loop.

    Every pending timer and in-flight action carries the generation it was
    started under; cancelling bumps the generation so anything older is
    dropped when it fires or returns.
    """

    def __init__(
        self,
        action: RetryAction,
        max_attempts: int,
        interval_seconds: float,
        timer: Timer,
        loop: asyncio.AbstractEventLoop,
        on_settled: Optional[SettledCallback] = None
    ):
        self._action = action
        self._max_attempts = max_attempts
        self._interval = interval_seconds
        self._timer = timer
        self._loop = loop
        self._on_settled = on_settled

        self._generation = 0
        self._attempts = 0
        self._outcome: Optional[RetryOutcome] = None
        self._timer_handle = None
        self._task: Optional[asyncio.Task] = None
        self._done: asyncio.Future = loop.create_future()

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def outcome(self) -> Optional[RetryOutcome]:
        return self._outcome

    @property
    def done(self) -> bool:
        return self._outcome is not None

    @property
    def cancelled(self) -> bool:
        return self._outcome is RetryOutcome.CANCELLED

    def cancel(self) -> None:
        """Stop the loop. Idempotent; no action or settle callback fires afterwards."""
        if self._outcome is not None:
            return
        self._generation += 1
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None
        # The in-flight action, if any, runs to completion and its result is ignored
        self._outcome = RetryOutcome.CANCELLED
        self._done.set_result(RetryOutcome.CANCELLED)

    async def wait(self) -> RetryOutcome:
        """Wait until the loop settles or is cancelled."""
        return await asyncio.shield(self._done)

    def _start(self) -> None:
        self._launch(self._generation)

    def _launch(self, generation: int) -> None:
        """Timer callback: start the next attempt unless the loop moved on."""
        if generation != self._generation or self._outcome is not None:
            return
        self._timer_handle = None
        self._attempts += 1
        self._task = self._loop.create_task(self._run_attempt(generation, self._attempts))

    async def _run_attempt(self, generation: int, attempt: int) -> None:
        try:
            decision = await self._action(attempt)
        except Exception as e:
            logger.error(f"Retry action failed on attempt {attempt}: {e}", exc_info=True)
            decision = RetryDecision.RETRY

        if generation != self._generation or self._outcome is not None:
            logger.debug(f"Discarding stale result of attempt {attempt}")
            return

        if decision is RetryDecision.SUCCESS:
            self._settle(RetryOutcome.COMPLETED)
        elif decision is RetryDecision.ABORT:
            self._settle(RetryOutcome.ABORTED)
        elif attempt >= self._max_attempts:
            self._settle(RetryOutcome.EXHAUSTED)
        else:
            self._timer_handle = self._timer.call_later(self._interval, self._launch, generation)

    def _settle(self, outcome: RetryOutcome) -> None:
        self._outcome = outcome
        self._done.set_result(outcome)
        if self._on_settled is not None:
            self._on_settled(outcome)


class RetryScheduler:
    """Bounded retry with a fixed delay between attempts."""

    def __init__(self, timer: Optional[Timer] = None):
        self._timer = timer

    def schedule(
        self,
        action: RetryAction,
        max_attempts: int,
        interval_seconds: float,
        on_settled: Optional[SettledCallback] = None
    ) -> RetryHandle:
        """
        Invoke ``action`` now and again every ``interval_seconds`` while it asks to retry.

        Args:
            action: Coroutine function called with the 1-based attempt number
            max_attempts: Total invocations allowed, including the first
            interval_seconds: Delay between the end of one attempt and the next
            on_settled: Called once with the outcome unless the handle is cancelled

        Returns:
            Handle used to cancel the loop or await its outcome
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        loop = asyncio.get_running_loop()
        handle = RetryHandle(
            action=action,
            max_attempts=max_attempts,
            interval_seconds=interval_seconds,
            timer=self._timer or loop,
            loop=loop,
            on_settled=on_settled
        )
        handle._start()
        return handle
