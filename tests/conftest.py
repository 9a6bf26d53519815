import asyncio
import heapq
from typing import Any, Callable, Dict, List, Optional

import pytest

from visitsync.providers.base import MissingKeyError, NotFoundError, VisitBackend
from visitsync.services.retry_scheduler import RetryScheduler


class ManualTimerHandle:
    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimer:
    """Deterministic stand-in for the event loop's call_later/time."""

    def __init__(self):
        self.now = 0.0
        self._queue: List[tuple] = []
        self._seq = 0

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable, *args: Any) -> ManualTimerHandle:
        handle = ManualTimerHandle(self.now + delay, callback, args)
        heapq.heappush(self._queue, (handle.when, self._seq, handle))
        self._seq += 1
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    async def settle(self):
        """Let every ready task and callback run."""
        for _ in range(50):
            await asyncio.sleep(0)

    async def advance(self, seconds: float):
        """Move the clock forward, firing due timers in order and settling after each tick."""
        target = self.now + seconds
        await self.settle()
        while self._queue and self._queue[0][0] <= target:
            when = self._queue[0][0]
            self.now = when
            while self._queue and self._queue[0][0] == when:
                _, _, handle = heapq.heappop(self._queue)
                if not handle.cancelled:
                    handle.callback(*handle.args)
            await self.settle()
        self.now = target


_NOT_FOUND = object()


class FakeBackend(VisitBackend):
    """Scripted backend. Each endpoint walks its response list; the last entry repeats.

    A response may be a payload, an exception instance (raised), an
    ``asyncio.Future`` (awaited) or a zero-argument callable producing one of those.
    """

    def __init__(self, timer: Optional[ManualTimer] = None):
        self.timer = timer
        self.responses: Dict[str, List[Any]] = {
            "visit": [{"patientID": "p-1", "soapNote": None}],
            "transcript": [NotFoundError("transcript not found")],
            "artifacts": [[]],
        }
        self.calls: Dict[str, List[float]] = {"visit": [], "transcript": [], "artifacts": []}
        self.closed = False

    def script(self, endpoint: str, *responses: Any):
        self.responses[endpoint] = list(responses)

    async def _respond(self, endpoint: str, key: Optional[str]) -> Any:
        if not key:
            raise MissingKeyError("No session ID available")
        self.calls[endpoint].append(self.timer.time() if self.timer else 0.0)
        script = self.responses[endpoint]
        response = script[min(len(self.calls[endpoint]), len(script)) - 1]
        if callable(response) and not isinstance(response, type):
            response = response()
        if isinstance(response, asyncio.Future):
            response = await response
        if isinstance(response, Exception):
            raise response
        return response

    async def fetch_visit_record(self, visit_id):
        return await self._respond("visit", visit_id)

    async def fetch_transcript(self, session_id):
        return await self._respond("transcript", session_id)

    async def fetch_visit_artifacts_by_category(self, visit_id):
        return await self._respond("artifacts", visit_id)

    async def aclose(self):
        self.closed = True


def soap_visit(**overrides) -> Dict[str, Any]:
    record = {
        "patientID": "p-1",
        "date": "2025-01-01",
        "conversation": [
            {"speaker": "CLINICIAN", "message": "How are you feeling?", "timestamp": 1},
            {"speaker": "PATIENT", "message": "Tired.", "timestamp": 2},
        ],
        "soapNote": {"subjective": "fatigue", "assessment": "anemia?", "plan": "CBC"},
    }
    record.update(overrides)
    return record


def care_plan_entry(**overrides) -> Dict[str, Any]:
    entry = {
        "dataCategory": "carePlan",
        "diagnosticTests": '["CBC", "Ferritin"]',
        "followUpRecommendations": '["Two weeks"]',
        "patientEducation": '"Iron rich diet"',
        "specialistReferrals": "[]",
        "treatmentOptions": None,
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def scheduler(timer):
    return RetryScheduler(timer)


@pytest.fixture
def backend(timer):
    return FakeBackend(timer)
