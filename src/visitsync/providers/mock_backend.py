import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from .base import VisitBackend, MissingKeyError, NotFoundError

logger = logging.getLogger(__name__)


class MockVisitBackend(VisitBackend):
    """Mock backend that simulates the asynchronous visit pipeline.

    Every artifact reports "not processed yet" for the first ``ready_after``
    polls and complete data afterwards. Categories listed in
    ``silent_categories`` never receive a recommendation.
    """

    def __init__(
        self,
        categories: Sequence[str] = (),
        ready_after: int = 3,
        latency: float = 0.05,
        silent_categories: Sequence[str] = (),
        **kwargs
    ):
        self.categories = list(categories)
        self.ready_after = ready_after
        self.latency = latency
        self.silent_categories = set(silent_categories)
        self.calls: Dict[str, int] = {}
        logger.info("⚠️  Using MOCK visit backend (simulated pipeline)")
        logger.info(f"   Artifacts become ready after {ready_after} polls")

    def _poll(self, endpoint: str, key: Optional[str]) -> int:
        if not key:
            raise MissingKeyError("No session ID available")
        self.calls[endpoint] = self.calls.get(endpoint, 0) + 1
        return self.calls[endpoint]

    async def fetch_visit_record(self, visit_id: str) -> Dict[str, Any]:
        count = self._poll("visit", visit_id)
        await asyncio.sleep(self.latency)

        record: Dict[str, Any] = {
            "patientID": "mock-patient",
            "date": "2025-01-01",
            "conversation": [
                {"speaker": "CLINICIAN", "message": "How have your sugars been?", "timestamp": 1},
                {"speaker": "PATIENT", "message": "Mostly high in the mornings.", "timestamp": 2},
            ],
            "soapNote": None,
        }
        if count > self.ready_after:
            record["soapNote"] = {
                "subjective": {
                    "chiefComplaint": "Elevated fasting glucose",
                    "historyOfPresentIllness": "Morning readings above target for two weeks",
                },
                "objective": "Vitals within normal limits",
                "assessment": {
                    "primaryDiagnosis": {"condition": "Type 2 diabetes mellitus", "icd10": "E11.9"},
                    "secondaryDiagnosis": {"condition": "", "icd10": ""},
                },
                "plan": {"treatment": "Adjust basal insulin", "followUp": "Two weeks"},
            }
        logger.info(f"📝 Mock visit record #{count} for {visit_id}: soapNote={'ready' if record['soapNote'] else 'pending'}")
        return record

    async def fetch_transcript(self, session_id: str) -> Dict[str, Any]:
        count = self._poll("transcript", session_id)
        await asyncio.sleep(self.latency)

        if count <= self.ready_after:
            raise NotFoundError(f"Transcript {session_id} not found")
        return {
            "sessionId": session_id,
            "segments": [
                {"speaker": "CLINICIAN", "text": "How have your sugars been?", "startTime": 0.0, "endTime": 1.8},
                {"speaker": "PATIENT", "text": "Mostly high in the mornings.", "startTime": 2.0, "endTime": 3.9},
            ],
        }

    async def fetch_visit_artifacts_by_category(self, visit_id: str) -> List[Dict[str, Any]]:
        count = self._poll("artifacts", visit_id)
        await asyncio.sleep(self.latency)

        if count <= self.ready_after:
            return []

        entries: List[Dict[str, Any]] = [
            {
                "dataCategory": "carePlan",
                "diagnosticTests": json.dumps(["HbA1c in 3 months"]),
                "followUpRecommendations": json.dumps(["Follow up in two weeks"]),
                "patientEducation": json.dumps(["Hypoglycemia awareness"]),
                "specialistReferrals": json.dumps([]),
                "treatmentOptions": json.dumps(["Basal insulin titration"]),
            }
        ]
        for category in self.categories:
            if category in self.silent_categories:
                continue
            entries.append({
                "dataCategory": category,
                "expertResult": f"(mock) recommendations from {category}",
            })
        return entries
