"""
Readiness predicates.

Each predicate takes a raw payload returned by the visit backend and decides
whether the pipeline has finished producing the artifact. Predicates never
raise: malformed payloads are reported as incomplete so the fetcher polls
again.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Union
from pydantic import ValidationError
from ..models.visit import (
    CARE_PLAN_CATEGORY,
    CarePlanRecord,
    CategoryEntry,
    SpecialistResult,
    Transcript,
    VisitRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_CARE_PLAN_KEYS = ("diagnosticTests",)


@dataclass(frozen=True)
class Complete:
    """The artifact is ready; ``payload`` is its parsed form."""
    payload: Any


@dataclass(frozen=True)
class Incomplete:
    """The artifact has not been produced yet, or arrived malformed."""
    reason: str = "not processed yet"


Readiness = Union[Complete, Incomplete]
ReadinessPredicate = Callable[[Any], Readiness]


def visit_note_readiness(payload: Any) -> Readiness:
    """A visit record is ready once its SOAP note is present."""
    try:
        record = VisitRecord.model_validate(payload)
    except (ValidationError, ValueError, TypeError) as e:
        return Incomplete(f"malformed visit record: {e}")

    if record.soap_note is None:
        return Incomplete("Visit data not fully processed yet")
    return Complete(record)


def transcript_readiness(payload: Any) -> Readiness:
    """A transcript is ready as soon as the resource exists and parses."""
    if payload is None:
        return Incomplete("Transcript not available yet")
    try:
        return Complete(Transcript.model_validate(payload))
    except (ValidationError, ValueError, TypeError) as e:
        return Incomplete(f"malformed transcript: {e}")


def partition_by_category(payload: Any) -> Dict[str, CategoryEntry]:
    """Index the flat artifact list by ``dataCategory``.

    Items that do not parse are skipped. When a category appears more than
    once the first occurrence wins.
    """
    entries: Dict[str, CategoryEntry] = {}
    if not isinstance(payload, list):
        return entries

    for item in payload:
        try:
            entry = CategoryEntry.model_validate(item)
        except (ValidationError, ValueError, TypeError):
            logger.debug(f"Skipping unparseable artifact entry: {item!r}")
            continue
        entries.setdefault(entry.data_category, entry)
    return entries


def care_plan_readiness(completeness_keys: Iterable[str] = DEFAULT_CARE_PLAN_KEYS) -> ReadinessPredicate:
    """
    Build the care plan predicate.

    Args:
        completeness_keys: ``carePlan`` entry fields that must all be non-empty

    Returns:
        Predicate over the flat artifact list
    """
    keys = tuple(completeness_keys)

    def predicate(payload: Any) -> Readiness:
        entry = partition_by_category(payload).get(CARE_PLAN_CATEGORY)
        if entry is None:
            return Incomplete("Care plan data not fully processed yet")

        fields = entry.model_dump(by_alias=True)
        missing = [key for key in keys if not fields.get(key)]
        if missing:
            return Incomplete(f"Care plan missing {', '.join(missing)}")

        try:
            return Complete(CarePlanRecord.from_entry(entry))
        except (ValidationError, ValueError, TypeError) as e:
            return Incomplete(f"malformed care plan: {e}")

    return predicate


def specialist_readiness(category: str) -> ReadinessPredicate:
    """Build the predicate for one specialist category: ready once ``expertResult`` is non-empty."""

    def predicate(payload: Any) -> Readiness:
        entry = partition_by_category(payload).get(category)
        if entry is None or not (entry.expert_result or "").strip():
            return Incomplete(f"No recommendations from {category} yet")
        return Complete(SpecialistResult(category=category, expert_result=entry.expert_result))

    return predicate
