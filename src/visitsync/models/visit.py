import json
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


CARE_PLAN_CATEGORY = "carePlan"

CARE_PLAN_FIELDS = {
    "diagnosticTests": "diagnostic_tests",
    "followUpRecommendations": "follow_up_recommendations",
    "patientEducation": "patient_education",
    "specialistReferrals": "specialist_referrals",
    "treatmentOptions": "treatment_options",
}


def _decode_json_text(value: Any) -> Any:
    """Backend JSON columns sometimes arrive double-encoded as strings."""
    if isinstance(value, str):
        if not value.strip():
            return None
        return json.loads(value)
    return value


class ConversationEntry(BaseModel):
    """One utterance in the visit conversation."""

    speaker: str  # "CLINICIAN" or "PATIENT"
    message: str
    timestamp: float


class SoapNote(BaseModel):
    """Structured SOAP note; sections are kept loose because the pipeline owns their shape."""

    model_config = ConfigDict(extra="allow")

    subjective: Optional[Any] = None
    objective: Optional[Any] = None
    assessment: Optional[Any] = None
    plan: Optional[Any] = None


class VisitRecord(BaseModel):
    """Clinical visit record. ``soap_note`` stays empty until the pipeline finishes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    patient_id: Optional[str] = Field(default=None, alias="patientID")
    date: Optional[str] = None
    conversation: List[ConversationEntry] = Field(default_factory=list)
    soap_note: Optional[SoapNote] = Field(default=None, alias="soapNote")

    @field_validator("conversation", mode="before")
    @classmethod
    def drop_incomplete_entries(cls, v: Any) -> List[Dict[str, Any]]:
        v = _decode_json_text(v)
        if not isinstance(v, list):
            return []
        entries = []
        for entry in v:
            if not isinstance(entry, dict):
                continue
            if not entry.get("message") or not entry.get("speaker") or not entry.get("timestamp"):
                continue
            entries.append(entry)
        return entries

    @field_validator("soap_note", mode="before")
    @classmethod
    def decode_soap_note(cls, v: Any) -> Any:
        return _decode_json_text(v)


class TranscriptSegment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    speaker: Optional[str] = None
    text: str
    start_time: Optional[float] = Field(default=None, alias="startTime")
    end_time: Optional[float] = Field(default=None, alias="endTime")


class Transcript(BaseModel):
    """Finished transcript of a recorded session."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    segments: List[TranscriptSegment] = Field(default_factory=list)

    @field_validator("segments", mode="before")
    @classmethod
    def decode_segments(cls, v: Any) -> Any:
        v = _decode_json_text(v)
        return [] if v is None else v


class CategoryEntry(BaseModel):
    """One item of the flat per-category artifact list returned for a visit."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    data_category: str = Field(..., alias="dataCategory")
    expert_result: Optional[str] = Field(default=None, alias="expertResult")
    diagnostic_tests: Optional[Any] = Field(default=None, alias="diagnosticTests")
    follow_up_recommendations: Optional[Any] = Field(default=None, alias="followUpRecommendations")
    patient_education: Optional[Any] = Field(default=None, alias="patientEducation")
    specialist_referrals: Optional[Any] = Field(default=None, alias="specialistReferrals")
    treatment_options: Optional[Any] = Field(default=None, alias="treatmentOptions")


class SpecialistResult(BaseModel):
    category: str
    expert_result: Optional[str] = None


class CarePlanRecord(BaseModel):
    """Suggested care plan. Each section is a list of recommendation strings or absent."""

    diagnostic_tests: Optional[List[str]] = None
    follow_up_recommendations: Optional[List[str]] = None
    patient_education: Optional[List[str]] = None
    specialist_referrals: Optional[List[str]] = None
    treatment_options: Optional[List[str]] = None

    @classmethod
    def from_entry(cls, entry: CategoryEntry) -> "CarePlanRecord":
        """Decode the JSON-encoded sections of a ``carePlan`` category entry.

        Raises:
            ValueError: If a section holds text that is not valid JSON.
        """
        sections = {}
        for field_name in CARE_PLAN_FIELDS.values():
            raw = getattr(entry, field_name)
            if not raw:
                sections[field_name] = None
                continue
            try:
                decoded = _decode_json_text(raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"Care plan section {field_name} is not valid JSON: {e}")
            if decoded is None:
                sections[field_name] = None
            elif isinstance(decoded, list):
                sections[field_name] = [str(item) for item in decoded]
            else:
                sections[field_name] = [str(decoded)]
        return cls(**sections)
