import json

import pytest

from conftest import care_plan_entry, soap_visit
from visitsync.models.visit import CarePlanRecord, SpecialistResult, Transcript, VisitRecord
from visitsync.services.readiness import (
    Complete,
    Incomplete,
    care_plan_readiness,
    partition_by_category,
    specialist_readiness,
    transcript_readiness,
    visit_note_readiness,
)


class TestVisitNoteReadiness:
    def test_complete_when_soap_note_present(self):
        result = visit_note_readiness(soap_visit())

        assert isinstance(result, Complete)
        assert isinstance(result.payload, VisitRecord)
        assert result.payload.patient_id == "p-1"
        assert len(result.payload.conversation) == 2

    def test_incomplete_without_soap_note(self):
        assert isinstance(visit_note_readiness(soap_visit(soapNote=None)), Incomplete)
        assert isinstance(visit_note_readiness(soap_visit(soapNote="")), Incomplete)

    def test_json_encoded_soap_note_is_decoded(self):
        result = visit_note_readiness(soap_visit(soapNote=json.dumps({"plan": "rest"})))

        assert isinstance(result, Complete)
        assert result.payload.soap_note.plan == "rest"

    def test_conversation_entries_missing_fields_are_dropped(self):
        conversation = [
            {"speaker": "CLINICIAN", "message": "Hello", "timestamp": 1},
            {"speaker": "PATIENT", "message": "", "timestamp": 2},
            {"speaker": "PATIENT", "timestamp": 3},
            "noise",
        ]
        result = visit_note_readiness(soap_visit(conversation=conversation))

        assert isinstance(result, Complete)
        assert [entry.message for entry in result.payload.conversation] == ["Hello"]

    @pytest.mark.parametrize("payload", [None, [], "not a record", {"soapNote": "{broken"}])
    def test_malformed_payload_is_incomplete(self, payload):
        assert isinstance(visit_note_readiness(payload), Incomplete)


class TestTranscriptReadiness:
    def test_complete_when_resource_parses(self):
        payload = {"sessionId": "s-1", "segments": [{"speaker": "PATIENT", "text": "hi", "startTime": 0.5}]}
        result = transcript_readiness(payload)

        assert isinstance(result, Complete)
        assert isinstance(result.payload, Transcript)
        assert result.payload.segments[0].start_time == 0.5

    def test_empty_transcript_is_still_ready(self):
        assert isinstance(transcript_readiness({"sessionId": "s-1"}), Complete)

    @pytest.mark.parametrize("payload", [None, ["x"], {"segments": [{"speaker": "PATIENT"}]}])
    def test_missing_or_malformed_transcript_is_incomplete(self, payload):
        assert isinstance(transcript_readiness(payload), Incomplete)


class TestPartitionByCategory:
    def test_first_occurrence_wins(self):
        entries = partition_by_category([
            {"dataCategory": "kidneyExpert", "expertResult": "first"},
            {"dataCategory": "kidneyExpert", "expertResult": "second"},
        ])

        assert entries["kidneyExpert"].expert_result == "first"

    def test_unparseable_items_are_skipped(self):
        entries = partition_by_category([
            {"expertResult": "no category"},
            42,
            {"dataCategory": "adaExpert", "expertResult": "ok"},
        ])

        assert list(entries) == ["adaExpert"]

    def test_non_list_payload_is_empty(self):
        assert partition_by_category({"items": []}) == {}


class TestCarePlanReadiness:
    def test_complete_when_completeness_key_present(self):
        result = care_plan_readiness()([care_plan_entry()])

        assert isinstance(result, Complete)
        plan = result.payload
        assert isinstance(plan, CarePlanRecord)
        assert plan.diagnostic_tests == ["CBC", "Ferritin"]
        assert plan.patient_education == ["Iron rich diet"]
        assert plan.specialist_referrals == []
        assert plan.treatment_options is None

    def test_incomplete_without_care_plan_entry(self):
        payload = [{"dataCategory": "adaExpert", "expertResult": "ok"}]
        assert isinstance(care_plan_readiness()(payload), Incomplete)

    def test_incomplete_when_completeness_key_missing(self):
        result = care_plan_readiness()([care_plan_entry(diagnosticTests=None)])
        assert isinstance(result, Incomplete)

    def test_custom_completeness_keys(self):
        predicate = care_plan_readiness(("diagnosticTests", "treatmentOptions"))

        assert isinstance(predicate([care_plan_entry()]), Incomplete)
        assert isinstance(predicate([care_plan_entry(treatmentOptions='["Iron"]')]), Complete)

    def test_malformed_json_section_is_incomplete(self):
        result = care_plan_readiness()([care_plan_entry(diagnosticTests="[CBC")])
        assert isinstance(result, Incomplete)

    def test_already_decoded_lists_are_accepted(self):
        result = care_plan_readiness()([care_plan_entry(diagnosticTests=["CBC"])])

        assert isinstance(result, Complete)
        assert result.payload.diagnostic_tests == ["CBC"]


class TestSpecialistReadiness:
    def test_complete_when_expert_result_present(self):
        payload = [care_plan_entry(), {"dataCategory": "insurnaceExpert", "expertResult": "Check coverage"}]
        result = specialist_readiness("insurnaceExpert")(payload)

        assert isinstance(result, Complete)
        assert result.payload == SpecialistResult(category="insurnaceExpert", expert_result="Check coverage")

    @pytest.mark.parametrize("expert_result", [None, "", "   "])
    def test_blank_expert_result_is_incomplete(self, expert_result):
        payload = [{"dataCategory": "kidneyExpert", "expertResult": expert_result}]
        assert isinstance(specialist_readiness("kidneyExpert")(payload), Incomplete)

    def test_absent_category_is_incomplete(self):
        assert isinstance(specialist_readiness("kidneyExpert")([care_plan_entry()]), Incomplete)

    def test_malformed_payload_is_incomplete(self):
        assert isinstance(specialist_readiness("kidneyExpert")("oops"), Incomplete)
