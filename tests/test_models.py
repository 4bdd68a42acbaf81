from __future__ import annotations

from datetime import UTC, datetime

from conftest import decision_record, plate_record
from pydantic import TypeAdapter

from reviewdesk.models.actions import DecisionPayload
from reviewdesk.models.filter import ReviewStatus, ValidationStatus
from reviewdesk.models.items import EnforcementDecision, PlateReview, QueueItem, ReviewItem
from reviewdesk.models.stats import CorrectionSuggestion


def test_plate_review_from_api_payload() -> None:
    review = PlateReview.model_validate(plate_record("r1", "AB12CDE", correctedVrm=None, reviewNotes=""))

    assert review.id == "r1"
    assert review.vrm == "AB12CDE"
    assert review.validation_status is ValidationStatus.UK_SUSPICIOUS
    assert review.review_status is ReviewStatus.PENDING
    assert review.timestamp == datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    assert review.images[0].url == "/images/r1-plate.jpg"
    assert review.corrected_vrm is None
    assert review.review_notes is None
    assert review.raw["movementId"] == "mov-r1"
    assert isinstance(review, ReviewItem)


def test_unknown_status_values_map_to_unknown() -> None:
    review = PlateReview.model_validate(plate_record("r1", validationStatus="NEW_RULE", reviewStatus="pending"))
    assert review.validation_status is ValidationStatus.UNKNOWN
    assert review.review_status is ReviewStatus.PENDING


def test_plate_correlation_keys_use_metadata() -> None:
    review = PlateReview.model_validate(
        plate_record("r1", "AB12CDE", metadata={"sessionId": "sess-9", "decisionId": "dec-4"})
    )
    keys = review.correlation_keys()
    assert keys.vrm == "AB12CDE"
    assert keys.site_id == "S1"
    assert keys.session_id == "sess-9"
    assert keys.decision_id == "dec-4"
    assert keys.entry_time == review.timestamp


def test_enforcement_decision_correlation_keys() -> None:
    decision = EnforcementDecision.model_validate(decision_record("d1"))
    keys = decision.correlation_keys()

    assert decision.timestamp == datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    assert keys.decision_id == "d1"
    assert keys.session_id == "sess-d1"
    assert keys.entry_time == datetime(2026, 3, 2, 8, 0, tzinfo=UTC)
    assert keys.exit_time == datetime(2026, 3, 2, 11, 30, tzinfo=UTC)


def test_enforcement_entry_falls_back_to_timestamp() -> None:
    decision = EnforcementDecision.model_validate(decision_record("d1", entryTime=None, exitTime=None))
    assert decision.correlation_keys().entry_time == decision.timestamp


def test_queue_item_union_discriminates_on_kind() -> None:
    adapter = TypeAdapter(QueueItem)
    plate = adapter.validate_python({"kind": "plate", **plate_record("r1")})
    decision = adapter.validate_python({"kind": "decision", **decision_record("d1")})
    assert isinstance(plate, PlateReview)
    assert isinstance(decision, EnforcementDecision)


def test_decision_payload_normalizes_values() -> None:
    payload = DecisionPayload(notes="  ", corrected_vrm=" ab12 cdf ", reason="")
    assert payload.notes is None
    assert payload.reason is None
    assert payload.corrected_vrm == "AB12CDF"


def test_correction_suggestion_from_api() -> None:
    suggestion = CorrectionSuggestion.model_validate(
        {"originalVrm": "AB12CDE", "suggestedVrm": "AB12CDF", "reason": "E/F confusion", "confidence": 0.8}
    )
    assert suggestion.suggested_vrm == "AB12CDF"
    assert suggestion.confidence == 0.8
