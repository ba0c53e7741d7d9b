import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    ConflictError, InvalidTransitionError, NotFoundError, ValidationError,
)
from app.models import VerificationRequest, VerificationStatus
from app.schemas.verification import VerificationSubmission
from app.services import directory, verification


def full_payload(**overrides) -> VerificationSubmission:
    values = {
        "name": "Layla Haddad",
        "photo_url": "https://cdn.example.com/layla.jpg",
        "whatsapp_number": "+971501234567",
        "license_number": "LIC-7788",
        "rera_id": "BRN-12345",
        "experience_years": 6,
        "rera_certificate_url": "https://docs.example.com/rera.pdf",
        "license_doc_url": "https://docs.example.com/license.pdf",
        "languages": ["English", "Arabic"],
    }
    values.update(overrides)
    return VerificationSubmission(**values)


def request_count(db, broker):
    return db.query(VerificationRequest).filter(VerificationRequest.broker_id == broker.id).count()


def under_review_count(db, broker):
    return (
        db.query(VerificationRequest)
        .filter(
            VerificationRequest.broker_id == broker.id,
            VerificationRequest.status == VerificationStatus.UNDER_REVIEW,
        )
        .count()
    )


def test_submit_moves_broker_under_review(db, make_broker):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)

    request = verification.submit_verification(db, broker.id, full_payload())

    db.refresh(broker)
    assert request.status == VerificationStatus.UNDER_REVIEW
    assert request.submitted_at is not None
    assert request.documents["rera_certificate_url"] == "https://docs.example.com/rera.pdf"
    assert broker.verification_status == VerificationStatus.UNDER_REVIEW
    assert broker.license_number == "LIC-7788"
    assert broker.photo_url == "https://cdn.example.com/layla.jpg"


@pytest.mark.parametrize("missing", [
    "name", "photo_url", "whatsapp_number", "license_number",
    "rera_id", "experience_years", "rera_certificate_url", "license_doc_url",
])
def test_submit_with_missing_field_persists_nothing(db, make_broker, missing):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)

    with pytest.raises(ValidationError) as exc:
        verification.submit_verification(db, broker.id, full_payload(**{missing: None}))

    assert missing in exc.value.fields
    db.refresh(broker)
    assert request_count(db, broker) == 0
    assert broker.verification_status == VerificationStatus.UNSUBMITTED


def test_blank_strings_count_as_missing(db, make_broker):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)

    with pytest.raises(ValidationError) as exc:
        verification.submit_verification(db, broker.id, full_payload(rera_id="   ", photo_url=""))

    assert set(exc.value.fields) == {"rera_id", "photo_url"}


def test_second_submission_while_pending_conflicts(db, make_broker):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    verification.submit_verification(db, broker.id, full_payload())

    with pytest.raises(ConflictError):
        verification.submit_verification(db, broker.id, full_payload(rera_id="BRN-99999"))

    assert request_count(db, broker) == 1
    assert under_review_count(db, broker) == 1


def test_unknown_broker_is_not_found(db):
    with pytest.raises(NotFoundError):
        verification.submit_verification(db, uuid.uuid4(), full_payload())


def test_verified_decision_lists_broker_in_directory(db, make_broker):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    request = verification.submit_verification(db, broker.id, full_payload())
    assert broker not in directory.list_directory(db)

    decided = verification.decide(db, request.id, VerificationStatus.VERIFIED)

    db.refresh(broker)
    assert decided.status == VerificationStatus.VERIFIED
    assert decided.decided_at is not None
    assert broker.verification_status == VerificationStatus.VERIFIED
    assert broker in directory.list_directory(db)


@pytest.mark.parametrize("decision", [VerificationStatus.REJECTED, VerificationStatus.NEEDS_MORE_DOCS])
def test_negative_decision_keeps_broker_hidden_and_allows_resubmission(db, make_broker, decision):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    first = verification.submit_verification(db, broker.id, full_payload())
    verification.decide(db, first.id, decision, notes="RERA certificate is expired")
    first.submitted_at -= timedelta(hours=1)
    db.commit()

    db.refresh(broker)
    assert broker.verification_status == decision
    assert broker not in directory.list_directory(db)

    second = verification.submit_verification(db, broker.id, full_payload())

    db.refresh(broker)
    assert second.id != first.id
    assert broker.verification_status == VerificationStatus.UNDER_REVIEW
    assert request_count(db, broker) == 2

    status_view = verification.get_status(db, broker.id)
    assert status_view.pending is True
    assert status_view.notes == "RERA certificate is expired"
    assert [r.id for r in status_view.history] == [second.id, first.id]


def test_decide_on_decided_request_leaves_state_unchanged(db, make_broker):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    request = verification.submit_verification(db, broker.id, full_payload())
    verification.decide(db, request.id, VerificationStatus.REJECTED, notes="blurry scan")

    with pytest.raises(NotFoundError):
        verification.decide(db, request.id, VerificationStatus.VERIFIED)

    db.refresh(broker)
    db.refresh(request)
    assert broker.verification_status == VerificationStatus.REJECTED
    assert request.status == VerificationStatus.REJECTED
    assert request.admin_notes == "blurry scan"


def test_decide_unknown_request_is_not_found(db):
    with pytest.raises(NotFoundError):
        verification.decide(db, uuid.uuid4(), VerificationStatus.VERIFIED)


@pytest.mark.parametrize("decision", [VerificationStatus.UNDER_REVIEW, VerificationStatus.UNSUBMITTED])
def test_non_decision_status_is_invalid_transition(db, make_broker, decision):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)
    request = verification.submit_verification(db, broker.id, full_payload())

    with pytest.raises(InvalidTransitionError):
        verification.decide(db, request.id, decision)

    db.refresh(request)
    assert request.status == VerificationStatus.UNDER_REVIEW


def test_verified_broker_stays_listed_while_resubmission_is_pending(db, make_broker):
    broker = make_broker(status=VerificationStatus.VERIFIED)

    request = verification.submit_verification(db, broker.id, full_payload(rera_id="BRN-55555"))

    db.refresh(broker)
    assert broker.verification_status == VerificationStatus.VERIFIED
    assert broker in directory.list_directory(db)
    assert verification.get_status(db, broker.id).pending is True

    verification.decide(db, request.id, VerificationStatus.REJECTED)
    db.refresh(broker)
    assert broker.verification_status == VerificationStatus.REJECTED
    assert broker not in directory.list_directory(db)


def test_pending_queue_is_oldest_first(db, make_broker):
    first = make_broker(status=VerificationStatus.UNSUBMITTED)
    second = make_broker(status=VerificationStatus.UNSUBMITTED)
    r2 = verification.submit_verification(db, second.id, full_payload())
    r1 = verification.submit_verification(db, first.id, full_payload())
    r1.submitted_at = datetime(2026, 3, 1, 9, 0)
    r2.submitted_at = datetime(2026, 3, 1, 10, 0)
    db.commit()

    assert [r.id for r in verification.list_pending(db)] == [r1.id, r2.id]


def test_store_failure_rolls_back_and_propagates(db, make_broker, monkeypatch):
    broker = make_broker(status=VerificationStatus.UNSUBMITTED)

    def failing_commit():
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(SQLAlchemyError):
        verification.submit_verification(db, broker.id, full_payload())
    monkeypatch.undo()

    db.refresh(broker)
    assert broker.verification_status == VerificationStatus.UNSUBMITTED
    assert request_count(db, broker) == 0
