from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import Broker, ClaimStatus, ReviewStatus, VerificationStatus
from app.services import directory, profiles


def test_only_verified_brokers_are_listed(db, make_broker):
    verified = make_broker()
    for status in (VerificationStatus.UNSUBMITTED, VerificationStatus.UNDER_REVIEW,
                   VerificationStatus.REJECTED, VerificationStatus.NEEDS_MORE_DOCS):
        make_broker(status=status)

    assert directory.list_directory(db) == [verified]


def test_filters(db, make_broker):
    arabic = make_broker(name="Omar Saleh", languages=["Arabic"], specialties=["Villas"],
                         areas_of_operation=["Palm Jumeirah"])
    english = make_broker(name="Sara Lee", company_name="Marina Homes", languages=["English"],
                          areas_of_operation=["Dubai Marina"])

    assert directory.list_directory(db, language="Arabic") == [arabic]
    assert directory.list_directory(db, specialty="Villas") == [arabic]
    assert directory.list_directory(db, location="marina") == [english]
    assert directory.list_directory(db, q="marina homes") == [english]
    assert directory.list_directory(db, q="omar") == [arabic]


def test_score_sort_is_stable_by_signup(db, make_broker):
    older = make_broker(created_at=datetime(2026, 1, 1))
    newer = make_broker(created_at=datetime(2026, 2, 1))
    richer = make_broker(created_at=datetime(2026, 3, 1), photo_url="https://cdn.example.com/p.jpg",
                         bio="Ten years in Dubai Marina")

    assert directory.list_directory(db) == [richer, older, newer]


def test_completeness_score():
    broker = Broker(name="Layla", languages=[], specialties=[], areas_of_operation=[])
    assert profiles.compute_completeness(broker) == 10

    broker.photo_url = "https://cdn.example.com/layla.jpg"
    broker.whatsapp_number = "+971501234567"
    broker.bio = "Marina specialist"
    broker.license_number = "LIC-1"
    broker.rera_id = "BRN-1"
    broker.experience_years = 0
    broker.languages = ["English"]
    broker.specialties = ["Apartments"]
    broker.areas_of_operation = ["Dubai Marina"]
    assert profiles.compute_completeness(broker) == 100


def test_claim_requires_verified_broker(db, make_broker, make_user):
    user = make_user()
    broker = make_broker(status=VerificationStatus.UNDER_REVIEW)

    with pytest.raises(ValidationError):
        directory.submit_claim(db, user.id, broker, {"contract": "https://docs.example.com/c.pdf"})


def test_review_flow_and_rating(db, make_broker, make_user):
    user = make_user()
    broker = make_broker()
    claim = directory.submit_claim(db, user.id, broker, {"contract": "https://docs.example.com/c.pdf"})

    with pytest.raises(ValidationError):
        directory.submit_review(db, user.id, broker, claim.id, 5, "Closed our Marina deal fast")

    directory.decide_claim(db, claim.id, ClaimStatus.APPROVED, "contract checks out")
    review = directory.submit_review(db, user.id, broker, claim.id, 4, "Closed our Marina deal fast")
    assert review.verified_flag is True

    with pytest.raises(ConflictError):
        directory.submit_review(db, user.id, broker, claim.id, 5, "Trying to review twice here")

    db.refresh(broker)
    assert directory.rating_summary(broker) == (4.0, 1)

    directory.moderate_review(db, review.id, ReviewStatus.HIDDEN)
    db.refresh(broker)
    assert directory.rating_summary(broker) == (0.0, 0)


def test_review_with_someone_elses_claim(db, make_broker, make_user):
    owner, other = make_user(), make_user()
    broker = make_broker()
    claim = directory.submit_claim(db, owner.id, broker, {})
    directory.decide_claim(db, claim.id, ClaimStatus.APPROVED)

    with pytest.raises(ValidationError):
        directory.submit_review(db, other.id, broker, claim.id, 5, "I was not even there")
    with pytest.raises(NotFoundError):
        directory.submit_review(db, owner.id, make_broker(), claim.id, 5, "Wrong broker entirely")


def test_moderation_failure_rolls_back(db, make_broker, make_user, monkeypatch):
    user = make_user()
    broker = make_broker()
    claim = directory.submit_claim(db, user.id, broker, {})
    directory.decide_claim(db, claim.id, ClaimStatus.APPROVED)
    review = directory.submit_review(db, user.id, broker, claim.id, 5, "Smooth handover in JBR")

    def failing_commit():
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(SQLAlchemyError):
        directory.moderate_review(db, review.id, ReviewStatus.REMOVED)
    monkeypatch.undo()

    db.refresh(review)
    assert review.status == ReviewStatus.ACTIVE
