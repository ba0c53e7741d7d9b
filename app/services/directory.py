"""Public broker directory, ratings and the claim/review flow."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.broker import Broker, VerificationStatus
from app.models.review import Review, ReviewStatus, TransactionClaim, ClaimStatus

logger = logging.getLogger(__name__)


def active_reviews(broker: Broker) -> List[Review]:
    return [r for r in broker.reviews if r.status == ReviewStatus.ACTIVE]


def rating_summary(broker: Broker) -> tuple:
    """(average rating rounded to one decimal, active review count)."""
    reviews = active_reviews(broker)
    if not reviews:
        return 0.0, 0
    return round(sum(r.rating for r in reviews) / len(reviews), 1), len(reviews)


def list_directory(
    db: Session,
    q: Optional[str] = None,
    location: Optional[str] = None,
    language: Optional[str] = None,
    specialty: Optional[str] = None,
    sort: Optional[str] = "score",
) -> List[Broker]:
    """Verified brokers only. Array filters run in Python over the JSON columns."""
    query = db.query(Broker).filter(Broker.verification_status == VerificationStatus.VERIFIED)
    if q and q.strip():
        term = f"%{q.strip()}%"
        query = query.filter(or_(Broker.name.ilike(term), Broker.company_name.ilike(term)))
    brokers = query.order_by(Broker.created_at.asc(), Broker.id.asc()).all()

    if language:
        brokers = [b for b in brokers if language in (b.languages or [])]
    if specialty:
        brokers = [b for b in brokers if specialty in (b.specialties or [])]
    if location:
        needle = location.lower()
        brokers = [
            b for b in brokers
            if any(needle in area.lower() for area in (b.areas_of_operation or []))
        ]

    if sort == "rating":
        key = lambda b: rating_summary(b)[0]
    elif sort == "reviews":
        key = lambda b: rating_summary(b)[1]
    else:
        key = lambda b: b.profile_completeness_score or 0
    # sorted() is stable, so equal keys keep the created_at order
    return sorted(brokers, key=key, reverse=True)


def get_broker(db: Session, broker_id: UUID) -> Broker:
    broker = db.get(Broker, broker_id)
    if broker is None:
        raise NotFoundError("Broker not found")
    return broker


# ─── Transaction claims & reviews ─────────────────────────────────────────────

def submit_claim(db: Session, user_id: UUID, broker: Broker, proof_links: dict) -> TransactionClaim:
    if not broker.is_verified:
        raise ValidationError("Cannot claim a transaction with an unverified broker")
    claim = TransactionClaim(user_id=user_id, broker_id=broker.id, proof_links=dict(proof_links or {}))
    try:
        db.add(claim)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(claim)
    logger.info("Claim %s submitted against broker %s", claim.id, broker.id)
    return claim


def decide_claim(db: Session, claim_id: UUID, status: ClaimStatus, notes: Optional[str] = None) -> TransactionClaim:
    claim = db.get(TransactionClaim, claim_id)
    if claim is None:
        raise NotFoundError("Claim not found")
    try:
        claim.status = status
        claim.admin_notes = notes
        claim.decided_at = datetime.utcnow()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(claim)
    return claim


def submit_review(db: Session, user_id: UUID, broker: Broker, claim_id: UUID, rating: int, text: str) -> Review:
    claim = db.get(TransactionClaim, claim_id)
    if claim is None or claim.broker_id != broker.id:
        raise NotFoundError("Claim not found")
    if claim.user_id != user_id:
        raise ValidationError("Claim does not belong to you", fields=["claim_id"])
    if claim.status != ClaimStatus.APPROVED:
        raise ValidationError("Claim not yet approved", fields=["claim_id"])
    if db.query(Review).filter(Review.transaction_id == claim.id).first():
        raise ConflictError("Review already submitted for this claim")

    review = Review(
        broker_id=broker.id,
        user_id=user_id,
        transaction_id=claim.id,
        rating=rating,
        text=text,
        verified_flag=True,
        status=ReviewStatus.ACTIVE,
    )
    try:
        db.add(review)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(review)
    return review


def moderate_review(db: Session, review_id: UUID, status: ReviewStatus) -> Review:
    review = db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    try:
        review.status = status
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(review)
    logger.info("Review %s set to %s", review.id, status.value)
    return review
