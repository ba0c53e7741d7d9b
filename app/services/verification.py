"""
Broker verification workflow.

Owns the lifecycle of a broker's credential verification request and the
``verification_status`` on the broker profile that gates directory
visibility:

    UNSUBMITTED      --submit-->  UNDER_REVIEW
    UNDER_REVIEW     --decide-->  VERIFIED | REJECTED | NEEDS_MORE_DOCS
    REJECTED         --submit-->  UNDER_REVIEW
    NEEDS_MORE_DOCS  --submit-->  UNDER_REVIEW
    VERIFIED         --submit-->  VERIFIED (new request pending, still listed)

At most one request per broker is UNDER_REVIEW. The check runs before the
insert, so two concurrent submissions can both pass it; ``decide`` refuses
already-decided requests, which keeps each decision idempotent per request.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from app.models.broker import Broker, VerificationStatus
from app.models.verification import VerificationRequest
from app.schemas.verification import VerificationSubmission
from app.services.profiles import apply_profile_fields
from app.services.validation import require_fields

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "name",
    "photo_url",
    "whatsapp_number",
    "license_number",
    "rera_id",
    "experience_years",
    "rera_certificate_url",
    "license_doc_url",
)

# Profile statuses from which a broker may (re)submit.
SUBMITTABLE_FROM = frozenset({
    VerificationStatus.UNSUBMITTED,
    VerificationStatus.REJECTED,
    VerificationStatus.NEEDS_MORE_DOCS,
    VerificationStatus.VERIFIED,
})

DECISIONS = frozenset({
    VerificationStatus.VERIFIED,
    VerificationStatus.REJECTED,
    VerificationStatus.NEEDS_MORE_DOCS,
})


@dataclass
class VerificationStatusView:
    status: VerificationStatus
    notes: Optional[str]
    pending: bool
    history: List[VerificationRequest] = field(default_factory=list)


def _get_broker(db: Session, broker_id: UUID) -> Broker:
    broker = db.get(Broker, broker_id)
    if broker is None:
        raise NotFoundError("Broker not found")
    return broker


def pending_request(db: Session, broker_id: UUID) -> Optional[VerificationRequest]:
    return (
        db.query(VerificationRequest)
        .filter(
            VerificationRequest.broker_id == broker_id,
            VerificationRequest.status == VerificationStatus.UNDER_REVIEW,
        )
        .first()
    )


def _collect_documents(payload: VerificationSubmission) -> dict:
    documents = dict(payload.documents or {})
    documents["rera_certificate_url"] = payload.rera_certificate_url
    documents["license_doc_url"] = payload.license_doc_url
    if payload.emirates_id_url:
        documents["emirates_id_url"] = payload.emirates_id_url
    return documents


def submit_verification(db: Session, broker_id: UUID, payload: VerificationSubmission) -> VerificationRequest:
    broker = _get_broker(db, broker_id)

    require_fields(payload, REQUIRED_FIELDS, what="verification submission")

    if pending_request(db, broker.id) is not None:
        logger.warning("Broker %s submitted while a request is already under review", broker.id)
        raise ConflictError("A verification request is already under review")

    if broker.verification_status not in SUBMITTABLE_FROM:
        logger.warning("Broker %s cannot submit from %s", broker.id, broker.verification_status.value)
        raise InvalidTransitionError(
            f"Cannot submit verification from status {broker.verification_status.value}"
        )

    previous = broker.verification_status
    try:
        apply_profile_fields(broker, payload.model_dump(exclude={"documents"}))

        request = VerificationRequest(
            broker_id=broker.id,
            name=payload.name,
            photo_url=payload.photo_url,
            whatsapp_number=payload.whatsapp_number,
            license_number=payload.license_number,
            rera_id=payload.rera_id,
            experience_years=payload.experience_years,
            emirates_id=payload.emirates_id,
            documents=_collect_documents(payload),
            status=VerificationStatus.UNDER_REVIEW,
            submitted_at=datetime.utcnow(),
        )
        db.add(request)

        # A verified broker keeps directory visibility while the update is reviewed.
        if previous != VerificationStatus.VERIFIED:
            broker.verification_status = VerificationStatus.UNDER_REVIEW

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(request)
    logger.info(
        "Verification request %s submitted for broker %s (%s -> %s)",
        request.id, broker.id, previous.value, broker.verification_status.value,
    )
    return request


def decide(
    db: Session,
    request_id: UUID,
    decision: VerificationStatus,
    notes: Optional[str] = None,
    admin_id: Optional[UUID] = None,
) -> VerificationRequest:
    if decision not in DECISIONS:
        logger.warning("Rejected decision %s on request %s", decision.value, request_id)
        raise InvalidTransitionError(f"{decision.value} is not a valid decision")

    request = db.get(VerificationRequest, request_id)
    if request is None or request.status != VerificationStatus.UNDER_REVIEW:
        logger.warning("Decision on request %s refused: not under review", request_id)
        raise NotFoundError("No pending verification request with this id")

    broker = request.broker
    previous = broker.verification_status
    try:
        request.status = decision
        request.admin_notes = notes
        request.decided_at = datetime.utcnow()
        request.decided_by = admin_id
        broker.verification_status = decision
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(request)
    logger.info(
        "Verification request %s decided: broker %s %s -> %s",
        request.id, broker.id, previous.value, decision.value,
    )
    return request


def get_status(db: Session, broker_id: UUID) -> VerificationStatusView:
    broker = _get_broker(db, broker_id)
    history = (
        db.query(VerificationRequest)
        .filter(VerificationRequest.broker_id == broker.id)
        .order_by(VerificationRequest.submitted_at.desc(), VerificationRequest.created_at.desc())
        .all()
    )
    latest_decided = next((r for r in history if r.decided_at is not None), None)
    return VerificationStatusView(
        status=broker.verification_status,
        notes=latest_decided.admin_notes if latest_decided else None,
        pending=any(r.status == VerificationStatus.UNDER_REVIEW for r in history),
        history=history,
    )


def list_pending(db: Session) -> List[VerificationRequest]:
    return (
        db.query(VerificationRequest)
        .filter(VerificationRequest.status == VerificationStatus.UNDER_REVIEW)
        .order_by(VerificationRequest.submitted_at.asc())
        .all()
    )
