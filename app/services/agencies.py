"""
Agency membership.

A broker ends up in an agency through one of four doors, all of which go
through ``join_agency``:

    join request      broker asks, owner approves
    recruitment offer owner asks, broker accepts
    invite            owner emails a code, broker redeems it
    direct add        owner creates the broker account outright

Either side asking while the other side's ask is pending approves the
pending one instead of creating a second. Removal turns the broker back into
an individual and restores the company name they had before joining.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.agency import (
    Agency, AgencyJoinRequest, AgencyInvite, AgencyReview, RecruitmentOffer,
    JoinRequestStatus, InviteStatus, OfferStatus,
)
from app.models.broker import Broker, BrokerType
from app.models.user import User, UserRole
from app.services.profiles import compute_completeness
from app.utils.auth import get_password_hash

logger = logging.getLogger(__name__)

INVITE_TTL = timedelta(days=7)
OFFER_TTL = timedelta(days=14)


@dataclass
class RecruitOutcome:
    """What happened when an agency reached for a broker: an offer, an approval, or a new account."""

    broker: Broker
    offer: Optional[RecruitmentOffer] = None
    approved_request: Optional[AgencyJoinRequest] = None
    temporary_password: Optional[str] = None

    @property
    def auto_approved(self) -> bool:
        return self.approved_request is not None


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


# ─── Lookups ──────────────────────────────────────────────────────────────────

def get_agency(db: Session, agency_id: UUID) -> Agency:
    agency = db.get(Agency, agency_id)
    if agency is None:
        raise NotFoundError("Agency not found")
    return agency


def owns_agency(db: Session, user_id: UUID) -> bool:
    return db.query(Agency).filter(Agency.owner_id == user_id).first() is not None


def pending_join_request(db: Session, agency_id: UUID, broker_id: UUID) -> Optional[AgencyJoinRequest]:
    return (
        db.query(AgencyJoinRequest)
        .filter(
            AgencyJoinRequest.agency_id == agency_id,
            AgencyJoinRequest.broker_id == broker_id,
            AgencyJoinRequest.status == JoinRequestStatus.PENDING,
        )
        .first()
    )


def pending_offer(db: Session, agency_id: UUID, broker_id: UUID) -> Optional[RecruitmentOffer]:
    return (
        db.query(RecruitmentOffer)
        .filter(
            RecruitmentOffer.agency_id == agency_id,
            RecruitmentOffer.broker_id == broker_id,
            RecruitmentOffer.status == OfferStatus.PENDING,
            RecruitmentOffer.expires_at > datetime.utcnow(),
        )
        .first()
    )


# ─── Membership ───────────────────────────────────────────────────────────────

def join_agency(broker: Broker, agency: Agency) -> None:
    broker.previous_company_name = broker.company_name
    broker.company_name = agency.name
    broker.agency_id = agency.id
    broker.broker_type = BrokerType.AGENCY_BROKER


def _check_joinable(db: Session, broker: Broker) -> None:
    if broker.agency_id:
        raise ValidationError("Broker is already part of an agency")
    if owns_agency(db, broker.user_id):
        raise ValidationError("Agency owners cannot join other agencies")


def remove_broker(db: Session, agency: Agency, broker_id: UUID) -> Broker:
    broker = db.get(Broker, broker_id)
    if broker is None or broker.agency_id != agency.id:
        raise NotFoundError("Broker not found in this agency")
    broker.agency_id = None
    broker.broker_type = BrokerType.INDIVIDUAL
    broker.company_name = broker.previous_company_name or broker.company_name
    broker.previous_company_name = None
    _commit(db)
    db.refresh(broker)
    logger.info("Broker %s removed from agency %s", broker.id, agency.id)
    return broker


def request_to_join(db: Session, agency: Agency, broker: Broker, message: Optional[str]) -> AgencyJoinRequest:
    """A pending offer from the same agency turns the request into an immediate approval."""
    _check_joinable(db, broker)
    if pending_join_request(db, agency.id, broker.id):
        raise ConflictError("You already have a pending request to this agency")

    request = AgencyJoinRequest(agency_id=agency.id, broker_id=broker.id, message=message or None)
    offer = pending_offer(db, agency.id, broker.id)
    if offer is not None:
        now = datetime.utcnow()
        join_agency(broker, agency)
        offer.status = OfferStatus.ACCEPTED
        offer.decided_at = now
        request.status = JoinRequestStatus.APPROVED
        request.decided_at = now
        logger.info("Broker %s accepted offer %s by asking to join", broker.id, offer.id)
    db.add(request)
    _commit(db)
    db.refresh(request)
    return request


def decide_join_request(db: Session, agency: Agency, request_id: UUID, approved: bool) -> AgencyJoinRequest:
    request = db.get(AgencyJoinRequest, request_id)
    if request is None or request.agency_id != agency.id:
        raise NotFoundError("Request not found")
    if request.status != JoinRequestStatus.PENDING:
        logger.warning("Join request %s already %s", request.id, request.status.value)
        raise ValidationError("Request already processed")

    if approved:
        join_agency(request.broker, agency)
        request.status = JoinRequestStatus.APPROVED
    else:
        request.status = JoinRequestStatus.REJECTED
    request.decided_at = datetime.utcnow()
    _commit(db)
    db.refresh(request)
    logger.info("Join request %s for agency %s: %s", request.id, agency.id, request.status.value)
    return request


def broker_join_requests(db: Session, broker: Broker) -> List[AgencyJoinRequest]:
    return (
        db.query(AgencyJoinRequest)
        .filter(AgencyJoinRequest.broker_id == broker.id)
        .order_by(AgencyJoinRequest.created_at.desc())
        .all()
    )


def withdraw_join_request(db: Session, broker: Broker, request_id: UUID) -> None:
    request = db.get(AgencyJoinRequest, request_id)
    if request is None or request.broker_id != broker.id:
        raise NotFoundError("Request not found")
    if request.status != JoinRequestStatus.PENDING:
        raise ValidationError("Request is no longer pending")
    db.delete(request)
    _commit(db)


# ─── Recruitment offers ───────────────────────────────────────────────────────

def recruit(db: Session, agency: Agency, broker: Broker, message: Optional[str] = None) -> RecruitOutcome:
    """Offer ``broker`` a seat, or approve their pending request if they already asked."""
    _check_joinable(db, broker)
    if pending_offer(db, agency.id, broker.id):
        raise ConflictError("A recruitment offer is already pending for this broker")

    request = pending_join_request(db, agency.id, broker.id)
    if request is not None:
        join_agency(broker, agency)
        request.status = JoinRequestStatus.APPROVED
        request.decided_at = datetime.utcnow()
        _commit(db)
        db.refresh(request)
        logger.info("Broker %s joined agency %s through their pending request", broker.id, agency.id)
        return RecruitOutcome(broker=broker, approved_request=request)

    offer = RecruitmentOffer(
        agency_id=agency.id,
        broker_id=broker.id,
        message=message or f"{agency.name} would like you to join their team",
        expires_at=datetime.utcnow() + OFFER_TTL,
    )
    db.add(offer)
    _commit(db)
    db.refresh(offer)
    logger.info("Agency %s sent offer %s to broker %s", agency.id, offer.id, broker.id)
    return RecruitOutcome(broker=broker, offer=offer)


def expire_stale_offers(db: Session, offers: List[RecruitmentOffer]) -> List[RecruitmentOffer]:
    now = datetime.utcnow()
    stale = [o for o in offers if o.status == OfferStatus.PENDING and o.expires_at < now]
    if stale:
        for offer in stale:
            offer.status = OfferStatus.EXPIRED
        _commit(db)
    return offers


def agency_offers(db: Session, agency: Agency, pending_only: bool = False) -> List[RecruitmentOffer]:
    query = db.query(RecruitmentOffer).filter(RecruitmentOffer.agency_id == agency.id)
    offers = expire_stale_offers(db, query.order_by(RecruitmentOffer.created_at.desc()).all())
    if pending_only:
        return [o for o in offers if o.status == OfferStatus.PENDING]
    return offers


def broker_offers(db: Session, broker: Broker) -> List[RecruitmentOffer]:
    offers = (
        db.query(RecruitmentOffer)
        .filter(RecruitmentOffer.broker_id == broker.id)
        .order_by(RecruitmentOffer.created_at.desc())
        .all()
    )
    return expire_stale_offers(db, offers)


def get_offer(db: Session, offer_id: UUID) -> RecruitmentOffer:
    offer = db.get(RecruitmentOffer, offer_id)
    if offer is None:
        raise NotFoundError("Offer not found")
    return offer


def withdraw_offer(db: Session, agency: Agency, offer_id: UUID) -> None:
    offer = db.get(RecruitmentOffer, offer_id)
    if offer is None or offer.agency_id != agency.id:
        raise NotFoundError("Offer not found")
    if offer.status != OfferStatus.PENDING:
        raise ValidationError("Offer is no longer pending")
    db.delete(offer)
    _commit(db)


def respond_to_offer(db: Session, broker: Broker, offer: RecruitmentOffer, accept: bool) -> RecruitmentOffer:
    """Accepting also rejects the broker's other pending requests and declines other offers."""
    if offer.status != OfferStatus.PENDING:
        raise ValidationError("Offer is no longer valid")
    if datetime.utcnow() > offer.expires_at:
        offer.status = OfferStatus.EXPIRED
        _commit(db)
        raise ValidationError("Offer has expired")
    if broker.agency_id:
        raise ValidationError("You are already part of an agency")

    now = datetime.utcnow()
    if accept:
        join_agency(broker, offer.agency)
        offer.status = OfferStatus.ACCEPTED
        db.query(AgencyJoinRequest).filter(
            AgencyJoinRequest.broker_id == broker.id,
            AgencyJoinRequest.status == JoinRequestStatus.PENDING,
        ).update(
            {AgencyJoinRequest.status: JoinRequestStatus.REJECTED, AgencyJoinRequest.decided_at: now},
            synchronize_session=False,
        )
        db.query(RecruitmentOffer).filter(
            RecruitmentOffer.broker_id == broker.id,
            RecruitmentOffer.status == OfferStatus.PENDING,
            RecruitmentOffer.id != offer.id,
        ).update(
            {RecruitmentOffer.status: OfferStatus.DECLINED, RecruitmentOffer.decided_at: now},
            synchronize_session=False,
        )
    else:
        offer.status = OfferStatus.DECLINED
    offer.decided_at = now
    _commit(db)
    db.refresh(offer)
    logger.info("Broker %s %s offer %s", broker.id, offer.status.value.lower(), offer.id)
    return offer


# ─── Invites ──────────────────────────────────────────────────────────────────

def create_invite(db: Session, agency: Agency, email: str) -> AgencyInvite:
    email = email.lower()
    existing = (
        db.query(AgencyInvite)
        .filter(
            AgencyInvite.agency_id == agency.id,
            AgencyInvite.email == email,
            AgencyInvite.status == InviteStatus.PENDING,
        )
        .first()
    )
    if existing:
        raise ConflictError("Invite already sent to this email")

    invite = AgencyInvite(agency_id=agency.id, email=email, expires_at=datetime.utcnow() + INVITE_TTL)
    db.add(invite)
    _commit(db)
    db.refresh(invite)
    return invite


def get_invite(db: Session, code: str) -> AgencyInvite:
    invite = db.query(AgencyInvite).filter(AgencyInvite.code == code).first()
    if invite is None:
        raise NotFoundError("Invite not found")
    return invite


def accept_invite(db: Session, broker: Broker, invite: AgencyInvite) -> AgencyInvite:
    if invite.status != InviteStatus.PENDING:
        raise ValidationError("Invite is no longer valid")
    if datetime.utcnow() > invite.expires_at:
        invite.status = InviteStatus.EXPIRED
        _commit(db)
        raise ValidationError("Invite has expired")
    _check_joinable(db, broker)

    join_agency(broker, invite.agency)
    invite.status = InviteStatus.ACCEPTED
    _commit(db)
    db.refresh(invite)
    logger.info("Broker %s joined agency %s by invite", broker.id, invite.agency_id)
    return invite


# ─── Direct add ───────────────────────────────────────────────────────────────

def add_broker(db: Session, agency: Agency, data: dict) -> RecruitOutcome:
    """
    Put a broker on the agency's roster by email.

    An unknown email gets a fresh BROKER account with a temporary password
    that must be changed on first login. An existing individual broker gets a
    recruitment offer instead (or an approval, if they already asked).
    """
    email = data["email"]
    existing = db.query(User).filter(User.email == email).first()
    if existing is not None:
        if existing.role != UserRole.BROKER:
            raise ValidationError(
                "Cannot add: this email is registered as a client account, not a broker",
                fields=["email"],
            )
        if existing.broker is None:
            raise ValidationError("User exists but has no broker profile", fields=["email"])
        return recruit(db, agency, existing.broker, data.get("message"))

    temporary_password = secrets.token_urlsafe(9)
    try:
        user = User(
            email=email,
            phone=data.get("phone"),
            password_hash=get_password_hash(temporary_password),
            role=UserRole.BROKER,
            must_change_password=True,
        )
        db.add(user)
        db.flush()
        broker = Broker(
            user_id=user.id,
            name=data["name"],
            bio=data.get("bio"),
            experience_years=data.get("experience_years"),
            whatsapp_number=data.get("phone"),
            languages=list(data.get("languages") or []),
            specialties=[],
            areas_of_operation=[],
            company_name=agency.name,
            broker_type=BrokerType.AGENCY_BROKER,
            agency_id=agency.id,
        )
        broker.profile_completeness_score = compute_completeness(broker)
        db.add(broker)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(broker)
    logger.info("Agency %s created broker account %s", agency.id, broker.id)
    return RecruitOutcome(broker=broker, temporary_password=temporary_password)


# ─── Reviews ──────────────────────────────────────────────────────────────────

def submit_review(db: Session, agency: Agency, user_id: UUID, rating: int, text: str) -> AgencyReview:
    if agency.owner_id == user_id:
        raise ValidationError("You cannot review your own agency")
    review = AgencyReview(agency_id=agency.id, user_id=user_id, rating=rating, text=text)
    db.add(review)
    _commit(db)
    db.refresh(review)
    return review


def agency_reviews(db: Session, agency: Agency) -> List[AgencyReview]:
    return (
        db.query(AgencyReview)
        .filter(AgencyReview.agency_id == agency.id)
        .order_by(AgencyReview.created_at.desc())
        .all()
    )


def rating_summary(agency: Agency) -> tuple:
    if not agency.reviews:
        return 0.0, 0
    return round(sum(r.rating for r in agency.reviews) / len(agency.reviews), 1), len(agency.reviews)
