import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from app.core.database import get_db
from app.core.exceptions import ConflictError, NotFoundError
from app.models.user import User, UserRole
from app.models.broker import Broker
from app.models.agency import Agency, AgencyInvite, AgencyJoinRequest, InviteStatus, JoinRequestStatus
from app.schemas.agency import (
    AgencyCreate, AgencyUpdate, AgencyResponse, AgencyDetailResponse, AgencyDashboardResponse,
    AgencyBrokerResponse, AgencyBrokerCreate, AgencyBrokerAdded,
    JoinRequestCreate, JoinRequestDecision, JoinRequestResponse,
    InviteCreate, InviteCreated, InviteResponse,
    OfferCreate, OfferRespond, OfferResponse, RecruitResponse,
    AgencyReviewCreate, AgencyReviewResponse,
)
from app.services import agencies
from app.services.directory import get_broker
from app.utils.parsing import slugify
from app.api.deps import get_current_broker, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agencies", tags=["Agencies"])

broker_user = require_role(UserRole.BROKER)


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _owned_agency(db: Session, agency_id: UUID, user: User, detail: str) -> Agency:
    agency = agencies.get_agency(db, agency_id)
    if agency.owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return agency


def agency_response(agency: Agency) -> AgencyResponse:
    rating, review_count = agencies.rating_summary(agency)
    return AgencyResponse.model_validate(agency).model_copy(
        update={"broker_count": len(agency.brokers), "rating": rating, "review_count": review_count}
    )


def agency_detail(agency: Agency) -> AgencyDetailResponse:
    return AgencyDetailResponse(
        **agency_response(agency).model_dump(),
        brokers=[AgencyBrokerResponse.model_validate(b) for b in agency.brokers],
    )


def _empty_to_none(data: dict) -> dict:
    return {k: (v or None) if isinstance(v, str) else v for k, v in data.items()}


# ─── PUBLIC ───────────────────────────────────────────────────────────────────

@router.get("/", response_model=List[AgencyResponse])
async def list_agencies(db: Session = Depends(get_db)):
    agency_list = db.query(Agency).order_by(Agency.created_at.desc()).all()
    return [agency_response(a) for a in agency_list]


@router.get("/slug/{slug}", response_model=AgencyDetailResponse)
async def get_agency_by_slug(slug: str, db: Session = Depends(get_db)):
    agency = db.query(Agency).filter(Agency.slug == slug).first()
    if agency is None:
        raise NotFoundError("Agency not found")
    return agency_detail(agency)


# ─── OWNER: dashboard ─────────────────────────────────────────────────────────

@router.get("/my/agency", response_model=Optional[AgencyDashboardResponse])
async def my_agency(
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    """The caller's own agency with everything pending, or null if they own none."""
    agency = db.query(Agency).filter(Agency.owner_id == current_user.id).first()
    if agency is None:
        return None
    return AgencyDashboardResponse(
        **agency_detail(agency).model_dump(),
        pending_invites=[
            InviteResponse.model_validate(i) for i in agency.invites if i.status == InviteStatus.PENDING
        ],
        pending_join_requests=[
            JoinRequestResponse.model_validate(r)
            for r in agency.join_requests if r.status == JoinRequestStatus.PENDING
        ],
        pending_offers=[
            OfferResponse.model_validate(o) for o in agencies.agency_offers(db, agency, pending_only=True)
        ],
    )


# ─── BROKER: invites & offers addressed to me ─────────────────────────────────

@router.post("/invites/{code}/accept", response_model=InviteResponse)
async def accept_invite(
    code: str,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    invite = agencies.get_invite(db, code)
    if invite.email.lower() != broker.user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This invite was sent to a different email",
        )
    return agencies.accept_invite(db, broker, invite)


@router.post("/offers/{offer_id}/respond", response_model=OfferResponse)
async def respond_to_offer(
    offer_id: UUID,
    data: OfferRespond,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    offer = agencies.get_offer(db, offer_id)
    if offer.broker_id != broker.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This offer is not for you")
    return agencies.respond_to_offer(db, broker, offer, data.accept)


# ─── PUBLIC: single agency ────────────────────────────────────────────────────

@router.get("/{agency_id}", response_model=AgencyDetailResponse)
async def get_agency(agency_id: UUID, db: Session = Depends(get_db)):
    return agency_detail(agencies.get_agency(db, agency_id))


@router.get("/{agency_id}/brokers", response_model=List[AgencyBrokerResponse])
async def list_agency_brokers(agency_id: UUID, db: Session = Depends(get_db)):
    return agencies.get_agency(db, agency_id).brokers


@router.get("/{agency_id}/reviews", response_model=List[AgencyReviewResponse])
async def list_agency_reviews(agency_id: UUID, db: Session = Depends(get_db)):
    agency = agencies.get_agency(db, agency_id)
    return [
        AgencyReviewResponse(
            id=r.id,
            rating=r.rating,
            text=r.text,
            author=r.user.email.split("@")[0],
            created_at=r.created_at,
        )
        for r in agencies.agency_reviews(db, agency)
    ]


@router.post("/{agency_id}/reviews", response_model=AgencyReviewResponse, status_code=status.HTTP_201_CREATED)
async def review_agency(
    agency_id: UUID,
    data: AgencyReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.USER, UserRole.BROKER)),
):
    agency = agencies.get_agency(db, agency_id)
    review = agencies.submit_review(db, agency, current_user.id, data.rating, data.text)
    return AgencyReviewResponse(
        id=review.id,
        rating=review.rating,
        text=review.text,
        author=current_user.email.split("@")[0],
        created_at=review.created_at,
    )


# ─── OWNER ────────────────────────────────────────────────────────────────────

@router.post("/", response_model=AgencyResponse, status_code=status.HTTP_201_CREATED)
async def create_agency(
    data: AgencyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    if agencies.owns_agency(db, current_user.id):
        raise ConflictError("You already own an agency")

    agency = Agency(
        owner_id=current_user.id,
        slug=f"{slugify(data.name)}-{uuid.uuid4().hex[:4]}",
        **_empty_to_none(data.model_dump()),
    )
    db.add(agency)
    db.commit()
    db.refresh(agency)
    logger.info("Agency %s created by user %s", agency.id, current_user.id)
    return agency_response(agency)


@router.put("/{agency_id}", response_model=AgencyResponse)
async def update_agency(
    agency_id: UUID,
    data: AgencyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Not authorized to update this agency")

    for key, value in _empty_to_none(data.model_dump(exclude_unset=True)).items():
        if key == "name" and not value:
            continue
        setattr(agency, key, value)
    db.commit()
    db.refresh(agency)
    return agency_response(agency)


@router.post("/{agency_id}/brokers", response_model=AgencyBrokerAdded, status_code=status.HTTP_201_CREATED)
async def add_agency_broker(
    agency_id: UUID,
    data: AgencyBrokerCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    """
    Add a broker by email. Unknown emails get a new account with a temporary
    password; existing individual brokers get a recruitment offer instead.
    """
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can add brokers")
    outcome = agencies.add_broker(db, agency, data.model_dump())
    if outcome.auto_approved:
        response.status_code = status.HTTP_200_OK
    return AgencyBrokerAdded(
        broker=AgencyBrokerResponse.model_validate(outcome.broker),
        converted=outcome.temporary_password is None,
        auto_approved=outcome.auto_approved,
        offer_id=outcome.offer.id if outcome.offer else None,
        temporary_password=outcome.temporary_password,
        must_change_password=outcome.temporary_password is not None,
    )


@router.delete("/{agency_id}/brokers/{broker_id}", response_model=dict)
async def remove_agency_broker(
    agency_id: UUID,
    broker_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can remove brokers")
    agencies.remove_broker(db, agency, broker_id)
    return {"success": True, "message": "Broker removed and converted to individual"}


# ─── INVITES ──────────────────────────────────────────────────────────────────

@router.post("/{agency_id}/invite", response_model=InviteCreated, status_code=status.HTTP_201_CREATED)
async def invite_broker(
    agency_id: UUID,
    data: InviteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can invite brokers")
    invite = agencies.create_invite(db, agency, data.email)
    return InviteCreated(
        invite=InviteResponse.model_validate(invite),
        invite_url=f"/agencies/invites/{invite.code}/accept",
    )


@router.get("/{agency_id}/invites", response_model=List[InviteResponse])
async def list_invites(
    agency_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can view invites")
    return (
        db.query(AgencyInvite)
        .filter(AgencyInvite.agency_id == agency.id)
        .order_by(AgencyInvite.created_at.desc())
        .all()
    )


# ─── JOIN REQUESTS ────────────────────────────────────────────────────────────

@router.post("/{agency_id}/join-request", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_to_join(
    agency_id: UUID,
    data: JoinRequestCreate,
    response: Response,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    """Ask to join. If the agency already sent this broker an offer, they join straight away."""
    agency = agencies.get_agency(db, agency_id)
    request = agencies.request_to_join(db, agency, broker, data.message)
    if request.status == JoinRequestStatus.APPROVED:
        response.status_code = status.HTTP_200_OK
    return request


@router.get("/{agency_id}/join-requests", response_model=List[JoinRequestResponse])
async def list_join_requests(
    agency_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can view requests")
    return (
        db.query(AgencyJoinRequest)
        .filter(
            AgencyJoinRequest.agency_id == agency.id,
            AgencyJoinRequest.status == JoinRequestStatus.PENDING,
        )
        .order_by(AgencyJoinRequest.created_at.desc())
        .all()
    )


@router.post("/{agency_id}/join-requests/{request_id}/decide", response_model=JoinRequestResponse)
async def decide_join_request(
    agency_id: UUID,
    request_id: UUID,
    data: JoinRequestDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can decide requests")
    return agencies.decide_join_request(db, agency, request_id, data.approved)


# ─── RECRUITMENT OFFERS ───────────────────────────────────────────────────────

@router.post("/{agency_id}/recruit/{broker_id}", response_model=RecruitResponse, status_code=status.HTTP_201_CREATED)
async def recruit_broker(
    agency_id: UUID,
    broker_id: UUID,
    data: OfferCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can send recruitment offers")
    outcome = agencies.recruit(db, agency, get_broker(db, broker_id), data.message)
    if outcome.auto_approved:
        response.status_code = status.HTTP_200_OK
    return RecruitResponse(
        auto_approved=outcome.auto_approved,
        broker=AgencyBrokerResponse.model_validate(outcome.broker),
        offer=OfferResponse.model_validate(outcome.offer) if outcome.offer else None,
    )


@router.delete("/{agency_id}/recruit/{offer_id}", response_model=dict)
async def withdraw_offer(
    agency_id: UUID,
    offer_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can withdraw offers")
    agencies.withdraw_offer(db, agency, offer_id)
    return {"success": True, "message": "Offer withdrawn"}


@router.get("/{agency_id}/recruitment-offers", response_model=List[OfferResponse])
async def list_recruitment_offers(
    agency_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(broker_user),
):
    """Every offer the agency has sent; stale pending ones are marked EXPIRED on the way out."""
    agency = _owned_agency(db, agency_id, current_user, "Only agency owner can view recruitment offers")
    return agencies.agency_offers(db, agency)
