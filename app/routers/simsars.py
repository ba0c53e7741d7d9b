from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.broker import Broker
from app.schemas.broker import (
    AgencyBrief, BrokerSummary, BrokerProfileResponse, BrokerProfileUpdate,
    ReviewResponse, ClaimCreate, ClaimResponse, ReviewCreate,
)
from app.schemas.verification import (
    VerificationSubmission, VerificationRequestResponse, VerificationStatusResponse,
)
from app.schemas.agency import JoinRequestResponse, OfferResponse
from app.services import agencies, directory, profiles, verification
from app.api.deps import get_current_active_user, get_current_broker, require_role

router = APIRouter(prefix="/simsars", tags=["Simsars"])


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _author(review) -> str:
    return review.user.email.split("@")[0] if review.user else "anonymous"


def broker_summary(broker: Broker) -> BrokerSummary:
    rating, review_count = directory.rating_summary(broker)
    return BrokerSummary(
        id=broker.id,
        name=broker.name,
        photo_url=broker.photo_url,
        company_name=broker.company_name,
        bio=broker.bio,
        rera_id=broker.rera_id,
        experience_years=broker.experience_years,
        languages=broker.languages or [],
        specialties=broker.specialties or [],
        areas_of_operation=broker.areas_of_operation or [],
        whatsapp_number=broker.whatsapp_number,
        verification_status=broker.verification_status,
        tier_hint=broker.tier_hint,
        broker_type=broker.broker_type,
        agency=AgencyBrief.model_validate(broker.agency) if broker.agency else None,
        score=broker.profile_completeness_score or 0,
        rating=rating,
        review_count=review_count,
    )


def broker_profile(broker: Broker) -> BrokerProfileResponse:
    reviews = sorted(directory.active_reviews(broker), key=lambda r: r.created_at, reverse=True)
    return BrokerProfileResponse(
        **broker_summary(broker).model_dump(),
        license_number=broker.license_number,
        reviews=[
            ReviewResponse(
                id=r.id,
                rating=r.rating,
                text=r.text,
                verified=bool(r.verified_flag),
                created_at=r.created_at,
                author=_author(r),
            )
            for r in reviews
        ],
    )


def _require_owner(broker: Broker, current_user: User):
    if broker.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


# ─── PUBLIC: directory ────────────────────────────────────────────────────────

@router.get("/", response_model=List[BrokerSummary])
async def list_simsars(
    db: Session = Depends(get_db),
    q: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    specialty: Optional[str] = Query(None),
    sort: str = Query("score"),
):
    """Public directory of verified brokers."""
    brokers = directory.list_directory(
        db, q=q, location=location, language=language, specialty=specialty, sort=sort
    )
    return [broker_summary(b) for b in brokers]


# ─── BROKER: own profile ──────────────────────────────────────────────────────

@router.get("/me/profile", response_model=BrokerProfileResponse)
async def get_my_profile(broker: Broker = Depends(get_current_broker)):
    return broker_profile(broker)


# ─── BROKER: agency offers & requests ─────────────────────────────────────────
# Only individual brokers have anything to act on here.

@router.get("/me/offers", response_model=List[OfferResponse])
async def my_offers(
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    if broker.agency_id:
        return []
    return agencies.broker_offers(db, broker)


@router.get("/me/requests", response_model=List[JoinRequestResponse])
async def my_join_requests(
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    if broker.agency_id:
        return []
    return agencies.broker_join_requests(db, broker)


@router.delete("/me/requests/{request_id}", response_model=dict)
async def withdraw_join_request(
    request_id: UUID,
    db: Session = Depends(get_db),
    broker: Broker = Depends(get_current_broker),
):
    agencies.withdraw_join_request(db, broker, request_id)
    return {"success": True, "message": "Request withdrawn"}


@router.put("/{broker_id}", response_model=BrokerProfileResponse)
async def update_profile(
    broker_id: UUID,
    data: BrokerProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.BROKER)),
):
    broker = directory.get_broker(db, broker_id)
    _require_owner(broker, current_user)
    profiles.update_profile(db, broker, data.model_dump(exclude_unset=True))
    return broker_profile(broker)


@router.get("/{broker_id}", response_model=BrokerProfileResponse)
async def get_simsar(broker_id: UUID, db: Session = Depends(get_db)):
    return broker_profile(directory.get_broker(db, broker_id))


# ─── VERIFICATION ─────────────────────────────────────────────────────────────

@router.post(
    "/{broker_id}/verification",
    response_model=VerificationRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_verification(
    broker_id: UUID,
    payload: VerificationSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.BROKER)),
):
    """Submit (or resubmit) credentials for admin review."""
    broker = directory.get_broker(db, broker_id)
    _require_owner(broker, current_user)
    return verification.submit_verification(db, broker.id, payload)


@router.get("/{broker_id}/verification-status", response_model=VerificationStatusResponse)
async def get_verification_status(
    broker_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    broker = directory.get_broker(db, broker_id)
    if current_user.role != UserRole.ADMIN:
        _require_owner(broker, current_user)
    return verification.get_status(db, broker.id)


# ─── TRANSACTION CLAIMS & REVIEWS ─────────────────────────────────────────────

@router.post("/{broker_id}/claims", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def submit_claim(
    broker_id: UUID,
    data: ClaimCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.USER)),
):
    broker = directory.get_broker(db, broker_id)
    return directory.submit_claim(db, current_user.id, broker, data.proof_links)


@router.post("/{broker_id}/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(
    broker_id: UUID,
    data: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.USER)),
):
    broker = directory.get_broker(db, broker_id)
    review = directory.submit_review(db, current_user.id, broker, data.claim_id, data.rating, data.text)
    return ReviewResponse(
        id=review.id,
        rating=review.rating,
        text=review.text,
        verified=bool(review.verified_flag),
        created_at=review.created_at,
        author=_author(review),
    )


@router.get("/{broker_id}/reviews", response_model=List[ReviewResponse])
async def list_reviews(broker_id: UUID, db: Session = Depends(get_db)):
    broker = directory.get_broker(db, broker_id)
    return broker_profile(broker).reviews
