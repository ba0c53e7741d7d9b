import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.models.user import User, UserRole
from app.models.broker import Broker, VerificationStatus
from app.models.verification import VerificationRequest
from app.models.review import Review, ReviewStatus, TransactionClaim, ClaimStatus
from app.schemas.admin import AdminUserResponse, AdminBrokerResponse, AdminReviewResponse, AdminStats
from app.schemas.broker import ClaimResponse, ClaimDecision, ReviewModeration
from app.schemas.user import UserStatusUpdate
from app.schemas.verification import VerificationDecision, VerificationRequestResponse
from app.services import directory, verification
from app.api.deps import require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_role(UserRole.ADMIN)


# ─── VERIFICATIONS ────────────────────────────────────────────────────────────

@router.get("/verifications", response_model=List[VerificationRequestResponse])
async def pending_verifications(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    """Review queue, oldest submission first."""
    return verification.list_pending(db)


@router.post("/verifications/{request_id}/decision", response_model=VerificationRequestResponse)
async def decide_verification(
    request_id: UUID,
    data: VerificationDecision,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    return verification.decide(db, request_id, data.status, notes=data.notes, admin_id=admin.id)


# ─── TRANSACTION CLAIMS ───────────────────────────────────────────────────────

@router.get("/claims", response_model=List[ClaimResponse])
async def pending_claims(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    return (
        db.query(TransactionClaim)
        .filter(TransactionClaim.status == ClaimStatus.PENDING)
        .order_by(TransactionClaim.created_at.asc())
        .all()
    )


@router.post("/claims/{claim_id}/decision", response_model=ClaimResponse)
async def decide_claim(
    claim_id: UUID,
    data: ClaimDecision,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    claim = directory.decide_claim(db, claim_id, data.status, data.notes)
    logger.info("Claim %s set to %s by admin %s", claim.id, claim.status.value, admin.id)
    return claim


# ─── USERS ────────────────────────────────────────────────────────────────────

@router.get("/users", response_model=List[AdminUserResponse])
async def list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    return db.query(User).order_by(User.created_at.desc()).all()


@router.post("/users/{user_id}/status", response_model=AdminUserResponse)
async def update_user_status(
    user_id: UUID,
    data: UserStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    """Ban, suspend or reactivate an account. Inactive accounts cannot authenticate."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    user.status = data.status
    db.commit()
    db.refresh(user)
    logger.info("User %s status set to %s by admin %s", user.id, user.status.value, admin.id)
    return user


# ─── BROKERS & REVIEWS ────────────────────────────────────────────────────────

@router.get("/simsars", response_model=List[AdminBrokerResponse])
async def list_brokers(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    """Every broker regardless of verification status."""
    results = []
    for b in db.query(Broker).order_by(Broker.created_at.desc()).all():
        rating, review_count = directory.rating_summary(b)
        results.append(AdminBrokerResponse(
            id=b.id,
            name=b.name,
            email=b.user.email,
            user_status=b.user.status,
            verification_status=b.verification_status,
            tier_hint=b.tier_hint,
            review_count=review_count,
            avg_rating=rating,
        ))
    return results


@router.get("/reviews", response_model=List[AdminReviewResponse])
async def list_reviews(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    reviews = db.query(Review).order_by(Review.created_at.desc()).all()
    return [
        AdminReviewResponse(
            id=r.id,
            broker_id=r.broker_id,
            broker_name=r.broker.name,
            user_email=r.user.email,
            rating=r.rating,
            text=r.text,
            status=r.status,
            created_at=r.created_at,
        )
        for r in reviews
    ]


@router.post("/reviews/{review_id}/moderate", response_model=dict)
async def moderate_review(
    review_id: UUID,
    data: ReviewModeration,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    review = directory.moderate_review(db, review_id, data.status)
    return {"success": True, "id": str(review.id), "status": review.status.value}


# ─── DASHBOARD ────────────────────────────────────────────────────────────────

@router.get("/stats", response_model=AdminStats)
async def dashboard_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
):
    return AdminStats(
        total_users=db.query(User).filter(User.role == UserRole.USER).count(),
        total_brokers=db.query(Broker).count(),
        verified_brokers=db.query(Broker).filter(
            Broker.verification_status == VerificationStatus.VERIFIED
        ).count(),
        pending_verifications=db.query(VerificationRequest).filter(
            VerificationRequest.status == VerificationStatus.UNDER_REVIEW
        ).count(),
        pending_claims=db.query(TransactionClaim).filter(
            TransactionClaim.status == ClaimStatus.PENDING
        ).count(),
        total_reviews=db.query(Review).filter(Review.status == ReviewStatus.ACTIVE).count(),
    )
