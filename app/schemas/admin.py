from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime
from app.models.user import UserRole, UserStatus
from app.models.broker import VerificationStatus
from app.models.review import ReviewStatus


class AdminBrokerBrief(BaseModel):
    id: UUID
    name: str
    verification_status: VerificationStatus

    model_config = {"from_attributes": True}


class AdminUserResponse(BaseModel):
    id: UUID
    email: str
    role: UserRole
    status: UserStatus
    created_at: datetime
    broker: Optional[AdminBrokerBrief] = None

    model_config = {"from_attributes": True}


class AdminBrokerResponse(BaseModel):
    id: UUID
    name: str
    email: str
    user_status: UserStatus
    verification_status: VerificationStatus
    tier_hint: Optional[str] = None
    review_count: int = 0
    avg_rating: float = 0.0


class AdminReviewResponse(BaseModel):
    id: UUID
    broker_id: UUID
    broker_name: str
    user_email: str
    rating: int
    text: str
    status: ReviewStatus
    created_at: datetime


class AdminStats(BaseModel):
    total_users: int
    total_brokers: int
    verified_brokers: int
    pending_verifications: int
    pending_claims: int
    total_reviews: int
