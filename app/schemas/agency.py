from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from app.models.broker import VerificationStatus
from app.models.agency import JoinRequestStatus, InviteStatus, OfferStatus
from app.schemas.broker import AgencyBrief


class AgencyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    bio: Optional[str] = None
    rera_license_number: Optional[str] = None
    website: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None


class AgencyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    bio: Optional[str] = None
    rera_license_number: Optional[str] = None
    website: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None


class AgencyResponse(BaseModel):
    id: UUID
    owner_id: UUID
    name: str
    slug: str
    bio: Optional[str] = None
    rera_license_number: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    verification_status: VerificationStatus
    broker_count: int = 0
    rating: float = 0.0
    review_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class JoinRequestCreate(BaseModel):
    message: Optional[str] = None


class JoinRequestDecision(BaseModel):
    approved: bool


class AgencyBrokerResponse(BaseModel):
    id: UUID
    name: str
    photo_url: Optional[str] = None
    experience_years: Optional[int] = None
    company_name: Optional[str] = None
    verification_status: VerificationStatus

    model_config = {"from_attributes": True}


class JoinRequestResponse(BaseModel):
    id: UUID
    agency_id: UUID
    broker_id: UUID
    message: Optional[str] = None
    status: JoinRequestStatus
    created_at: datetime
    decided_at: Optional[datetime] = None
    agency: Optional[AgencyBrief] = None
    broker: Optional[AgencyBrokerResponse] = None

    model_config = {"from_attributes": True}


class AgencyDetailResponse(AgencyResponse):
    brokers: List[AgencyBrokerResponse] = []


# ─── Roster management ────────────────────────────────────────────────────────

class AgencyBrokerCreate(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    bio: Optional[str] = None
    experience_years: Optional[int] = Field(None, ge=0, le=70)
    languages: Optional[List[str]] = None
    message: Optional[str] = None


class AgencyBrokerAdded(BaseModel):
    """
    ``converted`` means the email already belonged to a broker, so an offer
    went out (or their pending request was approved) instead of a new account.
    Credentials are only present for a freshly created account.
    """
    broker: AgencyBrokerResponse
    converted: bool = False
    auto_approved: bool = False
    offer_id: Optional[UUID] = None
    temporary_password: Optional[str] = None
    must_change_password: bool = False


# ─── Invites ──────────────────────────────────────────────────────────────────

class InviteCreate(BaseModel):
    email: EmailStr


class InviteResponse(BaseModel):
    id: UUID
    agency_id: UUID
    email: str
    code: str
    status: InviteStatus
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteCreated(BaseModel):
    invite: InviteResponse
    invite_url: str


# ─── Recruitment offers ───────────────────────────────────────────────────────

class OfferCreate(BaseModel):
    message: Optional[str] = None


class OfferRespond(BaseModel):
    accept: bool


class OfferResponse(BaseModel):
    id: UUID
    agency_id: UUID
    broker_id: UUID
    message: Optional[str] = None
    status: OfferStatus
    expires_at: datetime
    created_at: datetime
    decided_at: Optional[datetime] = None
    agency: Optional[AgencyBrief] = None
    broker: Optional[AgencyBrokerResponse] = None

    model_config = {"from_attributes": True}


class RecruitResponse(BaseModel):
    auto_approved: bool
    broker: AgencyBrokerResponse
    offer: Optional[OfferResponse] = None


# ─── Reviews & dashboard ──────────────────────────────────────────────────────

class AgencyReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=10)


class AgencyReviewResponse(BaseModel):
    id: UUID
    rating: int
    text: str
    author: str
    created_at: datetime


class AgencyDashboardResponse(AgencyDetailResponse):
    """The owner's view: roster plus everything still waiting on someone."""
    pending_invites: List[InviteResponse] = []
    pending_join_requests: List[JoinRequestResponse] = []
    pending_offers: List[OfferResponse] = []
