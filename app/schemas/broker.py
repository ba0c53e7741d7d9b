from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from uuid import UUID
from datetime import datetime
from app.models.broker import VerificationStatus, BrokerType
from app.models.review import ClaimStatus, ReviewStatus


class AgencyBrief(BaseModel):
    id: UUID
    name: str
    logo_url: Optional[str] = None
    verification_status: VerificationStatus

    model_config = {"from_attributes": True}


class BrokerProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    photo_url: Optional[str] = None
    company_name: Optional[str] = None
    bio: Optional[str] = None
    rera_id: Optional[str] = None
    license_number: Optional[str] = None
    experience_years: Optional[int] = Field(None, ge=0, le=70)
    languages: Optional[List[str]] = None
    specialties: Optional[List[str]] = None
    areas_of_operation: Optional[List[str]] = None
    whatsapp_number: Optional[str] = None


class BrokerSummary(BaseModel):
    """Directory card."""
    id: UUID
    name: str
    photo_url: Optional[str] = None
    company_name: Optional[str] = None
    bio: Optional[str] = None
    rera_id: Optional[str] = None
    experience_years: Optional[int] = None
    languages: List[str] = []
    specialties: List[str] = []
    areas_of_operation: List[str] = []
    whatsapp_number: Optional[str] = None
    verification_status: VerificationStatus
    tier_hint: Optional[str] = None
    broker_type: BrokerType
    agency: Optional[AgencyBrief] = None
    score: int = 0
    rating: float = 0.0
    review_count: int = 0


class ReviewResponse(BaseModel):
    id: UUID
    rating: int
    text: str
    verified: bool
    created_at: datetime
    author: str


class BrokerProfileResponse(BrokerSummary):
    license_number: Optional[str] = None
    reviews: List[ReviewResponse] = []


class ClaimCreate(BaseModel):
    proof_links: Dict[str, str] = {}


class ClaimResponse(BaseModel):
    id: UUID
    user_id: UUID
    broker_id: UUID
    proof_links: Dict[str, str] = {}
    status: ClaimStatus
    admin_notes: Optional[str] = None
    created_at: datetime
    decided_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReviewCreate(BaseModel):
    claim_id: UUID
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=10)


class ClaimDecision(BaseModel):
    status: ClaimStatus
    notes: Optional[str] = None


class ReviewModeration(BaseModel):
    status: ReviewStatus
