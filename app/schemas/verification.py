from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from uuid import UUID
from datetime import datetime
from app.models.broker import VerificationStatus


# ─── Broker submission ────────────────────────────────────────────────────────
# Every field is optional at the schema level so the workflow can report
# all missing required fields at once instead of failing on the first.

class VerificationSubmission(BaseModel):
    # Personal
    name: Optional[str] = None
    photo_url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    bio: Optional[str] = None

    # Professional
    rera_id: Optional[str] = None
    license_number: Optional[str] = None
    experience_years: Optional[int] = Field(None, ge=0, le=70)
    specialties: Optional[List[str]] = None
    areas_of_operation: Optional[List[str]] = None
    languages: Optional[List[str]] = None

    # Documents (URLs only, never uploaded files)
    rera_certificate_url: Optional[str] = None
    license_doc_url: Optional[str] = None
    emirates_id: Optional[str] = None
    emirates_id_url: Optional[str] = None
    documents: Dict[str, str] = {}  # any additional document kind -> URL

    @field_validator("name", "photo_url", "whatsapp_number", "rera_id", "license_number",
                     "rera_certificate_url", "license_doc_url", "emirates_id", "emirates_id_url")
    @classmethod
    def strip_strings(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


# ─── Admin decision ───────────────────────────────────────────────────────────

class VerificationDecision(BaseModel):
    status: VerificationStatus
    notes: Optional[str] = None


# ─── Responses ────────────────────────────────────────────────────────────────

class VerificationRequestResponse(BaseModel):
    id: UUID
    broker_id: UUID
    status: VerificationStatus
    name: str
    license_number: str
    rera_id: str
    experience_years: int
    documents: Dict[str, str] = {}
    submitted_at: datetime
    decided_at: Optional[datetime] = None
    admin_notes: Optional[str] = None

    model_config = {"from_attributes": True}


class VerificationHistoryItem(BaseModel):
    id: UUID
    status: VerificationStatus
    submitted_at: datetime
    decided_at: Optional[datetime] = None
    admin_notes: Optional[str] = None

    model_config = {"from_attributes": True}


class VerificationStatusResponse(BaseModel):
    status: VerificationStatus
    notes: Optional[str] = None
    pending: bool
    history: List[VerificationHistoryItem] = []

    model_config = {"from_attributes": True}
