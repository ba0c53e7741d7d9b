from sqlalchemy import Column, String, Integer, Text, Enum, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class VerificationStatus(str, enum.Enum):
    UNSUBMITTED = "UNSUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    NEEDS_MORE_DOCS = "NEEDS_MORE_DOCS"


class BrokerType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    AGENCY_BROKER = "AGENCY_BROKER"


class Broker(BaseModel):
    __tablename__ = "brokers"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)

    # Identity
    name = Column(String(100), nullable=False)
    photo_url = Column(String(500), nullable=True)
    whatsapp_number = Column(String(30), nullable=True)
    bio = Column(Text, nullable=True)
    company_name = Column(String(150), nullable=True)
    previous_company_name = Column(String(150), nullable=True)

    # Credentials
    license_number = Column(String(50), nullable=True)
    rera_id = Column(String(50), nullable=True)
    experience_years = Column(Integer, nullable=True)
    emirates_id = Column(String(50), nullable=True)

    # Ordered string sequences
    languages = Column(JSON, default=list)
    specialties = Column(JSON, default=list)
    areas_of_operation = Column(JSON, default=list)

    # Verification
    verification_status = Column(
        Enum(VerificationStatus), nullable=False, default=VerificationStatus.UNSUBMITTED
    )
    profile_completeness_score = Column(Integer, default=0)
    tier_hint = Column(String(20), nullable=True)

    broker_type = Column(Enum(BrokerType), nullable=False, default=BrokerType.INDIVIDUAL)
    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=True)

    # Relationships
    user = relationship("User", back_populates="broker")
    agency = relationship("Agency", back_populates="brokers", foreign_keys=[agency_id])
    verification_requests = relationship(
        "VerificationRequest",
        back_populates="broker",
        order_by="VerificationRequest.submitted_at.desc()",
        cascade="all, delete-orphan",
    )
    listings = relationship("PropertyListing", back_populates="broker")
    reviews = relationship("Review", back_populates="broker")

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED
