from sqlalchemy import Column, String, Integer, Text, Enum, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
from app.models.broker import VerificationStatus
import enum
import secrets


class JoinRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class InviteStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


class OfferStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


def _invite_code() -> str:
    return secrets.token_urlsafe(16)


class Agency(BaseModel):
    __tablename__ = "agencies"

    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)
    name = Column(String(150), nullable=False)
    slug = Column(String(180), unique=True, nullable=False, index=True)
    bio = Column(Text, nullable=True)
    rera_license_number = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    email = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    logo_url = Column(String(500), nullable=True)
    banner_url = Column(String(500), nullable=True)
    verification_status = Column(
        Enum(VerificationStatus), nullable=False, default=VerificationStatus.UNSUBMITTED
    )

    owner = relationship("User", back_populates="owned_agency", foreign_keys=[owner_id])
    brokers = relationship("Broker", back_populates="agency", foreign_keys="Broker.agency_id")
    join_requests = relationship("AgencyJoinRequest", back_populates="agency", cascade="all, delete-orphan")
    invites = relationship("AgencyInvite", back_populates="agency", cascade="all, delete-orphan")
    recruitment_offers = relationship("RecruitmentOffer", back_populates="agency", cascade="all, delete-orphan")
    reviews = relationship("AgencyReview", back_populates="agency", cascade="all, delete-orphan")


class AgencyJoinRequest(BaseModel):
    """A broker asking to join an agency. The owner decides."""

    __tablename__ = "agency_join_requests"

    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=False, index=True)
    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    message = Column(Text, nullable=True)
    status = Column(Enum(JoinRequestStatus), nullable=False, default=JoinRequestStatus.PENDING)
    decided_at = Column(DateTime, nullable=True)

    agency = relationship("Agency", back_populates="join_requests")
    broker = relationship("Broker")


class AgencyInvite(BaseModel):
    """An emailed invite; whoever holds the code and owns the address may accept."""

    __tablename__ = "agency_invites"

    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=False, index=True)
    email = Column(String(100), nullable=False, index=True)
    code = Column(String(64), unique=True, nullable=False, default=_invite_code)
    status = Column(Enum(InviteStatus), nullable=False, default=InviteStatus.PENDING)
    expires_at = Column(DateTime, nullable=False)

    agency = relationship("Agency", back_populates="invites")


class RecruitmentOffer(BaseModel):
    """The agency side of a join: the owner asks an individual broker to come aboard."""

    __tablename__ = "recruitment_offers"

    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=False, index=True)
    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    message = Column(Text, nullable=True)
    status = Column(Enum(OfferStatus), nullable=False, default=OfferStatus.PENDING)
    expires_at = Column(DateTime, nullable=False)
    decided_at = Column(DateTime, nullable=True)

    agency = relationship("Agency", back_populates="recruitment_offers")
    broker = relationship("Broker")


class AgencyReview(BaseModel):
    __tablename__ = "agency_reviews"

    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)

    agency = relationship("Agency", back_populates="reviews")
    user = relationship("User")
