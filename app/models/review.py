from sqlalchemy import Column, Integer, Boolean, Text, Enum, ForeignKey, JSON, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class ClaimStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEED_MORE_INFO = "NEED_MORE_INFO"


class ReviewStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    HIDDEN = "HIDDEN"
    REMOVED = "REMOVED"


class TransactionClaim(BaseModel):
    """A user's claim to have closed a deal with a broker; unlocks one review."""

    __tablename__ = "transaction_claims"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    proof_links = Column(JSON, default=dict)
    status = Column(Enum(ClaimStatus), nullable=False, default=ClaimStatus.PENDING)
    admin_notes = Column(Text, nullable=True)
    decided_at = Column(DateTime, nullable=True)

    user = relationship("User")
    broker = relationship("Broker")


class Review(BaseModel):
    __tablename__ = "reviews"

    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("transaction_claims.id"), unique=True, nullable=False)
    rating = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    verified_flag = Column(Boolean, default=True)
    status = Column(Enum(ReviewStatus), nullable=False, default=ReviewStatus.ACTIVE)

    broker = relationship("Broker", back_populates="reviews")
    user = relationship("User")
