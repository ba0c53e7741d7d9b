from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, Enum, ForeignKey, JSON, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
from app.models.broker import VerificationStatus


class VerificationRequest(BaseModel):
    """Point-in-time snapshot of a broker's credential submission."""

    __tablename__ = "verification_requests"

    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)

    # Snapshot of the submitted credential fields
    name = Column(String(100), nullable=False)
    photo_url = Column(String(500), nullable=False)
    whatsapp_number = Column(String(30), nullable=False)
    license_number = Column(String(50), nullable=False)
    rera_id = Column(String(50), nullable=False)
    experience_years = Column(Integer, nullable=False)
    emirates_id = Column(String(50), nullable=True)
    documents = Column(JSON, default=dict)  # document kind -> URL

    # Only UNDER_REVIEW / VERIFIED / REJECTED / NEEDS_MORE_DOCS are used here
    status = Column(Enum(VerificationStatus), nullable=False, default=VerificationStatus.UNDER_REVIEW)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    decided_at = Column(DateTime, nullable=True)
    admin_notes = Column(Text, nullable=True)
    decided_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    broker = relationship("Broker", back_populates="verification_requests")
