from datetime import datetime
from sqlalchemy import Column, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import BaseModel


class ProfileView(BaseModel):
    __tablename__ = "profile_views"

    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    viewer_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    viewed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
