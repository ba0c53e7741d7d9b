from datetime import datetime
from sqlalchemy import Column, String, Text, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class Conversation(BaseModel):
    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("user_id", "broker_id", name="uq_conversation_user_broker"),)

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=False, index=True)
    last_message_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")
    broker = relationship("Broker")
    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.created_at",
        cascade="all, delete-orphan",
    )


class Message(BaseModel):
    __tablename__ = "messages"

    conversation_id = Column(UUID(as_uuid=True), ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    sender_role = Column(String(10), nullable=False)
    text = Column(Text, nullable=False)
    read_at = Column(DateTime, nullable=True)

    conversation = relationship("Conversation", back_populates="messages")
