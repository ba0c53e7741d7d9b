from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class ConversationCreate(BaseModel):
    broker_id: UUID
    text: str = Field(..., min_length=1, max_length=2000)


class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    sender_role: str
    text: str
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationSummary(BaseModel):
    id: UUID
    user_id: UUID
    broker_id: UUID
    broker_name: str
    last_message: Optional[MessageResponse] = None
    last_message_at: datetime
    unread_count: int = 0


class ConversationDetail(BaseModel):
    id: UUID
    user_id: UUID
    broker_id: UUID
    broker_name: str
    last_message_at: datetime
    messages: List[MessageResponse] = []


class UnreadCount(BaseModel):
    count: int
