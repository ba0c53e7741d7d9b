from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.broker import Broker
from app.models.message import Conversation, Message
from app.schemas.message import (
    ConversationCreate, MessageCreate, MessageResponse,
    ConversationSummary, ConversationDetail, UnreadCount,
)
from app.api.deps import require_role

router = APIRouter(prefix="/messages", tags=["Messages"])

participant = require_role(UserRole.USER, UserRole.BROKER)


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _visible_conversations(db: Session, user: User):
    """Conversations the caller takes part in, as a user or as the broker."""
    query = db.query(Conversation)
    if user.role == UserRole.USER:
        return query.filter(Conversation.user_id == user.id)
    return query.join(Broker, Conversation.broker_id == Broker.id).filter(Broker.user_id == user.id)


def _get_conversation(db: Session, conversation_id: UUID, user: User) -> Conversation:
    convo = db.get(Conversation, conversation_id)
    if convo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")

    is_user = user.role == UserRole.USER and convo.user_id == user.id
    is_broker = user.role == UserRole.BROKER and convo.broker.user_id == user.id
    if not (is_user or is_broker):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return convo


def _post(db: Session, convo: Conversation, sender: User, text: str) -> Message:
    message = Message(
        conversation_id=convo.id,
        sender_id=sender.id,
        sender_role=sender.role.value,
        text=text,
    )
    db.add(message)
    convo.last_message_at = datetime.utcnow()
    return message


def _unread_filter(user: User):
    return (Message.read_at.is_(None), Message.sender_id != user.id)


# ─── ENDPOINTS (polling only) ─────────────────────────────────────────────────

@router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(participant),
):
    conversations = (
        _visible_conversations(db, current_user)
        .order_by(Conversation.last_message_at.desc())
        .all()
    )
    results = []
    for c in conversations:
        last = c.messages[-1] if c.messages else None
        unread = sum(1 for m in c.messages if m.read_at is None and m.sender_id != current_user.id)
        results.append(ConversationSummary(
            id=c.id,
            user_id=c.user_id,
            broker_id=c.broker_id,
            broker_name=c.broker.name,
            last_message=MessageResponse.model_validate(last) if last else None,
            last_message_at=c.last_message_at,
            unread_count=unread,
        ))
    return results


@router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(participant),
):
    convo = _get_conversation(db, conversation_id, current_user)
    return ConversationDetail(
        id=convo.id,
        user_id=convo.user_id,
        broker_id=convo.broker_id,
        broker_name=convo.broker.name,
        last_message_at=convo.last_message_at,
        messages=[MessageResponse.model_validate(m) for m in convo.messages],
    )


@router.post("/conversations", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def start_conversation(
    data: ConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.USER)),
):
    """Open (or reuse) the conversation with a verified broker and post the first message."""
    broker = db.get(Broker, data.broker_id)
    if broker is None or not broker.is_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Broker not available for messaging",
        )

    convo = (
        db.query(Conversation)
        .filter(Conversation.user_id == current_user.id, Conversation.broker_id == broker.id)
        .first()
    )
    if convo is None:
        convo = Conversation(user_id=current_user.id, broker_id=broker.id)
        db.add(convo)
        db.flush()

    message = _post(db, convo, current_user, data.text)
    db.commit()
    db.refresh(message)
    return message


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    data: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(participant),
):
    convo = _get_conversation(db, conversation_id, current_user)
    message = _post(db, convo, current_user, data.text)
    db.commit()
    db.refresh(message)
    return message


@router.post("/conversations/{conversation_id}/read", response_model=dict)
async def mark_read(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(participant),
):
    convo = _get_conversation(db, conversation_id, current_user)
    db.query(Message).filter(Message.conversation_id == convo.id, *_unread_filter(current_user)).update(
        {Message.read_at: datetime.utcnow()}, synchronize_session=False
    )
    db.commit()
    return {"success": True}


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(participant),
):
    convo_ids = [c.id for c in _visible_conversations(db, current_user).all()]
    if not convo_ids:
        return UnreadCount(count=0)
    count = (
        db.query(func.count(Message.id))
        .filter(Message.conversation_id.in_(convo_ids), *_unread_filter(current_user))
        .scalar()
    )
    return UnreadCount(count=count or 0)
