import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import and_, or_
from typing import List

from app.auth.security import get_guard
from app.core.exceptions import ConstraintViolation
from app.db.access import AccessGuard
from app.models.message import Message
from app.models.user import User
from app.schemas.message import Conversation, Message as MessageSchema, MessageCreate
from app.schemas.user import User as UserSchema
from app.services import events

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=MessageSchema, status_code=status.HTTP_201_CREATED)
def send_message(
    message: MessageCreate,
    guard: AccessGuard = Depends(get_guard)
):
    content = message.content.strip()
    if not content:
        raise ConstraintViolation("Message content cannot be blank")
    db_message = Message(
        sender_id=guard.user.id,
        recipient_id=message.recipient_id,
        content=content,
        is_read=False,
    )
    guard.add(db_message)
    guard.commit()
    guard.db.refresh(db_message)
    logger.info(
        "message_sent message_id=%s sender_id=%s recipient_id=%s",
        db_message.id, db_message.sender_id, db_message.recipient_id,
    )
    events.channel.publish(events.MESSAGE_SENT, {
        "id": db_message.id,
        "sender_id": db_message.sender_id,
        "recipient_id": db_message.recipient_id,
    })
    return db_message


@router.get("/", response_model=List[MessageSchema])
def read_messages(
    skip: int = 0,
    limit: int = 100,
    guard: AccessGuard = Depends(get_guard)
):
    return guard.query(Message).order_by(Message.id.desc()).offset(skip).limit(limit).all()


@router.get("/conversations", response_model=List[Conversation])
def read_conversations(guard: AccessGuard = Depends(get_guard)):
    """One entry per counterpart, newest conversation first."""
    me = guard.user.id
    messages = guard.query(Message).order_by(Message.id.desc()).all()

    conversations = {}
    for msg in messages:
        other_id = msg.recipient_id if msg.sender_id == me else msg.sender_id
        entry = conversations.get(other_id)
        if entry is None:
            entry = conversations[other_id] = {"last_message": msg, "unread_count": 0}
        if msg.recipient_id == me and not msg.is_read:
            entry["unread_count"] += 1

    result = []
    for other_id, entry in conversations.items():
        profile = guard.get(User, other_id)
        result.append(Conversation(
            profile=UserSchema.model_validate(profile),
            last_message=MessageSchema.model_validate(entry["last_message"]),
            unread_count=entry["unread_count"],
        ))
    return result


@router.get("/with/{user_id}", response_model=List[MessageSchema])
def read_thread(
    user_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    """Messages exchanged with one user, oldest first. Incoming ones are marked read."""
    me = guard.user.id
    thread = guard.query(Message).filter(or_(
        and_(Message.sender_id == me, Message.recipient_id == user_id),
        and_(Message.sender_id == user_id, Message.recipient_id == me),
    )).order_by(Message.id).all()

    unread = [msg for msg in thread if msg.recipient_id == me and not msg.is_read]
    for msg in unread:
        guard.update(msg, {"is_read": True})
    if unread:
        guard.commit()
        for msg in thread:
            guard.db.refresh(msg)
    return thread


@router.patch("/{message_id}/read", response_model=MessageSchema)
def mark_message_read(
    message_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    db_message = guard.get(Message, message_id)
    guard.update(db_message, {"is_read": True})
    guard.commit()
    guard.db.refresh(db_message)
    return db_message
