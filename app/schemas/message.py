from pydantic import BaseModel, Field
from app.schemas.base import CreatedSchema
from app.schemas.user import User

class MessageCreate(BaseModel):
    recipient_id: int
    content: str = Field(..., min_length=1)

class Message(CreatedSchema):
    id: int
    sender_id: int
    recipient_id: int
    content: str
    is_read: bool

class Conversation(BaseModel):
    profile: User
    last_message: Message
    unread_count: int = 0
