from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

NOTIFICATION_TYPES = ('order_created', 'order_status_changed', 'favorited')

class Notification(BaseModel):
    __tablename__ = "notifications"

    recipient_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = Column(Enum(*NOTIFICATION_TYPES, name='notification_types', create_constraint=True), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text)
    meta = Column(JSON)
    is_read = Column(Boolean, default=False)

    recipient = relationship("User")
