from typing import Any, Dict, Optional
from app.schemas.base import CreatedSchema

class Notification(CreatedSchema):
    id: int
    recipient_id: int
    type: str
    title: str
    message: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    is_read: bool
