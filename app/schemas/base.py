from typing import Optional
from pydantic import BaseModel
from datetime import datetime

class BaseSchema(BaseModel):
    class Config:
        from_attributes = True

class CreatedSchema(BaseSchema):
    created_at: Optional[datetime] = None

class TimestampSchema(CreatedSchema):
    updated_at: Optional[datetime] = None
