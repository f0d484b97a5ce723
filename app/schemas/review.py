from typing import Optional
from pydantic import BaseModel, Field
from app.schemas.base import CreatedSchema

class ReviewCreate(BaseModel):
    farmer_id: int
    order_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None

class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = None

class Review(CreatedSchema):
    id: int
    farmer_id: int
    buyer_id: int
    order_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
