from typing import List, Optional
from pydantic import BaseModel, Field
from app.schemas.base import TimestampSchema

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=50)
    price_per_unit: float = Field(..., ge=0)
    unit: str = Field(..., min_length=1, max_length=20)
    available_quantity: float = Field(0, ge=0)
    min_order_quantity: float = Field(1, ge=0)
    image_url: Optional[str] = None
    is_available: bool = True
    seasonal_availability: List[str] = []

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    price_per_unit: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    available_quantity: Optional[float] = Field(None, ge=0)
    min_order_quantity: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_available: Optional[bool] = None
    seasonal_availability: Optional[List[str]] = None

class Product(TimestampSchema, ProductBase):
    id: int
    farmer_id: int
