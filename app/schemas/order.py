from typing import Any, Dict, List, Literal, Optional
from datetime import date
from pydantic import BaseModel, Field
from app.schemas.base import BaseSchema, CreatedSchema, TimestampSchema

OrderStatus = Literal['pending', 'confirmed', 'ready', 'completed', 'cancelled']
DeliveryMethod = Literal['pickup', 'delivery']

class OrderItemCreate(BaseModel):
    product_id: int
    quantity: float = Field(..., gt=0)

class OrderItem(BaseSchema):
    id: int
    order_id: int
    product_id: int
    quantity: float
    price_per_unit: float
    subtotal: float

class OrderCreate(BaseModel):
    farmer_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    delivery_method: DeliveryMethod = 'pickup'
    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    notes: Optional[str] = None

class OrderUpdate(BaseModel):
    delivery_method: Optional[DeliveryMethod] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    notes: Optional[str] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    note: Optional[str] = None

class Order(TimestampSchema):
    id: int
    buyer_id: int
    farmer_id: int
    status: str
    total_amount: float
    delivery_method: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    notes: Optional[str] = None

class OrderWithItems(Order):
    items: List[OrderItem] = []

class OrderEventCreate(BaseModel):
    event_type: Literal['note', 'location_update']
    note: Optional[str] = None
    location: Optional[Dict[str, Any]] = None

class OrderEvent(CreatedSchema):
    id: int
    order_id: int
    actor_id: int
    event_type: str
    status: Optional[str] = None
    note: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
