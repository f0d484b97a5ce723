from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from app.auth.security import get_guard
from app.db.access import AccessGuard
from app.models.farmer import FarmerProfile
from app.models.order import Order, OrderItem, OrderEvent
from app.schemas.order import (
    Order as OrderSchema,
    OrderCreate,
    OrderUpdate,
    OrderStatus,
    OrderStatusUpdate,
    OrderWithItems,
    OrderItem as OrderItemSchema,
    OrderEvent as OrderEventSchema,
    OrderEventCreate,
)
from app.services import orders as order_service

router = APIRouter()


@router.post("/", response_model=OrderWithItems, status_code=status.HTTP_201_CREATED)
def create_order(
    order: OrderCreate,
    guard: AccessGuard = Depends(get_guard)
):
    db_order = order_service.place_order(
        guard,
        farmer_id=order.farmer_id,
        items=order.items,
        delivery_method=order.delivery_method,
        delivery_address=order.delivery_address,
        delivery_date=order.delivery_date,
        notes=order.notes,
    )
    guard.db.refresh(db_order)
    return db_order


@router.get("/", response_model=List[OrderSchema])
def read_orders(
    role: Optional[str] = Query(None, pattern="^(buyer|farmer)$", description="Only orders placed (buyer) or received (farmer)"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 100,
    guard: AccessGuard = Depends(get_guard)
):
    query = guard.query(Order)

    if role == "buyer":
        query = query.filter(Order.buyer_id == guard.user.id)
    elif role == "farmer":
        query = query.join(FarmerProfile, FarmerProfile.id == Order.farmer_id).filter(
            FarmerProfile.user_id == guard.user.id
        )

    if status_filter:
        query = query.filter(Order.status == status_filter)

    return query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit).all()


@router.get("/{order_id}", response_model=OrderWithItems)
def read_order(
    order_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    return guard.get(Order, order_id)


@router.put("/{order_id}", response_model=OrderSchema)
def update_order(
    order_id: int,
    order: OrderUpdate,
    guard: AccessGuard = Depends(get_guard)
):
    db_order = order_service.update_order_details(
        guard, order_id, order.model_dump(exclude_unset=True)
    )
    guard.db.refresh(db_order)
    return db_order


@router.post("/{order_id}/status", response_model=OrderSchema)
def change_order_status(
    order_id: int,
    change: OrderStatusUpdate,
    guard: AccessGuard = Depends(get_guard)
):
    """
    Move the order along pending -> confirmed -> ready -> completed, or
    cancel it while it is still open. Records a status_change event and
    notifies the other party.
    """
    db_order = order_service.transition_order(guard, order_id, change.status, note=change.note)
    guard.db.refresh(db_order)
    return db_order


@router.get("/{order_id}/items", response_model=List[OrderItemSchema])
def read_order_items(
    order_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    guard.get(Order, order_id)
    return guard.query(OrderItem).filter(OrderItem.order_id == order_id).order_by(OrderItem.id).all()


@router.get("/{order_id}/events", response_model=List[OrderEventSchema])
def read_order_events(
    order_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    guard.get(Order, order_id)
    return guard.query(OrderEvent).filter(OrderEvent.order_id == order_id).order_by(OrderEvent.id).all()


@router.post("/{order_id}/events", response_model=OrderEventSchema, status_code=status.HTTP_201_CREATED)
def create_order_event(
    order_id: int,
    event: OrderEventCreate,
    guard: AccessGuard = Depends(get_guard)
):
    db_event = order_service.add_order_event(
        guard, order_id, event.event_type, note=event.note, location=event.location
    )
    guard.db.refresh(db_event)
    return db_event
