from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import (
    Column, Enum, Numeric, String, Text, Date, ForeignKey, Integer, JSON, CheckConstraint, event
)
from sqlalchemy.orm import relationship, validates
from app.core.exceptions import ConstraintViolation, InvalidTransition
from app.models.base import BaseModel, TimestampedModel

ORDER_STATUSES = ('pending', 'confirmed', 'ready', 'completed', 'cancelled')
TERMINAL_STATUSES = frozenset({'completed', 'cancelled'})
DELIVERY_METHODS = ('pickup', 'delivery')
EVENT_TYPES = ('status_change', 'note', 'location_update')

# Forward edges; 'cancelled' is added for every non-terminal state below.
_FORWARD = {
    'pending': 'confirmed',
    'confirmed': 'ready',
    'ready': 'completed',
}
TRANSITIONS = {
    status: (
        frozenset() if status in TERMINAL_STATUSES
        else frozenset({_FORWARD[status], 'cancelled'})
    )
    for status in ORDER_STATUSES
}

CENT = Decimal('0.01')


def can_transition(current, new):
    return new in TRANSITIONS.get(current, ())


def line_subtotal(quantity, price_per_unit):
    """Exact line total at the column's declared precision."""
    return (Decimal(str(quantity)) * Decimal(str(price_per_unit))).quantize(CENT, ROUND_HALF_UP)


class Order(TimestampedModel):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint('total_amount >= 0', name='ck_order_total_nonneg'),
    )
    
    buyer_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    farmer_id = Column(
        Integer, ForeignKey('farmer_profiles.id', ondelete='CASCADE'), nullable=False, index=True
    )
    status = Column(
        Enum(*ORDER_STATUSES, name='order_statuses', create_constraint=True),
        default='pending', nullable=False, index=True
    )
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_method = Column(Enum(*DELIVERY_METHODS, name='delivery_methods', create_constraint=True))
    delivery_address = Column(String(255))
    delivery_date = Column(Date)
    notes = Column(Text)
    
    buyer = relationship("User")
    farmer = relationship("FarmerProfile")
    items = relationship("OrderItem", back_populates="order", passive_deletes=True)
    events = relationship(
        "OrderEvent", back_populates="order", passive_deletes=True, order_by="OrderEvent.id"
    )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @validates('status')
    def validate_status(self, key, value):
        if value not in ORDER_STATUSES:
            raise ConstraintViolation(f"Invalid order status '{value}'")
        current = self.status
        # Rows being constructed have no stored status yet
        if current is not None and not can_transition(current, value):
            raise InvalidTransition(f"Cannot move order from '{current}' to '{value}'")
        return value


class OrderItem(BaseModel):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_quantity_positive'),
        CheckConstraint('price_per_unit >= 0', name='ck_order_item_price_nonneg'),
        CheckConstraint('subtotal >= 0', name='ck_order_item_subtotal_nonneg'),
    )
    
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False)
    price_per_unit = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    
    order = relationship("Order", back_populates="items")
    product = relationship("Product")


@event.listens_for(OrderItem, "before_insert")
def _compute_subtotal(mapper, connection, target):
    target.subtotal = line_subtotal(target.quantity, target.price_per_unit)


class OrderEvent(BaseModel):
    __tablename__ = "order_events"
    __table_args__ = (
        CheckConstraint(
            "(event_type = 'status_change' AND status IS NOT NULL) OR "
            "(event_type <> 'status_change' AND status IS NULL)",
            name='ck_order_event_status_iff_status_change',
        ),
    )

    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    event_type = Column(Enum(*EVENT_TYPES, name='order_event_types', create_constraint=True), nullable=False)
    status = Column(Enum(*ORDER_STATUSES, name='order_event_statuses', create_constraint=True))
    note = Column(Text)
    location = Column(JSON)

    order = relationship("Order", back_populates="events")
    actor = relationship("User")
