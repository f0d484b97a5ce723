"""Order placement and status lifecycle.

Each public function here is one transaction: it performs its writes
through the caller's ``AccessGuard``, commits once at the end, and rolls
back on any failure, so an order never changes status without its event
row and counterparty notification.
"""
import logging
from collections import OrderedDict
from decimal import Decimal

from app.core.exceptions import ConstraintViolation, ReferentialViolation
from app.models.farmer import FarmerProfile
from app.models.notification import Notification
from app.models.order import CENT, Order, OrderItem, OrderEvent, line_subtotal
from app.models.product import Product
from app.services import events

logger = logging.getLogger(__name__)


def _short(order_id):
    return f"#{order_id}"


def notify(guard, recipient_id, kind, title, message=None, meta=None):
    """Stage a notification row in the current transaction."""
    notification = Notification(
        recipient_id=recipient_id,
        type=kind,
        title=title,
        message=message,
        meta=meta,
        is_read=False,
    )
    return guard.add(notification)


def publish_notifications(notifications):
    for notification in notifications:
        events.channel.publish(events.NOTIFICATION_CREATED, {
            "id": notification.id,
            "recipient_id": notification.recipient_id,
            "type": notification.type,
        })


def counterparty_id(order, actor_id):
    """Identity to notify when ``actor_id`` acts on ``order``."""
    if actor_id == order.buyer_id:
        return order.farmer.user_id
    return order.buyer_id


def _merge_lines(items):
    lines = OrderedDict()
    for item in items:
        quantity = Decimal(str(item.quantity))
        if quantity <= 0:
            raise ConstraintViolation("Quantity must be greater than zero")
        # order_items.quantity holds two decimal places
        if quantity != quantity.quantize(CENT):
            raise ConstraintViolation(f"Quantity {quantity} has more than two decimal places")
        lines[item.product_id] = lines.get(item.product_id, Decimal("0")) + quantity
    return lines


def place_order(guard, farmer_id, items, delivery_method="pickup", delivery_address=None,
                delivery_date=None, notes=None):
    """Create a pending order for the caller with prices copied from the catalog.

    ``items`` is a sequence of objects with ``product_id`` and ``quantity``.
    Repeated products are merged into one line.
    """
    buyer = guard.user
    if not items:
        raise ConstraintViolation("An order needs at least one item")

    farmer = guard.db.get(FarmerProfile, farmer_id)
    if farmer is None:
        raise ReferentialViolation(f"Farmer profile {farmer_id} does not exist")

    if delivery_method == "delivery" and not farmer.delivery_available:
        raise ConstraintViolation(f"{farmer.farm_name} does not offer delivery")
    if delivery_method == "pickup" and not farmer.pickup_available:
        raise ConstraintViolation(f"{farmer.farm_name} does not offer pickup")

    priced_lines = []
    for product_id, quantity in _merge_lines(items).items():
        product = guard.db.get(Product, product_id)
        if product is None:
            raise ReferentialViolation(f"Product {product_id} does not exist")
        if product.farmer_id != farmer.id:
            raise ConstraintViolation(f"Product {product.name} is not sold by {farmer.farm_name}")
        if not product.is_available:
            raise ConstraintViolation(f"Product {product.name} is not available")
        minimum = product.min_order_quantity or Decimal("0")
        if quantity < minimum:
            raise ConstraintViolation(
                f"Minimum order for {product.name} is {minimum} {product.unit}"
            )
        price = Decimal(str(product.price_per_unit))
        priced_lines.append((product, quantity, price, line_subtotal(quantity, price)))

    total = sum((subtotal for _, _, _, subtotal in priced_lines), Decimal("0.00"))

    try:
        order = guard.add(Order(
            buyer_id=buyer.id,
            farmer_id=farmer.id,
            status="pending",
            total_amount=total,
            delivery_method=delivery_method,
            delivery_address=delivery_address,
            delivery_date=delivery_date,
            notes=notes,
        ))
        for product, quantity, price, subtotal in priced_lines:
            guard.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                quantity=quantity,
                price_per_unit=price,
                subtotal=subtotal,
            ))
        notification = notify(
            guard,
            farmer.user_id,
            "order_created",
            "New order",
            f"Order {_short(order.id)} placed for {total}",
            {"order_id": order.id, "buyer_id": buyer.id, "total_amount": str(total)},
        )
        guard.commit()
    except Exception:
        guard.rollback()
        raise

    logger.info(
        "order_placed order_id=%s buyer_id=%s farmer_id=%s total=%s items=%s",
        order.id, buyer.id, farmer.id, total, len(priced_lines),
    )
    events.channel.publish(events.ORDER_CREATED, {
        "order_id": order.id, "buyer_id": buyer.id, "farmer_id": farmer.id,
    })
    publish_notifications([notification])
    return order


def transition_order(guard, order_id, new_status, note=None):
    """Move an order along its lifecycle on behalf of the caller.

    Updates the status, appends a ``status_change`` event and notifies the
    other party, all in one commit.
    """
    actor = guard.user
    order = guard.get(Order, order_id)
    previous = order.status

    try:
        guard.update(order, {"status": new_status})
        guard.add(OrderEvent(
            order_id=order.id,
            actor_id=actor.id,
            event_type="status_change",
            status=new_status,
            note=note,
        ))
        notification = notify(
            guard,
            counterparty_id(order, actor.id),
            "order_status_changed",
            "Order updated",
            f"Order {_short(order.id)} is now {new_status}",
            {"order_id": order.id, "status": new_status, "previous_status": previous},
        )
        guard.commit()
    except Exception:
        guard.rollback()
        raise

    logger.info(
        "order_status_changed order_id=%s actor_id=%s from=%s to=%s",
        order.id, actor.id, previous, new_status,
    )
    events.channel.publish(events.ORDER_STATUS_CHANGED, {
        "order_id": order.id, "status": new_status, "previous_status": previous,
        "actor_id": actor.id,
    })
    publish_notifications([notification])
    return order


def update_order_details(guard, order_id, changes):
    """Edit delivery details or notes of an open order."""
    order = guard.get(Order, order_id)
    if order.is_terminal:
        raise ConstraintViolation(f"Order is {order.status} and can no longer be edited")
    if changes.get("delivery_method") == "delivery" and not order.farmer.delivery_available:
        raise ConstraintViolation("This farm does not offer delivery")
    try:
        guard.update(order, changes)
        guard.commit()
    except Exception:
        guard.rollback()
        raise
    return order


def add_order_event(guard, order_id, event_type, note=None, location=None):
    """Append a note or a location update to an order's event log."""
    if event_type not in ("note", "location_update"):
        raise ConstraintViolation("Only note and location_update events can be added directly")
    if event_type == "note" and not note:
        raise ConstraintViolation("A note event needs a note")
    if event_type == "location_update" and not location:
        raise ConstraintViolation("A location_update event needs a location")

    order = guard.get(Order, order_id)
    try:
        event = guard.add(OrderEvent(
            order_id=order.id,
            actor_id=guard.user.id,
            event_type=event_type,
            note=note,
            location=location,
        ))
        guard.commit()
    except Exception:
        guard.rollback()
        raise
    return event
