from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.exceptions import (
    ConstraintViolation,
    InvalidTransition,
    NotFound,
    ReferentialViolation,
)
from app.models.notification import Notification
from app.models.order import (
    ORDER_STATUSES,
    Order,
    OrderEvent,
    OrderItem,
    can_transition,
    line_subtotal,
)
from app.services import events
from app.services import orders as order_service

from conftest import guard_for, make_order, make_product


def line(product, quantity):
    return SimpleNamespace(product_id=product.id, quantity=quantity)


# --------------------------------------------------------------------
# State machine
# --------------------------------------------------------------------
@pytest.mark.parametrize("current,new", [
    ("pending", "confirmed"),
    ("confirmed", "ready"),
    ("ready", "completed"),
    ("pending", "cancelled"),
    ("confirmed", "cancelled"),
    ("ready", "cancelled"),
])
def test_legal_edges(current, new):
    assert can_transition(current, new)


@pytest.mark.parametrize("current", ["completed", "cancelled"])
def test_terminal_states_have_no_exits(current):
    assert not any(can_transition(current, new) for new in ORDER_STATUSES)


@pytest.mark.parametrize("current,new", [
    ("pending", "ready"),
    ("pending", "completed"),
    ("confirmed", "pending"),
    ("ready", "confirmed"),
    ("pending", "pending"),
])
def test_skips_and_reversals_are_illegal(current, new):
    assert not can_transition(current, new)


def test_status_assignment_validates_edge(db, buyer, farm):
    order = make_order(db, buyer, farm, status="completed")
    with pytest.raises(InvalidTransition):
        order.status = "cancelled"


def test_unknown_status_rejected(db, buyer, farm):
    order = make_order(db, buyer, farm)
    with pytest.raises(ConstraintViolation):
        order.status = "shipped"


# --------------------------------------------------------------------
# Placement and totals
# --------------------------------------------------------------------
def test_line_subtotal_is_exact():
    assert line_subtotal(Decimal("2"), Decimal("3.00")) == Decimal("6.00")
    assert line_subtotal(Decimal("1.5"), Decimal("2.99")) == Decimal("4.49")


def test_place_order_totals_line_items(db, buyer, farm, tomatoes, honey):
    order = order_service.place_order(
        guard_for(db, buyer), farm.id, [line(tomatoes, 2), line(honey, 1)]
    )

    db.expire_all()
    order = db.get(Order, order.id)
    assert order.status == "pending"
    assert order.total_amount == Decimal("11.00")
    items = db.query(OrderItem).filter(OrderItem.order_id == order.id).all()
    assert len(items) == 2
    for item in items:
        assert item.subtotal == item.quantity * item.price_per_unit
    assert sum(item.subtotal for item in items) == order.total_amount


def test_place_order_notifies_farmer(db, buyer, farmer, farm, tomatoes):
    order = order_service.place_order(guard_for(db, buyer), farm.id, [line(tomatoes, 1)])

    notifications = db.query(Notification).all()
    assert len(notifications) == 1
    assert notifications[0].recipient_id == farmer.id
    assert notifications[0].type == "order_created"
    assert notifications[0].meta["order_id"] == order.id


def test_prices_are_captured_at_order_time(db, buyer, farm, tomatoes):
    order = order_service.place_order(guard_for(db, buyer), farm.id, [line(tomatoes, 2)])

    tomatoes.price_per_unit = Decimal("9.99")
    db.commit()

    item = db.query(OrderItem).filter(OrderItem.order_id == order.id).one()
    assert item.price_per_unit == Decimal("3.00")
    assert item.subtotal == Decimal("6.00")


def test_repeated_products_are_merged(db, buyer, farm, tomatoes):
    order = order_service.place_order(
        guard_for(db, buyer), farm.id, [line(tomatoes, 1), line(tomatoes, 2)]
    )
    items = db.query(OrderItem).filter(OrderItem.order_id == order.id).all()
    assert len(items) == 1
    assert items[0].quantity == Decimal("3")


def test_place_order_rejects_foreign_product(db, buyer, farm, other_farm):
    pears = make_product(db, other_farm, "Pears", "2.00")
    with pytest.raises(ConstraintViolation):
        order_service.place_order(guard_for(db, buyer), farm.id, [line(pears, 1)])
    assert db.query(Order).count() == 0


def test_place_order_rejects_unavailable_product(db, buyer, farm):
    kale = make_product(db, farm, "Kale", "2.50", is_available=False)
    with pytest.raises(ConstraintViolation):
        order_service.place_order(guard_for(db, buyer), farm.id, [line(kale, 1)])


def test_place_order_enforces_minimum_quantity(db, buyer, farm):
    eggs = make_product(db, farm, "Eggs", "4.00", min_order_quantity=Decimal("6"))
    with pytest.raises(ConstraintViolation):
        order_service.place_order(guard_for(db, buyer), farm.id, [line(eggs, 2)])


def test_place_order_requires_delivery_support(db, buyer, other_farm):
    pears = make_product(db, other_farm, "Pears", "2.00")
    with pytest.raises(ConstraintViolation):
        order_service.place_order(
            guard_for(db, buyer), other_farm.id, [line(pears, 1)], delivery_method="delivery"
        )


def test_place_order_missing_product_is_referential(db, buyer, farm):
    with pytest.raises(ReferentialViolation):
        order_service.place_order(
            guard_for(db, buyer), farm.id, [SimpleNamespace(product_id=999, quantity=1)]
        )


def test_place_order_missing_farm_is_referential(db, buyer, tomatoes):
    with pytest.raises(ReferentialViolation):
        order_service.place_order(guard_for(db, buyer), 999, [line(tomatoes, 1)])


def test_place_order_rejects_empty_order(db, buyer, farm):
    with pytest.raises(ConstraintViolation):
        order_service.place_order(guard_for(db, buyer), farm.id, [])


@pytest.mark.parametrize("quantity", [1.005, 0.001])
def test_place_order_rejects_sub_cent_quantities(db, buyer, farm, tomatoes, quantity):
    with pytest.raises(ConstraintViolation):
        order_service.place_order(guard_for(db, buyer), farm.id, [line(tomatoes, quantity)])
    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0


def test_fractional_quantity_subtotal_matches_stored_line(db, buyer, farm, tomatoes):
    order = order_service.place_order(guard_for(db, buyer), farm.id, [line(tomatoes, 1.25)])

    db.expire_all()
    item = db.query(OrderItem).filter(OrderItem.order_id == order.id).one()
    assert item.quantity == Decimal("1.25")
    assert item.subtotal == item.quantity * item.price_per_unit == Decimal("3.75")
    assert db.get(Order, order.id).total_amount == Decimal("3.75")


# --------------------------------------------------------------------
# Transitions
# --------------------------------------------------------------------
def test_farmer_confirm_creates_one_event_and_notifies_buyer(db, buyer, farmer, farm):
    order = make_order(db, buyer, farm)

    order_service.transition_order(guard_for(db, farmer), order.id, "confirmed")

    db.expire_all()
    assert db.get(Order, order.id).status == "confirmed"
    events_ = db.query(OrderEvent).filter(OrderEvent.order_id == order.id).all()
    assert len(events_) == 1
    assert events_[0].event_type == "status_change"
    assert events_[0].status == "confirmed"
    assert events_[0].actor_id == farmer.id
    notifications = db.query(Notification).all()
    assert len(notifications) == 1
    assert notifications[0].recipient_id == buyer.id
    assert notifications[0].type == "order_status_changed"


def test_buyer_cancel_notifies_farmer(db, buyer, farmer, farm):
    order = make_order(db, buyer, farm, status="confirmed")

    order_service.transition_order(guard_for(db, buyer), order.id, "cancelled", note="Plans changed")

    notification = db.query(Notification).one()
    assert notification.recipient_id == farmer.id
    event = db.query(OrderEvent).one()
    assert event.note == "Plans changed"


@pytest.mark.parametrize("start", ["pending", "confirmed", "ready"])
def test_cancel_reachable_from_open_states(db, buyer, farmer, farm, start):
    order = make_order(db, buyer, farm, status=start)
    order_service.transition_order(guard_for(db, farmer), order.id, "cancelled")
    db.expire_all()
    assert db.get(Order, order.id).status == "cancelled"


@pytest.mark.parametrize("start", ["completed", "cancelled"])
def test_cancel_unreachable_from_terminal_states(db, buyer, farmer, farm, start):
    order = make_order(db, buyer, farm, status=start)
    with pytest.raises(InvalidTransition):
        order_service.transition_order(guard_for(db, farmer), order.id, "cancelled")

    db.expire_all()
    assert db.get(Order, order.id).status == start
    assert db.query(OrderEvent).count() == 0
    assert db.query(Notification).count() == 0


def test_full_lifecycle(db, buyer, farmer, farm):
    order = make_order(db, buyer, farm)
    for status in ("confirmed", "ready", "completed"):
        order_service.transition_order(guard_for(db, farmer), order.id, status)

    statuses = [e.status for e in db.query(OrderEvent).order_by(OrderEvent.id)]
    assert statuses == ["confirmed", "ready", "completed"]
    assert db.query(Notification).filter(Notification.recipient_id == buyer.id).count() == 3


def test_unrelated_buyer_cannot_transition(db, buyer, other_buyer, other_farm):
    order = make_order(db, buyer, other_farm)

    with pytest.raises(NotFound):
        order_service.transition_order(guard_for(db, other_buyer), order.id, "cancelled")

    db.expire_all()
    assert db.get(Order, order.id).status == "pending"
    assert db.query(OrderEvent).count() == 0


def test_other_farmer_cannot_transition(db, buyer, farm, other_farmer, other_farm):
    order = make_order(db, buyer, farm)
    with pytest.raises(NotFound):
        order_service.transition_order(guard_for(db, other_farmer), order.id, "confirmed")


def test_failed_notification_rolls_back_transition(db, buyer, farmer, farm, monkeypatch):
    order = make_order(db, buyer, farm)

    def broken_notify(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(order_service, "notify", broken_notify)
    with pytest.raises(RuntimeError):
        order_service.transition_order(guard_for(db, farmer), order.id, "confirmed")

    db.expire_all()
    assert db.get(Order, order.id).status == "pending"
    assert db.query(OrderEvent).count() == 0
    assert db.query(Notification).count() == 0


def test_transition_publishes_events(db, buyer, farmer, farm):
    received = []
    events.channel.subscribe(events.ALL_TOPICS, lambda topic, payload: received.append(topic))
    order = make_order(db, buyer, farm)

    order_service.transition_order(guard_for(db, farmer), order.id, "confirmed")

    assert received == [events.ORDER_STATUS_CHANGED, events.NOTIFICATION_CREATED]


# --------------------------------------------------------------------
# Details and free-form events
# --------------------------------------------------------------------
def test_update_details_of_open_order(db, buyer, farm):
    order = make_order(db, buyer, farm)
    order_service.update_order_details(
        guard_for(db, buyer), order.id, {"delivery_method": "delivery", "delivery_address": "1 Main St"}
    )
    db.expire_all()
    assert db.get(Order, order.id).delivery_address == "1 Main St"


def test_closed_order_details_are_frozen(db, buyer, farm):
    order = make_order(db, buyer, farm, status="completed")
    with pytest.raises(ConstraintViolation):
        order_service.update_order_details(guard_for(db, buyer), order.id, {"notes": "late"})


def test_add_note_and_location_events(db, buyer, farmer, farm):
    order = make_order(db, buyer, farm)
    order_service.add_order_event(guard_for(db, buyer), order.id, "note", note="Ring the bell")
    order_service.add_order_event(
        guard_for(db, farmer), order.id, "location_update", location={"lat": 40.1, "lng": -105.2}
    )
    kinds = [(e.event_type, e.status) for e in db.query(OrderEvent).order_by(OrderEvent.id)]
    assert kinds == [("note", None), ("location_update", None)]


def test_status_change_cannot_be_added_directly(db, buyer, farm):
    order = make_order(db, buyer, farm)
    with pytest.raises(ConstraintViolation):
        order_service.add_order_event(guard_for(db, buyer), order.id, "status_change")


def test_stranger_cannot_add_events(db, buyer, other_buyer, farm):
    order = make_order(db, buyer, farm)
    with pytest.raises(NotFound):
        order_service.add_order_event(guard_for(db, other_buyer), order.id, "note", note="hi")
