"""Row-level access policies.

Every table has a predicate per action (``select``, ``insert``, ``update``,
``delete``) deciding whether the caller may touch a given row, and a SQL
scope expression used to filter list reads down to the rows ``select``
would allow. A (table, action) pair without a registered predicate is
denied, and so is every action for an anonymous caller.

Predicates receive the session, the calling ``User`` and the row. For
inserts and the second half of an update check the row may be a proxy
carrying the proposed values, so predicates must only read attributes.
"""
import logging

from sqlalchemy import false, or_, select, true

from app.models.farmer import FarmerProfile
from app.models.favorite import Favorite
from app.models.message import Message
from app.models.notification import Notification
from app.models.order import Order, OrderEvent, OrderItem

logger = logging.getLogger(__name__)

SELECT, INSERT, UPDATE, DELETE = "select", "insert", "update", "delete"

POLICIES = {}
SCOPES = {}

# Columns a permitted update may change; everything else is fixed at insert.
MUTABLE_FIELDS = {
    "users": {"full_name", "email", "phone", "avatar_url", "hashed_password"},
    "farmer_profiles": {
        "farm_name", "description", "farm_size", "farming_practices", "address",
        "latitude", "longitude", "delivery_radius_km", "pickup_available",
        "delivery_available", "business_hours", "certifications",
    },
    "products": {
        "name", "description", "category", "price_per_unit", "unit",
        "available_quantity", "min_order_quantity", "image_url", "is_available",
        "seasonal_availability",
    },
    "orders": {"status", "delivery_method", "delivery_address", "delivery_date", "notes"},
    "reviews": {"rating", "comment"},
    "messages": {"is_read"},
    "notifications": {"is_read"},
}


def policy(resource, *actions):
    def decorator(fn):
        for action in actions:
            POLICIES[(resource, action)] = fn
        return fn
    return decorator


def scope(resource):
    def decorator(fn):
        SCOPES[resource] = fn
        return fn
    return decorator


def is_allowed(db, user, resource, action, row):
    if user is None:
        return False
    check = POLICIES.get((resource, action))
    if check is None:
        return False
    allowed = bool(check(db, user, row))
    if not allowed:
        logger.debug(
            "policy_denied resource=%s action=%s user_id=%s row_id=%s",
            resource, action, user.id, getattr(row, "id", None),
        )
    return allowed


def scope_filter(user, model):
    """SQL criterion selecting the rows of ``model`` visible to ``user``."""
    if user is None:
        return false()
    build = SCOPES.get(model.__tablename__)
    if build is None:
        return false()
    return build(user)


# --------------------------------------------------------------------
# Shared predicates
# --------------------------------------------------------------------
def owns_farmer_profile(db, user_id, farmer_id):
    if farmer_id is None:
        return False
    return db.query(FarmerProfile.id).filter(
        FarmerProfile.id == farmer_id,
        FarmerProfile.user_id == user_id
    ).first() is not None


def is_order_party(db, user_id, order):
    if order is None:
        return False
    return order.buyer_id == user_id or owns_farmer_profile(db, user_id, order.farmer_id)


def _parent_order(db, order_id):
    if order_id is None:
        return None
    return db.get(Order, order_id)


def owned_farmer_ids(user_id):
    return select(FarmerProfile.id).where(FarmerProfile.user_id == user_id)


def visible_order_ids(user_id):
    return select(Order.id).where(
        or_(Order.buyer_id == user_id, Order.farmer_id.in_(owned_farmer_ids(user_id)))
    )


def _everyone(db, user, row):
    return True


# --------------------------------------------------------------------
# users
# --------------------------------------------------------------------
policy("users", SELECT)(_everyone)


@policy("users", INSERT, UPDATE)
def _own_identity(db, user, row):
    return row.id == user.id


@scope("users")
def _users_scope(user):
    return true()


# --------------------------------------------------------------------
# farmer_profiles
# --------------------------------------------------------------------
policy("farmer_profiles", SELECT)(_everyone)


@policy("farmer_profiles", INSERT)
def _farmer_creates_own_profile(db, user, row):
    return user.is_farmer and row.user_id == user.id


@policy("farmer_profiles", UPDATE)
def _farmer_updates_own_profile(db, user, row):
    return row.user_id == user.id


@scope("farmer_profiles")
def _farmer_profiles_scope(user):
    return true()


# --------------------------------------------------------------------
# products
# --------------------------------------------------------------------
policy("products", SELECT)(_everyone)


@policy("products", INSERT, UPDATE, DELETE)
def _farmer_owns_product(db, user, row):
    return owns_farmer_profile(db, user.id, row.farmer_id)


@scope("products")
def _products_scope(user):
    return true()


# --------------------------------------------------------------------
# orders
# --------------------------------------------------------------------
@policy("orders", SELECT, UPDATE)
def _order_party(db, user, row):
    return is_order_party(db, user.id, row)


@policy("orders", INSERT)
def _buyer_places_order(db, user, row):
    return row.buyer_id == user.id


@scope("orders")
def _orders_scope(user):
    return or_(Order.buyer_id == user.id, Order.farmer_id.in_(owned_farmer_ids(user.id)))


# --------------------------------------------------------------------
# order_items
# --------------------------------------------------------------------
@policy("order_items", SELECT)
def _order_item_visible(db, user, row):
    return is_order_party(db, user.id, _parent_order(db, row.order_id))


@policy("order_items", INSERT)
def _buyer_adds_order_item(db, user, row):
    order = _parent_order(db, row.order_id)
    return order is not None and order.buyer_id == user.id


@scope("order_items")
def _order_items_scope(user):
    return OrderItem.order_id.in_(visible_order_ids(user.id))


# --------------------------------------------------------------------
# order_events
# --------------------------------------------------------------------
@policy("order_events", SELECT, INSERT)
def _order_event_party(db, user, row):
    return is_order_party(db, user.id, _parent_order(db, row.order_id))


@scope("order_events")
def _order_events_scope(user):
    return OrderEvent.order_id.in_(visible_order_ids(user.id))


# --------------------------------------------------------------------
# reviews
# --------------------------------------------------------------------
policy("reviews", SELECT)(_everyone)


@policy("reviews", INSERT)
def _buyer_reviews_completed_order(db, user, row):
    if row.buyer_id != user.id or row.order_id is None:
        return False
    return db.query(Order.id).filter(
        Order.id == row.order_id,
        Order.buyer_id == user.id,
        Order.status == "completed"
    ).first() is not None


@policy("reviews", UPDATE)
def _buyer_owns_review(db, user, row):
    return row.buyer_id == user.id


@scope("reviews")
def _reviews_scope(user):
    return true()


# --------------------------------------------------------------------
# messages
# --------------------------------------------------------------------
@policy("messages", SELECT)
def _message_participant(db, user, row):
    return row.sender_id == user.id or row.recipient_id == user.id


@policy("messages", INSERT)
def _sender_is_caller(db, user, row):
    return row.sender_id == user.id


@policy("messages", UPDATE)
def _recipient_marks_read(db, user, row):
    return row.recipient_id == user.id


@scope("messages")
def _messages_scope(user):
    return or_(Message.sender_id == user.id, Message.recipient_id == user.id)


# --------------------------------------------------------------------
# favorites
# --------------------------------------------------------------------
@policy("favorites", SELECT, DELETE)
def _own_favorite(db, user, row):
    return row.buyer_id == user.id


@policy("favorites", INSERT)
def _favorite_someone_elses_farm(db, user, row):
    return row.buyer_id == user.id and not owns_farmer_profile(db, user.id, row.farmer_id)


@scope("favorites")
def _favorites_scope(user):
    return Favorite.buyer_id == user.id


# --------------------------------------------------------------------
# notifications
# --------------------------------------------------------------------
@policy("notifications", SELECT, UPDATE)
def _own_notification(db, user, row):
    return row.recipient_id == user.id


@policy("notifications", INSERT)
def _notification_has_recipient(db, user, row):
    return row.recipient_id is not None


@scope("notifications")
def _notifications_scope(user):
    return Notification.recipient_id == user.id
