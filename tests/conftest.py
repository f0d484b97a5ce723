from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.db.init  # noqa: F401  registers every model on Base.metadata
from app.auth.security import create_user_token
from app.db.access import AccessGuard
from app.db.session import Base, get_db
from app.main import app
from app.models.farmer import FarmerProfile
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.user import User
from app.services import events


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'marketplace-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_event_channel():
    yield
    events.channel.clear()


# --------------------------------------------------------------------
# Factories
# --------------------------------------------------------------------
def make_user(db, email, user_type="buyer", full_name=None):
    user = User(
        email=email,
        full_name=full_name or email.split("@")[0].title(),
        hashed_password="not-used",
        user_type=user_type,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_farm(db, user, **overrides):
    values = dict(
        user_id=user.id,
        farm_name=f"{user.full_name} Farm",
        description="Vegetables and honey",
        latitude=Decimal("40.000000"),
        longitude=Decimal("-105.000000"),
        delivery_radius_km=25,
        pickup_available=True,
        delivery_available=True,
    )
    values.update(overrides)
    farm = FarmerProfile(**values)
    db.add(farm)
    db.commit()
    db.refresh(farm)
    return farm


def make_product(db, farm, name, price, **overrides):
    values = dict(
        farmer_id=farm.id,
        name=name,
        category="vegetables",
        price_per_unit=Decimal(price),
        unit="kg",
        available_quantity=Decimal("100"),
        min_order_quantity=Decimal("1"),
        is_available=True,
    )
    values.update(overrides)
    product = Product(**values)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def make_order(db, buyer, farm, status="pending", lines=()):
    """Insert an order directly, bypassing placement checks."""
    total = sum((Decimal(str(q)) * Decimal(str(p.price_per_unit)) for p, q in lines), Decimal("0"))
    order = Order(buyer_id=buyer.id, farmer_id=farm.id, status=status, total_amount=total,
                  delivery_method="pickup")
    db.add(order)
    db.flush()
    for product, quantity in lines:
        db.add(OrderItem(order_id=order.id, product_id=product.id, quantity=Decimal(str(quantity)),
                         price_per_unit=product.price_per_unit, subtotal=Decimal("0")))
    db.commit()
    db.refresh(order)
    return order


def auth_headers(user):
    return {"Authorization": f"Bearer {create_user_token(user)}"}


def guard_for(db, user):
    return AccessGuard(db, user)


# --------------------------------------------------------------------
# Common cast
# --------------------------------------------------------------------
@pytest.fixture
def farmer(db):
    return make_user(db, "fiona@agrimarket.com", "farmer", "Fiona")


@pytest.fixture
def farm(db, farmer):
    return make_farm(db, farmer, farm_name="Green Acres")


@pytest.fixture
def other_farmer(db):
    return make_user(db, "frank@agrimarket.com", "farmer", "Frank")


@pytest.fixture
def other_farm(db, other_farmer):
    return make_farm(db, other_farmer, farm_name="Hilltop Orchard", delivery_available=False)


@pytest.fixture
def buyer(db):
    return make_user(db, "bella@agrimarket.com", "buyer", "Bella")


@pytest.fixture
def other_buyer(db):
    return make_user(db, "boris@agrimarket.com", "buyer", "Boris")


@pytest.fixture
def tomatoes(db, farm):
    return make_product(db, farm, "Tomatoes", "3.00")


@pytest.fixture
def honey(db, farm):
    return make_product(db, farm, "Honey", "5.00", category="pantry", unit="jar")
