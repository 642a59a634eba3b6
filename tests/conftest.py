import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TAX_RATE"] = "0.085"

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import ordering.models  # noqa: F401  registers tables
from ordering.auth.dependencies import get_current_staff_user, get_current_user_id
from ordering.db import get_db
from ordering.models import Discount, MenuItem, MenuItemAddon, MenuItemSize, Restaurant
from ordering.utils.timezones import utcnow

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(ordering.models.Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def seed_catalog(db):
    """Two restaurants, a small menu and a handful of coupons"""
    now = utcnow()
    window = dict(start_date=now - timedelta(days=1), end_date=now + timedelta(days=30))

    pizzeria = Restaurant(
        id="r-pizza", name="Slice House", delivery_fee=300, minimum_order_amount=1000,
        accepts_delivery=True, accepts_pickup=True,
        estimated_prep_minutes=20, estimated_delivery_minutes=25, timezone="UTC",
    )
    taqueria = Restaurant(
        id="r-tacos", name="Taqueria", delivery_fee=0, minimum_order_amount=0,
        accepts_delivery=False, accepts_pickup=True,
        estimated_prep_minutes=10, estimated_delivery_minutes=0, timezone="UTC",
    )
    db.add_all([pizzeria, taqueria])

    db.add_all([
        MenuItem(id="m-pizza", restaurant_id="r-pizza", name="Margherita", price=1000, is_available=True),
        MenuItem(id="m-wings", restaurant_id="r-pizza", name="Wings", price=800, is_available=True),
        MenuItem(id="m-soda", restaurant_id="r-pizza", name="Soda", price=250, is_available=False),
        MenuItem(id="m-taco", restaurant_id="r-tacos", name="Al Pastor", price=350, is_available=True),
        MenuItemSize(id="s-large", menu_item_id="m-pizza", size_name="Large", price_adjustment=300),
        MenuItemSize(id="s-small", menu_item_id="m-pizza", size_name="Small", price_adjustment=-200),
        MenuItemAddon(id="a-cheese", menu_item_id="m-pizza", name="cheese", kind="addon", price=150),
        MenuItemAddon(id="a-basil", menu_item_id="m-pizza", name="basil", kind="addon", price=35),
        MenuItemAddon(id="a-olives", menu_item_id="m-pizza", name="olives", kind="addon", price=75),
        MenuItemAddon(id="a-crispy", menu_item_id="m-wings", name="extra crispy", kind="modification", price=99),
    ])

    db.add_all([
        Discount(id="d-save10", restaurant_id="r-pizza", code="SAVE10",
                 discount_type="percentage", value=Decimal("10"),
                 excluded_items=[], valid_days=[], **window),
        Discount(id="d-big25", restaurant_id="r-pizza", code="BIG25",
                 discount_type="percentage", value=Decimal("25"), minimum_order_amount=2500,
                 excluded_items=[], valid_days=[], **window),
        Discount(id="d-fiveoff", restaurant_id="r-pizza", code="FIVEOFF",
                 discount_type="fixed_amount", value=Decimal("500"), total_redemption_limit=1,
                 excluded_items=[], valid_days=[], **window),
        Discount(id="d-welcome", restaurant_id="r-pizza", code="WELCOME",
                 discount_type="percentage", value=Decimal("20"), is_one_time_use=True,
                 excluded_items=[], valid_days=[], **window),
        Discount(id="d-taco", restaurant_id="r-tacos", code="TACOTUESDAY",
                 discount_type="fixed_amount", value=Decimal("100"),
                 excluded_items=[], valid_days=[], **window),
    ])
    await db.commit()
    return SimpleNamespace(pizzeria=pizzeria, taqueria=taqueria, now=now)


@pytest.fixture
async def seed(db):
    return await seed_catalog(db)


@pytest.fixture
async def file_session_factory(tmp_path):
    """Seeded on-disk database where every session gets its own connection"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ordering.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(ordering.models.Base.metadata.create_all)
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_catalog(session)
    yield factory
    await engine.dispose()


@pytest.fixture
async def client(session_factory, seed):
    from ordering.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    app.dependency_overrides[get_current_staff_user] = lambda: "staff-1"

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def place_order(db, seed):
    """Fill a cart and check it out; returns the created Order"""
    from ordering.schemas.cart import CartItemCreate, DeliveryAddress, OrderType
    from ordering.schemas.order import CheckoutRequest
    from ordering.services.cart_store import CartStore
    from ordering.services.checkout import CheckoutService

    async def _place(user_id=USER_ID, items=None, order_type=OrderType.pickup, code=None, tip=None, now=None):
        store = CartStore(db)
        for item in items or [CartItemCreate(menu_item_id="m-pizza", quantity=2)]:
            await store.add_item(user_id, item)
        await store.set_order_type(user_id, order_type)
        if order_type == OrderType.delivery:
            await store.set_delivery_address(user_id, DeliveryAddress(
                street_address="1 Main St", city="Springfield", state="IL", zip_code="62701",
            ))
        if code:
            await store.apply_discount(user_id, code)
        request = CheckoutRequest(payment_method_id="pm_card_visa", tip=tip)
        return await CheckoutService(db).checkout(user_id, request, now=now)

    return _place
