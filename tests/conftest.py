import os

# must be set before any app module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

from decimal import Decimal

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api import create_app
from app.api.deps import get_lock_service, get_notification_service, get_payment_client
from app.data.database import Base, get_db
from app.data import models  # noqa: F401
from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel, OrderItemModel
from app.data.models.product import ProductModel
from app.data.models.user import UserModel, AddressModel
from app.domain.owner import CartOwner
from app.repos.cart_repo import CartRepo
from app.services.cart_service import CartService
from app.services.lock_service import LockService
from app.services.order_service import OrderService
from app.services.review_service import ReviewService


class FakePaymentClient:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.calls = []

    def reverse_charge(self, order_id: int) -> bool:
        self.calls.append(order_id)
        return self.succeed


class RecordingNotifier:
    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.events = []

    def send_order_event(self, contact: str, event_kind: str, payload: dict) -> bool:
        self.events.append((contact, event_kind, payload))
        return self.deliver


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def payment():
    return FakePaymentClient()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cart_service(db, lock_service):
    return CartService(db=db, lock_service=lock_service)


@pytest.fixture
def order_service(db, payment, notifier, lock_service):
    return OrderService(
        db=db,
        payment_client=payment,
        notification_service=notifier,
        lock_service=lock_service,
    )


@pytest.fixture
def review_service(db):
    return ReviewService(db)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(name="Jan"):
        counter["n"] += 1
        user = UserModel(name=name, email=f"user{counter['n']}@example.com")
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(name="Keyboard", price="199.99", cost_price="120.00", slug=None):
        counter["n"] += 1
        product = ProductModel(
            name=name,
            slug=slug or f"{name.lower().replace(' ', '-')}-{counter['n']}",
            price=Decimal(price),
            cost_price=Decimal(cost_price),
            is_active=True,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_address(db):
    def _make(user, city="Warszawa"):
        address = AddressModel(
            user_id=user.id,
            recipient=user.name,
            line1="Marszalkowska 1",
            city=city,
            postal_code="00-001",
            country="PL",
        )
        db.add(address)
        db.commit()
        return address

    return _make


@pytest.fixture
def make_order(db, make_user, make_product):
    def _make(user=None, status="PENDING", payment_status="UNPAID", products=None):
        user = user or make_user()
        products = products or [make_product(name=f"Product {status} {payment_status}")]
        order = OrderModel(
            user_id=user.id,
            contact_email=user.email,
            shipping_address={"city": "Warszawa"},
            status=status,
            payment_status=payment_status,
            total=sum((p.price for p in products), Decimal("0.00")),
            version=1,
            items=[
                OrderItemModel(product_id=p.id, name=p.name, unit_price=p.price, quantity=1)
                for p in products
            ],
        )
        db.add(order)
        db.commit()
        return order

    return _make


@pytest.fixture
def fill_cart(db):
    """Writes cart rows directly, bypassing the service."""

    def _fill(owner: CartOwner, lines: dict):
        repo = CartRepo(db)
        cart = repo.get_cart_by_owner(owner) or repo.create_cart(owner)
        for product_id, quantity in lines.items():
            repo.add_cart_item(CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity))
        db.commit()
        return cart

    return _fill


@pytest.fixture
def client(db, lock_service, payment, notifier):
    app = create_app()

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_client] = lambda: payment
    app.dependency_overrides[get_notification_service] = lambda: notifier

    with TestClient(app) as c:
        yield c
