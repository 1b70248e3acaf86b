import os

# Settings are read at import time; keep tests off any real database or mail provider
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SENDGRID_API_KEY"] = ""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from models.cart import CartItem
from models.coupon import Coupon
from models.log import AuditEntry  # noqa: F401
from models.order import Order  # noqa: F401
from models.product import Product
from models.users import User
from services.cart import CartStore
from services.checkout import CheckoutService
from services.errors import NotificationError
from services.ledger import ShippingDetails
from services.pricing import PricingConfig
from services.unit_of_work import transaction
from utils.email_client import DeliveryResult, get_email_client
from utils.hashing import get_password_hash
from utils.pdf import get_invoice_renderer
from utils.tokenJWT import create_access_token


PRICING = PricingConfig(tax_rate_percent=Decimal("16"), shipping_fee=Decimal("150.00"))


class FakeRenderer:
    def __init__(self, fail=False):
        self.fail = fail
        self.rendered = []

    def render(self, order):
        if self.fail:
            raise NotificationError("renderer down", order_id=order.id)
        self.rendered.append(order.id)
        return b"%PDF-1.4 fake"


class FakeNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.invoices = []
        self.welcomes = []

    def send_invoice(self, email, order, document):
        if self.fail:
            raise NotificationError("mail provider unreachable")
        self.invoices.append((email, order.id, document))
        return DeliveryResult(status_code=202)

    def send_welcome_coupon(self, email, name, code, discount_percentage):
        if self.fail:
            raise NotificationError("mail provider unreachable")
        self.welcomes.append((email, code, discount_percentage))
        return DeliveryResult(status_code=202)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def seed(db):
    """Two customers, one admin, three products and two coupons."""
    users = {
        "ana": User(email="ana@novahogar.mx", password_hash=get_password_hash("secreto123"),
                    role="customer", first_name="Ana", last_name="López"),
        "luis": User(email="luis@novahogar.mx", password_hash=get_password_hash("secreto123"),
                     role="customer", first_name="Luis", last_name="Pérez"),
        "admin": User(email="admin@novahogar.mx", password_hash=get_password_hash("admin12345"),
                      role="admin", first_name="Admin", last_name="Nova"),
    }
    products = {
        "sofa": Product(name="Sofá Oslo", category="Salas", price=Decimal("100.00"),
                        stock_on_hand=5, stock_initial=5),
        "lampara": Product(name="Lámpara Coral", category="Dormitorios", price=Decimal("50.00"),
                           stock_on_hand=10, stock_initial=10),
        "silla": Product(name="Silla Viena", category="Comedores", price=Decimal("25.00"),
                         stock_on_hand=1, stock_initial=1),
    }
    coupons = {
        "hogar10": Coupon(code="HOGAR10", discount_percentage=10, active=True),
        "usado": Coupon(code="USADO50", discount_percentage=50, active=False),
    }
    db.add_all([*users.values(), *products.values(), *coupons.values()])
    db.commit()
    return SimpleNamespace(
        users={k: u.id for k, u in users.items()},
        products={k: p.id for k, p in products.items()},
        coupons={k: c.id for k, c in coupons.items()},
    )


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def service(db, renderer, notifier):
    return CheckoutService(db, invoices=renderer, notifier=notifier, pricing=PRICING)


@pytest.fixture
def shipping():
    return ShippingDetails(
        name="Ana López",
        address="Av. Reforma 123",
        city="Ciudad de México",
        postal_code="06600",
        phone="5512345678",
        country="México",
    )


@pytest.fixture
def fill_cart(db):
    carts = CartStore()

    def _fill(user_id, *lines):
        with transaction(db) as tx:
            for product_id, quantity in lines:
                carts.add(tx, user_id, product_id, quantity)

    return _fill


@pytest.fixture
def client(session_factory, seed, renderer, notifier, monkeypatch):
    from main import app

    # Keep pricing independent of any local .env
    monkeypatch.setattr(PricingConfig, "from_settings", classmethod(lambda cls, s: PRICING))

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_invoice_renderer] = lambda: renderer
    app.dependency_overrides[get_email_client] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(email, role="customer"):
    token = create_access_token({"sub": email, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def ana_headers(seed):
    return auth_headers("ana@novahogar.mx")


@pytest.fixture
def luis_headers(seed):
    return auth_headers("luis@novahogar.mx")


@pytest.fixture
def admin_headers(seed):
    return auth_headers("admin@novahogar.mx", role="admin")


def cart_count(db, user_id):
    db.expire_all()
    return db.query(CartItem).filter(CartItem.user_id == user_id).count()


def stock_of(db, product_id):
    db.expire_all()
    return db.get(Product, product_id).stock_on_hand
