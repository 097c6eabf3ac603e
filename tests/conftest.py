import os
import tempfile

# Antes de importar tienda: la config se lee al importar
_TMP = tempfile.mkdtemp(prefix="tienda-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db").replace("\\", "/")
os.environ["INVOICE_DIR"] = os.path.join(_TMP, "invoices")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from tienda.db import Base, SessionLocal, engine  # noqa: E402
from tienda.main import app  # noqa: E402
from tienda.middleware.idempotency import idem_cache, idem_locks  # noqa: E402
from tienda.models.coupon import Coupon  # noqa: E402
from tienda.models.product import Product  # noqa: E402
from tienda.models.user import User  # noqa: E402
from tienda.services.notifications import get_notifier  # noqa: E402


class RecordingNotifier:
    def __init__(self):
        self.invoices = []

    def send_order_confirmation(self, invoice):
        self.invoices.append(invoice)
        return f"memory/invoice_{invoice['order_id']}.json"


class FailingNotifier:
    def send_order_confirmation(self, invoice):
        raise RuntimeError("smtp caído")


@pytest.fixture(autouse=True)
def _fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    idem_cache._store.clear()
    idem_locks._locks.clear()
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(name="Ana", email="ana@example.com", phone="5551234567"):
        u = User(name=name, email=email, phone=phone)
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Guitarra", price="500.00", stock=5, category="Cuerdas"):
        p = Product(name=name, price=Decimal(price), stock=stock, category=category)
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code="SAVE10", discount_type="percentage", discount_value="10", **kw):
        c = Coupon(
            code=code.upper(),
            name=kw.pop("name", code),
            discount_type=discount_type,
            discount_value=Decimal(discount_value),
            used_count=kw.pop("used_count", 0),
            is_active=kw.pop("is_active", True),
            **kw,
        )
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    return _make


@pytest.fixture
def failing_notifier():
    return FailingNotifier()
