"""Shared test fixtures and configuration."""

import os
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

# Set up test environment variables before importing modules
os.environ.setdefault("LIQPAY_PUBLIC_KEY", "pk_test")
os.environ.setdefault("LIQPAY_PRIVATE_KEY", "sk_test")
os.environ.setdefault("PAYMENTS_API_KEY", "test_api_key_12345")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from payments_liqpay.connectors.base import (
    Client,
    Invoice,
    Order,
    Payment,
    Periodicity,
    Product,
    Subscription,
    TransactionManager,
    TransactionRegistrar,
)
from payments_liqpay.connectors.liqpay import LiqPayConfig, encode
from payments_liqpay.database import Base, create_async_engine, get_async_session_factory

PUBLIC_KEY = "pk_test"
PRIVATE_KEY = "sk_test"
CALLBACK_URL = "https://shop.example/webhooks/liqpay"


class FakeRegistrar(TransactionRegistrar):
    """In-memory registrar recording every registration."""

    def __init__(self):
        self.created: List[SimpleNamespace] = []
        self.roots: Dict[Any, SimpleNamespace] = {}

    async def make_transaction(self, order, payment, provider, options=None, is_subscription=False):
        transaction = SimpleNamespace(
            transaction_id=f"tx-{len(self.created) + 1}",
            status="pending",
            is_subscription=is_subscription,
            options=options,
            provider=provider,
        )
        self.created.append(transaction)
        self.roots[(order.order_type, order.order_id, provider)] = transaction
        return transaction

    async def find_root_transaction(self, order, provider):
        return self.roots.get((order.order_type, order.order_id, provider))


class RecordingManager(TransactionManager):
    """Transaction manager that only remembers what it was given."""

    def __init__(self):
        self.invoices: List[Invoice] = []

    async def process(self, invoice):
        self.invoices.append(invoice)
        return invoice


@pytest.fixture
def liqpay_config() -> LiqPayConfig:
    """Return a minimal valid configuration."""
    return LiqPayConfig(public_key=PUBLIC_KEY, private_key=PRIVATE_KEY, callback_url=CALLBACK_URL)


@pytest.fixture
def registrar() -> FakeRegistrar:
    return FakeRegistrar()


@pytest.fixture
def manager() -> RecordingManager:
    return RecordingManager()


@pytest.fixture
def payment() -> Payment:
    """Return a one-off payment without client or product."""
    return Payment(
        amount="150.00",
        currency="UAH",
        description="Order #42",
        return_url="https://shop.example/orders/42",
    )


@pytest.fixture
def subscription_payment() -> Payment:
    return Payment(
        amount="99.00",
        currency="UAH",
        description="Monthly plan",
        return_url="https://shop.example/account",
        subscription=Subscription(start=datetime(2026, 11, 1, 12, 0, 0), periodicity=Periodicity.MONTH),
    )


@pytest.fixture
def order(payment) -> Order:
    return Order(order_type="shop.order", order_id="42", payment=payment)


@pytest.fixture
def subscription_order(subscription_payment) -> Order:
    return Order(order_type="shop.subscription", order_id="7", payment=subscription_payment)


@pytest.fixture
def client_details() -> Client:
    return Client(
        id="user-17",
        first_name="Taras",
        last_name="Shevchenko",
        city="Kyiv",
        address="Khreshchatyk 1",
        postal_code="01001",
    )


@pytest.fixture
def product_details() -> Product:
    return Product(
        url="https://shop.example/p/1",
        category="books",
        name="Kobzar",
        description="Poetry collection",
    )


@pytest.fixture
def callback_fields() -> Dict[str, Any]:
    """Return the decoded fields of a successful pay callback."""
    return {
        "version": 3,
        "public_key": PUBLIC_KEY,
        "action": "pay",
        "status": "success",
        "payment_id": 1650000001,
        "order_id": "tx-1",
        "amount": 150.5,
        "currency": "UAH",
        "receiver_commission": 4.14,
    }


@pytest.fixture
def sign_callback():
    """Return a helper turning callback fields into a signed form body."""
    def _sign(fields: Dict[str, Any], private_key: str = PRIVATE_KEY) -> Dict[str, str]:
        return encode(fields, private_key).as_form()
    return _sign


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        database_url="sqlite+aiosqlite:///:memory:",
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a database session for testing."""
    session_factory = get_async_session_factory(db_engine)
    async with session_factory() as session:
        yield session
