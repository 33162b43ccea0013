"""Test configuration and fixtures."""

import os
from datetime import UTC, datetime
from decimal import Decimal

import pytest
import structlog
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.registry import Registry, reset_registry
from db.models import (
    Base,
    OrderPayment,
    OrderStatusHistory,
    PaymentTransaction,
    SalesOrder,
)
from payments.currency import RateTableConverter, StaticStoreContext
from payments.nvp import NvpCurrencyRewriter
from payments.order_history import OrderHistoryAuditAttacher

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=UTC)


class _TestLogger:
    def __init__(self):
        self.output = []

    def __call__(self, logger, method_name, event_dict):
        """Process log events and store them for test assertions"""
        self.output.append(event_dict.copy())
        return event_dict

    def events(self, name):
        return [entry for entry in self.output if entry.get("event") == name]


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "DATABASE_URL": "sqlite:///:memory:",
            "BASE_CURRENCY_CODE": "KWD",
            "KWD_USD_RATE": "3.25",
            "APP_NAME": "Test Bridge",
            "ENVIRONMENT": "test",
            "DISABLE_TRACING": "true",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)
    reset_registry()


@pytest.fixture(autouse=True)
def log_output():
    """Route structlog events into a list for assertions."""
    test_logger = _TestLogger()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            test_logger,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield test_logger
    structlog.reset_defaults()


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def converter():
    """KWD→USD at 3.25, the store currency being KWD."""
    return RateTableConverter({("KWD", "USD"): Decimal("3.25")}, store_currency="KWD")


@pytest.fixture
def kwd_store():
    return StaticStoreContext("KWD")


@pytest.fixture
def rewriter(converter, kwd_store, registry):
    return NvpCurrencyRewriter(
        converter, kwd_store, registry=registry, clock=lambda: FIXED_NOW
    )


@pytest.fixture
def attacher(registry):
    return OrderHistoryAuditAttacher(registry=registry)


@pytest.fixture
def db_engine():
    """In-memory sales database."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_order(db_session):
    """Factory for persisted orders with a payment."""

    def _make_order(
        method="paypal_express",
        last_trans_id=None,
        additional_information=None,
        txn_ids=(),
        comments=(),
    ):
        order = SalesOrder(increment_id="000000101", grand_total="10.000")
        payment = OrderPayment(
            method=method,
            last_trans_id=last_trans_id,
            additional_information=additional_information or {},
        )
        order.payment = payment
        for txn_id in txn_ids:
            payment.transactions.append(
                PaymentTransaction(txn_id=txn_id, txn_type="capture")
            )
        for comment in comments:
            order.add_status_history(OrderStatusHistory(comment=comment))
        db_session.add(order)
        db_session.commit()
        return order

    return _make_order


@pytest.fixture
def sample_request():
    """DoExpressCheckoutPayment request for a two-line KWD cart."""
    return {
        "METHOD": "DoExpressCheckoutPayment",
        "TOKEN": "EC-8XY12345AB678901C",
        "PAYERID": "QWERTY123",
        "PAYMENTACTION": "Sale",
        "CURRENCYCODE": "KWD",
        "AMT": "16.500",
        "ITEMAMT": "14.000",
        "SHIPPINGAMT": "2.000",
        "TAXAMT": "0.500",
        "L_NAME0": "Dates Box",
        "L_NUMBER0": "DATE-01",
        "L_AMT0": "4.000",
        "L_QTY0": "2",
        "L_NAME1": "Saffron",
        "L_NUMBER1": "SAF-02",
        "L_AMT1": "6.000",
        "L_QTY1": "1",
    }
