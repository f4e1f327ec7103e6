"""
Pytest fixtures for the reconciliation test suite.

Provides:
- Structured logging capture
- The default rule tables and a context factory
- Builders for sale lines, stock movements and catalog entries
- An in-memory SQLite session over the read-model tables

Environment Variables:
- DATABASE_URL: database used by the ``db_session`` fixture.  Defaults to
  in-memory SQLite; set a PostgreSQL URL to run selector and service tests
  against the production backend.
"""

import json
import logging
import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from itertools import count
from typing import Any

import pytest

from recon_config import get_active_config
from recon_config.schema import RuleTables
from recon_engines.records import ReconciliationContext
from recon_kernel.domain.dtos import ProductInfo, SaleLine, StockMovement
from recon_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

DEFAULT_DATABASE_URL = "sqlite://"

BASE_TIME = datetime(2024, 6, 1, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture recon_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            engine.explode(...)
            logs = captured_logs()
            assert any(r["message"] == "explosion_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("recon_kernel")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture(scope="session")
def rule_tables() -> RuleTables:
    """The shipped default rule tables."""
    return get_active_config()


@pytest.fixture
def make_context(rule_tables) -> Callable[..., ReconciliationContext]:
    def _make(**overrides: Any) -> ReconciliationContext:
        overrides.setdefault("order_code", "SO33.00000001")
        return ReconciliationContext(rule_tables=rule_tables, **overrides)

    return _make


# =============================================================================
# Builders
# =============================================================================

_ids = count(1)


def make_sale(**overrides: Any) -> SaleLine:
    """A normal-order goods line: 10 x 100 = 1000."""
    data: dict[str, Any] = {
        "id": f"sale-{next(_ids)}",
        "order_code": "SO33.00000001",
        "item_code": "X",
        "material_code": "MX",
        "item_name": "Item X",
        "quantity": "10",
        "unit_price": "100",
        "amount": "1000",
        "line_total": "1000",
        "revenue": "1000",
        "order_type_label": "01. Thường",
        "product_type": "I",
        "unit_code": "TTM",
        "department_code": "MN01",
        "brand": "menard",
        "warehouse_code": "K01",
    }
    data.update(overrides)
    return SaleLine.from_mapping(data)


def make_movement(
    quantity: str | Decimal = "-10",
    minutes: int = 0,
    **overrides: Any,
) -> StockMovement:
    data: dict[str, Any] = {
        "id": f"mv-{next(_ids)}",
        "order_code": "SO33.00000001",
        "item_code": "X",
        "quantity": Decimal(str(quantity)),
        "created_at": BASE_TIME + timedelta(minutes=minutes),
        "doc_type": "SALE_STOCKOUT",
        "doc_code": "ST0001",
        "item_name": "Item X",
        "material_code": "MX",
        "stock_code": "K02",
        "tracking_code": "",
    }
    data.update(overrides)
    return StockMovement(**data)


def make_product(code: str = "X", **overrides: Any) -> ProductInfo:
    data: dict[str, Any] = {
        "code": code,
        "material_code": f"M{code}",
        "track_lot": False,
        "track_serial": False,
        "product_type": "01SKIN",
        "material_type": "10",
    }
    data.update(overrides)
    return ProductInfo(**data)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def db_session():
    """
    A session over freshly created read-model tables.

    Each test gets empty tables; everything is dropped afterwards.
    """
    from recon_kernel.db.base import Base
    from recon_kernel.db.engine import (
        create_tables,
        get_engine,
        get_session,
        init_engine_from_url,
        reset_engine,
    )

    init_engine_from_url(get_database_url())
    create_tables()
    session = get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(get_engine())
        reset_engine()
