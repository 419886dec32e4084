"""
Pytest fixtures for the pricing test suite.

Provides:
- Structured logging configured once per session, plus ``captured_logs``
- The packaged pricing configuration and a small catalog
- A deterministic clock
- An in-memory SQLite session with every pricing table created
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from pricing_config import get_active_config
from pricing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from pricing_kernel.domain import CatalogItem, DeterministicClock, DictCatalog
from pricing_kernel.exceptions import CatalogUnavailableError
from pricing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
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
    Capture pricing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            resolver.resolve(rows, bases)
            logs = captured_logs()
            assert any(r["message"] == "extra_fee_resolution_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pricing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def config():
    """The packaged default configuration (VND)."""
    return get_active_config()


@pytest.fixture
def catalog():
    return DictCatalog([
        CatalogItem("chair", Decimal("100"), Decimal("150"), name="Chair"),
        CatalogItem("table", Decimal("60000"), Decimal("90000"), name="Round table"),
        CatalogItem("linen", Decimal("20000"), name="Linen"),
        CatalogItem("duck", Decimal("85000"), name="Roast duck"),
        CatalogItem("sauce", Decimal("5000"), name="Dipping sauce"),
        CatalogItem("herbs", Decimal("4000"), name="Herbs"),
        CatalogItem("rice", Decimal("3000"), name="Rice"),
    ])


class FailingCatalog:
    """Catalog whose lookups fail for selected ids."""

    def __init__(self, inner, failing_ids):
        self.inner = inner
        self.failing_ids = set(failing_ids)

    def get(self, item_id):
        if item_id in self.failing_ids:
            raise CatalogUnavailableError(item_id, "catalog service timeout")
        return self.inner.get(item_id)


@pytest.fixture
def failing_catalog(catalog):
    """Factory: ``failing_catalog("chair")`` fails lookups of chair."""

    def _make(*item_ids):
        return FailingCatalog(catalog, item_ids)

    return _make


@pytest.fixture
def clock():
    return DeterministicClock()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """Session bound to a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    session = get_session()
    yield session
    session.rollback()
    session.close()
    drop_tables()
    reset_engine()
