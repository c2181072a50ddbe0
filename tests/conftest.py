"""
Pytest fixtures for the document intake test suite.

Provides:
- An in-memory SQLite database per test (SAVEPOINT-correct configuration)
- Deterministic clock, default intake config, and well-known actor ids
- Seeded credit card and managed product rows
- Captured structured logs

Environment Variables:
- DATABASE_URL: optional database URL; defaults to in-memory SQLite.
  A PostgreSQL URL runs the same suite against PostgreSQL.
"""

import json
import logging
import os
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_config.schema import IntakeConfig
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_modules.documents.models import (
    CandidateLineItem,
    DocumentSource,
    ExtractedCandidate,
)
from ledger_modules.ledger.materializer import LedgerMaterializer
from ledger_modules.ledger.orm import BusinessCreditCardModel, ManagedProductModel
from ledger_modules.pricing.service import PriceHistoryTracker
from ledger_services.document_review import DocumentReviewService

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


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
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, review_service):
            review_service.select_document(...)
            assert any(r["message"] == "document_claimed" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
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
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh schema per test."""
    engine = init_engine_from_url(get_database_url())
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Actors, clock, config
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def config() -> IntakeConfig:
    return IntakeConfig()


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def reviewer_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_reviewer_id() -> UUID:
    return uuid4()


@pytest.fixture
def business_id() -> UUID:
    return uuid4()


@pytest.fixture
def supplier_id() -> UUID:
    return uuid4()


# =============================================================================
# Seed rows
# =============================================================================


@pytest.fixture
def credit_card(session, business_id, actor_id) -> BusinessCreditCardModel:
    """Active card billed on the 10th."""
    card = BusinessCreditCardModel(
        business_id=business_id,
        card_name="Visa Business",
        last_four_digits="4242",
        billing_day=10,
        created_by_id=actor_id,
    )
    session.add(card)
    session.commit()
    return card


@pytest.fixture
def managed_product(session, business_id, actor_id) -> ManagedProductModel:
    product = ManagedProductModel(
        business_id=business_id,
        name="Coffee beans",
        unit="kg",
        unit_cost=Decimal("42.50"),
        current_stock=Decimal("12"),
        created_by_id=actor_id,
    )
    session.add(product)
    session.commit()
    return product


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def tracker(session, config) -> PriceHistoryTracker:
    return PriceHistoryTracker(session, config)


@pytest.fixture
def materializer(session, config, tracker) -> LedgerMaterializer:
    return LedgerMaterializer(session, config, tracker)


@pytest.fixture
def review_service(session, config, clock) -> DocumentReviewService:
    return DocumentReviewService(session, config, clock)


@pytest.fixture
def sample_candidate() -> ExtractedCandidate:
    return ExtractedCandidate(
        supplier_name="Fresh Produce Ltd",
        supplier_tax_id="514000000",
        document_number="INV-1001",
        document_date=date(2024, 3, 5),
        subtotal=Decimal("100.00"),
        vat_amount=Decimal("18.00"),
        total_amount=Decimal("118.00"),
        confidence_score=Decimal("0.93"),
        line_items=(
            CandidateLineItem(
                description="Tomatoes",
                quantity=Decimal("10"),
                unit_price=Decimal("4.50"),
                total=Decimal("45.00"),
            ),
        ),
    )


@pytest.fixture
def register_document(review_service, actor_id, business_id, clock):
    """Factory: register a pending document, one clock second apart."""

    def _register(**overrides):
        kwargs = {
            "actor_id": actor_id,
            "source": DocumentSource.TELEGRAM,
            "business_id": business_id,
            "image_url": "https://files.example.com/docs/scan-001.jpg",
        }
        kwargs.update(overrides)
        document = review_service.register_document(**kwargs)
        clock.advance()
        return document

    return _register
