"""Shared test fixtures for the billing test suite."""

import os
import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
from clients.vault_client import reset_vault_cache
reset_vault_cache()

from core.engine import BillingEngine
from core.models import BillingCadence, CommissionType, Contract, DEFAULT_COMMISSION_SCALE
from core.stores.memory import InMemoryContractDirectory, InMemorySalesSource
from utils.actor_context import actor_context, clear_current_actor_id
from tests.helpers import at


# =============================================================================
# TEST ACTOR CONSTANTS
# =============================================================================

# Operator used for attributed mutations in tests
TEST_OPERATOR_ID = UUID("00000000-0000-0000-0000-000000000001")


# =============================================================================
# ACTOR CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_current_actor_id()
    yield
    clear_current_actor_id()


@pytest.fixture
def operator_id() -> UUID:
    return TEST_OPERATOR_ID


@pytest.fixture
def as_operator(operator_id):
    """Run the test body as the test operator."""
    with actor_context(operator_id):
        yield operator_id


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def client_id() -> UUID:
    return uuid4()


@pytest.fixture
def sales() -> InMemorySalesSource:
    return InMemorySalesSource()


@pytest.fixture
def contracts() -> InMemoryContractDirectory:
    return InMemoryContractDirectory(scales=[DEFAULT_COMMISSION_SCALE])


@pytest.fixture
def flat_contract(client_id, contracts) -> Contract:
    """Monthly 20% contract signed at the start of 2025."""
    return contracts.add_contract(Contract(
        client_id=client_id,
        commission_type=CommissionType.FLAT,
        flat_percentage=Decimal("20"),
        billing_cadence=BillingCadence.MONTHLY,
        start_date=date(2025, 1, 1),
        signed_at=at(2024, 12, 20),
    ))


@pytest.fixture
def tiered_contract(client_id, contracts) -> Contract:
    """Semi-monthly contract on the default tiered scale."""
    return contracts.add_contract(Contract(
        client_id=client_id,
        commission_type=CommissionType.TIERED,
        tiered_scale_id=DEFAULT_COMMISSION_SCALE.id,
        billing_cadence=BillingCadence.SEMI_MONTHLY,
        start_date=date(2025, 1, 1),
        signed_at=at(2024, 12, 20),
    ))


@pytest.fixture
def engine(sales, contracts) -> BillingEngine:
    """In-memory engine over the sales and contracts fixtures."""
    return BillingEngine.in_memory(sales=sales, contracts=contracts)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """
    Session-scoped PostgresClient for store tests.

    Skips unless BILLING_TEST_DATABASE_URL points at a database with
    db/schema.sql applied.
    """
    url = os.getenv("BILLING_TEST_DATABASE_URL")
    if not url:
        pytest.skip("BILLING_TEST_DATABASE_URL not set")

    from clients.postgres_client import PostgresClient

    client = PostgresClient(url, min_connections=1, max_connections=5)
    yield client
    client.close()


@pytest.fixture
def clean_db(db):
    """Truncate billing tables before each database test."""
    db.execute("""
        TRUNCATE payments, invoices, monthly_statements, consolidated_periods,
                 ledger_transactions, audit_log
        CASCADE
    """)
    yield db
