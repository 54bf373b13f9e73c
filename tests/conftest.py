"""Shared pytest fixtures for the ledger tests."""
import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from database import build_engine, build_session_factory, init_db
from schemas.ledger import TransactionCreate, TransactionRecord
from services import InMemoryLedgerStore, PuzzleMiner, SqlAlchemyLedgerStore, SupplyChainLedger

GENESIS = "0" * 64
BASE_DATE = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Stores and ledgers
# ---------------------------------------------------------------------------


@pytest.fixture
def fast_miner():
    """Difficulty 1 keeps mining to a handful of attempts."""
    return PuzzleMiner(difficulty=1, max_iterations=10_000, max_seconds=None)


@pytest.fixture
def memory_store():
    return InMemoryLedgerStore()


@pytest.fixture
def sql_engine():
    """A fresh in-memory SQLite database with the ledger tables."""
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return build_session_factory(sql_engine)


@pytest.fixture
def sql_store(session_factory):
    return SqlAlchemyLedgerStore(session_factory)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs a test once against each LedgerStore implementation."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def ledger(store, fast_miner):
    with SupplyChainLedger(store, miner=fast_miner, genesis_hash=GENESIS) as ledger:
        yield ledger


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_intent():
    """Build a TransactionCreate; `day` offsets the date from BASE_DATE."""

    def _make(batch_id=1, transaction_type="manufacture", quantity=100, day=0, **overrides):
        fields = {
            "batch_id": batch_id,
            "from_entity_id": None if transaction_type == "manufacture" else 1,
            "to_entity_id": 2,
            "transaction_type": transaction_type,
            "quantity": quantity,
            "unit_price": Decimal("1.50"),
            "transaction_date": BASE_DATE + timedelta(days=day),
        }
        fields.update(overrides)
        return TransactionCreate(**fields)

    return _make


@pytest.fixture
def make_record():
    """
    Build TransactionRecords directly for verifier/detector tests.

    Records chain onto each other in creation order unless previous_hash
    is given explicitly.
    """
    ids = itertools.count(1)
    state = {"last_hash": GENESIS}

    def _make(transaction_type="manufacture", batch_id=1, quantity=100, day=0, **overrides):
        record_id = next(ids)
        fields = {
            "id": record_id,
            "hash": f"{record_id:064x}",
            "previous_hash": state["last_hash"],
            "block_number": record_id,
            "batch_id": batch_id,
            "from_entity_id": None if transaction_type == "manufacture" else 1,
            "to_entity_id": 2,
            "transaction_type": transaction_type,
            "quantity": quantity,
            "transaction_date": BASE_DATE + timedelta(days=day),
            "temperature_log": [],
        }
        fields.update(overrides)
        record = TransactionRecord(**fields)
        state["last_hash"] = record.hash
        return record

    return _make
