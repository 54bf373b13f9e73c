"""Tests for services.chain_builder."""
from decimal import Decimal

import pytest

from models import TransactionType
from schemas.ledger import TransactionCreate
from services.canonical import compute_transaction_hash
from services.chain_builder import ChainBuilder, ChainTail
from services.errors import InvalidTransactionInput
from services.miner import MiningResult

GENESIS = "0" * 64


def test_first_block_links_to_genesis(make_intent):
    candidate = ChainBuilder(GENESIS).build(make_intent(), tail=None)
    assert candidate.block_number == 1
    assert candidate.previous_hash == GENESIS
    assert candidate.hash is None


def test_next_block_extends_the_tail(make_intent):
    tail = ChainTail(block_number=41, hash="c" * 64)
    candidate = ChainBuilder(GENESIS).build(make_intent(transaction_type="transfer"), tail)
    assert candidate.block_number == 42
    assert candidate.previous_hash == "c" * 64


def test_base_hash_is_the_canonical_hash_with_nonce_zero(make_intent):
    intent = make_intent()
    candidate = ChainBuilder(GENESIS).build(intent, tail=None)
    assert candidate.base_hash == compute_transaction_hash(
        batch_id=intent.batch_id,
        from_entity_id=None,
        to_entity_id=intent.to_entity_id,
        transaction_type=TransactionType.MANUFACTURE,
        quantity=intent.quantity,
        unit_price=intent.unit_price,
        transaction_date=intent.transaction_date,
        block_number=1,
        previous_hash=GENESIS,
        nonce=0,
    )


def test_total_amount_is_quantity_times_unit_price(make_intent):
    candidate = ChainBuilder(GENESIS).build(make_intent(quantity=12, unit_price=Decimal("2.25")), None)
    assert candidate.total_amount == Decimal("27.00")


def test_sealed_copies_the_mining_outcome(make_intent):
    candidate = ChainBuilder(GENESIS).build(make_intent(), None)
    sealed = candidate.sealed(MiningResult(hash="0f" * 32, nonce=17, attempts=17, exhausted=True, elapsed_ms=1.0))
    assert sealed.hash == "0f" * 32
    assert sealed.nonce == 17
    assert sealed.mining_exhausted
    assert candidate.hash is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"to_entity_id": None},
        {"quantity": 0},
        {"quantity": -5},
        {"unit_price": Decimal("-1")},
        {"transaction_date": None},
    ],
)
def test_invalid_intents_are_rejected(make_intent, overrides):
    fields = make_intent().model_dump()
    fields.update(overrides)
    intent = TransactionCreate.model_construct(**fields)
    with pytest.raises(InvalidTransactionInput):
        ChainBuilder(GENESIS).build(intent, tail=None)
