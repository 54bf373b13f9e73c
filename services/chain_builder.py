# services/chain_builder.py
"""
Hash-chain builder: turns a transaction intent plus the current chain tail
into the next block candidate.

The candidate gets block_number = tail + 1 and previous_hash = tail hash
(or block 1 and the genesis sentinel on an empty chain). Its base hash is
the canonical transaction hash with nonce 0; the miner seals it.
"""
import dataclasses
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import config
from models.supply_chain_transaction import TransactionType
from schemas.ledger import TransactionCreate
from .canonical import compute_transaction_hash, normalize_amount
from .errors import InvalidTransactionInput
from .miner import MiningResult


@dataclass(frozen=True)
class ChainTail:
     """Last block of the global chain."""
     block_number: int
     hash: str


@dataclass(frozen=True)
class BlockCandidate:
     """A block ready to be mined (hash is None) or appended (hash set)."""
     block_number: int
     previous_hash: str
     base_hash: str
     batch_id: int
     from_entity_id: Optional[int]
     to_entity_id: int
     transaction_type: TransactionType
     quantity: int
     unit_price: Decimal
     total_amount: Decimal
     transaction_date: datetime
     shipping_details: Dict[str, Any]
     temperature_log: List[Any]
     digital_signature: Optional[str]
     notes: str
     hash: Optional[str] = None
     nonce: int = 0
     mining_exhausted: bool = False

     def sealed(self, result: MiningResult) -> "BlockCandidate":
          return dataclasses.replace(
               self,
               hash=result.hash,
               nonce=result.nonce,
               mining_exhausted=result.exhausted,
          )


class ChainBuilder:
     """Builds block candidates linked to the chain tail."""

     def __init__(self, genesis_hash: str = config.GENESIS_HASH):
          self.genesis_hash = genesis_hash

     @staticmethod
     def validate(intent: TransactionCreate) -> None:
          """
          Reject intents that must never reach the miner.

          Raises:
               InvalidTransactionInput: missing receiver, non-positive quantity,
                    missing date, or negative unit price
          """
          if intent.to_entity_id is None:
               raise InvalidTransactionInput("to_entity_id is required")
          if intent.quantity is None or intent.quantity <= 0:
               raise InvalidTransactionInput("quantity must be a positive integer")
          if intent.unit_price is not None and intent.unit_price < 0:
               raise InvalidTransactionInput("unit_price must be non-negative")
          if intent.transaction_date is None:
               raise InvalidTransactionInput("transaction_date must be set before building a block")

     def build(self, intent: TransactionCreate, tail: Optional[ChainTail]) -> BlockCandidate:
          self.validate(intent)

          if tail is None:
               block_number, previous_hash = 1, self.genesis_hash
          else:
               block_number, previous_hash = tail.block_number + 1, tail.hash

          unit_price = Decimal(normalize_amount(intent.unit_price))
          transaction_type = TransactionType(intent.transaction_type)

          base_hash = compute_transaction_hash(
               batch_id=intent.batch_id,
               from_entity_id=intent.from_entity_id,
               to_entity_id=intent.to_entity_id,
               transaction_type=transaction_type,
               quantity=intent.quantity,
               unit_price=unit_price,
               transaction_date=intent.transaction_date,
               block_number=block_number,
               previous_hash=previous_hash,
          )

          return BlockCandidate(
               block_number=block_number,
               previous_hash=previous_hash,
               base_hash=base_hash,
               batch_id=intent.batch_id,
               from_entity_id=intent.from_entity_id,
               to_entity_id=intent.to_entity_id,
               transaction_type=transaction_type,
               quantity=intent.quantity,
               unit_price=unit_price,
               total_amount=unit_price * intent.quantity,
               transaction_date=intent.transaction_date,
               shipping_details=dict(intent.shipping_details or {}),
               temperature_log=list(intent.temperature_log or []),
               digital_signature=intent.digital_signature,
               notes=intent.notes or "",
          )
