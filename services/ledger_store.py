# services/ledger_store.py
"""
Ledger Store Adapter - append-only persistence of ledger blocks.

LedgerStore is the boundary the ledger depends on; it is injected at
construction time. Two implementations ship:

- SqlAlchemyLedgerStore: the supply_chain_transactions table, via an
  injected session factory
- InMemoryLedgerStore: a list guarded by a lock, for tests and embedding

Reads return TransactionRecord snapshots ordered by (block_number, id),
each produced by a single query so no gap or reordering is visible
mid-scan.
"""
import abc
import itertools
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc, distinct, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database import check_connection, get_session_context
from models import AuditTrail, SupplyChainTransaction, TransactionType
from schemas.ledger import TransactionRecord
from .chain_builder import BlockCandidate, ChainTail
from .errors import AppendConflict, AuditWriteError, ChainWriteError

LEDGER_TABLE = "supply_chain_transactions"


def _utc(value: Optional[datetime]) -> Optional[datetime]:
     if value is None:
          return None
     if value.tzinfo is None:
          return value.replace(tzinfo=timezone.utc)
     return value.astimezone(timezone.utc)


class LedgerStore(abc.ABC):
     """Ordered, append-only record store consumed by the ledger."""

     @abc.abstractmethod
     def tail(self) -> Optional[ChainTail]:
          """Highest block, or None for an empty chain."""

     @abc.abstractmethod
     def append(self, block: BlockCandidate) -> TransactionRecord:
          """
          Persist a sealed block.

          Raises:
               AppendConflict: the block number is already taken
               ChainWriteError: any other storage failure
          """

     @abc.abstractmethod
     def scan(self) -> List[TransactionRecord]:
          """All blocks ordered by block_number."""

     @abc.abstractmethod
     def scan_batch(self, batch_id: int) -> List[TransactionRecord]:
          """One batch's blocks ordered by block_number."""

     @abc.abstractmethod
     def list_transactions(
          self,
          offset: int,
          limit: int,
          batch_id: Optional[int] = None,
          transaction_type: Optional[TransactionType] = None,
     ) -> Tuple[List[TransactionRecord], int]:
          """
          One page of blocks, newest first, plus the total matching count.
          """

     @abc.abstractmethod
     def stats(self) -> Dict[str, Any]:
          """Aggregate counters for the dashboard."""

     @abc.abstractmethod
     def check_connection(self) -> bool:
          """True when the backing storage is reachable."""

     @abc.abstractmethod
     def record_event(self, action: str, record_id: int, payload: Dict[str, Any]) -> None:
          """
          Write an audit-trail entry for a ledger event.

          Raises:
               AuditWriteError: the entry could not be stored
          """


class SqlAlchemyLedgerStore(LedgerStore):
     """LedgerStore backed by the supply_chain_transactions table."""

     def __init__(self, session_factory: sessionmaker):
          self.session_factory = session_factory

     def tail(self) -> Optional[ChainTail]:
          try:
               with get_session_context(self.session_factory) as db:
                    last = (
                         db.query(SupplyChainTransaction.block_number, SupplyChainTransaction.hash)
                         .order_by(desc(SupplyChainTransaction.block_number), desc(SupplyChainTransaction.id))
                         .limit(1)
                         .first()
                    )
          except SQLAlchemyError as e:
               raise ChainWriteError(f"Failed to read chain tail: {e}") from e
          if last is None:
               return None
          return ChainTail(block_number=last.block_number, hash=last.hash)

     def append(self, block: BlockCandidate) -> TransactionRecord:
          if block.hash is None:
               raise ChainWriteError(f"Block {block.block_number} has not been mined")

          entry = SupplyChainTransaction(
               hash=block.hash,
               previous_hash=block.previous_hash,
               block_number=block.block_number,
               batch_id=block.batch_id,
               from_entity_id=block.from_entity_id,
               to_entity_id=block.to_entity_id,
               transaction_type=block.transaction_type,
               quantity=block.quantity,
               unit_price=block.unit_price,
               total_amount=block.total_amount,
               transaction_date=block.transaction_date,
               shipping_details=block.shipping_details,
               temperature_log=block.temperature_log,
               digital_signature=block.digital_signature,
               notes=block.notes,
               nonce=block.nonce,
               mining_exhausted=block.mining_exhausted,
          )
          try:
               with get_session_context(self.session_factory) as db:
                    db.add(entry)
                    db.flush()
                    db.refresh(entry)
                    record = TransactionRecord.model_validate(entry)
          except IntegrityError as e:
               raise AppendConflict(f"Block {block.block_number} was already appended") from e
          except SQLAlchemyError as e:
               raise ChainWriteError(f"Failed to append block {block.block_number}: {e}") from e
          return record

     def scan(self) -> List[TransactionRecord]:
          with get_session_context(self.session_factory) as db:
               rows = (
                    db.query(SupplyChainTransaction)
                    .order_by(SupplyChainTransaction.block_number, SupplyChainTransaction.id)
                    .all()
               )
               return [TransactionRecord.model_validate(row) for row in rows]

     def scan_batch(self, batch_id: int) -> List[TransactionRecord]:
          with get_session_context(self.session_factory) as db:
               rows = (
                    db.query(SupplyChainTransaction)
                    .filter(SupplyChainTransaction.batch_id == batch_id)
                    .order_by(SupplyChainTransaction.block_number, SupplyChainTransaction.id)
                    .all()
               )
               return [TransactionRecord.model_validate(row) for row in rows]

     def list_transactions(
          self,
          offset: int,
          limit: int,
          batch_id: Optional[int] = None,
          transaction_type: Optional[TransactionType] = None,
     ) -> Tuple[List[TransactionRecord], int]:
          with get_session_context(self.session_factory) as db:
               query = db.query(SupplyChainTransaction)
               if batch_id is not None:
                    query = query.filter(SupplyChainTransaction.batch_id == batch_id)
               if transaction_type is not None:
                    query = query.filter(SupplyChainTransaction.transaction_type == transaction_type)

               total_count = query.count()
               rows = (
                    query.order_by(desc(SupplyChainTransaction.block_number), desc(SupplyChainTransaction.id))
                    .offset(offset)
                    .limit(limit)
                    .all()
               )
               return [TransactionRecord.model_validate(row) for row in rows], total_count

     def check_connection(self) -> bool:
          return check_connection(self.session_factory.kw["bind"])

     def stats(self) -> Dict[str, Any]:
          with get_session_context(self.session_factory) as db:
               totals = db.query(
                    func.count(SupplyChainTransaction.id).label("total_blocks"),
                    func.count(distinct(SupplyChainTransaction.batch_id)).label("unique_batches"),
                    func.count(distinct(SupplyChainTransaction.to_entity_id)).label("active_entities"),
                    func.min(SupplyChainTransaction.transaction_date).label("first_transaction"),
                    func.max(SupplyChainTransaction.transaction_date).label("latest_transaction"),
                    func.sum(SupplyChainTransaction.quantity).label("total_quantity_transferred"),
               ).one()
               low_assurance = (
                    db.query(func.count(SupplyChainTransaction.id))
                    .filter(SupplyChainTransaction.mining_exhausted.is_(True))
                    .scalar()
               )
               type_count = func.count(SupplyChainTransaction.id).label("total")
               breakdown = (
                    db.query(SupplyChainTransaction.transaction_type, type_count)
                    .group_by(SupplyChainTransaction.transaction_type)
                    .order_by(desc(type_count))
                    .all()
               )

          return {
               "total_blocks": totals.total_blocks or 0,
               "unique_batches": totals.unique_batches or 0,
               "active_entities": totals.active_entities or 0,
               "total_quantity_transferred": int(totals.total_quantity_transferred or 0),
               "first_transaction": _utc(totals.first_transaction),
               "latest_transaction": _utc(totals.latest_transaction),
               "low_assurance_blocks": low_assurance or 0,
               "transaction_type_breakdown": [
                    {"transaction_type": kind, "count": total}
                    for kind, total in breakdown
               ],
          }

     def record_event(self, action: str, record_id: int, payload: Dict[str, Any]) -> None:
          try:
               with get_session_context(self.session_factory) as db:
                    db.add(AuditTrail(
                         action=action,
                         table_name=LEDGER_TABLE,
                         record_id=record_id,
                         new_values=payload,
                    ))
          except SQLAlchemyError as e:
               raise AuditWriteError(f"Failed to record {action}: {e}") from e


class InMemoryLedgerStore(LedgerStore):
     """
     LedgerStore holding records in process memory.

     Enforces the same append precondition as the SQL unique constraint:
     a block must extend the current tail exactly.
     """

     def __init__(self):
          self._lock = threading.Lock()
          self._records: List[TransactionRecord] = []
          self._ids = itertools.count(1)
          self.events: List[Dict[str, Any]] = []

     def tail(self) -> Optional[ChainTail]:
          with self._lock:
               if not self._records:
                    return None
               last = self._records[-1]
               return ChainTail(block_number=last.block_number, hash=last.hash)

     def append(self, block: BlockCandidate) -> TransactionRecord:
          if block.hash is None:
               raise ChainWriteError(f"Block {block.block_number} has not been mined")
          with self._lock:
               expected = self._records[-1].block_number + 1 if self._records else 1
               if block.block_number != expected:
                    raise AppendConflict(
                         f"Block {block.block_number} does not extend the chain (expected {expected})"
                    )
               record = TransactionRecord(
                    id=next(self._ids),
                    hash=block.hash,
                    previous_hash=block.previous_hash,
                    block_number=block.block_number,
                    batch_id=block.batch_id,
                    from_entity_id=block.from_entity_id,
                    to_entity_id=block.to_entity_id,
                    transaction_type=block.transaction_type,
                    quantity=block.quantity,
                    unit_price=block.unit_price,
                    total_amount=block.total_amount,
                    transaction_date=block.transaction_date,
                    shipping_details=block.shipping_details,
                    temperature_log=block.temperature_log,
                    digital_signature=block.digital_signature,
                    notes=block.notes,
                    nonce=block.nonce,
                    mining_exhausted=block.mining_exhausted,
                    created_at=datetime.now(timezone.utc),
               )
               self._records.append(record)
          return record

     def scan(self) -> List[TransactionRecord]:
          with self._lock:
               return list(self._records)

     def scan_batch(self, batch_id: int) -> List[TransactionRecord]:
          with self._lock:
               return [record for record in self._records if record.batch_id == batch_id]

     def list_transactions(
          self,
          offset: int,
          limit: int,
          batch_id: Optional[int] = None,
          transaction_type: Optional[TransactionType] = None,
     ) -> Tuple[List[TransactionRecord], int]:
          matching = [
               record for record in reversed(self.scan())
               if (batch_id is None or record.batch_id == batch_id)
               and (transaction_type is None or record.transaction_type == transaction_type)
          ]
          return matching[offset:offset + limit], len(matching)

     def check_connection(self) -> bool:
          return True

     def stats(self) -> Dict[str, Any]:
          records = self.scan()
          dates = [record.transaction_date for record in records]
          types = Counter(record.transaction_type for record in records)
          return {
               "total_blocks": len(records),
               "unique_batches": len({record.batch_id for record in records}),
               "active_entities": len({record.to_entity_id for record in records}),
               "total_quantity_transferred": sum(record.quantity for record in records),
               "first_transaction": min(dates) if dates else None,
               "latest_transaction": max(dates) if dates else None,
               "low_assurance_blocks": sum(1 for record in records if record.mining_exhausted),
               "transaction_type_breakdown": [
                    {"transaction_type": kind, "count": count}
                    for kind, count in types.most_common()
               ],
          }

     def record_event(self, action: str, record_id: int, payload: Dict[str, Any]) -> None:
          with self._lock:
               self.events.append({
                    "action": action,
                    "table_name": LEDGER_TABLE,
                    "record_id": record_id,
                    "new_values": payload,
               })

