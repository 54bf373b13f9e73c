# services/ledger_service.py
"""
Supply-chain ledger service - blockchain-like immutable record of drug
batch movements.

When a transaction is submitted:
1. Validate the intent (before any hashing)
2. On the single writer thread: read the chain tail, build the next block
   (block_number + 1, previous_hash = tail hash), mine it, append it
3. Record a TRANSACTION_CREATED audit entry and return a receipt

Reads (verification, history, anomaly detection, stats) run on the
caller's thread against an ordered snapshot from the store, so they stay
responsive while a write is mining.
"""
import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

import config
from models.supply_chain_transaction import TransactionType
from schemas.ledger import (
     AnomalyReport,
     BatchChainIntegrity,
     ChainVerification,
     HealthMetrics,
     HealthStatus,
     LedgerStats,
     Pagination,
     SupplyChainHistory,
     TransactionCreate,
     TransactionReceipt,
     TransactionPage,
     TransactionRecord,
)
from .anomaly_detector import AnomalyDetector
from .chain_builder import ChainBuilder
from .chain_verifier import ChainVerifier
from .errors import AppendConflict, AuditWriteError, ChainWriteError, InvalidTransactionInput
from .ledger_store import LedgerStore
from .miner import PuzzleMiner

logger = logging.getLogger(__name__)

# Genesis block: previous_hash of block 1
GENESIS_HASH = config.GENESIS_HASH

SERVICE_VERSION = "1.0.0"
MAX_PAGE_SIZE = 100

TransactionIntent = Union[TransactionCreate, Mapping[str, Any]]


class SupplyChainLedger:
     """
     Append-only, hash-chained supply-chain ledger.

     All chain-extending work runs on one dedicated writer thread and under
     a write lock, so no two writes can observe the same chain tail. The
     store's own append precondition (unique block_number) catches writers
     outside this process; such conflicts are retried with a fresh tail.

     Args:
          store: Ledger Store Adapter to persist into and read from
          miner: Puzzle miner; defaults to the configured difficulty and caps
          genesis_hash: previous_hash sentinel of block 1
          write_retries: Attempts per submission when the tail moves under us
          detector: Anomaly detector; defaults to the configured cold-chain range
     """

     def __init__(
          self,
          store: LedgerStore,
          miner: Optional[PuzzleMiner] = None,
          genesis_hash: str = GENESIS_HASH,
          write_retries: int = config.LEDGER_WRITE_RETRIES,
          detector: Optional[AnomalyDetector] = None,
     ):
          self.store = store
          self.miner = miner or PuzzleMiner()
          self.builder = ChainBuilder(genesis_hash)
          self.verifier = ChainVerifier(genesis_hash)
          self.detector = detector or AnomalyDetector()
          self.write_retries = max(1, write_retries)
          self._write_lock = threading.Lock()
          self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-writer")

     # ------------------------------------------------------------------
     # Lifecycle
     # ------------------------------------------------------------------

     def close(self) -> None:
          """Finish queued writes and stop the writer thread."""
          self._writer.shutdown(wait=True)

     def __enter__(self) -> "SupplyChainLedger":
          return self

     def __exit__(self, *exc_info) -> None:
          self.close()

     # ------------------------------------------------------------------
     # Write path
     # ------------------------------------------------------------------

     def submit_transaction(self, intent: TransactionIntent) -> "Future[TransactionReceipt]":
          """
          Validate an intent and queue it on the writer thread.

          Raises:
               InvalidTransactionInput: immediately, before anything is queued

          Returns:
               Future resolving to a TransactionReceipt, or raising ChainWriteError
          """
          prepared = self._prepare(intent)
          return self._writer.submit(self._write, prepared)

     def create_transaction(self, intent: TransactionIntent) -> TransactionReceipt:
          """
          Append a transaction to the chain and wait for the receipt.

          Raises:
               InvalidTransactionInput: the intent was rejected before hashing
               ChainWriteError: the block could not be appended; nothing was recorded
          """
          return self.submit_transaction(intent).result()

     def _prepare(self, intent: TransactionIntent) -> TransactionCreate:
          if not isinstance(intent, TransactionCreate):
               try:
                    intent = TransactionCreate.model_validate(intent)
               except ValidationError as e:
                    raise InvalidTransactionInput(str(e)) from e
          if intent.transaction_date is None:
               intent = intent.model_copy(update={"transaction_date": datetime.now(timezone.utc)})
          self.builder.validate(intent)
          return intent

     def _write(self, intent: TransactionCreate) -> TransactionReceipt:
          with self._write_lock:
               record = self._append_with_retries(intent)

          logger.info(
               "Block %d appended: %s (batch_id=%s, type=%s, quantity=%d%s)",
               record.block_number, record.hash, record.batch_id, record.transaction_type.value,
               record.quantity, ", mining exhausted" if record.mining_exhausted else "",
          )
          self._audit("TRANSACTION_CREATED", record.id, {
               "transaction_hash": record.hash,
               "block_number": record.block_number,
               "batch_id": record.batch_id,
               "transaction_type": record.transaction_type.value,
               "mining_exhausted": record.mining_exhausted,
          })

          return TransactionReceipt(
               id=record.id,
               hash=record.hash,
               block_number=record.block_number,
               previous_hash=record.previous_hash,
               timestamp=record.transaction_date,
               batch_id=record.batch_id,
               transaction_type=record.transaction_type,
               quantity=record.quantity,
               mining_exhausted=record.mining_exhausted,
          )

     def _append_with_retries(self, intent: TransactionCreate) -> TransactionRecord:
          last_conflict = None
          for attempt in range(1, self.write_retries + 1):
               candidate = self.builder.build(intent, self.store.tail())
               result = self.miner.mine(candidate.base_hash, candidate.previous_hash)
               try:
                    return self.store.append(candidate.sealed(result))
               except AppendConflict as e:
                    last_conflict = e
                    logger.warning(
                         "Block %d was taken by another writer (attempt %d/%d); re-reading chain tail",
                         candidate.block_number, attempt, self.write_retries,
                    )
          raise ChainWriteError(
               f"Chain tail kept moving; gave up after {self.write_retries} attempts"
          ) from last_conflict

     def _audit(self, action: str, record_id: int, payload: Dict[str, Any]) -> None:
          try:
               self.store.record_event(action, record_id, payload)
          except AuditWriteError:
               logger.exception("Error logging ledger event %s", action)

     # ------------------------------------------------------------------
     # Read path
     # ------------------------------------------------------------------

     def verify_global_chain(self) -> ChainVerification:
          """Replay every block in order and report broken previous_hash links."""
          result = self.verifier.verify_global_chain(self.store.scan())
          self._audit("CHAIN_VERIFICATION", 0, {
               "is_valid": result.is_valid,
               "total_blocks": result.total_blocks,
               "broken_links": len(result.broken_links),
          })
          return result

     def verify_batch_chain(self, batch_id: int) -> BatchChainIntegrity:
          return self.verifier.verify_batch_chain(self.store.scan_batch(batch_id))

     def get_supply_chain_history(self, batch_id: int) -> SupplyChainHistory:
          """A batch's ordered transactions plus the integrity of that subsequence."""
          records = self.store.scan_batch(batch_id)
          return SupplyChainHistory(
               batch_id=batch_id,
               total_transactions=len(records),
               transactions=records,
               chain_integrity=self.verifier.verify_batch_chain(records),
          )

     def detect_anomalies(self, batch_id: int) -> AnomalyReport:
          return self.detector.detect(batch_id, self.store.scan_batch(batch_id))

     def get_ledger_stats(self) -> LedgerStats:
          totals = self.store.stats()
          return LedgerStats(**totals, chain_integrity=self.verify_global_chain())

     def list_transactions(
          self,
          page: int = 1,
          limit: int = 20,
          batch_id: Optional[int] = None,
          transaction_type: Optional[TransactionType] = None,
     ) -> TransactionPage:
          """
          Page through ledger records, newest block first.

          Args:
               page: 1-based page number
               limit: Records per page (1..MAX_PAGE_SIZE)
               batch_id: Only this batch's records
               transaction_type: Only records of this kind
          """
          if page < 1:
               raise ValueError("page must be a positive integer")
          if not 1 <= limit <= MAX_PAGE_SIZE:
               raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

          records, total_count = self.store.list_transactions(
               offset=(page - 1) * limit,
               limit=limit,
               batch_id=batch_id,
               transaction_type=transaction_type,
          )
          return TransactionPage(
               transactions=records,
               pagination=Pagination(
                    current_page=page,
                    per_page=limit,
                    total_count=total_count,
                    total_pages=math.ceil(total_count / limit),
               ),
          )

     def health(self) -> HealthStatus:
          """Storage reachability plus headline ledger metrics."""
          now = datetime.now(timezone.utc)
          if not self.store.check_connection():
               return HealthStatus(status="unhealthy", database=False, timestamp=now, version=SERVICE_VERSION)

          totals = self.store.stats()
          return HealthStatus(
               status="healthy",
               database=True,
               timestamp=now,
               version=SERVICE_VERSION,
               metrics=HealthMetrics(
                    total_blocks=totals["total_blocks"],
                    unique_batches=totals["unique_batches"],
                    chain_integrity=self.verify_global_chain().is_valid,
               ),
          )
