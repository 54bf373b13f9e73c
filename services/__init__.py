# services/__init__.py
from .anomaly_detector import AnomalyDetector
from .canonical import canonical_transaction_payload, compute_transaction_hash, encode_canonical
from .chain_builder import BlockCandidate, ChainBuilder, ChainTail
from .chain_verifier import ChainVerifier
from .errors import (
     AppendConflict,
     AuditWriteError,
     ChainWriteError,
     InvalidTransactionInput,
     LedgerError,
)
from .ledger_service import GENESIS_HASH, SupplyChainLedger
from .ledger_store import InMemoryLedgerStore, LedgerStore, SqlAlchemyLedgerStore
from .miner import MiningResult, PuzzleMiner
from .risk import calculate_risk_level

__all__ = [
     "AnomalyDetector",
     "canonical_transaction_payload",
     "compute_transaction_hash",
     "encode_canonical",
     "BlockCandidate",
     "ChainBuilder",
     "ChainTail",
     "ChainVerifier",
     "AppendConflict",
     "AuditWriteError",
     "ChainWriteError",
     "InvalidTransactionInput",
     "LedgerError",
     "GENESIS_HASH",
     "SupplyChainLedger",
     "InMemoryLedgerStore",
     "LedgerStore",
     "SqlAlchemyLedgerStore",
     "MiningResult",
     "PuzzleMiner",
     "calculate_risk_level",
]
