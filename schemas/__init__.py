# schemas/__init__.py
from .ledger import (
     Anomaly,
     AnomalyReport,
     AnomalyType,
     BatchChainIntegrity,
     BrokenLink,
     ChainVerification,
     HealthMetrics,
     HealthStatus,
     LedgerStats,
     Pagination,
     RiskLevel,
     Severity,
     StatsResponse,
     SupplyChainHistory,
     TrackResponse,
     TransactionCreate,
     TransactionReceipt,
     TransactionPage,
     TransactionRecord,
     TransactionTypeCount,
     VerifyResponse,
)

__all__ = [
     "Anomaly",
     "AnomalyReport",
     "AnomalyType",
     "BatchChainIntegrity",
     "BrokenLink",
     "ChainVerification",
     "HealthMetrics",
     "HealthStatus",
     "LedgerStats",
     "Pagination",
     "RiskLevel",
     "Severity",
     "StatsResponse",
     "SupplyChainHistory",
     "TrackResponse",
     "TransactionCreate",
     "TransactionReceipt",
     "TransactionPage",
     "TransactionRecord",
     "TransactionTypeCount",
     "VerifyResponse",
]
