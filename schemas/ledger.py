# schemas/ledger.py
"""
Pydantic schemas for the supply-chain ledger: transaction intents, persisted
records, and the diagnostic results returned by verification, anomaly
detection and statistics.
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.supply_chain_transaction import TransactionType


def _as_utc(value: datetime) -> datetime:
     """Naive datetimes are stored as UTC; attach the zone so comparisons work."""
     if value.tzinfo is None:
          return value.replace(tzinfo=timezone.utc)
     return value.astimezone(timezone.utc)


class Severity(str, Enum):
     """Anomaly severity."""
     MEDIUM = "medium"
     HIGH = "high"


class RiskLevel(str, Enum):
     """Coarse batch risk classification."""
     LOW = "low"
     MEDIUM = "medium"
     HIGH = "high"


class AnomalyType(str, Enum):
     QUANTITY_OVERFLOW = "quantity_overflow"
     TIMELINE_ANOMALY = "timeline_anomaly"
     TEMPERATURE_VIOLATION = "temperature_violation"


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------

class TransactionCreate(BaseModel):
     """Transaction intent submitted to the ledger."""
     batch_id: int = Field(..., gt=0, description="Drug batch the event belongs to")
     from_entity_id: Optional[int] = Field(None, gt=0, description="Sending participant (absent for manufacture)")
     to_entity_id: int = Field(..., gt=0, description="Receiving participant")
     transaction_type: TransactionType = Field(..., description="manufacture, transfer, sale, return or recall")
     quantity: int = Field(..., gt=0, description="Units moved by this event")
     unit_price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
     transaction_date: Optional[datetime] = Field(
          None,
          description="Logical event date; defaults to the current UTC time",
     )
     shipping_details: Dict[str, Any] = Field(default_factory=dict)
     temperature_log: List[Dict[str, Any]] = Field(
          default_factory=list,
          description="Ordered cold-chain readings: {temperature, timestamp}",
     )
     digital_signature: Optional[str] = None
     notes: str = Field(default="", max_length=500)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "batch_id": 12,
                    "from_entity_id": 3,
                    "to_entity_id": 7,
                    "transaction_type": "transfer",
                    "quantity": 200,
                    "unit_price": 4.25,
                    "temperature_log": [
                         {"temperature": 4.1, "timestamp": "2026-03-01T08:00:00Z"},
                         {"temperature": 5.0, "timestamp": "2026-03-01T12:00:00Z"},
                    ],
                    "notes": "Pallet 4 of 6",
               }
          }
     )

     @field_validator("notes", mode="before")
     @classmethod
     def _strip_notes(cls, value):
          if value is None:
               return ""
          return value.strip() if isinstance(value, str) else value

     @field_validator("transaction_date")
     @classmethod
     def _normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
          return _as_utc(value) if value is not None else None


class TransactionRecord(BaseModel):
     """A persisted ledger block. Immutable."""
     id: int
     hash: str
     previous_hash: str
     block_number: int
     batch_id: int
     from_entity_id: Optional[int] = None
     to_entity_id: int
     transaction_type: TransactionType
     quantity: int
     unit_price: Decimal = Decimal("0")
     total_amount: Decimal = Decimal("0")
     transaction_date: datetime
     shipping_details: Any = None
     temperature_log: Any = None
     digital_signature: Optional[str] = None
     notes: Optional[str] = None
     nonce: int = 0
     mining_exhausted: bool = False
     created_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True, frozen=True)

     @field_validator("transaction_date")
     @classmethod
     def _normalize_date(cls, value: datetime) -> datetime:
          return _as_utc(value)


class TransactionReceipt(BaseModel):
     """Returned to the caller once a block has been appended."""
     id: int
     hash: str
     block_number: int
     previous_hash: str
     timestamp: datetime = Field(..., description="The transaction's logical date")
     batch_id: int
     transaction_type: TransactionType
     quantity: int
     mining_exhausted: bool = Field(False, description="True when the hash is lower-assurance")


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

class BrokenLink(BaseModel):
     block_number: int
     transaction_id: int
     expected_previous_hash: str
     actual_previous_hash: str


class ChainVerification(BaseModel):
     """Result of replaying the global chain."""
     is_valid: bool
     total_blocks: int
     broken_links: List[BrokenLink] = Field(default_factory=list)


class BatchChainIntegrity(BaseModel):
     """Result of replaying one batch's subsequence."""
     is_valid: bool
     message: str
     transaction_count: int = 0


class SupplyChainHistory(BaseModel):
     batch_id: int
     total_transactions: int
     transactions: List[TransactionRecord]
     chain_integrity: BatchChainIntegrity


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------

class Anomaly(BaseModel):
     type: AnomalyType
     transaction_id: int
     block_number: int
     message: str
     severity: Severity


class AnomalyReport(BaseModel):
     batch_id: int
     anomalies_detected: bool
     total_anomalies: int
     anomalies: List[Anomaly]
     risk_level: RiskLevel


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

class TransactionTypeCount(BaseModel):
     transaction_type: TransactionType
     count: int


class LedgerStats(BaseModel):
     total_blocks: int
     unique_batches: int
     active_entities: int
     total_quantity_transferred: int
     first_transaction: Optional[datetime] = None
     latest_transaction: Optional[datetime] = None
     low_assurance_blocks: int = 0
     transaction_type_breakdown: List[TransactionTypeCount] = Field(default_factory=list)
     chain_integrity: ChainVerification


# ---------------------------------------------------------------------------
# HTTP envelopes
# ---------------------------------------------------------------------------

class Pagination(BaseModel):
     current_page: int
     per_page: int
     total_count: int
     total_pages: int


class TransactionPage(BaseModel):
     """One page of ledger records, newest block first."""
     transactions: List[TransactionRecord]
     pagination: Pagination


class HealthMetrics(BaseModel):
     total_blocks: int
     unique_batches: int
     chain_integrity: bool


class HealthStatus(BaseModel):
     """Service health with headline ledger metrics (absent when the store is down)."""
     service: str = "Supply Chain Service"
     status: str
     database: bool
     timestamp: datetime
     version: str
     metrics: Optional[HealthMetrics] = None


class TrackResponse(BaseModel):
     """Response for GET /api/supply-chain/track/{batch_id}."""
     batch_id: int
     supply_chain: SupplyChainHistory
     anomalies: AnomalyReport
     integrity_verified: bool


class VerifyResponse(BaseModel):
     blockchain_verification: ChainVerification
     timestamp: datetime


class StatsResponse(BaseModel):
     stats: LedgerStats
     timestamp: datetime
