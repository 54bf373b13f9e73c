# services/canonical.py
"""
Canonical encoding of ledger transactions.

The block hash is computed over this encoding, so it must be byte-for-byte
stable: keys are sorted, separators are compact, output is ASCII, and every
value is normalized to a fixed textual form before serialization. Wall-clock
capture time never enters the encoding; transaction_date is the caller's
logical date.
"""
import enum
import hashlib
import json
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional

_CENT = Decimal("0.01")


def normalize_amount(amount: Any) -> str:
     """Normalize a money value to a two-decimal string."""
     if amount is None:
          amount = 0
     return str(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


def normalize_timestamp(ts: datetime) -> str:
     """UTC ISO 8601 with microseconds; naive values are taken as UTC."""
     if ts.tzinfo is None:
          ts = ts.replace(tzinfo=timezone.utc)
     return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _normalize(value: Any) -> Any:
     if isinstance(value, enum.Enum):
          return _normalize(value.value)
     if isinstance(value, datetime):
          return normalize_timestamp(value)
     if isinstance(value, Decimal):
          return normalize_amount(value)
     if isinstance(value, Mapping):
          return {str(k): _normalize(v) for k, v in value.items()}
     if isinstance(value, (list, tuple)):
          return [_normalize(v) for v in value]
     return value


def encode_canonical(fields: Mapping[str, Any]) -> str:
     """Deterministic string form of a flat or nested mapping."""
     return json.dumps(
          _normalize(fields),
          sort_keys=True,
          separators=(",", ":"),
          ensure_ascii=True,
     )


def sha256_hex(payload: str) -> str:
     return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def canonical_transaction_payload(
     batch_id: int,
     from_entity_id: Optional[int],
     to_entity_id: int,
     transaction_type: Any,
     quantity: int,
     unit_price: Any,
     transaction_date: datetime,
     block_number: int,
     previous_hash: str,
     nonce: int = 0,
) -> str:
     """
     Encode exactly the hashed fields of a transaction.

     unit_price is always rendered as a two-decimal string so that 4, 4.0
     and Decimal("4.00") hash identically.
     """
     return encode_canonical({
          "batch_id": batch_id,
          "from_entity_id": from_entity_id,
          "to_entity_id": to_entity_id,
          "transaction_type": transaction_type,
          "quantity": quantity,
          "unit_price": normalize_amount(unit_price),
          "transaction_date": transaction_date,
          "block_number": block_number,
          "previous_hash": previous_hash,
          "nonce": nonce,
     })


def compute_transaction_hash(**fields: Any) -> str:
     """
     SHA-256 hex digest of the canonical transaction payload.

     Accepts the keyword arguments of canonical_transaction_payload.
     """
     return sha256_hex(canonical_transaction_payload(**fields))
