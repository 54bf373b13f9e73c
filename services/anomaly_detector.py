# services/anomaly_detector.py
"""
Anomaly Detector - walks a batch's ordered history looking for signs of
tampering or mishandling:

- quantity_overflow (high): a transfer or sale moves more units than the
  batch still has available since its manufacture
- timeline_anomaly (medium): a transaction dated before its predecessor
- temperature_violation (high): a cold-chain reading outside the allowed range

Malformed or non-finite temperature readings are skipped; detection never
fails on them.
"""
import math
from decimal import Decimal
from numbers import Real
from typing import Any, List, Optional, Sequence

import config
from models.supply_chain_transaction import TransactionType
from schemas.ledger import Anomaly, AnomalyReport, AnomalyType, Severity, TransactionRecord
from .risk import calculate_risk_level

_OUTBOUND_TYPES = (TransactionType.TRANSFER, TransactionType.SALE)


def reading_temperature(reading: Any) -> Optional[float]:
     """Temperature of a {temperature, timestamp} reading, or None if malformed."""
     if not isinstance(reading, dict):
          return None
     value = reading.get("temperature")
     if isinstance(value, bool) or not isinstance(value, (Real, Decimal, str)):
          return None
     try:
          temperature = float(value)
     except (ValueError, OverflowError):
          return None
     if not math.isfinite(temperature):
          return None
     return temperature


class AnomalyDetector:
     """
     Args:
          min_temperature: Lowest acceptable reading in degrees Celsius (inclusive)
          max_temperature: Highest acceptable reading in degrees Celsius (inclusive)
     """

     def __init__(
          self,
          min_temperature: float = config.COLD_CHAIN_MIN_C,
          max_temperature: float = config.COLD_CHAIN_MAX_C,
     ):
          if min_temperature > max_temperature:
               raise ValueError("min_temperature must not exceed max_temperature")
          self.min_temperature = min_temperature
          self.max_temperature = max_temperature

     def detect(self, batch_id: int, records: Sequence[TransactionRecord]) -> AnomalyReport:
          anomalies = (
               self.check_quantities(records)
               + self.check_timeline(records)
               + self.check_temperatures(records)
          )
          return AnomalyReport(
               batch_id=batch_id,
               anomalies_detected=bool(anomalies),
               total_anomalies=len(anomalies),
               anomalies=anomalies,
               risk_level=calculate_risk_level(anomalies),
          )

     @staticmethod
     def check_quantities(records: Sequence[TransactionRecord]) -> List[Anomaly]:
          anomalies = []
          available = 0

          for record in records:
               if record.transaction_type == TransactionType.MANUFACTURE:
                    available = record.quantity
               elif record.transaction_type in _OUTBOUND_TYPES:
                    if record.quantity > available:
                         anomalies.append(Anomaly(
                              type=AnomalyType.QUANTITY_OVERFLOW,
                              transaction_id=record.id,
                              block_number=record.block_number,
                              message=(
                                   f"{record.transaction_type.value.capitalize()} quantity ({record.quantity}) "
                                   f"exceeds available quantity ({available})"
                              ),
                              severity=Severity.HIGH,
                         ))
                    else:
                         available -= record.quantity

          return anomalies

     @staticmethod
     def check_timeline(records: Sequence[TransactionRecord]) -> List[Anomaly]:
          anomalies = []
          for previous, current in zip(records, records[1:]):
               if current.transaction_date < previous.transaction_date:
                    anomalies.append(Anomaly(
                         type=AnomalyType.TIMELINE_ANOMALY,
                         transaction_id=current.id,
                         block_number=current.block_number,
                         message=(
                              f"Transaction date {current.transaction_date.isoformat()} is earlier than "
                              f"previous transaction ({previous.transaction_date.isoformat()})"
                         ),
                         severity=Severity.MEDIUM,
                    ))
          return anomalies

     def check_temperatures(self, records: Sequence[TransactionRecord]) -> List[Anomaly]:
          anomalies = []
          for record in records:
               readings = record.temperature_log if isinstance(record.temperature_log, list) else []
               temperatures = [t for t in map(reading_temperature, readings) if t is not None]
               violations = [
                    t for t in temperatures
                    if t < self.min_temperature or t > self.max_temperature
               ]
               if violations:
                    anomalies.append(Anomaly(
                         type=AnomalyType.TEMPERATURE_VIOLATION,
                         transaction_id=record.id,
                         block_number=record.block_number,
                         message=(
                              f"Temperature violations detected: {len(violations)} readings outside "
                              f"{self.min_temperature:g}-{self.max_temperature:g}°C range"
                         ),
                         severity=Severity.HIGH,
                    ))
          return anomalies
