# services/risk.py
"""Risk Scorer - reduces a batch's anomalies to a single risk level."""
from typing import Iterable

from schemas.ledger import Anomaly, RiskLevel, Severity

# More than this many medium-severity anomalies escalate a batch to medium risk
MEDIUM_ESCALATION_THRESHOLD = 2


def calculate_risk_level(anomalies: Iterable[Anomaly]) -> RiskLevel:
     """
     high   - any high-severity anomaly
     medium - no high, and more than two medium-severity anomalies
     low    - everything else, including no anomalies at all
     """
     severities = [anomaly.severity for anomaly in anomalies]
     if Severity.HIGH in severities:
          return RiskLevel.HIGH
     if severities.count(Severity.MEDIUM) > MEDIUM_ESCALATION_THRESHOLD:
          return RiskLevel.MEDIUM
     return RiskLevel.LOW
