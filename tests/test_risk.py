"""Tests for services.risk."""
import pytest

from schemas.ledger import Anomaly, AnomalyType, RiskLevel, Severity
from services.risk import calculate_risk_level


def _anomaly(severity: Severity, kind: AnomalyType = AnomalyType.TIMELINE_ANOMALY) -> Anomaly:
    return Anomaly(type=kind, transaction_id=1, block_number=1, message="x", severity=severity)


def test_no_anomalies_is_low() -> None:
    assert calculate_risk_level([]) is RiskLevel.LOW


@pytest.mark.parametrize("mediums", [0, 1, 5])
def test_any_high_is_high(mediums: int) -> None:
    anomalies = [_anomaly(Severity.MEDIUM)] * mediums + [_anomaly(Severity.HIGH, AnomalyType.QUANTITY_OVERFLOW)]
    assert calculate_risk_level(anomalies) is RiskLevel.HIGH


@pytest.mark.parametrize("mediums, expected", [(1, RiskLevel.LOW), (2, RiskLevel.LOW), (3, RiskLevel.MEDIUM)])
def test_medium_needs_more_than_two(mediums: int, expected: RiskLevel) -> None:
    assert calculate_risk_level([_anomaly(Severity.MEDIUM)] * mediums) is expected


def test_accepts_any_iterable() -> None:
    assert calculate_risk_level(_anomaly(Severity.MEDIUM) for _ in range(3)) is RiskLevel.MEDIUM
