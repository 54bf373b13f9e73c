"""Tests for services.anomaly_detector."""
import pytest

from schemas.ledger import AnomalyType, RiskLevel, Severity
from services.anomaly_detector import AnomalyDetector, reading_temperature


def _readings(*temperatures):
    return [{"temperature": t, "timestamp": f"2026-03-01T0{i}:00:00Z"} for i, t in enumerate(temperatures)]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_scenario_a_transfer_exceeding_manufacture_is_overflow(make_record):
    records = [
        make_record(batch_id=10, quantity=1000),
        make_record("transfer", batch_id=10, quantity=1500, to_entity_id=5, day=1),
    ]

    report = AnomalyDetector().detect(10, records)

    assert report.anomalies_detected
    assert report.total_anomalies == 1
    anomaly = report.anomalies[0]
    assert anomaly.type is AnomalyType.QUANTITY_OVERFLOW
    assert anomaly.transaction_id == records[1].id
    assert anomaly.severity is Severity.HIGH
    assert report.risk_level is RiskLevel.HIGH


def test_scenario_b_clean_batch_is_low_risk(make_record):
    records = [
        make_record(batch_id=11, quantity=500),
        make_record("transfer", batch_id=11, quantity=200, day=1, temperature_log=_readings(4, 6)),
        make_record("sale", batch_id=11, quantity=200, day=2, temperature_log=_readings(3, 7)),
    ]

    report = AnomalyDetector().detect(11, records)

    assert not report.anomalies_detected
    assert report.total_anomalies == 0
    assert report.anomalies == []
    assert report.risk_level is RiskLevel.LOW


def test_scenario_c_backdated_transaction_is_timeline_anomaly(make_record):
    records = [
        make_record(batch_id=12, quantity=100, day=5),
        make_record("transfer", batch_id=12, quantity=10, day=3),
    ]

    report = AnomalyDetector().detect(12, records)

    assert [a.type for a in report.anomalies] == [AnomalyType.TIMELINE_ANOMALY]
    assert report.anomalies[0].severity is Severity.MEDIUM
    assert report.anomalies[0].transaction_id == records[1].id
    assert report.risk_level is RiskLevel.LOW


def test_timeline_anomalies_escalate_to_medium_after_two(make_record):
    records = [make_record(batch_id=13, quantity=100, day=10)]
    records += [make_record("return", batch_id=13, quantity=1, day=10 - i) for i in range(1, 4)]

    report = AnomalyDetector().detect(13, records)

    assert report.total_anomalies == 3
    assert report.risk_level is RiskLevel.MEDIUM


# ---------------------------------------------------------------------------
# Quantity conservation
# ---------------------------------------------------------------------------


def test_outbound_quantities_never_exceed_manufactured_quantity(make_record):
    quantities = [300, 300, 300, 300, 50]
    records = [make_record(quantity=1000)]
    records += [make_record("sale", quantity=q, day=i + 1) for i, q in enumerate(quantities)]

    report = AnomalyDetector().detect(1, records)

    flagged = [a.transaction_id for a in report.anomalies]
    assert flagged == [records[4].id]
    processed = sum(r.quantity for r in records[1:] if r.id not in flagged)
    assert processed <= 1000


def test_overflowing_transfer_does_not_consume_stock(make_record):
    records = [
        make_record(quantity=100),
        make_record("transfer", quantity=150, day=1),
        make_record("transfer", quantity=100, day=2),
    ]
    report = AnomalyDetector().detect(1, records)
    assert [a.transaction_id for a in report.anomalies] == [records[1].id]


def test_return_and_recall_do_not_change_available_quantity(make_record):
    records = [
        make_record(quantity=100),
        make_record("return", quantity=500, day=1),
        make_record("recall", quantity=500, day=2),
        make_record("sale", quantity=100, day=3),
    ]
    assert not AnomalyDetector().detect(1, records).anomalies_detected


def test_overflow_message_names_both_quantities(make_record):
    records = [make_record(quantity=10), make_record("sale", quantity=11, day=1)]
    message = AnomalyDetector().detect(1, records).anomalies[0].message
    assert "(11)" in message and "(10)" in message


# ---------------------------------------------------------------------------
# Cold chain
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("temperature", [9, -1, 8.01, 1.99])
def test_out_of_range_reading_is_violation(make_record, temperature):
    records = [make_record(temperature_log=_readings(5, temperature))]
    report = AnomalyDetector().detect(1, records)
    assert [a.type for a in report.anomalies] == [AnomalyType.TEMPERATURE_VIOLATION]
    assert report.anomalies[0].severity is Severity.HIGH
    assert report.risk_level is RiskLevel.HIGH


def test_range_bounds_are_inclusive(make_record):
    records = [make_record(temperature_log=_readings(2, 8, 2.0, 8.0, 5.5))]
    assert not AnomalyDetector().detect(1, records).anomalies_detected


def test_one_anomaly_per_record_with_violation_count(make_record):
    records = [make_record(temperature_log=_readings(1, 9, 5, 12))]
    report = AnomalyDetector().detect(1, records)
    assert report.total_anomalies == 1
    assert "3 readings outside 2-8°C range" in report.anomalies[0].message


def test_malformed_readings_are_skipped(make_record):
    log = [
        "hot",
        None,
        {"timestamp": "2026-03-01T00:00:00Z"},
        {"temperature": "warm"},
        {"temperature": True},
        {"temperature": float("nan")},
        {"temperature": "5.5"},
    ]
    records = [make_record(temperature_log=log)]
    assert not AnomalyDetector().detect(1, records).anomalies_detected


@pytest.mark.parametrize("temperature", [10**400, float("inf"), "-inf", "1e999"])
def test_non_finite_readings_are_skipped(make_record, temperature):
    records = [make_record(temperature_log=[{"temperature": temperature}, {"temperature": 4}])]
    assert not AnomalyDetector().detect(1, records).anomalies_detected


def test_non_finite_reading_does_not_hide_real_violation(make_record):
    records = [make_record(temperature_log=[{"temperature": 10**400}, {"temperature": 12}])]
    report = AnomalyDetector().detect(1, records)
    assert "1 readings outside" in report.anomalies[0].message


def test_non_list_temperature_log_is_ignored(make_record):
    records = [make_record(temperature_log={"temperature": 40}), make_record("sale", quantity=1, temperature_log=None)]
    assert not AnomalyDetector().detect(1, records).anomalies_detected


def test_custom_range(make_record):
    records = [make_record(temperature_log=_readings(-18))]
    assert not AnomalyDetector(min_temperature=-25, max_temperature=-15).detect(1, records).anomalies_detected


def test_inverted_range_rejected():
    with pytest.raises(ValueError):
        AnomalyDetector(min_temperature=8, max_temperature=2)


def test_reading_temperature_parses_numeric_strings():
    assert reading_temperature({"temperature": "4.5"}) == 4.5
    assert reading_temperature({"temperature": 3}) == 3.0
    assert reading_temperature([4]) is None


# ---------------------------------------------------------------------------
# General
# ---------------------------------------------------------------------------


def test_empty_history_is_low_risk():
    report = AnomalyDetector().detect(99, [])
    assert report.batch_id == 99
    assert not report.anomalies_detected
    assert report.risk_level is RiskLevel.LOW


def test_detection_is_repeatable(make_record):
    records = [make_record(quantity=5), make_record("sale", quantity=6, day=-1, temperature_log=_readings(10))]
    detector = AnomalyDetector()
    assert detector.detect(1, records) == detector.detect(1, records)
