import random

import pytest

from fraud_alert.models import PredictionResponse, RiskDistribution
from fraud_alert.parsers import load_csv_upload
from fraud_alert.reconcile import ResultReconciler, random_assignment

from conftest import SequenceRandom


@pytest.fixture
def rows(sample_csv):
    return load_csv_upload(sample_csv)


def test_merges_api_records_onto_rows(rows, bucketed_response):
    result = ResultReconciler(random.Random(1)).reconcile(rows, bucketed_response)

    assert [tx.id for tx in result] == ["t2", "t1", "t3"]
    assert [tx.risk_level for tx in result] == ["High", "Low", "Low"]

    high = result[0]
    assert high.fraud_probability == pytest.approx(0.91)
    assert high.merchant == "fraud_Heller"
    assert high.amount == pytest.approx(980.0)
    assert high.date == "2019-01-01"
    assert high.fields["state_TX"] == 1

    # Omitted probability falls back to the bucket default.
    assert result[2].fraud_probability == pytest.approx(0.2)


def test_api_fields_override_row(rows):
    response = PredictionResponse(mediumRiskTransactions=[
        {"id": "t1", "merchant": "Api Merchant", "amt": 99, "fraud_probability": 1.7},
    ])
    tx = ResultReconciler().reconcile(rows, response)[0]
    assert tx.risk_level == "Medium"
    assert tx.merchant == "Api Merchant"
    assert tx.amount == 99
    assert tx.fraud_probability == 1.0


def test_unknown_record_gets_defaults(rows):
    response = PredictionResponse(highRiskTransactions=[{"fraud_probability": 0.75}])
    tx = ResultReconciler(random.Random(3)).reconcile(rows, response)[0]
    assert tx.id.startswith("TX-")
    assert tx.merchant == "Unknown Merchant"
    assert tx.amount == 0
    assert tx.date


def test_card_number_used_as_id_fallback(rows):
    response = PredictionResponse(lowRiskTransactions=[{"cc_num": "4532111122223333"}])
    tx = ResultReconciler().reconcile(rows, response)[0]
    assert tx.id == "4532111122223333"
    assert tx.merchant == "Unknown Merchant"


def test_empty_buckets_follow_risk_distribution(rows):
    response = PredictionResponse(riskDistribution=RiskDistribution(High=100, Medium=0, Low=0))
    result = ResultReconciler(random.Random(5)).reconcile(rows, response)
    assert len(result) == 3
    assert all(tx.risk_level == "High" for tx in result)
    assert all(0.7 <= tx.fraud_probability <= 1.0 for tx in result)
    assert [tx.id for tx in result] == ["t1", "t2", "t3"]


def test_empty_buckets_without_distribution_are_low(rows):
    result = ResultReconciler(random.Random(5)).reconcile(rows, PredictionResponse())
    assert [tx.risk_level for tx in result] == ["Low", "Low", "Low"]
    assert all(0.0 <= tx.fraud_probability < 0.4 for tx in result)


def test_simulated_buckets_are_ordered_high_medium_low(rows):
    # thresholds: High < 0.25 <= Medium < 0.5 <= Low
    rng = SequenceRandom([0.9, 0.1, 0.1, 0.3, 0.3, 0.5])
    response = PredictionResponse(riskDistribution=RiskDistribution(High=1, Medium=1, Low=2))
    result = ResultReconciler(rng).reconcile(rows, response)
    assert [(tx.id, tx.risk_level) for tx in result] == [("t2", "High"), ("t3", "Medium"), ("t1", "Low")]


def test_no_rows_no_predictions():
    assert ResultReconciler().reconcile([], PredictionResponse()) == []


def test_random_assignment_keeps_order_and_bands(rows):
    result = random_assignment(rows, random.Random(11))
    assert [tx.id for tx in result] == ["t1", "t2", "t3"]
    bands = {"High": (0.7, 1.0), "Medium": (0.4, 0.7), "Low": (0.0, 0.4)}
    for tx in result:
        low, high = bands[tx.risk_level]
        assert low <= tx.fraud_probability <= high
