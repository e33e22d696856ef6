import random

from fraud_alert.models import ProcessedTransaction
from fraud_alert.views import (
    build_dashboard,
    calculate_risk_distribution,
    create_probability_trend_data,
    generate_mock_transactions,
    get_top_transactions_by_risk_level,
)


def _tx(tx_id, level, p):
    return ProcessedTransaction(
        id=tx_id, date="2019-01-01", amount=10.0, merchant="m",
        risk_level=level, fraud_probability=p,
    )


TRANSACTIONS = [
    _tx("a", "High", 0.75),
    _tx("b", "High", 0.95),
    _tx("c", "Medium", 0.5),
    _tx("d", "High", 0.85),
    _tx("e", "Low", 0.1),
]


def test_risk_distribution_counts():
    assert calculate_risk_distribution(TRANSACTIONS) == {"Low": 1, "Medium": 1, "High": 3}
    assert calculate_risk_distribution([]) == {"Low": 0, "Medium": 0, "High": 0}


def test_probability_trend_is_one_based():
    trend = create_probability_trend_data(TRANSACTIONS[:2])
    assert trend == [
        {"index": 1, "fraud_probability": 0.75},
        {"index": 2, "fraud_probability": 0.95},
    ]


def test_top_transactions_sorted_and_limited():
    top = get_top_transactions_by_risk_level(TRANSACTIONS, "High", limit=2)
    assert [tx.id for tx in top] == ["b", "d"]
    assert all(tx.risk_level == "High" for tx in top)
    assert get_top_transactions_by_risk_level(TRANSACTIONS, "Low") == [TRANSACTIONS[4]]
    assert get_top_transactions_by_risk_level(TRANSACTIONS, "Medium", limit=0) == []


def test_mock_transactions():
    mocks = generate_mock_transactions(20, random.Random(42))
    assert len(mocks) == 20
    assert mocks[0].id == "TX-1000"
    bands = {"High": (0.7, 1.0), "Medium": (0.4, 0.7), "Low": (0.0, 0.4)}
    for tx in mocks:
        low, high = bands[tx.risk_level]
        assert low <= tx.fraud_probability <= high
        assert 0 <= tx.amount <= 1000
        assert len(tx.fields["cc_num"]) == 16


def test_dashboard_envelope():
    dashboard = build_dashboard(TRANSACTIONS, top_limit=1)
    assert len(dashboard["transactions"]) == 5
    assert dashboard["transactions"][0]["risk_level"] == "High"
    assert sum(dashboard["riskDistribution"].values()) == 5
    assert [tx["id"] for tx in dashboard["topTransactions"]["High"]] == ["b"]
