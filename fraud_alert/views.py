from __future__ import annotations
import datetime as dt
import random
import time
from typing import Any, Dict, List, Optional

from .models import ProcessedTransaction
from .reconcile import draw_probability

MOCK_MERCHANTS = [
    "Amazon", "Walmart", "Target", "Best Buy", "Apple Store",
    "Gas Station", "Restaurant", "Hotel", "Airlines", "Online Service",
]


def calculate_risk_distribution(transactions: List[ProcessedTransaction]) -> Dict[str, int]:
    counts = {"Low": 0, "Medium": 0, "High": 0}
    for tx in transactions:
        counts[tx.risk_level] = counts.get(tx.risk_level, 0) + 1
    return counts


def create_probability_trend_data(transactions: List[ProcessedTransaction]) -> List[Dict[str, Any]]:
    return [
        {"index": idx + 1, "fraud_probability": tx.fraud_probability}
        for idx, tx in enumerate(transactions)
    ]


def get_top_transactions_by_risk_level(
    transactions: List[ProcessedTransaction],
    risk_level: str,
    limit: int = 5,
) -> List[ProcessedTransaction]:
    matching = [tx for tx in transactions if tx.risk_level == risk_level]
    matching.sort(key=lambda tx: tx.fraud_probability, reverse=True)
    return matching[: max(limit, 0)]


def generate_mock_transactions(count: int = 20, rng: Optional[random.Random] = None) -> List[ProcessedTransaction]:
    """Demo data for when the prediction service is unavailable."""
    rng = rng or random.Random()
    today = dt.date.today().isoformat()
    now = int(time.time())
    transactions = []
    for i in range(count):
        risk_level = rng.choice(["Low", "Medium", "High"])
        amount = round(rng.random() * 1000, 2)
        transactions.append(
            ProcessedTransaction(
                id=f"TX-{1000 + i}",
                date=today,
                amount=amount,
                merchant=rng.choice(MOCK_MERCHANTS),
                risk_level=risk_level,
                fraud_probability=draw_probability(risk_level, rng),
                fields={
                    "cc_num": f"4532{rng.randint(10 ** 11, 10 ** 12 - 1)}",
                    "amt": amount,
                    "unix_time": now,
                    "source": "demo",
                },
            )
        )
    return transactions


def build_dashboard(transactions: List[ProcessedTransaction], top_limit: int = 5) -> Dict[str, Any]:
    """Everything the UI needs to render one upload."""
    return {
        "transactions": [tx.as_dict() for tx in transactions],
        "riskDistribution": calculate_risk_distribution(transactions),
        "probabilityTrend": create_probability_trend_data(transactions),
        "topTransactions": {
            level: [tx.as_dict() for tx in get_top_transactions_by_risk_level(transactions, level, top_limit)]
            for level in ("High", "Medium", "Low")
        },
    }
