from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel


RiskLevel = Literal["High", "Medium", "Low"]
RISK_LEVELS: List[str] = ["High", "Medium", "Low"]


class RiskDistribution(BaseModel):
    High: float = 0
    Medium: float = 0
    Low: float = 0


class PredictionResponse(BaseModel):
    """JSON body returned by the remote ``/predict`` endpoint."""

    highRiskTransactions: Optional[List[Dict[str, Any]]] = None
    mediumRiskTransactions: Optional[List[Dict[str, Any]]] = None
    lowRiskTransactions: Optional[List[Dict[str, Any]]] = None
    riskDistribution: Optional[RiskDistribution] = None

    def bucket(self, risk_level: str) -> List[Dict[str, Any]]:
        records = {
            "High": self.highRiskTransactions,
            "Medium": self.mediumRiskTransactions,
            "Low": self.lowRiskTransactions,
        }[risk_level]
        return records or []


@dataclass
class ProcessedTransaction:
    id: str
    date: str
    amount: float
    merchant: str
    risk_level: str
    fraud_probability: float
    fields: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        data = dict(self.fields)
        data.update(
            id=self.id,
            date=self.date,
            amount=self.amount,
            merchant=self.merchant,
            risk_level=self.risk_level,
            fraud_probability=self.fraud_probability,
        )
        return data


@dataclass
class ApiError:
    message: str
    status_code: int = 500


@dataclass
class ProcessingResult:
    transactions: List[ProcessedTransaction] = field(default_factory=list)
    error: Optional[ApiError] = None
