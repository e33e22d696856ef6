from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import random

from langgraph.graph import StateGraph, END

from .client import PredictionClient
from .config import Settings, load_settings
from .errors import CsvParseError, PredictionError
from .models import ApiError, PredictionResponse, ProcessedTransaction, ProcessingResult
from .parsers import load_csv_upload
from .reconcile import ResultReconciler, random_assignment
from .views import generate_mock_transactions

logger = logging.getLogger(__name__)

DEMO_TRANSACTION_COUNT = 50


@dataclass
class PipelineState:
    data: bytes = b""
    filename: str = "transactions.csv"
    rows: List[Dict[str, Any]] = field(default_factory=list)
    prediction: Optional[PredictionResponse] = None
    transactions: List[ProcessedTransaction] = field(default_factory=list)
    error: Optional[ApiError] = None
    failed_stage: str = ""


class PipelineNodes:
    """Graph nodes for one upload: parse and normalize, predict, reconcile, fall back."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[PredictionClient] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.rng = rng or random.Random()
        self.client = client or PredictionClient(settings.api_base_url, timeout=settings.request_timeout)
        self.reconciler = ResultReconciler(self.rng)

    def ingest(self, state: PipelineState) -> Dict[str, Any]:
        filename = state.filename or "transactions.csv"
        logger.info("Processing file %s (%d bytes)", filename, len(state.data))
        return {"filename": filename}

    def preprocess(self, state: PipelineState) -> Dict[str, Any]:
        try:
            rows = load_csv_upload(
                state.data,
                batch_size=self.settings.batch_size,
                max_rows=self.settings.max_rows,
                rng=self.rng,
            )
        except CsvParseError as e:
            logger.error("CSV parsing error: %s", e)
            return {
                "failed_stage": "parse",
                "error": ApiError(f"Invalid CSV format: {e.message}", e.status_code),
            }
        return {"rows": rows}

    def predict(self, state: PipelineState) -> Dict[str, Any]:
        try:
            prediction = self.client.predict(state.rows, filename=state.filename)
        except PredictionError as e:
            logger.error("Prediction service error: %s", e)
            return {
                "failed_stage": "predict",
                "error": ApiError(f"Prediction service error: {e.message}", e.status_code),
            }
        except Exception as e:
            logger.exception("Unexpected prediction error")
            return {"failed_stage": "predict", "error": ApiError(f"Prediction service error: {e}", 500)}
        return {"prediction": prediction}

    def reconcile(self, state: PipelineState) -> Dict[str, Any]:
        try:
            transactions = self.reconciler.reconcile(state.rows, state.prediction)
        except Exception as e:
            logger.exception("Could not reconcile predictions")
            return {"failed_stage": "reconcile", "error": ApiError(f"Error processing predictions: {e}", 500)}
        return {"transactions": transactions}

    def fallback(self, state: PipelineState) -> Dict[str, Any]:
        error = state.error or ApiError("Prediction service error")
        if not self.settings.use_demo_data_on_error:
            return {
                "transactions": [],
                "error": ApiError(f"{error.message}. Please try again or use the demo data option.", 500),
            }
        logger.warning("Classifying uploaded rows locally after %s failure", state.failed_stage or "predict")
        return {
            "transactions": random_assignment(state.rows, self.rng),
            "error": ApiError(f"{error.message}. Using local processing with simulated fraud probabilities.", 500),
        }


def _route(state: PipelineState) -> str:
    return "failed" if state.failed_stage else "ok"


def build_graph(nodes: PipelineNodes):
    sg = StateGraph(PipelineState)
    sg.add_node("ingest", nodes.ingest)
    sg.add_node("preprocess", nodes.preprocess)
    sg.add_node("predict", nodes.predict)
    sg.add_node("reconcile", nodes.reconcile)
    sg.add_node("fallback", nodes.fallback)
    sg.set_entry_point("ingest")
    sg.add_edge("ingest", "preprocess")
    sg.add_conditional_edges("preprocess", _route, {"ok": "predict", "failed": END})
    sg.add_conditional_edges("predict", _route, {"ok": "reconcile", "failed": "fallback"})
    sg.add_conditional_edges("reconcile", _route, {"ok": END, "failed": "fallback"})
    sg.add_edge("fallback", END)
    return sg.compile()


def _state_value(result: Any, key: str, default: Any = None) -> Any:
    return getattr(result, key) if hasattr(result, key) else result.get(key, default)


def process_transactions(
    data: bytes,
    filename: str = "transactions.csv",
    settings: Optional[Settings] = None,
    client: Optional[PredictionClient] = None,
    rng: Optional[random.Random] = None,
) -> ProcessingResult:
    """
    Run one upload through the pipeline. Never raises: failures come back as
    an ApiError next to whatever transactions could still be produced.
    """
    settings = settings or load_settings()
    try:
        nodes = PipelineNodes(settings, client=client, rng=rng)
        result = build_graph(nodes).invoke({"data": data, "filename": filename})
        return ProcessingResult(
            transactions=_state_value(result, "transactions", []) or [],
            error=_state_value(result, "error"),
        )
    except Exception as e:
        logger.exception("Unexpected processing error")
        if not settings.use_demo_data_on_error:
            return ProcessingResult(
                transactions=[],
                error=ApiError(f"Error processing file: {e}. Please try again or use the demo data option.", 500),
            )
        return ProcessingResult(
            transactions=generate_mock_transactions(DEMO_TRANSACTION_COUNT, rng),
            error=ApiError(f"Error processing file: {e}. Using demo data instead.", 500),
        )
