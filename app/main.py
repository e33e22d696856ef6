from fastapi import Depends, FastAPI, UploadFile, File, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from typing import Any, Dict, Iterator, List, Optional
from functools import lru_cache
import logging

from fraud_alert.client import PredictionClient
from fraud_alert.config import Settings, configure_logging, load_settings
from fraud_alert.graph import process_transactions
from fraud_alert.views import build_dashboard, generate_mock_transactions

logger = logging.getLogger(__name__)


class ErrorModel(BaseModel):
    message: str
    statusCode: int


class DashboardResponse(BaseModel):
    transactions: List[Dict[str, Any]]
    riskDistribution: Dict[str, int]
    probabilityTrend: List[Dict[str, Any]]
    topTransactions: Dict[str, List[Dict[str, Any]]]
    error: Optional[ErrorModel] = None


ALLOWED_CONTENT_TYPES = {
    "text/csv",
    "application/vnd.ms-excel",
    "text/plain",
}

app = FastAPI(title="Fraud Alert", version="0.1.0")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def get_prediction_client(settings: Settings = Depends(get_settings)) -> Iterator[PredictionClient]:
    client = PredictionClient(settings.api_base_url, timeout=settings.request_timeout)
    try:
        yield client
    finally:
        client.close()


@app.on_event("startup")
async def startup_event():
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Using prediction API base URL: %s", settings.api_base_url)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/upload", response_model=DashboardResponse)
async def upload_and_predict(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    client: PredictionClient = Depends(get_prediction_client),
):
    filename = file.filename or "transactions.csv"
    if file.content_type not in ALLOWED_CONTENT_TYPES and not filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Unsupported file type. Upload a CSV file.")

    data = await file.read()
    result = await run_in_threadpool(process_transactions, data, filename, settings, client)

    payload = build_dashboard(result.transactions)
    if result.error:
        payload["error"] = {"message": result.error.message, "statusCode": result.error.status_code}
    return payload


@app.get("/demo", response_model=DashboardResponse)
def demo(count: int = Query(default=50, ge=1, le=1000)):
    """Dashboard built from generated demo transactions."""
    return build_dashboard(generate_mock_transactions(count))


@app.get("/")
def root():
    return {"message": "Fraud Alert API", "routes": ["/health", "/upload", "/demo"]}
