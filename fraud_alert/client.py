"""
Client for the remote fraud prediction service.

Normalized rows are written back to CSV and uploaded as multipart form data
to ``POST {base_url}/predict``. The response body is streamed so the timeout
caps the whole exchange, not just each socket read. Failures are raised as
typed errors so the pipeline can tell a cold-start timeout from a broken
server or a malformed reply. No retries are attempted.
"""
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import ValidationError

from .config import DEFAULT_API_BASE_URL
from .errors import (
    InvalidResponseError,
    PredictionError,
    PredictionHTTPError,
    PredictionTimeoutError,
)
from .models import PredictionResponse
from .parsers import serialize_rows

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = (
    "Request timeout: The cloud server is taking too long to process your file. "
    "This might be due to first-time container startup. Please try again in a moment."
)

CONNECT_TIMEOUT = 10.0
CHUNK_SIZE = 64 * 1024


class PredictionClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock
        logger.info("Prediction client pointing to: %s", self.base_url)

    @property
    def predict_url(self) -> str:
        return f"{self.base_url}/predict"

    def close(self) -> None:
        self.session.close()

    def _read_body(self, response, deadline: float) -> bytes:
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if self.clock() > deadline:
                    raise requests.exceptions.Timeout(f"Response not complete after {self.timeout}s")
                chunks.append(chunk)
        finally:
            response.close()
        return b"".join(chunks)

    def predict(self, rows: List[Dict[str, Any]], filename: str = "transactions.csv") -> PredictionResponse:
        payload = serialize_rows(rows).encode("utf-8")
        if not payload:
            raise PredictionError("Invalid or empty file")

        logger.info("Sending prediction request to %s (%d rows, %d bytes)", self.predict_url, len(rows), len(payload))
        deadline = self.clock() + self.timeout
        try:
            response = self.session.post(
                self.predict_url,
                files={"file": (filename, payload, "text/csv")},
                headers={"Accept": "application/json", "X-Requested-With": "XMLHttpRequest"},
                timeout=(min(CONNECT_TIMEOUT, self.timeout), self.timeout),
                stream=True,
            )
            body = self._read_body(response, deadline)
        except requests.exceptions.Timeout as e:
            logger.error("Request timeout after %ss: %s", self.timeout, e)
            raise PredictionTimeoutError(TIMEOUT_MESSAGE) from e
        except requests.exceptions.RequestException as e:
            logger.error("Prediction request failed: %s", e)
            raise PredictionError(str(e)) from e

        if not response.ok:
            detail = body.decode("utf-8", errors="replace")
            logger.error("Backend error: %s %s %s", response.status_code, response.reason, detail)
            raise PredictionHTTPError(response.status_code, body=detail, reason=response.reason or "")

        try:
            data = json.loads(body)
            prediction = PredictionResponse.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.error("Error parsing prediction response: %s", e)
            raise InvalidResponseError("Invalid response format from server") from e

        logger.info(
            "Prediction received: %d high, %d medium, %d low",
            len(prediction.bucket("High")),
            len(prediction.bucket("Medium")),
            len(prediction.bucket("Low")),
        )
        return prediction
