from typing import Optional


class PipelineError(Exception):
    """Base error for the upload/predict pipeline. Carries an HTTP-like status."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class CsvParseError(PipelineError):
    status_code = 400


class PredictionError(PipelineError):
    pass


class PredictionTimeoutError(PredictionError):
    pass


class PredictionHTTPError(PredictionError):
    def __init__(self, status: int, body: str = "", reason: str = ""):
        super().__init__(f"Server error: {status} - {body or reason}")
        self.status = status
        self.body = body


class InvalidResponseError(PredictionError):
    pass
