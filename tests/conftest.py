import json
import random

import pytest

from fraud_alert.models import PredictionResponse


SAMPLE_CSV = (
    "trans_num,cc_num,amt,trans_date_trans_time,category,gender,state,age,merchant\n"
    "t1,4532111122223333,12.50,2019-01-01 00:00:18,grocery_pos,F,NY,34,fraud_Rippin\n"
    "t2,4532111122224444,$980.00,2019-01-01 03:15:00,shopping_net,M,TX,51,fraud_Heller\n"
    "t3,4532111122225555,7.25,2019-01-02 12:00:00,,M,,,fraud_Lind\n"
)


class SequenceRandom(random.Random):
    """random() replays fixed values, then returns 0.5."""

    def __init__(self, values):
        super().__init__(0)
        self._values = list(values)

    def random(self):
        return self._values.pop(0) if self._values else 0.5


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text="", reason="OK", chunks=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.reason = reason
        if chunks is None:
            body = json.dumps(json_data) if json_data is not None else text
            chunks = [body.encode("utf-8")] if body else []
        self.chunks = chunks
        self.closed = False

    def iter_content(self, chunk_size=1):
        return iter(self.chunks)

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


class FakeClient:
    """Stands in for PredictionClient inside the pipeline."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.received = None

    def predict(self, rows, filename="transactions.csv"):
        self.received = rows
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV.encode("utf-8")


@pytest.fixture
def sample_transaction():
    """Single raw row in the Sparkov transaction layout."""
    return {
        "trans_date_trans_time": "2020-06-21 12:14:25",
        "cc_num": "2291163933867244",
        "merchant": "fraud_Kirlin and Sons",
        "category": "personal_care",
        "amt": "2.86",
        "gender": "M",
        "city": "Moravian Falls",
        "state": "NC",
        "dob": "1988-03-09",
        "trans_num": "abc123",
        "age": "32",
    }


@pytest.fixture
def bucketed_response():
    return PredictionResponse(
        highRiskTransactions=[{"trans_num": "t2", "fraud_probability": 0.91}],
        lowRiskTransactions=[{"id": "t1", "fraud_probability": 0.05}, {"id": "t3"}],
    )
