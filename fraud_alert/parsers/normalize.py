import calendar
import datetime as dt
import logging
import math
import random
import re
from itertools import islice
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

RawRow = Dict[str, Any]
NormalizedRow = Dict[str, Any]

CATEGORY_COUNT = 13
DEFAULT_AGE = 30
DEFAULT_STATE = "CA"

# Ordered keyword groups; the first group that matches wins.
CATEGORY_KEYWORDS = [
    (("grocery",), 1),
    (("gas", "transport"), 2),
    (("entertain",), 3),
    (("misc",), 4),
    (("health",), 5),
    (("food", "dining"), 6),
    (("shop",), 7),
    (("personal",), 8),
    (("home",), 9),
    (("kids",), 10),
    (("travel",), 11),
    (("service",), 12),
]

STATES = [
    "AL", "AR", "AZ", "CA", "CO", "CT", "DC", "DE", "FL", "GA",
    "HI", "IA", "ID", "IL", "IN", "KS", "KY", "LA", "MA", "MD",
    "ME", "MI", "MN", "MO", "MS", "MT", "NC", "ND", "NE", "NH",
    "NJ", "NM", "NV", "NY", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VA", "VT", "WA", "WI", "WV", "WY",
]
_STATE_SET = frozenset(STATES)

DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
    "%Y-%m-%d",
    "%m/%d/%Y",
]

_NUMERIC_NAME = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\s*$")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_NON_DIGIT = re.compile(r"[^\d]")
_NON_AMOUNT = re.compile(r"[^\d.]")


def is_artifact_column(name: Any) -> bool:
    """Blank, purely numeric or ``Unnamed: N`` headers left behind by spreadsheet exports."""
    if not isinstance(name, str):
        return True
    return not name.strip() or bool(_NUMERIC_NAME.match(name)) or name.startswith("Unnamed")


def generate_transaction_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"TX-{rng.randint(1_000_000, 9_999_999)}"


def parse_amount(value: Any) -> float:
    cleaned = _NON_AMOUNT.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        amount = float(match.group(0))
    except ValueError:
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def parse_datetime(value: Any) -> Optional[dt.datetime]:
    text = str(value).strip()
    if not text:
        return None
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATETIME_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _unix_time(parsed: dt.datetime) -> int:
    if parsed.tzinfo is not None:
        return int(parsed.timestamp())
    return calendar.timegm(parsed.timetuple())


def _category_index(value: Any) -> int:
    if not value:
        return 1
    category = str(value).lower()
    for keywords, index in CATEGORY_KEYWORDS:
        if any(k in category for k in keywords):
            return index
    return 1


def _state_code(value: Any) -> str:
    if not value:
        return DEFAULT_STATE
    code = str(value).strip().upper()
    return code if code in _STATE_SET else DEFAULT_STATE


def _age(value: Any) -> Any:
    if not value:
        return DEFAULT_AGE
    try:
        age = float(str(value).strip())
    except ValueError:
        return DEFAULT_AGE
    if not math.isfinite(age):
        return DEFAULT_AGE
    return int(age) if age.is_integer() else age


def normalize_row(row: RawRow, rng: Optional[random.Random] = None) -> NormalizedRow:
    """
    Reshape one uploaded CSV row into the feature schema the fraud model expects.
    Never raises: every missing or malformed field falls back to a default.
    """
    out: NormalizedRow = {k: v for k, v in row.items() if not is_artifact_column(k)}

    tx_id = row.get("trans_num") or row.get("id") or generate_transaction_id(rng)
    out["id"] = str(tx_id)
    out["trans_num"] = out["id"]

    if row.get("cc_num"):
        out["cc_num"] = _NON_DIGIT.sub("", str(row["cc_num"]))

    amount = parse_amount(row.get("amt") or row.get("amount") or "")
    out["amt"] = amount
    out["amount"] = amount

    raw_dt = row.get("trans_date_trans_time")
    if raw_dt:
        raw_dt = str(raw_dt)
        out["date"] = raw_dt.split(" ", 1)[0]
        parsed = parse_datetime(raw_dt)
        if parsed is None:
            logger.warning("Could not parse date: %s", raw_dt)
        else:
            out["transaction_hour"] = parsed.hour
            out["year"] = parsed.year
            out["month"] = parsed.month
            out["day"] = parsed.day
            out["hour"] = parsed.hour
            if not out.get("unix_time"):
                out["unix_time"] = _unix_time(parsed)
    if not out.get("date"):
        out["date"] = dt.date.today().isoformat()

    for i in range(1, CATEGORY_COUNT + 1):
        out[f"category_{i}"] = 0
    out[f"category_{_category_index(row.get('category'))}"] = 1

    gender = row.get("gender")
    out["gender_M"] = 1 if gender and str(gender).upper() == "M" else 0

    for state in STATES:
        out[f"state_{state}"] = 0
    out[f"state_{_state_code(row.get('state'))}"] = 1

    out["age"] = _age(row.get("age"))
    return out


def normalize_rows(rows: Iterable[RawRow], rng: Optional[random.Random] = None) -> List[NormalizedRow]:
    return [normalize_row(row, rng) for row in rows]


class BatchPreprocessor:
    """Normalizes a row stream in fixed-size batches to bound peak memory."""

    def __init__(self, batch_size: int = 10_000, rng: Optional[random.Random] = None):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size
        self.rng = rng

    def run(self, rows: Iterable[RawRow]) -> List[NormalizedRow]:
        processed: List[NormalizedRow] = []
        it = iter(rows)
        batch_index = 0
        while True:
            batch = list(islice(it, self.batch_size))
            if not batch:
                break
            batch_index += 1
            logger.debug(
                "Processing batch %d, rows %d to %d",
                batch_index, len(processed), len(processed) + len(batch),
            )
            processed.extend(normalize_rows(batch, self.rng))
        logger.info("Preprocessing complete. Processed %d rows in %d batches", len(processed), batch_index)
        return processed
