from .csv_parser import (
    DEFAULT_CHUNK_SIZE,
    MAX_ROWS,
    iter_csv_chunks,
    parse_csv,
    serialize_rows,
)
from .normalize import (
    CATEGORY_KEYWORDS,
    STATES,
    BatchPreprocessor,
    normalize_row,
    normalize_rows,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "MAX_ROWS",
    "iter_csv_chunks",
    "parse_csv",
    "serialize_rows",
    "CATEGORY_KEYWORDS",
    "STATES",
    "BatchPreprocessor",
    "normalize_row",
    "normalize_rows",
    "load_csv_upload",
]


def load_csv_upload(data, batch_size: int = DEFAULT_CHUNK_SIZE, max_rows: int = MAX_ROWS, rng=None):
    """
    Parse and normalize an uploaded CSV in one pass.
    Rows are normalized chunk by chunk as the parser produces them.
    """
    preprocessor = BatchPreprocessor(batch_size=batch_size, rng=rng)
    return preprocessor.run(parse_csv(data, chunk_size=batch_size, max_rows=max_rows))
