import csv
import io
import logging
from typing import Any, BinaryIO, Dict, Iterator, List, TextIO, Union

from ..errors import CsvParseError

logger = logging.getLogger(__name__)

RawRow = Dict[str, Any]
CsvSource = Union[bytes, bytearray, str, BinaryIO, TextIO]

DEFAULT_CHUNK_SIZE = 10_000
MAX_ROWS = 100_000


def _text_stream(source: CsvSource) -> TextIO:
    if isinstance(source, str):
        return io.StringIO(source.lstrip("\ufeff"), newline="")
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))
    if isinstance(source, io.TextIOBase):
        return source
    return io.TextIOWrapper(source, encoding="utf-8-sig", errors="ignore", newline="")


def iter_csv_chunks(
    source: CsvSource,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_rows: int = MAX_ROWS,
) -> Iterator[List[RawRow]]:
    """
    Lazily parse a CSV upload into lists of at most ``chunk_size`` rows.
    The first line is the header. Parsing stops quietly after ``max_rows``
    rows; structural errors raise CsvParseError.
    """
    reader = csv.DictReader(_text_stream(source), strict=True)
    chunk: List[RawRow] = []
    count = 0
    try:
        for row in reader:
            if count >= max_rows:
                logger.warning(
                    "Large file detected - limiting to first %d rows", max_rows
                )
                break
            chunk.append(row)
            count += 1
            if len(chunk) >= chunk_size:
                logger.debug("Parsed chunk of %d rows", len(chunk))
                yield chunk
                chunk = []
    except csv.Error as e:
        raise CsvParseError(f"line {reader.line_num}: {e}") from e

    if chunk:
        logger.debug("Parsed chunk of %d rows", len(chunk))
        yield chunk
    logger.info("CSV parsing complete. Total rows: %d, columns: %s", count, reader.fieldnames)


def parse_csv(
    source: CsvSource,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_rows: int = MAX_ROWS,
) -> Iterator[RawRow]:
    for chunk in iter_csv_chunks(source, chunk_size=chunk_size, max_rows=max_rows):
        yield from chunk


def serialize_rows(rows: List[RawRow]) -> str:
    """Write rows back to CSV. The header is the union of keys in first-seen order."""
    if not rows:
        return ""
    fieldnames: Dict[str, None] = {}
    for row in rows:
        for key in row:
            fieldnames.setdefault(key, None)
    out = io.StringIO()
    writer = csv.DictWriter(
        out,
        fieldnames=list(fieldnames),
        restval="",
        extrasaction="ignore",
        lineterminator="\n",
    )
    writer.writeheader()
    writer.writerows(rows)
    return out.getvalue()
