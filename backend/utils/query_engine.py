import logging
import threading
from typing import Dict, List, Optional, TYPE_CHECKING

from utils.csv_utils import parse_document, trim_cell
from utils.errors import ColumnNotFoundError
from utils.pattern_utils import compile_pattern

if TYPE_CHECKING:
    from utils.storage import DocumentStore

logger = logging.getLogger(__name__)

Record = Dict[str, str]


def build_record(headers: List[str], row: List[str]) -> Optional[Record]:
    """Zip one data row against the header.

    Cells are trimmed first. Returns None for a row whose cells are all empty.
    Short rows are padded with empty strings, extra cells are dropped, and a
    repeated header name keeps the value of its last occurrence.
    """
    cells = [trim_cell(cell) for cell in row]
    if not any(cells):
        return None
    if len(cells) < len(headers):
        cells.extend([""] * (len(headers) - len(cells)))
    return dict(zip(headers, cells))


def query_document(
    document: bytes,
    filter_column: Optional[str] = None,
    filter_value: Optional[str] = None,
    encoding: str = "utf-8",
) -> List[Record]:
    """Parse a raw CSV document and return the rows matching the filter.

    Args:
        document: Raw bytes of the uploaded CSV file
        filter_column: Header name to filter on (must exist in the header)
        filter_value: Exact value or ``*`` glob pattern for ``filter_column``
        encoding: Text encoding of the document

    Returns:
        Records in file order. The filter only applies when both
        ``filter_column`` and ``filter_value`` are given; otherwise every
        non-empty row is returned.

    Raises:
        CsvFormatError: if the document has no parsable header row or is malformed
        ColumnNotFoundError: if ``filter_column`` is not part of the header
    """
    headers, records = parse_document(document, encoding=encoding)
    try:
        if filter_column is not None and filter_column not in headers:
            raise ColumnNotFoundError(filter_column)

        predicate = None
        if filter_column is not None and filter_value is not None:
            predicate = compile_pattern(filter_value)

        results: List[Record] = []
        for row in records:
            record = build_record(headers, row)
            if record is None:
                continue
            if predicate is not None:
                if filter_column not in record or not predicate(record[filter_column]):
                    continue
            results.append(record)
    finally:
        records.close()

    logger.debug(f"Query on column {filter_column!r} with {filter_value!r} matched {len(results)} rows")
    return results


def query_stored_document(
    store: "DocumentStore",
    code: str,
    filter_column: Optional[str] = None,
    filter_value: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
) -> List[Record]:
    """Read a stored document by access code and run ``query_document`` on it.

    ``cancel`` is checked while the document is read; once set the read stops
    with QueryCancelledError and nothing is parsed.
    """
    document = store.read_document(code, cancel=cancel)
    return query_document(
        document,
        filter_column=filter_column,
        filter_value=filter_value,
        encoding=store.config.encoding,
    )
