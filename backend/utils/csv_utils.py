import io
import logging
from typing import BinaryIO, Generator, List, Optional, Sequence, TextIO, Tuple, Union

from utils.errors import CsvFormatError

logger = logging.getLogger(__name__)

# Candidate separators in tie-break order: the first maximum wins
DELIMITERS = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","

QUOTE_CHAR = '"'
ESCAPE_CHAR = "\\"

# Stripped from both ends of every cell: space, tab, LF, CR, NUL, VT
TRIM_CHARS = " \t\n\r\0\x0b"

# UTF-8 byte-order mark, decoded as UTF-8 and as a single-byte codec
BOM_PREFIXES = ("\ufeff", "\xef\xbb\xbf")


def detect_delimiter(first_line: Union[str, bytes, None]) -> str:
    """Pick the most frequent candidate delimiter in the first line.

    Counts every candidate in ``DELIMITERS`` order and returns the first one
    holding the maximum count. Falls back to ``,`` when nothing matches.
    This is a heuristic: a quoted header full of commas can pick the wrong one.
    """
    if not first_line:
        return DEFAULT_DELIMITER

    best = DEFAULT_DELIMITER
    best_count = 0
    for candidate in DELIMITERS:
        needle = candidate.encode("ascii") if isinstance(first_line, bytes) else candidate
        count = first_line.count(needle)
        if count > best_count:
            best = candidate
            best_count = count
    return best


def detect_delimiter_from_bytes(data: Optional[bytes]) -> str:
    """Detect the delimiter of a raw document from its first line."""
    if not data:
        return DEFAULT_DELIMITER
    first_line = data.split(b"\n", 1)[0]
    return detect_delimiter(first_line)


def trim_cell(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip(TRIM_CHARS)


def _strip_bom(value: str) -> str:
    for bom in BOM_PREFIXES:
        if value.startswith(bom):
            return value[len(bom):]
    return value


def normalize_headers(record: Optional[Sequence[str]]) -> List[str]:
    """Turn the first parsed record into the list of column names.

    Each cell loses a leading BOM and surrounding whitespace; cells that end
    up empty are dropped and the remaining names keep their order.

    Raises:
        CsvFormatError: if ``record`` is missing or not a sequence of cells.
    """
    if record is None or isinstance(record, (str, bytes)) or not isinstance(record, Sequence):
        raise CsvFormatError()

    headers: List[str] = []
    for cell in record:
        if cell is None:
            continue
        name = trim_cell(_strip_bom(str(cell)))
        if name:
            headers.append(name)
    return headers


def _split_record(line: str, source: TextIO, delimiter: str) -> List[str]:
    """Split one record starting at ``line``.

    Quoted fields may span several physical lines, in which case more lines
    are pulled from ``source``. A field opens a quote when its first
    non-blank character is ``"``; the blanks before it are dropped. Inside
    quotes ``""`` is a literal quote and a backslash keeps the following
    character (quote included) literal; the backslash itself is preserved.
    """
    fields: List[str] = []
    buf: List[str] = []
    in_quotes = False
    # True while the current field holds nothing but spaces or tabs
    blank_so_far = True
    i = 0

    while True:
        if i >= len(line):
            if in_quotes:
                line = source.readline()
                if not line:
                    logger.debug("Unterminated quoted field at end of document")
                    raise CsvFormatError()
                i = 0
                continue
            break

        ch = line[i]
        if in_quotes:
            if ch == ESCAPE_CHAR and i + 1 < len(line):
                buf.append(ch)
                buf.append(line[i + 1])
                i += 2
            elif ch == QUOTE_CHAR:
                if i + 1 < len(line) and line[i + 1] == QUOTE_CHAR:
                    buf.append(QUOTE_CHAR)
                    i += 2
                else:
                    in_quotes = False
                    i += 1
            else:
                buf.append(ch)
                i += 1
            continue

        if ch == delimiter:
            fields.append("".join(buf))
            buf = []
            blank_so_far = True
        elif ch in "\r\n":
            # readline() only ever leaves the terminator at the end
            break
        elif ch == QUOTE_CHAR and blank_so_far:
            # Whitespace ahead of an opening quote is not part of the value
            buf = []
            in_quotes = True
            blank_so_far = False
        else:
            buf.append(ch)
            if ch not in " \t":
                blank_so_far = False
        i += 1

    fields.append("".join(buf))
    return fields


def iter_records(
    stream: BinaryIO,
    delimiter: str = DEFAULT_DELIMITER,
    encoding: str = "utf-8",
) -> Generator[List[str], None, None]:
    """Lazily yield records (lists of raw string fields) from a byte stream.

    Single pass: the generator consumes ``stream`` as it goes and cannot be
    restarted. ``\\n``, ``\\r\\n`` and ``\\r`` terminated records are accepted.

    Raises:
        CsvFormatError: when the stream cannot be decoded or read, or a quoted
            field is never closed. The error ends the whole iteration.
    """
    if delimiter not in DELIMITERS:
        raise ValueError(f"Unsupported delimiter: {delimiter!r}")

    text = io.TextIOWrapper(stream, encoding=encoding, newline="")
    try:
        while True:
            line = text.readline()
            if not line:
                return
            yield _split_record(line, text, delimiter)
    except UnicodeDecodeError as e:
        logger.debug(f"Could not decode CSV as {encoding}: {e}")
        raise CsvFormatError() from e
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read CSV stream: {e}")
        raise CsvFormatError() from e
    finally:
        # Leave the caller's stream open
        try:
            text.detach()
        except ValueError:
            pass


def parse_document(data: Optional[bytes], encoding: str = "utf-8") -> Tuple[List[str], Generator[List[str], None, None]]:
    """Detect the delimiter, read the header row and return it with the
    iterator positioned at the first data record.

    Raises:
        CsvFormatError: for an empty document, an unparsable first record, or a
            header row without a single non-empty column name.
    """
    if not data:
        raise CsvFormatError()

    delimiter = detect_delimiter_from_bytes(data)
    records = iter_records(io.BytesIO(data), delimiter=delimiter, encoding=encoding)
    headers = normalize_headers(next(records, None))
    if not headers:
        raise CsvFormatError()

    logger.debug(f"Parsed header with delimiter {delimiter!r}: {headers}")
    return headers, records


def read_headers(data: Optional[bytes], encoding: str = "utf-8") -> List[str]:
    """Return the normalized header row of a raw CSV document."""
    headers, records = parse_document(data, encoding=encoding)
    records.close()
    return headers
