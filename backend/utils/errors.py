from typing import Optional


class CsvApiError(Exception):
    """Base class for errors raised while storing or querying a CSV document.

    ``message`` is the human readable text surfaced to API clients.
    """

    default_message = "CSV processing failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class CsvFormatError(CsvApiError):
    """Raised when a document is empty, unreadable or has no usable header row."""

    default_message = "Invalid CSV format"


class ColumnNotFoundError(CsvApiError):
    """Raised when the requested filter column is not part of the header."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Column '{column}' not found in CSV")


class DocumentNotFoundError(CsvApiError):
    """Raised when no stored document exists for an access code."""

    default_message = "File not found"

    def __init__(self, code: Optional[str] = None):
        self.code = code
        super().__init__()


class InvalidRequestError(CsvApiError):
    """Raised for caller-side validation failures (bad code, bad upload)."""

    default_message = "Invalid request"


class QueryCancelledError(CsvApiError):
    """Raised when a document read is aborted through its cancellation signal."""

    default_message = "Query cancelled"
