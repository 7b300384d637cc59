from fastapi import HTTPException

from utils.errors import (
    CsvApiError,
    DocumentNotFoundError,
    QueryCancelledError,
)


def http_error(exc: CsvApiError) -> HTTPException:
    """Translate a CSV API error into the HTTPException returned to clients.

    Missing documents are 404, cancelled (timed out) queries 504, and every
    other error (bad request, bad CSV, unknown column) is 400.
    """
    if isinstance(exc, DocumentNotFoundError):
        status = 404
    elif isinstance(exc, QueryCancelledError):
        status = 504
    else:
        status = 400
    return HTTPException(status_code=status, detail=exc.message)
