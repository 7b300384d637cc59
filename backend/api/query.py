from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import asyncio
import functools
import logging
import threading

from api.errors import http_error
from config import Settings, get_settings
from models.file import QueryResponse
from utils.errors import CsvApiError
from utils.query_engine import query_stored_document
from utils.storage import DocumentStore, get_document_store

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/query",
    tags=["query"]
)


@router.get("/", response_model=QueryResponse)
async def query_file(
    file: Optional[str] = Query(None, description="Access code returned by the upload"),
    header: Optional[str] = Query(None, description="Column to filter on"),
    value: Optional[str] = Query(
        None,
        description="Exact value, or a pattern where * matches any characters (e.g. jenkins*)"
    ),
    store: DocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_settings),
):
    """
    Return the rows of an uploaded CSV whose ``header`` column matches ``value``.

    Args:
        file: Access code of the uploaded file
        header: Column name from the CSV header row
        value: Filter value; ``*`` is a wildcard, anything else matches exactly

    Returns:
        Dictionary with the matching rows under ``data``
    """
    code = (file or "").strip()
    column = header.strip() if header is not None else None
    pattern = value.strip() if value is not None else None

    if not store.is_valid_code(code):
        logger.warning(f"Query rejected - invalid file code: {file!r}")
        raise HTTPException(status_code=400, detail="Invalid file code format")

    if column is None or pattern is None:
        raise HTTPException(
            status_code=400,
            detail='Parameters "file", "header", and "value" are all required'
        )

    if not store.exists(code):
        logger.info(f"Query for unknown file {code}")
        raise HTTPException(status_code=404, detail="File not found")

    logger.info(f"Query request - file: {code}, header: {column}, value: {pattern}")

    cancel = threading.Event()
    loop = asyncio.get_running_loop()
    try:
        # Executor futures stop being awaited on timeout; the worker sees the cancel event
        data = await asyncio.wait_for(
            loop.run_in_executor(
                None,
                functools.partial(query_stored_document, store, code, column, pattern, cancel),
            ),
            timeout=settings.QUERY_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        cancel.set()
        logger.warning(f"Query on {code} exceeded {settings.QUERY_TIMEOUT_SECONDS}s")
        raise HTTPException(status_code=504, detail="Query timed out")
    except CsvApiError as e:
        logger.info(f"Query on {code} failed: {e.message}")
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error querying file {code}: {e}")
        raise HTTPException(status_code=500, detail="Failed to query file")

    return {"data": data}
