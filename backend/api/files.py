from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from typing import Optional
import logging

from api.errors import http_error
from models.file import ColumnsResponse, UploadResponse
from utils.csv_utils import read_headers
from utils.errors import CsvApiError, CsvFormatError, InvalidRequestError
from utils.header_cache import header_cache
from utils.storage import DocumentStore, get_document_store, validate_upload

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/files",
    tags=["files"]
)


def _endpoint_template(request: Request, code: str) -> str:
    base = str(request.url_for("query_file"))
    return f"{base}?file={code}&header={{column}}&value={{filter}}"


@router.post("/", response_model=UploadResponse)
async def upload_file(
    request: Request,
    csv_file: Optional[UploadFile] = File(None, alias="csv"),
    store: DocumentStore = Depends(get_document_store),
):
    """Upload a CSV file and return the access code to query it with.

    The file is stored even when its header row cannot be parsed; ``headers``
    is then empty and queries against it fail with "Invalid CSV format".
    """
    try:
        # One byte past the limit is enough to tell an oversized upload apart
        data = await csv_file.read(store.config.max_file_size + 1) if csv_file is not None else b""
        validate_upload(data, store.config)
    except InvalidRequestError as e:
        name = csv_file.filename if csv_file is not None else None
        logger.warning(f"Rejected upload {name!r}: {e.message}")
        raise http_error(e)

    try:
        stored = store.save(data)
    except OSError as e:
        logger.error(f"Error saving upload {csv_file.filename!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save file")

    try:
        headers = read_headers(data, encoding=store.config.encoding)
        header_cache.set(stored.code, headers)
    except CsvFormatError:
        logger.warning(f"Uploaded file {stored.code} has no parsable header row")
        headers = []

    logger.info(f"Upload complete - file: {stored.code}, size: {stored.size_human}, columns: {len(headers)}")
    return UploadResponse(
        message="File uploaded successfully",
        code=stored.code,
        size=stored.size,
        size_human=stored.size_human,
        headers=headers,
        endpoint=_endpoint_template(request, stored.code),
    )


@router.get("/{code}")
async def get_file_info(code: str, store: DocumentStore = Depends(get_document_store)):
    """Return size and creation time of an uploaded file."""
    try:
        stored = store.describe(code)
    except CsvApiError as e:
        raise http_error(e)
    return stored.model_dump(exclude={"path"})


@router.get("/{code}/columns", response_model=ColumnsResponse)
async def get_file_columns(code: str, store: DocumentStore = Depends(get_document_store)):
    """
    Get the normalized column names of an uploaded file.

    Any of these names can be used as the ``header`` parameter of a query.
    """
    try:
        cached = header_cache.get(code)
        if cached is not None and store.exists(code):
            return {"code": code, "headers": cached}

        data = store.read_document(code)
        headers = read_headers(data, encoding=store.config.encoding)
        header_cache.set(code, headers)
        return {"code": code, "headers": headers}
    except CsvApiError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error reading columns of {code}: {e}")
        raise HTTPException(status_code=500, detail="Failed to read columns")
