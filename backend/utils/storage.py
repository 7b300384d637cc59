from __future__ import annotations

import logging
import os
import re
import secrets
import threading
from pathlib import Path
from typing import List, Optional

from fastapi import Depends
from pydantic import BaseModel

from config import Settings, get_settings

from models.file import StoredFile, format_bytes
from utils.csv_utils import DELIMITERS
from utils.errors import (
    DocumentNotFoundError,
    InvalidRequestError,
    QueryCancelledError,
)

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".csv"
BINARY_MIME_TYPE = "application/octet-stream"


class StorageConfig(BaseModel):
    """Explicit configuration for the upload store."""
    upload_dir: Path = Path("uploads")
    max_file_size: int = 5 * 1024 * 1024
    allowed_mime_types: List[str] = ["text/csv", "text/plain", "application/csv"]
    access_code_pattern: str = r"^[a-f0-9]{16,24}$"
    read_chunk_size: int = 64 * 1024
    encoding: str = "utf-8"

    @classmethod
    def from_settings(cls, settings) -> "StorageConfig":
        return cls(
            upload_dir=Path(settings.UPLOAD_DIR),
            max_file_size=settings.MAX_FILE_SIZE,
            allowed_mime_types=list(settings.ALLOWED_MIME_TYPES),
            access_code_pattern=settings.ACCESS_CODE_PATTERN,
            read_chunk_size=settings.READ_CHUNK_SIZE,
            encoding=settings.CSV_ENCODING,
        )


def new_access_code() -> str:
    """Return a fresh, unguessable access code (24 lowercase hex characters)."""
    return secrets.token_hex(12)


def sniff_mime_type(data: bytes, encoding: str = "utf-8") -> str:
    """Guess the MIME type of an upload from its bytes.

    Anything with a NUL byte or that does not decode strictly with ``encoding``
    is binary. Text whose first line holds a known delimiter is ``text/csv``,
    other text is ``text/plain``.
    """
    if b"\x00" in data:
        return BINARY_MIME_TYPE
    try:
        text = data.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        return BINARY_MIME_TYPE
    first_line = text.split("\n", 1)[0]
    if any(d in first_line for d in DELIMITERS):
        return "text/csv"
    return "text/plain"


def validate_upload(data: Optional[bytes], config: StorageConfig) -> None:
    """Reject uploads that are empty, too large or not CSV text.

    The type is taken from the content, not from the client's Content-Type.

    Raises:
        InvalidRequestError: with the message to show the client
    """
    if not data:
        raise InvalidRequestError("No file was uploaded")
    if len(data) > config.max_file_size:
        raise InvalidRequestError(f"File size exceeds {format_bytes(config.max_file_size)} limit")

    mime = sniff_mime_type(data, config.encoding)
    if mime not in {m.lower() for m in config.allowed_mime_types}:
        raise InvalidRequestError("Only CSV files are allowed")


class DocumentStore:
    """Stores uploaded CSV documents on disk as ``<upload_dir>/<code>.csv``.

    Documents are written once and only read afterwards, so concurrent reads
    need no locking.
    """

    def __init__(self, config: StorageConfig):
        self.config = config
        self._code_re = re.compile(config.access_code_pattern)
        self.root = Path(config.upload_dir)
        self.root.mkdir(parents=True, exist_ok=True)

    def is_valid_code(self, code: Optional[str]) -> bool:
        return bool(code) and self._code_re.fullmatch(code) is not None

    def path_for(self, code: str) -> Path:
        """Resolve the on-disk path for ``code``.

        Raises:
            InvalidRequestError: for malformed codes or paths outside the upload dir
        """
        if not self.is_valid_code(code):
            logger.warning(f"Rejected malformed access code: {code!r}")
            raise InvalidRequestError("Invalid file code format")

        root = self.root.resolve()
        path = (root / f"{code}{DOCUMENT_SUFFIX}").resolve()
        if path.parent != root:
            logger.warning(f"Blocked escape attempt: {path}")
            raise InvalidRequestError("Invalid file code format")
        return path

    def exists(self, code: str) -> bool:
        try:
            return self.path_for(code).is_file()
        except InvalidRequestError:
            return False

    def save(self, data: bytes) -> StoredFile:
        """Write a new document under a fresh access code."""
        code = new_access_code()
        path = self.path_for(code)
        while path.exists():
            code = new_access_code()
            path = self.path_for(code)

        tmp = path.with_suffix(".tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except OSError:
            logger.error(f"Failed to save uploaded file to {path}")
            try:
                tmp.unlink()
            except OSError:
                pass
            raise

        logger.info(f"Stored document {code} ({format_bytes(len(data))})")
        return StoredFile.from_path(code, path)

    def describe(self, code: str) -> StoredFile:
        path = self.path_for(code)
        if not path.is_file():
            raise DocumentNotFoundError(code)
        return StoredFile.from_path(code, path)

    def read_document(self, code: str, cancel: Optional[threading.Event] = None) -> bytes:
        """Read the raw bytes of a stored document.

        The read happens in chunks; ``cancel`` is checked before each one.

        Raises:
            InvalidRequestError: if ``code`` is malformed
            DocumentNotFoundError: if nothing is stored under ``code``
            QueryCancelledError: if ``cancel`` gets set during the read
        """
        path = self.path_for(code)
        chunks: List[bytes] = []
        try:
            with open(path, "rb") as f:
                while True:
                    if cancel is not None and cancel.is_set():
                        logger.info(f"Read of document {code} cancelled")
                        raise QueryCancelledError()
                    chunk = f.read(self.config.read_chunk_size)
                    if not chunk:
                        break
                    chunks.append(chunk)
        except (FileNotFoundError, IsADirectoryError) as e:
            raise DocumentNotFoundError(code) from e
        return b"".join(chunks)


def get_document_store(settings: Settings = Depends(get_settings)) -> DocumentStore:
    """FastAPI dependency building the store from the request's settings."""
    return DocumentStore(StorageConfig.from_settings(settings))
