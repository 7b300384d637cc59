from pydantic import BaseModel
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
import logging
import math

logger = logging.getLogger(__name__)

SIZE_UNITS = ["B", "KB", "MB", "GB"]


def format_bytes(size: int) -> str:
    """Format a byte count for display, e.g. 5242880 -> '5 MB'."""
    size = max(int(size or 0), 0)
    power = int(math.floor(math.log(size) / math.log(1024))) if size else 0
    power = min(power, len(SIZE_UNITS) - 1)
    value = round(size / (1 << (10 * power)), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {SIZE_UNITS[power]}"


class StoredFile(BaseModel):
    """Model representing an uploaded CSV document on disk."""
    code: str
    path: str
    size: int = 0
    size_human: str = "0 B"
    created: Optional[datetime] = None

    @classmethod
    def from_path(cls, code: str, file_path: Path) -> "StoredFile":
        """
        Create a StoredFile instance from the document's path.

        Args:
            code: Access code the document is stored under
            file_path: Path to the stored CSV file

        Returns:
            StoredFile: Instance describing the file
        """
        size = 0
        created = None
        try:
            stat = Path(file_path).stat()
            size = stat.st_size
            created = datetime.fromtimestamp(stat.st_mtime)
        except OSError as e:
            logger.error(f"Error reading file metadata for {file_path}: {e}")

        return cls(
            code=code,
            path=str(file_path),
            size=size,
            size_human=format_bytes(size),
            created=created,
        )


class UploadResponse(BaseModel):
    """Response body returned after a successful upload."""
    success: bool = True
    message: str
    code: str
    size: int
    size_human: str
    headers: List[str] = []
    endpoint: str


class ColumnsResponse(BaseModel):
    code: str
    headers: List[str]


class QueryResponse(BaseModel):
    data: List[Dict[str, str]]
