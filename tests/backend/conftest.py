import pytest
import os
import sys

# Add project root and backend directories to the Python path
root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.insert(0, root_dir)
backend_dir = os.path.join(root_dir, 'backend')
if os.path.exists(backend_dir):
    sys.path.insert(0, backend_dir)

from fastapi.testclient import TestClient

from main import app
from utils.header_cache import header_cache
from utils.storage import DocumentStore, StorageConfig, get_document_store


@pytest.fixture
def store(tmp_path):
    """A document store writing into a per-test upload directory."""
    return DocumentStore(StorageConfig(upload_dir=tmp_path / "uploads"))


@pytest.fixture
def client(store):
    """Test client whose endpoints all use the per-test store."""
    app.dependency_overrides[get_document_store] = lambda: store
    header_cache.invalidate()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_document_store, None)
        header_cache.invalidate()
