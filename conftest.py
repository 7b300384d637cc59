import pytest
import os
import sys
import tempfile

# Add both project root and backend directory to the Python path
root_dir = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, root_dir)
backend_dir = os.path.join(root_dir, 'backend')
if os.path.exists(backend_dir):
    sys.path.insert(0, backend_dir)

# Keep uploads made by the default store out of the working tree
# Set environment variable BEFORE config is imported
os.environ.setdefault('UPLOAD_DIR', os.path.join(tempfile.gettempdir(), 'csv2api-test-uploads'))
os.environ.setdefault('LOG_LEVEL', 'DEBUG')


# This file can contain shared fixtures for your tests
@pytest.fixture
def sample_data():
    """Fixture to provide sample CSV data for tests."""
    return (
        b"Username,Identifier,First name,Last name\n"
        b"booker12,9012,Rachel,Booker\n"
        b"grey07,2070,Laura,Grey\n"
        b"jenkins46,9346,Mary,Jenkins\n"
        b"jenkins-test-46,4081,Craig,Jenkins\n"
        b"smith79,5079,Jamie,Smith\n"
    )
