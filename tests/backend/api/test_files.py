from unittest.mock import patch

from starlette.datastructures import UploadFile

from utils.header_cache import header_cache


def _upload(client, data, filename="users.csv", content_type="text/csv"):
    return client.post("/api/files/", files={"csv": (filename, data, content_type)})


class TestUploadAPI:
    """Test the upload endpoint."""

    def test_upload_returns_code_and_headers(self, client, store, sample_data):
        response = _upload(client, sample_data)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "File uploaded successfully"
        assert store.is_valid_code(body["code"])
        assert body["size"] == len(sample_data)
        assert body["headers"] == ["Username", "Identifier", "First name", "Last name"]
        assert body["endpoint"].endswith(
            f"/api/query/?file={body['code']}&header={{column}}&value={{filter}}"
        )
        assert store.read_document(body["code"]) == sample_data

    def test_upload_caches_headers(self, client, sample_data):
        body = _upload(client, sample_data).json()
        assert header_cache.get(body["code"]) == body["headers"]

    def test_upload_normalizes_headers(self, client):
        data = "\ufeff Username ;;Identifier \n jenkins46;;9012\n".encode("utf-8")
        body = _upload(client, data).json()
        assert body["headers"] == ["Username", "Identifier"]

    def test_upload_without_header_row_is_stored(self, client, store):
        response = _upload(client, b"\n\n")
        assert response.status_code == 200
        body = response.json()
        assert body["headers"] == []
        assert store.exists(body["code"])

    def test_missing_file_field(self, client):
        response = client.post("/api/files/")
        assert response.status_code == 400
        assert response.json()["detail"] == "No file was uploaded"

    def test_empty_file(self, client):
        response = _upload(client, b"")
        assert response.status_code == 400
        assert response.json()["detail"] == "No file was uploaded"

    def test_rejects_non_csv(self, client, store):
        response = _upload(client, b"%PDF-1.4\n\x00\x01\xff", filename="x.pdf", content_type="application/pdf")
        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed"
        assert list(store.root.iterdir()) == []

    def test_rejects_oversized_file(self, client, store):
        store.config.max_file_size = 16
        response = _upload(client, b"a,b\n" * 10)
        assert response.status_code == 400
        assert response.json()["detail"] == "File size exceeds 16 B limit"

    def test_reads_at_most_one_byte_past_limit(self, client, store):
        store.config.max_file_size = 16
        reads = []
        original_read = UploadFile.read

        async def spy_read(self, size=-1):
            reads.append(size)
            return await original_read(self, size)

        with patch.object(UploadFile, "read", spy_read):
            response = _upload(client, b"a,b\n" * 4 + b"x")
        assert response.status_code == 400
        assert response.json()["detail"] == "File size exceeds 16 B limit"
        assert reads == [17]
        assert list(store.root.iterdir()) == []

    def test_upload_at_limit_is_accepted(self, client, store):
        store.config.max_file_size = 16
        response = _upload(client, b"a,b\n" * 4)
        assert response.status_code == 200
        assert response.json()["size"] == 16

    def test_type_comes_from_content_not_client(self, client):
        response = _upload(client, b"a,b\n1,2\n", filename="export.csv", content_type="application/vnd.ms-excel")
        assert response.status_code == 200
        assert response.json()["headers"] == ["a", "b"]

    def test_rejects_binary_labelled_as_csv(self, client, store):
        png = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
        response = _upload(client, png, filename="image.csv", content_type="text/csv")
        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed"
        assert list(store.root.iterdir()) == []

    def test_save_failure(self, client, store, sample_data):
        with patch.object(store, "save", side_effect=OSError("disk full")):
            response = _upload(client, sample_data)
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to save file"


class TestFileInfoAPI:
    """Test metadata and column endpoints."""

    def test_file_info(self, client, sample_data):
        code = _upload(client, sample_data).json()["code"]
        response = client.get(f"/api/files/{code}")
        assert response.status_code == 200
        body = response.json()
        assert body["code"] == code
        assert body["size"] == len(sample_data)
        assert "path" not in body

    def test_file_info_missing(self, client):
        response = client.get(f"/api/files/{'a' * 24}")
        assert response.status_code == 404
        assert response.json()["detail"] == "File not found"

    def test_file_info_invalid_code(self, client):
        response = client.get("/api/files/not-a-code")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file code format"

    def test_columns(self, client, sample_data):
        code = _upload(client, sample_data).json()["code"]
        header_cache.invalidate()
        response = client.get(f"/api/files/{code}/columns")
        assert response.status_code == 200
        assert response.json() == {
            "code": code,
            "headers": ["Username", "Identifier", "First name", "Last name"],
        }
        assert header_cache.get(code) == response.json()["headers"]

    def test_columns_served_from_cache(self, client, store, sample_data):
        code = _upload(client, sample_data).json()["code"]
        with patch.object(store, "read_document") as mock_read:
            response = client.get(f"/api/files/{code}/columns")
        assert response.status_code == 200
        mock_read.assert_not_called()

    def test_columns_invalid_csv(self, client):
        code = _upload(client, b"\n\n").json()["code"]
        response = client.get(f"/api/files/{code}/columns")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid CSV format"

    def test_columns_missing_file(self, client):
        response = client.get(f"/api/files/{'b' * 24}/columns")
        assert response.status_code == 404
