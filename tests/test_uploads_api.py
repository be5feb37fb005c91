"""
Tests for spreadsheet upload and retrieval.
"""
from pathlib import Path

from sqlalchemy.exc import OperationalError

from feeledger.config import settings
from feeledger.db import get_db_session
from feeledger.main import app
from feeledger.routes.uploads import XLSX_MEDIA_TYPE

SPREADSHEET = b"PK\x03\x04fake-xlsx-content"


async def test_latest_upload_without_uploads_is_not_found(client):
    response = await client.get("/latest-upload")

    assert response.status_code == 404


async def test_uploaded_spreadsheet_is_returned_as_latest(client):
    await client.post("/upload", files={"file": ("old.xlsx", b"PK old", XLSX_MEDIA_TYPE)})
    response = await client.post("/upload", files={"file": ("fees.xlsx", SPREADSHEET, XLSX_MEDIA_TYPE)})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "File uploaded successfully"
    assert body["fileId"] == 2
    assert body["token"]

    latest = await client.get("/latest-upload")
    assert latest.status_code == 200
    assert latest.content == SPREADSHEET
    assert "fees.xlsx" in latest.headers["content-disposition"]


async def test_xlsx_extension_is_accepted_with_generic_type(client):
    response = await client.post(
        "/upload", files={"file": ("fees.xlsx", SPREADSHEET, "application/octet-stream")}
    )

    assert response.status_code == 200


async def test_other_file_types_are_rejected(client):
    response = await client.post("/upload", files={"file": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400
    assert response.json()["detail"] == "Only .xlsx files are allowed"


async def test_missing_file_is_rejected(client):
    response = await client.post("/upload", data={"note": "no file attached"})

    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


class FailingSession:
    """Session whose commit fails, as when the database goes away mid-request"""

    def __init__(self):
        self.rolled_back = False

    def add(self, instance):
        pass

    async def commit(self):
        raise OperationalError("INSERT INTO uploads", {}, Exception("server closed the connection"))

    async def rollback(self):
        self.rolled_back = True


async def test_failed_insert_removes_stored_file(client):
    session = FailingSession()

    async def failing_db_session():
        yield session

    app.dependency_overrides[get_db_session] = failing_db_session
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    before = set(upload_dir.iterdir())

    response = await client.post("/upload", files={"file": ("fees.xlsx", SPREADSHEET, XLSX_MEDIA_TYPE)})

    assert response.status_code == 500
    assert session.rolled_back
    assert set(upload_dir.iterdir()) == before
