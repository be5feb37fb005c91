"""
Fee spreadsheet upload and download.
"""
import shutil
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from feeledger.config import settings
from feeledger.db import get_db_session
from feeledger.exceptions import BadRequestError, InternalServerError, NotFoundError
from feeledger.logging_config import get_logger
from feeledger.models.upload import Upload

logger = get_logger(__name__)

router = APIRouter(tags=["Uploads"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLSX_EXTENSION = ".xlsx"


def _is_spreadsheet(file: UploadFile) -> bool:
    if file.content_type == XLSX_MEDIA_TYPE:
        return True
    return Path(file.filename or "").suffix.lower() == XLSX_EXTENSION


def _save_upload(source, destination: Path) -> None:
    with destination.open("wb") as out:
        shutil.copyfileobj(source, out)


@router.post("/upload")
async def upload_spreadsheet(
    file: Optional[UploadFile] = File(default=None),
    session: AsyncSession = Depends(get_db_session),
):
    """Store a single .xlsx file and record it as the latest upload."""
    if file is None or not file.filename:
        raise BadRequestError("No file uploaded")
    if not _is_spreadsheet(file):
        raise BadRequestError("Only .xlsx files are allowed")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{XLSX_EXTENSION}"
    stored_path = upload_dir / stored_name
    await run_in_threadpool(_save_upload, file.file, stored_path)
    logger.info(f"Received file {file.filename}, stored as {stored_name}")

    upload = Upload(token=uuid.uuid4().hex, file_name=stored_name, original_name=file.filename)
    try:
        session.add(upload)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Database error recording upload {stored_name}: {e}")
        stored_path.unlink(missing_ok=True)
        raise InternalServerError("Database insertion failed")

    return {"message": "File uploaded successfully", "fileId": upload.id, "token": upload.token}


@router.get("/latest-upload")
async def get_latest_upload(session: AsyncSession = Depends(get_db_session)):
    """Stream back the most recently uploaded spreadsheet."""
    try:
        latest = (
            await session.execute(select(Upload).order_by(Upload.id.desc()).limit(1))
        ).scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching latest upload: {e}")
        raise InternalServerError("Failed to fetch latest upload")

    if latest is None:
        logger.warning("No files found in the database")
        raise NotFoundError("No files found in the database")

    file_path = Path(settings.UPLOAD_DIR) / latest.file_name
    if not file_path.is_file():
        logger.warning(f"File does not exist: {file_path}")
        raise NotFoundError("File not found in uploads folder")

    return FileResponse(
        file_path,
        media_type=XLSX_MEDIA_TYPE,
        filename=latest.original_name or latest.file_name,
    )
