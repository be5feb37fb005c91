"""
Generic table endpoints for the admin data browser.
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.db import get_db_session
from feeledger.exceptions import InternalServerError, NotFoundError
from feeledger.logging_config import get_logger
from feeledger.services import table_service

logger = get_logger(__name__)

router = APIRouter(tags=["Tables"])


@router.get("/tables")
async def list_tables():
    """Names of the tables the data browser can open."""
    return table_service.allowed_table_names()


@router.get("/table/{name}")
async def get_table_rows(name: str, session: AsyncSession = Depends(get_db_session)):
    """First rows of a table, ordered by id."""
    table = table_service.get_table(name)
    try:
        return await table_service.fetch_rows(session, table)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching data from {name}: {e}")
        raise InternalServerError("Error fetching table data")


@router.post("/table/{name}", status_code=status.HTTP_201_CREATED)
async def add_table_row(
    name: str,
    data: Dict[str, Any] = Body(...),
    session: AsyncSession = Depends(get_db_session),
):
    table = table_service.get_table(name)
    try:
        await table_service.insert_row(session, table, data)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error inserting record into {name}: {e}")
        raise InternalServerError("Error inserting record")
    return {"message": "Record added successfully"}


@router.put("/table/{name}/{row_id}")
async def update_table_row(
    name: str,
    row_id: int,
    data: Dict[str, Any] = Body(...),
    session: AsyncSession = Depends(get_db_session),
):
    table = table_service.get_table(name)
    try:
        affected = await table_service.update_row(session, table, row_id, data)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error updating record {row_id} in {name}: {e}")
        raise InternalServerError("Error updating record")
    if not affected:
        raise NotFoundError("Record not found")
    return {"message": "Record updated successfully"}


@router.delete("/table/{name}/{row_id}")
async def delete_table_row(name: str, row_id: int, session: AsyncSession = Depends(get_db_session)):
    table = table_service.get_table(name)
    try:
        affected = await table_service.delete_row(session, table, row_id)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error deleting record {row_id} from {name}: {e}")
        raise InternalServerError("Error deleting record")
    if not affected:
        raise NotFoundError("Record not found")
    return {"message": "Record deleted successfully"}
