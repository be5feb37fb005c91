"""
Generic table access for the admin data browser.

Only tables declared on the application's models can be reached, and every
statement is built with SQLAlchemy Core so values are always bound
parameters. Table names never reach the SQL text directly.
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, Table, delete, insert, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from feeledger.exceptions import BadRequestError, NotFoundError
from feeledger.models import Base

DEFAULT_ROW_LIMIT = 10


def allowed_table_names() -> List[str]:
    return sorted(Base.metadata.tables.keys())


def get_table(name: str) -> Table:
    table = Base.metadata.tables.get(name)
    if table is None:
        raise NotFoundError(f"Unknown table '{name}'")
    return table


def _coerce(column, value: Any) -> Any:
    if value is None:
        return None
    column_type = column.type
    if isinstance(column_type, DateTime) and isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(column_type, Date) and isinstance(value, str):
        return date.fromisoformat(value)
    if isinstance(column_type, Numeric) and not isinstance(column_type, Integer):
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"not a number: {value!r}") from e
    if isinstance(column_type, Boolean) and isinstance(value, (int, str)):
        return str(value).lower() in ("1", "true", "yes")
    return value


def _column_values(table: Table, data: Dict[str, Any], allow_id: bool) -> Dict[str, Any]:
    if not isinstance(data, dict) or not data:
        raise BadRequestError("Request body must be a non-empty JSON object")

    unknown = sorted(set(data) - set(table.c.keys()))
    if unknown:
        raise BadRequestError(f"Unknown columns for {table.name}: {', '.join(unknown)}")
    if not allow_id and "id" in data:
        raise BadRequestError("The id column cannot be changed")

    values = {}
    for key, value in data.items():
        try:
            values[key] = _coerce(table.c[key], value)
        except ValueError as e:
            raise BadRequestError(f"Invalid value for {key}: {e}") from e
    return values


async def fetch_rows(session: AsyncSession, table: Table, limit: int = DEFAULT_ROW_LIMIT) -> List[Dict[str, Any]]:
    result = await session.execute(select(table).order_by(table.c.id.asc()).limit(limit))
    return [dict(row._mapping) for row in result]


async def insert_row(session: AsyncSession, table: Table, data: Dict[str, Any]) -> None:
    await session.execute(insert(table).values(**_column_values(table, data, allow_id=True)))
    await session.commit()


async def update_row(session: AsyncSession, table: Table, row_id: int, data: Dict[str, Any]) -> int:
    """Update one row by id. Returns the number of rows affected."""
    values = _column_values(table, data, allow_id=False)
    result = await session.execute(update(table).where(table.c.id == row_id).values(**values))
    await session.commit()
    return result.rowcount


async def delete_row(session: AsyncSession, table: Table, row_id: int) -> int:
    result = await session.execute(delete(table).where(table.c.id == row_id))
    await session.commit()
    return result.rowcount
