"""
Reporting Service
Daily totals and date-filtered listings for bank and M-Pesa payments.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from feeledger.models.bank_transaction import BankTransaction
from feeledger.models.mpesa_transaction import MpesaTransaction
from feeledger.logging_config import get_logger
from feeledger.utils.date_utils import parse_stored_date

logger = get_logger(__name__)


async def list_bank_transactions(
    session: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[BankTransaction]:
    """
    List bank transactions, optionally filtered by date.

    Args:
        session: SQLAlchemy async session
        start_date: With end_date, the inclusive range start; alone, the single day to match
        end_date: Inclusive range end

    Returns:
        Matching transactions ordered by id
    """
    result = await session.execute(select(BankTransaction).order_by(BankTransaction.id))
    transactions = result.scalars().all()
    if start_date is None:
        return list(transactions)

    # transaction_date is DD/MM/YYYY text, which does not sort chronologically in SQL
    upper = end_date or start_date
    filtered = []
    for t in transactions:
        day = parse_stored_date(t.transaction_date)
        if day is None:
            logger.warning(f"Transaction {t.transaction_id} has unparseable date '{t.transaction_date}'")
            continue
        if start_date <= day <= upper:
            filtered.append(t)
    return filtered


async def bank_daily_totals(session: AsyncSession) -> List[Dict[str, Any]]:
    """Sum of bank transaction amounts per transaction_date, oldest first"""
    stmt = (
        select(BankTransaction.transaction_date, func.sum(BankTransaction.amount))
        .group_by(BankTransaction.transaction_date)
    )
    rows = (await session.execute(stmt)).all()

    def sort_key(row):
        day = parse_stored_date(row[0])
        return (day is None, day or date.min, row[0])

    return [
        {"date": transaction_date, "total": Decimal(str(total or 0))}
        for transaction_date, total in sorted(rows, key=sort_key)
    ]


async def mpesa_daily_totals(session: AsyncSession) -> List[Dict[str, Any]]:
    """Sum of M-Pesa amounts per day the payment was recorded, oldest first"""
    day = func.date(MpesaTransaction.created_at)
    stmt = (
        select(day.label("date"), func.sum(MpesaTransaction.amount).label("total"))
        .group_by(day)
        .order_by(day)
    )
    rows = (await session.execute(stmt)).all()
    return [{"date": str(row.date), "total": Decimal(str(row.total or 0))} for row in rows]


async def mpesa_transactions_for_phone(session: AsyncSession, phone_number: str) -> List[MpesaTransaction]:
    result = await session.execute(
        select(MpesaTransaction)
        .filter(MpesaTransaction.phone_number == phone_number)
        .order_by(MpesaTransaction.id)
    )
    return list(result.scalars().all())


async def mark_mpesa_transaction_validated(session: AsyncSession, transaction_id: int) -> bool:
    """Set validated on an M-Pesa row. Returns False when no such row exists."""
    tx = (
        await session.execute(select(MpesaTransaction).filter(MpesaTransaction.id == transaction_id))
    ).scalar_one_or_none()
    if tx is None:
        return False
    tx.validated = True
    await session.commit()
    return True
