"""
Transaction listing, reporting and sync endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.config import settings
from feeledger.db import get_db_session
from feeledger.dependencies import get_sync_service
from feeledger.exceptions import BadRequestError, InternalServerError, NotFoundError
from feeledger.logging_config import get_logger
from feeledger.mail.sync import TransactionSyncService, run_scheduled_sync
from feeledger.schemas.transaction import BankTransactionResponse, DailyTotal, MpesaTransactionResponse
from feeledger.services import report_service
from feeledger.utils.date_utils import parse_transaction_date

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Transactions"])


@router.get("/data")
async def get_bank_transactions(
    start_date: Optional[str] = Query(default=None, alias="startDate", description="DD/MM/YYYY or YYYY-MM-DD"),
    end_date: Optional[str] = Query(default=None, alias="endDate", description="DD/MM/YYYY or YYYY-MM-DD"),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Bank transactions, optionally filtered by date.

    With both dates the range is inclusive; with only startDate the single
    day is matched. endDate alone is ignored.
    """
    try:
        start = parse_transaction_date(start_date) if start_date else None
        end = parse_transaction_date(end_date) if start_date and end_date else None
    except ValueError as e:
        raise BadRequestError(str(e))

    try:
        rows = await report_service.list_bank_transactions(session, start, end)
    except SQLAlchemyError as e:
        logger.error(f"Database error listing transactions: {e}")
        raise InternalServerError("Failed to fetch data")

    return {
        "status": "success",
        "data": [BankTransactionResponse.model_validate(t) for t in rows],
    }


@router.get("/transactions")
async def get_mpesa_transactions_by_phone(
    mobile_number: Optional[str] = Query(default=None, alias="mobileNumber"),
    session: AsyncSession = Depends(get_db_session),
):
    """M-Pesa payments made from one phone number."""
    if not mobile_number:
        raise BadRequestError("Mobile number is required")
    try:
        rows = await report_service.mpesa_transactions_for_phone(session, mobile_number)
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch transactions: {e}")
        raise InternalServerError("Failed to fetch transactions")
    return [MpesaTransactionResponse.model_validate(t) for t in rows]


@router.put("/transactions/validate/{transaction_id}")
async def validate_transaction(transaction_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        found = await report_service.mark_mpesa_transaction_validated(session, transaction_id)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Validation error for transaction {transaction_id}: {e}")
        raise InternalServerError("Failed to validate transaction")
    if not found:
        raise NotFoundError("Transaction not found")
    return {"message": "Transaction validated successfully"}


@router.get("/mpesa-transactions", response_model=List[DailyTotal])
async def get_mpesa_daily_totals(
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    """Daily M-Pesa totals. Also kicks off a mailbox sync in the background."""
    if settings.SYNC_ON_REPORT:
        background_tasks.add_task(run_scheduled_sync)
    try:
        return await report_service.mpesa_daily_totals(session)
    except SQLAlchemyError as e:
        logger.error(f"Failed to total M-Pesa transactions: {e}")
        raise InternalServerError("Failed to fetch M-Pesa totals")


@router.get("/bank-transactions", response_model=List[DailyTotal])
async def get_bank_daily_totals(session: AsyncSession = Depends(get_db_session)):
    """Daily bank transaction totals, oldest first."""
    try:
        return await report_service.bank_daily_totals(session)
    except SQLAlchemyError as e:
        logger.error(f"Failed to total bank transactions: {e}")
        raise InternalServerError("Failed to fetch bank totals")


@router.post("/bank-transactions/sync")
async def sync_bank_transactions(service: TransactionSyncService = Depends(get_sync_service)):
    """
    Read the bank's notification emails now and store new transactions.

    Returns:
        Summary of inserted, duplicate, skipped and failed messages.
        A mailbox that cannot be reached answers 502.
    """
    summary = await service.run()
    return summary.to_dict()
