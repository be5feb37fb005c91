"""
Pesapal payments, the M-Pesa callback and bank payment details.
"""
from fastapi import APIRouter, Depends, Request, Response

from feeledger.config import settings
from feeledger.dependencies import get_payment_client
from feeledger.logging_config import get_logger
from feeledger.schemas.payment import BankDetails, PaymentRequest
from feeledger.services.payment_service import PesapalClient

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Payments"])


@router.post("/pay")
async def create_payment(
    payment: PaymentRequest,
    client: PesapalClient = Depends(get_payment_client),
):
    """Submit an order to Pesapal and return its response (with the redirect URL) to the frontend."""
    return await client.submit_order(payment)


@router.post("/online/callback")
async def mpesa_callback(request: Request):
    """Payment provider webhook. Always acknowledged so the provider stops retrying."""
    body = await request.body()
    logger.info(f"M-Pesa callback: {body.decode('utf-8', errors='replace')}")
    return Response(status_code=200)


@router.get("/payment/bank-details", response_model=BankDetails)
async def get_bank_details():
    return BankDetails(
        bank=settings.BANK_NAME,
        account_number=settings.BANK_ACCOUNT_NUMBER,
        paybill_number=settings.BANK_PAYBILL_NUMBER,
        till_account_number=settings.BANK_TILL_ACCOUNT_NUMBER,
        business_name=settings.BANK_BUSINESS_NAME,
        message=settings.BANK_PAYMENT_MESSAGE,
    )
