from fastapi import APIRouter, Depends

from feeledger.dependencies import get_receipt_mailer
from feeledger.exceptions import BadRequestError
from feeledger.logging_config import get_logger
from feeledger.schemas.receipt import ReceiptRequest
from feeledger.services.receipt_service import ReceiptMailer

logger = get_logger(__name__)

router = APIRouter(tags=["Receipts"])


@router.post("/send-email")
async def send_receipt_email(
    request: ReceiptRequest,
    mailer: ReceiptMailer = Depends(get_receipt_mailer),
):
    """Email an HTML payment confirmation for a transaction."""
    if request.transaction is None:
        raise BadRequestError("Missing 'transaction' field in request body")

    await mailer.send_receipt(request.transaction)
    return {"message": "Email sent successfully!"}
