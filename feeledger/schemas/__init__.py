from feeledger.schemas.transaction import BankTransactionResponse, MpesaTransactionResponse, DailyTotal
from feeledger.schemas.receipt import ReceiptRequest, ReceiptTransaction
from feeledger.schemas.payment import PaymentRequest, BankDetails
from feeledger.schemas.auth import LoginRequest, LoginResponse

__all__ = [
    "BankTransactionResponse",
    "MpesaTransactionResponse",
    "DailyTotal",
    "ReceiptRequest",
    "ReceiptTransaction",
    "PaymentRequest",
    "BankDetails",
    "LoginRequest",
    "LoginResponse",
]
