from feeledger.db import Base
from feeledger.models.bank_transaction import BankTransaction
from feeledger.models.mpesa_transaction import MpesaTransaction
from feeledger.models.upload import Upload

__all__ = [
    "Base",
    "BankTransaction",
    "MpesaTransaction",
    "Upload",
]
