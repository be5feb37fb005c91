"""
FastAPI dependencies for collaborators that tests replace.
"""
from feeledger.mail.sync import TransactionSyncService, build_sync_service
from feeledger.services.payment_service import PesapalClient
from feeledger.services.receipt_service import ReceiptMailer


def get_sync_service() -> TransactionSyncService:
    return build_sync_service()


def get_payment_client() -> PesapalClient:
    return PesapalClient()


def get_receipt_mailer() -> ReceiptMailer:
    return ReceiptMailer()
