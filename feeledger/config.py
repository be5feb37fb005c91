from typing import List, Union
from pydantic_settings import BaseSettings
from pydantic import field_validator

from feeledger.mail.config import MailboxConfig


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://postgres:root@db/postgres"
    CORS_ORIGINS: Union[str, List[str]] = ["http://localhost", "http://localhost:8081", "*"]
    LOG_LEVEL: str = "INFO"

    # Bank notification mailbox (IMAP over TLS)
    IMAP_HOST: str = "imap.gmail.com"
    IMAP_PORT: int = 993
    IMAP_USER: str = ""
    IMAP_PASSWORD: str = ""
    IMAP_FOLDER: str = "INBOX"
    IMAP_AUTH_TIMEOUT: float = 10.0
    IMAP_VERIFY_TLS: bool = True
    BANK_SENDER_ADDRESS: str = "mts@kcb.co.ke"

    # Transaction sync
    SYNC_DEADLINE_SECONDS: float = 300.0
    SYNC_INTERVAL_MINUTES: int = 10
    SYNC_ON_STARTUP: bool = True
    SYNC_ON_REPORT: bool = True

    # Receipts (SMTP)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_STARTTLS: bool = True
    SMTP_TIMEOUT: float = 30.0
    RECEIPT_FROM_ADDRESS: str = "receipts@localhost"
    RECEIPT_TO_ADDRESS: str = "accounts@localhost"
    RECEIPT_SUBJECT: str = "Payment Confirmation"
    RECEIPT_PORTAL_URL: str = "https://eduengine.co.ke"
    SCHOOL_NAME: str = "EduEngine"

    # Pesapal payment gateway
    PESAPAL_BASE_URL: str = "https://pay.pesapal.com/v3"
    PESAPAL_CONSUMER_KEY: str = ""
    PESAPAL_CONSUMER_SECRET: str = ""
    PESAPAL_CALLBACK_URL: str = "https://yourfrontend.com/payment-success"
    PESAPAL_NOTIFICATION_ID: str = ""
    PESAPAL_TIMEOUT: float = 30.0

    # Spreadsheet uploads
    UPLOAD_DIR: str = "uploads"

    # Admin login
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = ""
    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Bank payment details shown to parents
    BANK_NAME: str = "KCB Bank"
    BANK_ACCOUNT_NUMBER: str = ""
    BANK_PAYBILL_NUMBER: str = "522522"
    BANK_TILL_ACCOUNT_NUMBER: str = ""
    BANK_BUSINESS_NAME: str = ""
    BANK_PAYMENT_MESSAGE: str = (
        "Cash payments are not accepted. Please forward the child's name "
        "to the school clerk for receipting."
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    def mailbox_config(self) -> MailboxConfig:
        """Build the mailbox settings handed to the transaction sync"""
        return MailboxConfig(
            host=self.IMAP_HOST,
            port=self.IMAP_PORT,
            username=self.IMAP_USER,
            password=self.IMAP_PASSWORD,
            folder=self.IMAP_FOLDER,
            sender_address=self.BANK_SENDER_ADDRESS,
            auth_timeout_seconds=self.IMAP_AUTH_TIMEOUT,
            verify_tls=self.IMAP_VERIFY_TLS,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
