"""
Connection settings for the bank notification mailbox.
"""
from pydantic import BaseModel, Field


class MailboxConfig(BaseModel):
    """
    Everything the transaction sync needs to reach the mailbox.

    Built from application settings and passed in explicitly, so the sync
    never reads credentials from the environment on its own.
    """
    host: str
    port: int = 993
    username: str
    password: str
    folder: str = "INBOX"
    sender_address: str = Field(default="mts@kcb.co.ke", description="Bank notification sender")
    auth_timeout_seconds: float = 10.0
    verify_tls: bool = True
