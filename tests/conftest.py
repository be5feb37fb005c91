import os
import tempfile

# Settings are read at import time, so the environment has to be in place first
_TEST_DIR = tempfile.mkdtemp(prefix="feeledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["SYNC_INTERVAL_MINUTES"] = "0"
os.environ["SYNC_ON_STARTUP"] = "false"
os.environ["SYNC_ON_REPORT"] = "false"
os.environ["ADMIN_USERNAME"] = "bursar"
os.environ["ADMIN_PASSWORD"] = "s3cret"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["BANK_SENDER_ADDRESS"] = "mts@kcb.co.ke"

from email.message import EmailMessage

import httpx
import pytest

from feeledger.db import AsyncSessionLocal, engine
from feeledger.exceptions import MailboxConnectionError
from feeledger.mail.config import MailboxConfig
from feeledger.mail.imap_mailbox import FetchedMessage, MailboxError
from feeledger.models import Base

SAMPLE_BODY = (
    "AB12 completed. You have received KES 1,000 from John Doe 0712345678 "
    "for account Jane Smith 9988 on 01/02/2024 at 2:15 PM"
)


def notification_email(body: str = SAMPLE_BODY, subject: str = "Payment received") -> bytes:
    """A plain-text notification as the bank sends it"""
    message = EmailMessage()
    message["From"] = "mts@kcb.co.ke"
    message["To"] = "bursar@school.example"
    message["Subject"] = subject
    message.set_content(f"Dear Customer,\n\n{body}.\n\nThank you for banking with us.")
    return message.as_bytes()


class FakeMailbox:
    """In-memory stand-in for ImapMailbox"""

    def __init__(self, messages=None, fail_connect=False, fail_fetch=()):
        self.messages = dict(messages or {})
        self.fail_connect = fail_connect
        self.fail_fetch = set(fail_fetch)
        self.connected = False
        self.closed = False
        self.opened_folder = None
        self.searched_sender = None

    def connect(self):
        if self.fail_connect:
            raise MailboxConnectionError("Mailbox authentication failed: invalid credentials")
        self.connected = True

    def open(self, folder):
        self.opened_folder = folder

    def search_from(self, sender):
        self.searched_sender = sender
        return list(self.messages)

    def fetch(self, uid):
        if uid in self.fail_fetch:
            raise MailboxError(f"Fetch of message {uid} failed")
        item = self.messages[uid]
        if isinstance(item, FetchedMessage):
            return item
        return FetchedMessage(uid=uid, full=item)

    def close(self):
        self.closed = True


@pytest.fixture
def mailbox_config():
    return MailboxConfig(
        host="imap.example.com",
        username="bursar@school.example",
        password="app-password",
        sender_address="mts@kcb.co.ke",
    )


@pytest.fixture
async def db_engine():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return AsyncSessionLocal


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_engine):
    from feeledger.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
