"""
Bank transaction sync.
Reads payment notifications from the bank's sender address and stores each
new transaction exactly once.
"""

import asyncio
import imaplib
import time
from dataclasses import dataclass, field
from email.parser import BytesHeaderParser
from email import policy
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from extractor import EmailTransactionParser, ParsedTransaction, SkipReason
from feeledger.config import settings
from feeledger.db import AsyncSessionLocal
from feeledger.exceptions import MailboxConnectionError
from feeledger.logging_config import get_logger
from feeledger.mail.config import MailboxConfig
from feeledger.mail.imap_mailbox import FetchedMessage, ImapMailbox, MailboxError
from feeledger.models.bank_transaction import BankTransaction

logger = get_logger(__name__)

MailboxFactory = Callable[[MailboxConfig], ImapMailbox]


@dataclass
class SyncSummary:
    """Counts for one sync run"""
    messages_found: int = 0
    inserted: int = 0
    duplicates: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    deadline_exceeded: bool = False

    def record_skip(self, reason: SkipReason) -> None:
        self.skipped[reason.value] = self.skipped.get(reason.value, 0) + 1

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def to_dict(self):
        return {
            "messages_found": self.messages_found,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "skipped": dict(self.skipped),
            "failed": self.failed,
            "errors": list(self.errors),
            "deadline_exceeded": self.deadline_exceeded,
        }


def _subject_of(message: FetchedMessage) -> str:
    if not message.header:
        return ""
    headers = BytesHeaderParser(policy=policy.default).parsebytes(message.header)
    return str(headers.get("Subject", ""))


class TransactionSyncService:
    """
    Fetches bank notification emails and inserts unseen transactions.

    Messages are handled one at a time. A message that cannot be parsed or
    stored is counted in the summary and the batch moves on; only a mailbox
    connection failure aborts the run.
    """

    def __init__(
        self,
        config: MailboxConfig,
        session_factory: async_sessionmaker,
        mailbox_factory: MailboxFactory = ImapMailbox,
        parser: Optional[EmailTransactionParser] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self.config = config
        self.session_factory = session_factory
        self.mailbox_factory = mailbox_factory
        self.parser = parser or EmailTransactionParser()
        self.deadline_seconds = deadline_seconds

    async def run(self) -> SyncSummary:
        """
        Run one sync over the mailbox.

        Returns:
            SyncSummary with per-outcome counts.

        Raises:
            MailboxConnectionError: If the mailbox cannot be reached, logged
                into or searched.
        """
        summary = SyncSummary()
        started = time.monotonic()

        logger.info("⏳ Connecting to mailbox...")
        mailbox = self.mailbox_factory(self.config)
        await asyncio.to_thread(mailbox.connect)
        try:
            try:
                await asyncio.to_thread(mailbox.open, self.config.folder)
                logger.info(f"📥 Searching for emails from {self.config.sender_address}...")
                uids = await asyncio.to_thread(mailbox.search_from, self.config.sender_address)
            except (MailboxError, imaplib.IMAP4.error, OSError) as e:
                raise MailboxConnectionError(f"Mailbox search failed: {e}") from e

            summary.messages_found = len(uids)
            if not uids:
                logger.info("📭 No bank notification emails found.")
                return summary
            logger.info(f"📩 Found {len(uids)} bank notification emails.")

            async with self.session_factory() as session:
                for uid in uids:
                    if self._deadline_passed(started):
                        summary.deadline_exceeded = True
                        logger.warning(
                            f"Sync deadline of {self.deadline_seconds}s reached; "
                            f"stopping before message {uid}"
                        )
                        break
                    await self._process_message(mailbox, uid, session, summary)
        finally:
            await asyncio.to_thread(mailbox.close)

        logger.info(
            f"✅ Sync completed: {summary.inserted} inserted, {summary.duplicates} duplicates, "
            f"{sum(summary.skipped.values())} skipped, {summary.failed} failed."
        )
        return summary

    def _deadline_passed(self, started: float) -> bool:
        if not self.deadline_seconds:
            return False
        return time.monotonic() - started >= self.deadline_seconds

    async def _process_message(
        self,
        mailbox: ImapMailbox,
        uid: str,
        session: AsyncSession,
        summary: SyncSummary,
    ) -> None:
        try:
            message = await asyncio.to_thread(mailbox.fetch, uid)
        except (MailboxError, imaplib.IMAP4.error, OSError) as e:
            logger.error(f"Failed to fetch message {uid}: {e}")
            summary.record_failure(f"message {uid}: fetch failed: {e}")
            return

        try:
            logger.debug(f"📌 Message {uid} subject: {_subject_of(message)}")
            outcome = self.parser.parse_message(message.raw)
        except Exception as e:
            # A malformed message must not stop the rest of the batch
            logger.error(f"Failed to parse message {uid}: {e}", exc_info=True)
            summary.record_failure(f"message {uid}: parse failed: {e}")
            return

        if not outcome.matched:
            summary.record_skip(outcome.skip_reason)
            if outcome.skip_reason is SkipReason.NO_PATTERN_MATCH:
                logger.debug(f"Message {uid} skipped: {outcome.detail}")
            else:
                logger.warning(f"⚠️ Message {uid} skipped: {outcome.detail}")
            return

        try:
            stored = await self._store(session, outcome.transaction)
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to store transaction {outcome.transaction.transaction_id}: {e}", exc_info=True)
            summary.record_failure(f"message {uid}: store failed for {outcome.transaction.transaction_id}: {e}")
            return

        if stored:
            summary.inserted += 1
            logger.info(f"✅ Transaction {outcome.transaction.transaction_id} inserted.")
        else:
            summary.duplicates += 1
            logger.debug(f"Transaction {outcome.transaction.transaction_id} already stored.")

    async def _store(self, session: AsyncSession, parsed: ParsedTransaction) -> bool:
        """Insert the transaction unless its ID is already stored. Returns True when inserted."""
        if await self._already_stored(session, parsed.transaction_id):
            return False

        session.add(BankTransaction(
            transaction_id=parsed.transaction_id,
            amount=parsed.amount,
            sender_name=parsed.sender_name,
            phone_number=parsed.sender_phone,
            account_name=parsed.account_name,
            account_number=parsed.account_number,
            transaction_date=parsed.transaction_date,
            transaction_time=parsed.transaction_time,
        ))
        try:
            await session.commit()
        except IntegrityError:
            # Another run stored the same transaction ID first
            await session.rollback()
            return False
        return True

    async def _already_stored(self, session: AsyncSession, transaction_id: str) -> bool:
        existing = (
            await session.execute(
                select(BankTransaction.id).filter_by(transaction_id=transaction_id)
            )
        ).scalar_one_or_none()
        return existing is not None


def build_sync_service() -> TransactionSyncService:
    """Sync service wired to the application settings and database"""
    return TransactionSyncService(
        config=settings.mailbox_config(),
        session_factory=AsyncSessionLocal,
        deadline_seconds=settings.SYNC_DEADLINE_SECONDS,
    )


async def run_scheduled_sync() -> Optional[SyncSummary]:
    """Entry point for the scheduler and background triggers; never raises"""
    try:
        return await build_sync_service().run()
    except MailboxConnectionError as e:
        logger.error(f"❌ Transaction sync aborted: {e.detail}")
    except Exception as e:
        logger.error(f"❌ Transaction sync failed: {e}", exc_info=True)
    return None
