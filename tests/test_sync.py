"""
Tests for syncing bank notification emails into the transactions table.
"""
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.future import select

from feeledger.exceptions import MailboxConnectionError
from feeledger.mail.sync import TransactionSyncService
from feeledger.models import BankTransaction
from conftest import SAMPLE_BODY, FakeMailbox, notification_email


def _service(mailbox, mailbox_config, session_factory, service_class=TransactionSyncService, **kwargs):
    return service_class(
        config=mailbox_config,
        session_factory=session_factory,
        mailbox_factory=lambda config: mailbox,
        **kwargs,
    )


async def _stored(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(BankTransaction).order_by(BankTransaction.id))
        return list(result.scalars().all())


async def test_notification_is_stored_as_bank_transaction(mailbox_config, session_factory):
    mailbox = FakeMailbox({"1": notification_email()})

    summary = await _service(mailbox, mailbox_config, session_factory).run()

    assert summary.messages_found == 1
    assert summary.inserted == 1
    rows = await _stored(session_factory)
    assert len(rows) == 1
    row = rows[0]
    assert row.transaction_id == "AB12"
    assert row.amount == Decimal("1000")
    assert row.sender_name == "John Doe"
    assert row.phone_number == "0712345678"
    assert row.account_name == "Jane Smith"
    assert row.account_number == "9988"
    assert row.transaction_date == "01/02/2024"
    assert row.transaction_time == "14:15:00"


async def test_search_uses_configured_sender_and_folder(mailbox_config, session_factory):
    mailbox = FakeMailbox()

    await _service(mailbox, mailbox_config, session_factory).run()

    assert mailbox.searched_sender == "mts@kcb.co.ke"
    assert mailbox.opened_folder == "INBOX"
    assert mailbox.closed


async def test_running_twice_stores_each_transaction_once(mailbox_config, session_factory):
    mailbox = FakeMailbox({"1": notification_email(), "2": notification_email()})

    first = await _service(mailbox, mailbox_config, session_factory).run()
    second = await _service(mailbox, mailbox_config, session_factory).run()

    assert first.inserted == 1
    assert first.duplicates == 1
    assert second.inserted == 0
    assert second.duplicates == 2
    assert len(await _stored(session_factory)) == 1


async def test_empty_mailbox_is_a_no_op(mailbox_config, session_factory):
    summary = await _service(FakeMailbox(), mailbox_config, session_factory).run()

    assert summary.messages_found == 0
    assert summary.inserted == 0
    assert await _stored(session_factory) == []


async def test_unparseable_messages_are_skipped(mailbox_config, session_factory):
    four_word_name = SAMPLE_BODY.replace("John Doe", "John Michael Doe Smith")
    mailbox = FakeMailbox({
        "1": notification_email(body=four_word_name),
        "2": b"",
        "3": notification_email(body=SAMPLE_BODY.replace("AB12", "CD34")),
    })

    summary = await _service(mailbox, mailbox_config, session_factory).run()

    assert summary.inserted == 1
    assert summary.skipped == {"no_pattern_match": 1, "empty_body": 1}
    assert [row.transaction_id for row in await _stored(session_factory)] == ["CD34"]


async def test_fetch_failure_does_not_stop_the_batch(mailbox_config, session_factory):
    mailbox = FakeMailbox(
        {"1": notification_email(), "2": notification_email(body=SAMPLE_BODY.replace("AB12", "CD34"))},
        fail_fetch={"1"},
    )

    summary = await _service(mailbox, mailbox_config, session_factory).run()

    assert summary.failed == 1
    assert summary.inserted == 1
    assert "message 1" in summary.errors[0]


class FlakyStoreSyncService(TransactionSyncService):
    """Fails to store the first transaction it sees"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def _store(self, session, parsed):
        self.calls += 1
        if self.calls == 1:
            raise OperationalError("INSERT INTO transactions", {}, Exception("database is locked"))
        return await super()._store(session, parsed)


async def test_store_failure_is_reported_and_batch_continues(mailbox_config, session_factory):
    mailbox = FakeMailbox({
        "1": notification_email(),
        "2": notification_email(body=SAMPLE_BODY.replace("AB12", "CD34")),
    })

    summary = await _service(mailbox, mailbox_config, session_factory, FlakyStoreSyncService).run()

    assert summary.failed == 1
    assert summary.inserted == 1
    assert "AB12" in summary.errors[0]
    assert [row.transaction_id for row in await _stored(session_factory)] == ["CD34"]


async def test_deadline_stops_processing(mailbox_config, session_factory):
    mailbox = FakeMailbox({"1": notification_email(), "2": notification_email()})

    summary = await _service(
        mailbox, mailbox_config, session_factory, deadline_seconds=1e-9
    ).run()

    assert summary.deadline_exceeded
    assert summary.inserted == 0
    assert mailbox.closed


async def test_connection_failure_raises(mailbox_config, session_factory):
    mailbox = FakeMailbox({"1": notification_email()}, fail_connect=True)

    with pytest.raises(MailboxConnectionError):
        await _service(mailbox, mailbox_config, session_factory).run()

    assert await _stored(session_factory) == []


async def test_search_failure_raises_and_closes_mailbox(mailbox_config, session_factory):
    class BrokenSearchMailbox(FakeMailbox):
        def search_from(self, sender):
            raise OSError("connection reset by peer")

    mailbox = BrokenSearchMailbox()

    with pytest.raises(MailboxConnectionError):
        await _service(mailbox, mailbox_config, session_factory).run()

    assert mailbox.closed


def test_summary_serializes_counts():
    from feeledger.mail.sync import SyncSummary
    from extractor import SkipReason

    summary = SyncSummary(messages_found=3, inserted=1)
    summary.record_skip(SkipReason.NO_PATTERN_MATCH)
    summary.record_failure("message 3: fetch failed")

    assert summary.to_dict() == {
        "messages_found": 3,
        "inserted": 1,
        "duplicates": 0,
        "skipped": {"no_pattern_match": 1},
        "failed": 1,
        "errors": ["message 3: fetch failed"],
        "deadline_exceeded": False,
    }


async def test_scheduled_sync_swallows_mailbox_errors(monkeypatch, mailbox_config, session_factory):
    from feeledger.mail import sync

    mailbox = FakeMailbox(fail_connect=True)
    monkeypatch.setattr(sync, "build_sync_service", lambda: _service(mailbox, mailbox_config, session_factory))

    assert await sync.run_scheduled_sync() is None


async def test_scheduled_sync_returns_summary(monkeypatch, mailbox_config, session_factory):
    from feeledger.mail import sync

    mailbox = FakeMailbox({"1": notification_email()})
    monkeypatch.setattr(sync, "build_sync_service", lambda: _service(mailbox, mailbox_config, session_factory))

    summary = await sync.run_scheduled_sync()

    assert summary.inserted == 1


async def test_undecodable_message_does_not_stop_the_batch(mailbox_config, session_factory):
    broken = (
        b"From: mts@kcb.co.ke\r\nSubject: Payment received\r\n"
        b"Content-Type: text/plain; charset=utf-8\x00\r\n\r\nhello"
    )
    mailbox = FakeMailbox({"1": broken, "2": notification_email()})

    summary = await _service(mailbox, mailbox_config, session_factory).run()

    assert summary.skipped == {"undecodable": 1}
    assert summary.inserted == 1
    assert [row.transaction_id for row in await _stored(session_factory)] == ["AB12"]


async def test_parser_crash_is_reported_and_batch_continues(mailbox_config, session_factory):
    from extractor import EmailTransactionParser

    class CrashingParser(EmailTransactionParser):
        def parse_message(self, raw):
            if b"CD34" in raw:
                raise RuntimeError("unexpected parser state")
            return super().parse_message(raw)

    mailbox = FakeMailbox({
        "1": notification_email(body=SAMPLE_BODY.replace("AB12", "CD34")),
        "2": notification_email(),
    })

    summary = await _service(mailbox, mailbox_config, session_factory, parser=CrashingParser()).run()

    assert summary.failed == 1
    assert "message 1: parse failed" in summary.errors[0]
    assert summary.inserted == 1


class ConcurrentInsertSyncService(TransactionSyncService):
    """Another writer stores the same transaction between the lookup and the commit"""

    async def _already_stored(self, session, transaction_id):
        found = await super()._already_stored(session, transaction_id)
        async with self.session_factory() as other:
            other.add(BankTransaction(
                transaction_id=transaction_id,
                amount=Decimal("1000"),
                sender_name="John Doe",
                phone_number="0712345678",
                account_name="Jane Smith",
                account_number="9988",
                transaction_date="01/02/2024",
                transaction_time="14:15:00",
            ))
            await other.commit()
        return found


async def test_unique_constraint_turns_concurrent_insert_into_duplicate(mailbox_config, session_factory):
    mailbox = FakeMailbox({"1": notification_email()})

    summary = await _service(mailbox, mailbox_config, session_factory, ConcurrentInsertSyncService).run()

    assert summary.duplicates == 1
    assert summary.inserted == 0
    assert summary.failed == 0
    assert len(await _stored(session_factory)) == 1
