"""
Email Parser for bank "payment received" notification emails.
Converts a raw RFC 822 message into a structured transaction record.

Parsing is pure: nothing here touches the mailbox or the database, so the
sync loop can decide what to log and what to persist from the outcome alone.
"""

import email
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from email import policy
from email.errors import MessageError
from enum import Enum
from typing import Optional, Union

from bs4 import BeautifulSoup

from extractor.regex_constants import (
    NOTIFICATION_CLAUSES,
    NOTIFICATION_PATTERN,
    SOFT_LINE_BREAK_PATTERN,
    TIME_12H_PATTERN,
    WHITESPACE_PATTERN,
)

RawMessage = Union[bytes, str]


class SkipReason(Enum):
    """Why a message did not yield a transaction"""
    EMPTY_BODY = "empty_body"
    NO_PATTERN_MATCH = "no_pattern_match"
    UNDECODABLE = "undecodable"


@dataclass
class ParsedTransaction:
    """Data class representing a parsed bank transaction"""
    transaction_id: str
    amount: Decimal
    sender_name: str
    sender_phone: str
    account_name: str
    account_number: str
    transaction_date: str
    transaction_time: str

    def to_dict(self):
        """Convert transaction to dictionary"""
        return {
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "sender_name": self.sender_name,
            "sender_phone": self.sender_phone,
            "account_name": self.account_name,
            "account_number": self.account_number,
            "transaction_date": self.transaction_date,
            "transaction_time": self.transaction_time,
        }


@dataclass
class ParseOutcome:
    """Either a matched transaction or the reason the message was skipped"""
    transaction: Optional[ParsedTransaction] = None
    skip_reason: Optional[SkipReason] = None
    detail: str = ""

    @property
    def matched(self) -> bool:
        return self.transaction is not None

    @classmethod
    def skipped(cls, reason: SkipReason, detail: str) -> "ParseOutcome":
        return cls(skip_reason=reason, detail=detail)


def convert_to_24_hour(time12h: str) -> str:
    """
    Convert a 12-hour clock reading such as "2:15 PM" into "14:15:00".

    Raises:
        ValueError: If the text is not an H:MM AM/PM time.
    """
    match = TIME_12H_PATTERN.match(time12h)
    if not match:
        raise ValueError(f"Not a 12-hour time: {time12h!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    modifier = match.group(3).upper()
    if hours > 12 or minutes > 59:
        raise ValueError(f"Time out of range: {time12h!r}")

    if modifier == "PM" and hours < 12:
        hours += 12
    if modifier == "AM" and hours == 12:
        hours = 0
    return f"{hours:02d}:{minutes:02d}:00"


def normalize_amount(amount: str) -> Decimal:
    """Strip thousands separators and parse the amount"""
    try:
        value = Decimal(amount.replace(",", ""))
    except InvalidOperation as e:
        raise ValueError(f"Not an amount: {amount!r}") from e
    if value < 0:
        raise ValueError(f"Negative amount: {amount!r}")
    return value


def clean_body_text(text: str) -> str:
    """Undo quoted-printable leftovers and collapse whitespace"""
    text = SOFT_LINE_BREAK_PATTERN.sub("", text)
    text = text.replace("=", "")
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def html_to_text(html: str) -> str:
    """Visible text of an HTML part with entities decoded; scripts and styles dropped"""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def extract_body_text(raw: RawMessage) -> str:
    """
    Decode a raw message and return its normalized body text.

    The plain-text part is preferred; HTML is converted to its visible text
    only when there is no usable plain-text part.
    """
    if isinstance(raw, bytes):
        message = email.message_from_bytes(raw, policy=policy.default)
    else:
        message = email.message_from_string(raw, policy=policy.default)

    text = ""
    plain_part = message.get_body(preferencelist=("plain",))
    if plain_part is not None:
        text = plain_part.get_content().strip()

    if not text:
        html_part = message.get_body(preferencelist=("html",))
        if html_part is not None:
            text = html_to_text(html_part.get_content())

    return clean_body_text(text)


def _first_failing_clause(text: str) -> str:
    """Name the earliest clause after which the notification stops matching"""
    prefix = ""
    for label, clause in NOTIFICATION_CLAUSES:
        prefix += clause
        if not re.search(prefix, text, re.IGNORECASE):
            return label
    return "sentence"


class EmailTransactionParser:
    """Parses bank notification emails into ParsedTransaction objects"""

    def __init__(self, pattern: re.Pattern = NOTIFICATION_PATTERN):
        self.pattern = pattern

    def parse_message(self, raw: Optional[RawMessage]) -> ParseOutcome:
        """
        Parse a raw email into a transaction.

        Args:
            raw: Full RFC 822 message (or body-only text) as bytes or str.

        Returns:
            ParseOutcome holding the transaction, or the skip reason when the
            message is empty, undecodable or not a payment notification.
        """
        if raw is None:
            return ParseOutcome.skipped(SkipReason.EMPTY_BODY, "message has no content")
        if not raw.strip():
            return ParseOutcome.skipped(SkipReason.EMPTY_BODY, "message appears to be empty")

        try:
            text = extract_body_text(raw)
        except (LookupError, MessageError, UnicodeError, ValueError) as e:
            return ParseOutcome.skipped(SkipReason.UNDECODABLE, f"could not decode message: {e}")

        if not text:
            return ParseOutcome.skipped(SkipReason.EMPTY_BODY, "no readable content found in the email")

        return self.parse_text(text)

    def parse_text(self, text: str) -> ParseOutcome:
        """Match already-normalized body text against the notification sentence"""
        match = self.pattern.search(text)
        if not match:
            return ParseOutcome.skipped(
                SkipReason.NO_PATTERN_MATCH,
                f"notification sentence did not match at the '{_first_failing_clause(text)}' clause",
            )

        try:
            transaction = ParsedTransaction(
                transaction_id=match.group("transaction_id"),
                amount=normalize_amount(match.group("amount")),
                sender_name=match.group("sender_name").strip(),
                sender_phone=match.group("sender_phone"),
                account_name=match.group("account_name").strip(),
                account_number=match.group("account_number"),
                transaction_date=match.group("transaction_date"),
                transaction_time=convert_to_24_hour(match.group("transaction_time")),
            )
        except ValueError as e:
            return ParseOutcome.skipped(SkipReason.NO_PATTERN_MATCH, str(e))

        return ParseOutcome(transaction=transaction)


_default_parser = EmailTransactionParser()


def parse_message(raw: Optional[RawMessage]) -> ParseOutcome:
    """Parse a raw email with the default notification grammar"""
    return _default_parser.parse_message(raw)
