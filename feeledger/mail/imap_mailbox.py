"""
IMAP mailbox access for bank notification emails.
Opens the folder read-only and fetches with BODY.PEEK so messages stay unread.
"""

import imaplib
import re
import ssl
from dataclasses import dataclass
from typing import List, Optional

from feeledger.exceptions import MailboxConnectionError
from feeledger.logging_config import get_logger
from feeledger.mail.config import MailboxConfig

logger = get_logger(__name__)

FETCH_PARTS = "(BODY.PEEK[HEADER] BODY.PEEK[TEXT] BODY.PEEK[])"
SECTION_PATTERN = re.compile(rb"BODY\[(HEADER|TEXT|)\]", re.IGNORECASE)


class MailboxError(Exception):
    """A mailbox command failed after the connection was established"""


@dataclass
class FetchedMessage:
    """Header, body and full representations of one message"""
    uid: str
    header: bytes = b""
    text: bytes = b""
    full: bytes = b""

    @property
    def raw(self) -> bytes:
        """Full message when available, otherwise the body alone"""
        return self.full or self.text or b""


class ImapMailbox:
    """Read-only IMAP client for the notification mailbox"""

    def __init__(self, config: MailboxConfig):
        self.config = config
        self._conn: Optional[imaplib.IMAP4_SSL] = None
        self._selected = False

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.config.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def connect(self) -> None:
        """Open the TLS connection and log in within the auth timeout"""
        logger.info(f"Connecting to IMAP server {self.config.host}:{self.config.port}...")
        try:
            self._conn = imaplib.IMAP4_SSL(
                self.config.host,
                self.config.port,
                ssl_context=self._ssl_context(),
                timeout=self.config.auth_timeout_seconds,
            )
            self._conn.login(self.config.username, self.config.password)
        except imaplib.IMAP4.error as e:
            self._conn = None
            raise MailboxConnectionError(f"Mailbox authentication failed: {e}") from e
        except OSError as e:
            self._conn = None
            raise MailboxConnectionError(
                f"Cannot connect to {self.config.host}:{self.config.port}: {e}"
            ) from e

    def open(self, folder: str) -> None:
        """Select a folder read-only so fetching never sets the \\Seen flag"""
        typ, data = self._require_connection().select(folder, readonly=True)
        if typ != "OK":
            raise MailboxError(f"Could not open folder {folder}: {data}")
        self._selected = True

    def search_from(self, sender: str) -> List[str]:
        """Return UIDs of every message sent by the given address"""
        typ, data = self._require_connection().uid("SEARCH", None, "FROM", f'"{sender}"')
        if typ != "OK":
            raise MailboxError(f"Search for sender {sender} failed: {data}")
        if not data or not data[0]:
            return []
        return [uid.decode() for uid in data[0].split()]

    def fetch(self, uid: str) -> FetchedMessage:
        """Fetch header, body and full message for a UID without marking it read"""
        typ, data = self._require_connection().uid("FETCH", uid, FETCH_PARTS)
        if typ != "OK":
            raise MailboxError(f"Fetch of message {uid} failed: {data}")

        message = FetchedMessage(uid=uid)
        for item in data or []:
            if not isinstance(item, tuple) or len(item) < 2:
                continue
            section = SECTION_PATTERN.search(item[0])
            if not section:
                continue
            name = section.group(1).upper()
            if name == b"HEADER":
                message.header = item[1]
            elif name == b"TEXT":
                message.text = item[1]
            else:
                message.full = item[1]
        return message

    def close(self) -> None:
        """Close the folder and log out; release errors are logged, not raised"""
        if self._conn is None:
            return
        try:
            if self._selected:
                self._conn.close()
            self._conn.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.warning(f"Error while closing IMAP connection: {e}")
        finally:
            self._conn = None
            self._selected = False
        logger.info("IMAP connection closed.")

    def _require_connection(self) -> imaplib.IMAP4_SSL:
        if self._conn is None:
            raise MailboxError("Mailbox is not connected")
        return self._conn
