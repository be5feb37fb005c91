"""
Parsing of bank transaction notification emails.
"""

from .email_parser import (
    EmailTransactionParser,
    ParsedTransaction,
    ParseOutcome,
    SkipReason,
    convert_to_24_hour,
    extract_body_text,
    normalize_amount,
    parse_message,
)

__all__ = [
    "EmailTransactionParser",
    "ParsedTransaction",
    "ParseOutcome",
    "SkipReason",
    "convert_to_24_hour",
    "extract_body_text",
    "normalize_amount",
    "parse_message",
]
