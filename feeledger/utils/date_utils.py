"""
Date utilities for transaction queries.
Bank notification dates are stored as the DD/MM/YYYY text the bank sends.
"""
from datetime import date, datetime
from typing import Optional

STORED_DATE_FORMAT = "%d/%m/%Y"
ACCEPTED_DATE_FORMATS = (STORED_DATE_FORMAT, "%Y-%m-%d")


def parse_transaction_date(value: str) -> date:
    """
    Parse a date given as DD/MM/YYYY or ISO YYYY-MM-DD.

    Raises:
        ValueError: If the value matches neither format.
    """
    for fmt in ACCEPTED_DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{value}', expected DD/MM/YYYY or YYYY-MM-DD")


def parse_stored_date(value: Optional[str]) -> Optional[date]:
    """Parse a stored transaction_date, returning None for malformed rows"""
    if not value:
        return None
    try:
        return datetime.strptime(value, STORED_DATE_FORMAT).date()
    except ValueError:
        return None
