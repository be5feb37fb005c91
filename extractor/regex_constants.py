import re

# Clauses of the bank's "payment received" notification, in sentence order:
# "<ID> completed. You have received KES <amount> from <name> <phone>
#  for account <accountName> <accountNumber> on <date> at <time>"
RECEIPT_CLAUSE = r"(?P<transaction_id>[A-Z0-9]+) completed\."
AMOUNT_CLAUSE = r" You have received KES (?P<amount>[\d,]+)"
SENDER_CLAUSE = (
    r" from (?P<sender_name>[A-Za-z]+(?:\s[A-Za-z]+)?(?:\s[A-Za-z]+)?)"
    r" (?P<sender_phone>\d{10,12})"
)
ACCOUNT_CLAUSE = r"\s+for account (?P<account_name>.+?) (?P<account_number>\d+)"
DATE_CLAUSE = r"\s+on (?P<transaction_date>\d{2}/\d{2}/\d{4})"
TIME_CLAUSE = r" at (?P<transaction_time>\d{1,2}:\d{2} [AP]M)"

NOTIFICATION_CLAUSES = [
    ("receipt", RECEIPT_CLAUSE),
    ("amount", AMOUNT_CLAUSE),
    ("sender", SENDER_CLAUSE),
    ("account", ACCOUNT_CLAUSE),
    ("date", DATE_CLAUSE),
    ("time", TIME_CLAUSE),
]

NOTIFICATION_PATTERN = re.compile(
    "".join(clause for _, clause in NOTIFICATION_CLAUSES), re.IGNORECASE
)

TIME_12H_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AP]M)\s*$", re.IGNORECASE)

SOFT_LINE_BREAK_PATTERN = re.compile(r"=\r?\n")
WHITESPACE_PATTERN = re.compile(r"\s+")
