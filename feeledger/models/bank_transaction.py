from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from feeledger.db import Base


class BankTransaction(Base):
    """A payment received into the school's bank account, read from a notification email"""
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_transactions_transaction_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String, nullable=False)
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    sender_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    account_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    transaction_date = Column(String, nullable=False, index=True)  # DD/MM/YYYY as received
    transaction_time = Column(String, nullable=False)  # HH:MM:00
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
