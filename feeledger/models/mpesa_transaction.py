from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, false
from sqlalchemy.sql import func
from feeledger.db import Base


class MpesaTransaction(Base):
    __tablename__ = "mpesa_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String, nullable=True)
    phone_number = Column(String, nullable=False, index=True)
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    validated = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
