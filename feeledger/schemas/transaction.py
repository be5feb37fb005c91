from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class BankTransactionResponse(BaseModel):
    id: int
    transaction_id: str
    amount: Decimal
    sender_name: str
    phone_number: str
    account_name: str
    account_number: str
    transaction_date: str
    transaction_time: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MpesaTransactionResponse(BaseModel):
    id: int
    transaction_id: Optional[str] = None
    phone_number: str
    amount: Decimal
    validated: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DailyTotal(BaseModel):
    date: str
    total: Decimal
