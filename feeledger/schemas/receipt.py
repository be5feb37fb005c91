"""
Schemas for the payment confirmation receipt email.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReceiptTransaction(BaseModel):
    """Transaction details printed on the receipt"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    transaction_id: Optional[str] = None
    amount: Optional[str] = None
    sender_name: Optional[str] = None
    phone_number: Optional[str] = None
    account_name: Optional[str] = None
    account_number: Optional[str] = None
    transaction_date: Optional[str] = None
    transaction_time: Optional[str] = None


class ReceiptRequest(BaseModel):
    transaction: Optional[ReceiptTransaction] = Field(None, description="Transaction to confirm")

    class Config:
        json_schema_extra = {
            "example": {
                "transaction": {
                    "transaction_id": "AB12",
                    "amount": "1000",
                    "sender_name": "John Doe",
                    "phone_number": "0712345678",
                    "account_name": "Jane Smith",
                    "account_number": "9988",
                    "transaction_date": "01/02/2024",
                    "transaction_time": "14:15:00",
                }
            }
        }
