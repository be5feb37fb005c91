"""
Schemas for Pesapal payment requests and the school's bank details.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentRequest(BaseModel):
    """Order submitted by the frontend; field names follow its camelCase payload"""
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId", description="Unique order ID")
    amount: Decimal = Field(..., gt=0)
    description: str
    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")


class BankDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bank: str
    account_number: str = Field(..., serialization_alias="accountNumber")
    paybill_number: str = Field(..., serialization_alias="paybillNumber")
    till_account_number: str = Field(..., serialization_alias="tillAccountNumber")
    business_name: str = Field(..., serialization_alias="businessName")
    message: str
