from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.modules.transactions.models import TransactionType


class TransactionRequest(BaseModel):
    """Deposit or withdrawal request; amount is always the positive magnitude"""
    account_id: int
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    counterparty: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=500)


class TransactionResponse(BaseModel):
    id: int
    account_id: int
    seq: int
    amount: Decimal
    txn_type: TransactionType
    counterparty: str
    description: Optional[str]
    reference: str
    balance_after: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerVerificationResponse(BaseModel):
    """Result of replaying an account's running balance"""
    account_id: int
    consistent: bool
    first_broken_seq: Optional[int] = None


class ErrorResponse(BaseModel):
    error: str
