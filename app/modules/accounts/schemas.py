from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class AccountStatusEnum(str, Enum):
    ACTIVE = "active"
    FROZEN = "frozen"
    CLOSED = "closed"


class AccountCreateRequest(BaseModel):
    """Request to open an account"""
    owner_name: str = Field(..., min_length=1, max_length=200)


class AccountStatusUpdate(BaseModel):
    """Freeze, reactivate or close an account"""
    status: AccountStatusEnum


class AccountResponse(BaseModel):
    """Account details"""
    id: int
    owner_name: str
    status: AccountStatusEnum
    created_at: datetime

    class Config:
        from_attributes = True


class BalanceResponse(BaseModel):
    """Balance projection derived from the ledger"""
    account_id: int
    balance: Decimal
