from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class AccountStatusEnum(str, enum.Enum):
    """Account status"""
    ACTIVE = "active"
    FROZEN = "frozen"
    CLOSED = "closed"


class Account(Base):
    """
    Account referenced by the ledger.

    Holds no balance: the balance is a projection of the account's
    transactions (see BalanceResolver).
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    owner_name = Column(String(200), nullable=False)
    status = Column(SQLEnum(AccountStatusEnum), default=AccountStatusEnum.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, owner={self.owner_name}, status={self.status})>"
