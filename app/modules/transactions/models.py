from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime,
    CheckConstraint, UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class TransactionType(str, enum.Enum):
    """Ledger movement type"""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


# Reference prefix per movement type
REFERENCE_PREFIX = {
    TransactionType.DEPOSIT: "DEP",
    TransactionType.WITHDRAWAL: "WDL",
}


class Transaction(Base):
    """
    Append-only ledger entry.

    ``amount`` is the signed delta applied to the balance and
    ``balance_after`` the running balance once it is applied. ``seq`` is
    the entry's gap-free position within its account; the unique
    (account_id, seq) pair rejects any writer that appended from a stale
    balance.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("account_id", "seq", name="uq_transactions_account_seq"),
        UniqueConstraint("account_id", "idempotency_key", name="uq_transactions_account_idempotency_key"),
        CheckConstraint("amount <> 0", name="ck_transactions_amount_nonzero"),
        CheckConstraint("balance_after >= 0", name="ck_transactions_balance_after_nonnegative"),
        CheckConstraint("seq > 0", name="ck_transactions_seq_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)

    amount = Column(Numeric(15, 2), nullable=False)
    txn_type = Column(SQLEnum(TransactionType), nullable=False)
    counterparty = Column(String(255), nullable=False, default="External")
    description = Column(String(500), nullable=True)

    reference = Column(String(64), unique=True, nullable=False, index=True)
    idempotency_key = Column(String(128), nullable=True)

    balance_after = Column(Numeric(15, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<Transaction(id={self.id}, account_id={self.account_id}, seq={self.seq}, "
            f"type={self.txn_type}, amount={self.amount}, balance_after={self.balance_after})>"
        )
