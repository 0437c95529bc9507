# Ledger module
from app.modules.transactions.models import Transaction, TransactionType
from app.modules.transactions.services import (
    BalanceResolver, StatementReader, TransactionService
)
from app.modules.transactions.router import router

__all__ = [
    "Transaction", "TransactionType",
    "BalanceResolver", "StatementReader", "TransactionService", "router"
]
