from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import LedgerError, error_response
from app.modules.transactions.dependencies import get_transaction_service
from app.modules.transactions.schemas import (
    TransactionRequest, TransactionResponse, LedgerVerificationResponse, ErrorResponse
)
from app.modules.transactions.services import TransactionService, StatementReader, BalanceResolver

router = APIRouter(prefix="/transactions", tags=["transactions"])

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/deposit",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def deposit(
    txn: TransactionRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=128),
    service: TransactionService = Depends(get_transaction_service)
):
    """
    Credit an account.

    - Appends a DEPOSIT entry carrying the new running balance
    - Replays with the same Idempotency-Key return the original entry
    """
    try:
        return await service.process_deposit(
            txn.account_id, txn.amount, txn.counterparty, txn.description, idempotency_key
        )
    except LedgerError as e:
        return error_response(e)


@router.post(
    "/withdraw",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def withdraw(
    txn: TransactionRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=128),
    service: TransactionService = Depends(get_transaction_service)
):
    """
    Debit an account.

    - 422 NO_OVERDRAFT when the balance would go negative; nothing is written
    """
    try:
        return await service.process_withdraw(
            txn.account_id, txn.amount, txn.counterparty, txn.description, idempotency_key
        )
    except LedgerError as e:
        return error_response(e)


@router.get("/statement/{account_id}", response_model=List[TransactionResponse], responses=ERROR_RESPONSES)
async def get_statement(
    account_id: int,
    limit: int = Query(settings.STATEMENT_DEFAULT_LIMIT, description="Page size"),
    offset: int = Query(0, description="Entries to skip"),
    db: AsyncSession = Depends(get_db)
):
    """Account ledger, newest first"""
    try:
        return await StatementReader.get_statement(db, account_id, limit, offset)
    except LedgerError as e:
        return error_response(e)


@router.get("/verify/{account_id}", response_model=LedgerVerificationResponse, responses=ERROR_RESPONSES)
async def verify_ledger(
    account_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Replay the account's running balance and report the first broken entry"""
    try:
        broken_seq = await BalanceResolver.verify(db, account_id)
    except LedgerError as e:
        return error_response(e)
    return LedgerVerificationResponse(
        account_id=account_id,
        consistent=broken_seq is None,
        first_broken_seq=broken_seq
    )
