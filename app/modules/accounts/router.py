from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import LedgerError, error_response
from app.modules.accounts import schemas, services
from app.modules.transactions.schemas import ErrorResponse

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("", response_model=schemas.AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_data: schemas.AccountCreateRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Open a new account.

    - Starts active with an empty ledger
    """
    account = await services.AccountService.create_account(db, account_data)
    return account


@router.get("/{account_id}", response_model=schemas.AccountResponse)
async def get_account(
    account_id: int,
    db: AsyncSession = Depends(get_db)
):
    """
    Get account details.
    """
    account = await services.AccountService.get_account(db, account_id)
    return account


@router.put("/{account_id}/status", response_model=schemas.AccountResponse)
async def update_account_status(
    account_id: int,
    status_update: schemas.AccountStatusUpdate,
    db: AsyncSession = Depends(get_db)
):
    """
    Freeze, reactivate or close an account.

    - Frozen and closed accounts reject deposits and withdrawals
    - Cannot be undone once closed
    """
    account = await services.AccountService.update_status(db, account_id, status_update)
    return account


@router.get(
    "/{account_id}/balance",
    response_model=schemas.BalanceResponse,
    responses={500: {"model": ErrorResponse}}
)
async def get_account_balance(
    account_id: int,
    db: AsyncSession = Depends(get_db)
):
    """
    Get the account balance.

    - Derived from the latest ledger entry, never stored
    """
    try:
        return await services.AccountService.get_balance(db, account_id)
    except LedgerError as e:
        return error_response(e)
