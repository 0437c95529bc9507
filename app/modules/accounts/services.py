from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status

from app.core.exceptions import LedgerError, LedgerErrorKind
from app.modules.accounts.models import Account, AccountStatusEnum
from app.modules.accounts import schemas
from app.modules.transactions.services import BalanceResolver


class AccountService:
    """Account collaborator: the rows the ledger references and locks"""

    @staticmethod
    async def create_account(db: AsyncSession, account_data: schemas.AccountCreateRequest) -> Account:
        """Open a new account; its balance starts at zero because its ledger is empty"""
        account = Account(
            owner_name=account_data.owner_name,
            status=AccountStatusEnum.ACTIVE
        )

        db.add(account)
        await db.commit()
        await db.refresh(account)

        return account

    @staticmethod
    async def get_account(db: AsyncSession, account_id: int) -> Account:
        """Get specific account"""
        result = await db.execute(select(Account).where(Account.id == account_id))
        account = result.scalar_one_or_none()

        if not account:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Account not found"
            )

        return account

    @staticmethod
    async def update_status(
        db: AsyncSession,
        account_id: int,
        status_update: schemas.AccountStatusUpdate
    ) -> Account:
        """Freeze, reactivate or close an account; closed accounts stay closed"""
        account = await AccountService.get_account(db, account_id)

        if account.status == AccountStatusEnum.CLOSED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Account is closed"
            )

        account.status = AccountStatusEnum(status_update.status.value)
        await db.commit()
        await db.refresh(account)

        return account

    @staticmethod
    async def get_balance(db: AsyncSession, account_id: int) -> schemas.BalanceResponse:
        """Balance projection from the ledger"""
        try:
            account = await AccountService.get_account(db, account_id)
        except SQLAlchemyError as e:
            raise LedgerError(LedgerErrorKind.INTERNAL_ERROR, "Account lookup failed") from e
        balance = await BalanceResolver.current_balance(db, account.id)

        return schemas.BalanceResponse(account_id=account.id, balance=balance)
