from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Callable, List, Optional, Tuple
from decimal import Decimal, InvalidOperation
import asyncio
import logging
import uuid

from app.core.config import settings
from app.core.exceptions import LedgerError, LedgerErrorKind
from app.modules.accounts.models import Account, AccountStatusEnum
from app.modules.transactions.models import Transaction, TransactionType, REFERENCE_PREFIX
from app.modules.notifications.services import NotificationSink, build_transaction_event

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
# Numeric(15, 2) leaves 13 integer digits
MAX_AMOUNT = Decimal("9999999999999.99")


def generate_token() -> str:
    """Globally unique token used in transaction references"""
    return str(uuid.uuid4())


def validate_amount(amount) -> Decimal:
    """
    Normalize a requested magnitude to a cent-precision Decimal.

    Zero, negative, non-finite and sub-cent amounts are rejected.
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, f"Amount is not a number: {amount!r}")

    if not value.is_finite() or value <= 0:
        raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, f"Amount must be positive: {amount!r}")
    if value != value.quantize(CENT) or value > MAX_AMOUNT:
        raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, f"Amount out of range or precision: {amount!r}")

    return value.quantize(CENT)


class BalanceResolver:
    """Derives balances from the ledger; never from a stored balance"""

    @staticmethod
    async def latest_entry(session: AsyncSession, account_id: int) -> Optional[Transaction]:
        """Most recent ledger entry of an account, or None"""
        result = await session.execute(
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.seq.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def current_balance(session: AsyncSession, account_id: int) -> Decimal:
        """
        Balance projection of an account.

        When the result feeds a write it must be read inside that write's
        unit of work.
        """
        try:
            entry = await BalanceResolver.latest_entry(session, account_id)
        except SQLAlchemyError as e:
            logger.exception(f"Balance query failed for account {account_id}")
            raise LedgerError(LedgerErrorKind.INTERNAL_ERROR, "Balance query failed") from e
        if entry is None:
            return ZERO
        return entry.balance_after

    @staticmethod
    async def verify(session: AsyncSession, account_id: int) -> Optional[int]:
        """
        Replay an account's entries in order.

        Returns the seq of the first entry that breaks the running sum or
        the gap-free numbering, or None when the ledger is consistent.
        """
        try:
            result = await session.execute(
                select(Transaction)
                .where(Transaction.account_id == account_id)
                .order_by(Transaction.seq.asc())
            )
            entries = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Ledger replay failed for account {account_id}")
            raise LedgerError(LedgerErrorKind.INTERNAL_ERROR, "Ledger replay failed") from e

        running = ZERO
        expected_seq = 1
        for entry in entries:
            running += entry.amount
            if entry.seq != expected_seq or entry.balance_after != running or running < 0:
                return entry.seq
            expected_seq += 1
        return None


class StatementReader:
    """Paginated, newest-first view of an account's ledger"""

    @staticmethod
    async def get_statement(
        session: AsyncSession,
        account_id: int,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Transaction]:
        if limit is None:
            limit = settings.STATEMENT_DEFAULT_LIMIT
        if limit < 1 or limit > settings.STATEMENT_MAX_LIMIT or offset < 0:
            raise LedgerError(
                LedgerErrorKind.INVALID_PAGINATION,
                f"limit must be within 1..{settings.STATEMENT_MAX_LIMIT} and offset >= 0",
                details={"limit": limit, "offset": offset}
            )

        try:
            result = await session.execute(
                select(Transaction)
                .where(Transaction.account_id == account_id)
                .order_by(Transaction.seq.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Statement query failed for account {account_id}")
            raise LedgerError(LedgerErrorKind.INTERNAL_ERROR, "Statement query failed") from e


class TransactionService:
    """
    Admission-checked deposits and withdrawals.

    Each operation runs as one unit of work: lock the account row, resolve
    the balance, validate, append the entry with the next seq, commit.
    The account lock serializes writers on stores that honour
    SELECT ... FOR UPDATE; the unique (account_id, seq) pair catches any
    writer that still appended from a stale read, and the whole unit of
    work is then retried against the fresh balance.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        notification_sink: Optional[NotificationSink] = None,
        high_value_threshold: Optional[Decimal] = None,
        max_retries: Optional[int] = None,
        reference_factory: Callable[[], str] = generate_token,
        default_counterparty: Optional[str] = None,
        notification_timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.notification_sink = notification_sink
        self.high_value_threshold = (
            Decimal(high_value_threshold) if high_value_threshold is not None
            else settings.HIGH_VALUE_THRESHOLD
        )
        self.max_retries = max_retries if max_retries is not None else settings.LEDGER_MAX_RETRIES
        self.reference_factory = reference_factory
        self.default_counterparty = default_counterparty or settings.DEFAULT_COUNTERPARTY
        self.notification_timeout = (
            notification_timeout if notification_timeout is not None
            else settings.NOTIFICATION_TIMEOUT_SECONDS
        )

    async def process_deposit(
        self,
        account_id: int,
        amount,
        counterparty: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None
    ) -> Transaction:
        """Credit an account. Deposits are never rejected for balance reasons."""
        return await self._process(
            TransactionType.DEPOSIT, account_id, amount, counterparty, description, idempotency_key
        )

    async def process_withdraw(
        self,
        account_id: int,
        amount,
        counterparty: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None
    ) -> Transaction:
        """Debit an account; raises NO_OVERDRAFT if the balance would go negative."""
        return await self._process(
            TransactionType.WITHDRAWAL, account_id, amount, counterparty, description, idempotency_key
        )

    async def _process(
        self,
        txn_type: TransactionType,
        account_id: int,
        amount,
        counterparty: Optional[str],
        description: Optional[str],
        idempotency_key: Optional[str]
    ) -> Transaction:
        value = validate_amount(amount)

        attempt = 0
        while True:
            try:
                txn, created = await self._apply(
                    txn_type, account_id, value, counterparty, description, idempotency_key
                )
                break
            except IntegrityError as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.error(
                        f"Giving up {txn_type.value} on account {account_id} after "
                        f"{self.max_retries} retries: {e.orig}"
                    )
                    raise LedgerError(LedgerErrorKind.INTERNAL_ERROR, "Ledger write conflict") from e
                logger.warning(
                    f"Ledger write conflict on account {account_id}, "
                    f"retrying {txn_type.value} ({attempt}/{self.max_retries})"
                )
            except SQLAlchemyError as e:
                logger.exception(f"Ledger store failure during {txn_type.value} on account {account_id}")
                raise LedgerError(LedgerErrorKind.INTERNAL_ERROR, "Ledger store failure") from e

        if not created:
            logger.info(f"Idempotent replay of {txn.reference} on account {account_id}")
            return txn

        high_value = value >= self.high_value_threshold
        if high_value:
            logger.warning(
                f"High-value {txn_type.value} {txn.reference}: {value} on account {account_id}"
            )
        logger.info(
            f"Committed {txn.reference} account={account_id} seq={txn.seq} "
            f"amount={txn.amount} balance_after={txn.balance_after}"
        )

        await self._notify(txn, high_value)
        return txn

    async def _apply(
        self,
        txn_type: TransactionType,
        account_id: int,
        value: Decimal,
        counterparty: Optional[str],
        description: Optional[str],
        idempotency_key: Optional[str]
    ) -> Tuple[Transaction, bool]:
        """One unit of work; returns the entry and whether it was newly written"""
        async with self.session_factory() as session:
            async with session.begin():
                account = await self._lock_account(session, account_id)

                if idempotency_key:
                    existing = await self._find_by_idempotency_key(session, account_id, idempotency_key)
                    if existing is not None:
                        self._check_replay(existing, txn_type, value, idempotency_key)
                        return existing, False

                if account.status != AccountStatusEnum.ACTIVE:
                    raise LedgerError(
                        LedgerErrorKind.ACCOUNT_NOT_ACTIVE,
                        f"Account {account_id} is {account.status.value}"
                    )

                latest = await BalanceResolver.latest_entry(session, account_id)
                balance = latest.balance_after if latest is not None else ZERO
                next_seq = latest.seq + 1 if latest is not None else 1

                delta = value if txn_type == TransactionType.DEPOSIT else -value
                new_balance = balance + delta
                if new_balance < 0:
                    logger.info(
                        f"Rejected withdrawal of {value} on account {account_id}: balance {balance}"
                    )
                    raise LedgerError(
                        LedgerErrorKind.NO_OVERDRAFT,
                        "Insufficient funds",
                        details={"account_id": account_id, "balance": str(balance), "requested": str(value)}
                    )

                txn = Transaction(
                    account_id=account_id,
                    seq=next_seq,
                    amount=delta,
                    txn_type=txn_type,
                    counterparty=counterparty or self.default_counterparty,
                    description=description,
                    reference=f"{REFERENCE_PREFIX[txn_type]}-{self.reference_factory()}",
                    idempotency_key=idempotency_key,
                    balance_after=new_balance
                )
                session.add(txn)
                await session.flush()
                await session.refresh(txn)

        return txn, True

    @staticmethod
    async def _lock_account(session: AsyncSession, account_id: int) -> Account:
        """Exclusive row lock on the account for the rest of the unit of work"""
        result = await session.execute(
            select(Account).where(Account.id == account_id).with_for_update()
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise LedgerError(LedgerErrorKind.ACCOUNT_NOT_FOUND, f"Account {account_id} not found")
        return account

    @staticmethod
    async def _find_by_idempotency_key(
        session: AsyncSession,
        account_id: int,
        idempotency_key: str
    ) -> Optional[Transaction]:
        result = await session.execute(
            select(Transaction).where(
                Transaction.account_id == account_id,
                Transaction.idempotency_key == idempotency_key
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _check_replay(existing: Transaction, txn_type: TransactionType, value: Decimal, idempotency_key: str):
        if existing.txn_type != txn_type or abs(existing.amount) != value:
            raise LedgerError(
                LedgerErrorKind.IDEMPOTENCY_CONFLICT,
                f"Idempotency key {idempotency_key} was used for a different request",
                details={"reference": existing.reference}
            )

    async def _notify(self, txn: Transaction, high_value: bool) -> None:
        """Best-effort post-commit publish; failures never touch the ledger"""
        if self.notification_sink is None:
            return

        event = build_transaction_event(txn, high_value)
        try:
            await asyncio.wait_for(self.notification_sink.publish(event), timeout=self.notification_timeout)
        except Exception as e:
            logger.error(f"Failed to publish {event['event']} for {txn.reference}: {e!r}")
