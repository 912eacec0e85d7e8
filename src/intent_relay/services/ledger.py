"""Account ledger: balances, transaction history and atomic credits."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Any, Final

from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from intent_relay.core.errors import IntentRelayError, LedgerError, ReplayedIntentError
from intent_relay.db.time import utcnow
from intent_relay.models import Account, AccountTransaction, ConsumedNonce

logger = logging.getLogger(__name__)

LEDGER_SCALE: Final[int] = 1_000_000
LEDGER_UNIT: Final[Decimal] = Decimal(1) / LEDGER_SCALE
DEPOSIT_TRANSACTION_TYPE: Final[str] = "intent_deposit"
STATUS_COMPLETED: Final[str] = "completed"
# Balances are stored in a signed 64-bit BIGINT column.
MAX_LEDGER_UNITS: Final[int] = 2**63 - 1
MAX_CREDIT_AMOUNT: Final[Decimal] = Decimal(MAX_LEDGER_UNITS) / LEDGER_SCALE


def to_units(amount: Decimal) -> int:
    """Convert display units to the stored integer, rounding toward zero."""
    return int((amount * LEDGER_SCALE).to_integral_value(rounding=ROUND_DOWN))


def from_units(units: int) -> Decimal:
    """Convert a stored integer balance back to display units."""
    return (Decimal(units) / LEDGER_SCALE).quantize(LEDGER_UNIT)


@dataclass(frozen=True)
class CreditResult:
    """Outcome of a committed credit."""

    account_id: str
    new_balance: Decimal
    transaction: AccountTransaction
    account_created: bool


class LedgerService:
    """Ledger operations bound to a single database session."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _insert_ignore(self, model: type[Any], values: Mapping[str, Any]) -> bool:
        """Insert a row unless its key already exists; return True if inserted.

        PostgreSQL and SQLite use ``ON CONFLICT DO NOTHING``. Other backends
        fall back to a savepoint around a plain insert.
        """
        dialect = self._db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(model).values(**values).on_conflict_do_nothing()
        elif dialect == "sqlite":
            stmt = sqlite.insert(model).values(**values).on_conflict_do_nothing()
        else:
            try:
                with self._db.begin_nested():
                    self._db.execute(insert(model).values(**values))
            except IntegrityError:
                return False
            return True
        result = self._db.execute(stmt)
        return bool(result.rowcount)

    def credit_account(
        self,
        account_id: str,
        amount: Decimal,
        *,
        nonce: str,
        currency: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> CreditResult:
        """Credit `amount` display units to `account_id` exactly once per nonce.

        The account is created on first use. Account creation, nonce
        consumption, the balance increment and the transaction row are all
        committed in a single database transaction.

        Raises:
            ValueError: If `amount` is below one ledger unit or above
                `MAX_CREDIT_AMOUNT`.
            ReplayedIntentError: If `nonce` was already credited to the account.
            LedgerError: If the database rejected or lost the write, or the
                balance would exceed `MAX_LEDGER_UNITS`.
        """
        if amount > MAX_CREDIT_AMOUNT:
            raise ValueError("credit amount exceeds the ledger maximum")
        units = to_units(amount)
        if units <= 0:
            raise ValueError("credit amount must be at least one ledger unit")

        db = self._db
        try:
            created = self._insert_ignore(Account, {"account_id": account_id, "balance": 0})
            if not self._insert_ignore(ConsumedNonce, {"account_id": account_id, "nonce": nonce}):
                raise ReplayedIntentError("intent already processed")

            # Increment in SQL so that concurrent credits cannot lose an update.
            result = db.execute(
                update(Account)
                .where(
                    Account.account_id == account_id,
                    Account.balance <= MAX_LEDGER_UNITS - units,
                )
                .values(balance=Account.balance + units, updated_at=utcnow())
            )
            if result.rowcount != 1:
                raise LedgerError("balance limit exceeded")
            balance_units = db.execute(
                select(Account.balance).where(Account.account_id == account_id)
            ).scalar_one()

            transaction = AccountTransaction(
                account_id=account_id,
                type=DEPOSIT_TRANSACTION_TYPE,
                status=STATUS_COMPLETED,
                amount=from_units(units),
                currency=currency,
                nonce=nonce,
                metadata_=dict(metadata or {}),
            )
            db.add(transaction)
            db.flush()
            db.commit()
        except IntentRelayError:
            db.rollback()
            raise
        except SQLAlchemyError as err:
            db.rollback()
            logger.error("Ledger credit failed for %s", account_id, exc_info=True)
            raise LedgerError("ledger update failed") from err
        except Exception:
            db.rollback()
            raise

        if created:
            logger.info("Created ledger account %s", account_id)
        return CreditResult(
            account_id=account_id,
            new_balance=from_units(balance_units),
            transaction=transaction,
            account_created=created,
        )

    def get_account(self, account_id: str) -> Account | None:
        """Return the account with `account_id`, if any."""
        return self._db.get(Account, account_id, populate_existing=True)

    def get_balance(self, account_id: str) -> Decimal:
        """Return the display-unit balance; unknown accounts have zero."""
        units = self._db.execute(
            select(Account.balance).where(Account.account_id == account_id)
        ).scalar_one_or_none()
        return from_units(units or 0)

    def list_transactions(
        self,
        account_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AccountTransaction]:
        """Return the account's transactions, newest first."""
        stmt = (
            select(AccountTransaction)
            .where(AccountTransaction.account_id == account_id)
            .order_by(AccountTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return self._db.execute(stmt).scalars().all()
