"""Account balance and history endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from intent_relay.core.errors import AccountNotFoundError
from intent_relay.core.settings import settings
from intent_relay.schemas.account import AccountResponse, TransactionResponse
from intent_relay.schemas.common import ErrorResponse
from intent_relay.services.ledger import from_units

from ..dependencies import LedgerServiceDep

router = APIRouter(prefix="/accounts", tags=["accounts"])

MAX_PAGE_SIZE = 200


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
def get_account(
    account_id: str,
    ledger: LedgerServiceDep,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> AccountResponse:
    """Return the balance and most recent transactions for an account."""
    account = ledger.get_account(account_id)
    if account is None:
        raise AccountNotFoundError("Account not found")

    page_size = limit or settings.ledger_history_page_size
    transactions = ledger.list_transactions(account_id, limit=page_size, offset=offset)
    return AccountResponse(
        account_id=account.account_id,
        balance=from_units(account.balance),
        transactions=[
            TransactionResponse(
                id=tx.id,
                type=tx.type,
                status=tx.status,
                amount=tx.amount,
                currency=tx.currency,
                created_at=tx.created_at,
                metadata=tx.metadata_,
            )
            for tx in transactions
        ],
    )
