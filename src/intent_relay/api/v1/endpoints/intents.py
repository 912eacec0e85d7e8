"""Intent relay endpoints."""

from fastapi import APIRouter, status

from intent_relay.schemas.common import ErrorResponse
from intent_relay.schemas.relay import RelayRequest, RelayResponse, RelayTransaction
from intent_relay.services.relay import SignedEnvelope

from ..dependencies import RelayServiceDep

router = APIRouter(prefix="/intents", tags=["intents"])


@router.post(
    "/relay",
    response_model=RelayResponse,
    status_code=status.HTTP_200_OK,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_410_GONE: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
def relay_intent(payload: RelayRequest, relay_service: RelayServiceDep) -> RelayResponse:
    """Verify a signed intent and credit its amount to the account.

    Failures are raised as relay errors and rendered by the application's
    exception handlers as ``{"success": false, "error": ...}``.
    """
    result = relay_service.relay(
        SignedEnvelope(
            account_id=payload.account_id,
            message=payload.message,
            signature=payload.signature,
            public_key=payload.public_key,
        )
    )
    transaction = result.credit.transaction
    return RelayResponse(
        new_balance=result.new_balance,
        transaction=RelayTransaction(
            type=transaction.type,
            status=transaction.status,
            amount=transaction.amount,
        ),
        account_id=result.account_id,
    )
