"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from intent_relay.db.session import get_db
from intent_relay.services.crypto import CryptoService
from intent_relay.services.ledger import LedgerService
from intent_relay.services.relay import RelayService

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

crypto_service = CryptoService()


def get_ledger_service(db: SessionDep) -> LedgerService:
    """Return a ledger service bound to the request session."""
    return LedgerService(db)


LedgerServiceDep = Annotated[LedgerService, Depends(get_ledger_service)]


def get_relay_service(ledger: LedgerServiceDep) -> RelayService:
    """Return a relay service using the request's ledger."""
    return RelayService(ledger, crypto_service)


RelayServiceDep = Annotated[RelayService, Depends(get_relay_service)]
