"""Shared API dependencies for authentication, services and error mapping."""

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from quadvote.core.security import Principal, decode_access_token
from quadvote.db.session import get_db
from quadvote.services.aggregation import VoteAggregator
from quadvote.services.errors import (
    AuthorizationError,
    InsufficientCreditError,
    InvalidAmountError,
    InvalidVoteCountError,
    PrivacyServiceUnavailableError,
    QuadVoteError,
    StorageFailureError,
    VotingClosedError,
    VotingWindowOpenError,
)
from quadvote.services.ledger import CreditLedger
from quadvote.services.notifications import ChangeNotifier, get_notifier
from quadvote.services.privacy import PrivacyLayer, get_privacy_layer
from quadvote.services.voting import VotingEngine

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

_STATUS_BY_ERROR: tuple[tuple[type[QuadVoteError], int], ...] = (
    (InvalidVoteCountError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidAmountError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InsufficientCreditError, status.HTTP_402_PAYMENT_REQUIRED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (VotingClosedError, status.HTTP_409_CONFLICT),
    (VotingWindowOpenError, status.HTTP_409_CONFLICT),
    (PrivacyServiceUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def raise_http_error(err: QuadVoteError) -> NoReturn:
    """Translate a service error into an ``HTTPException`` with a structured detail."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(err, error_type):
            raise HTTPException(status_code=status_code, detail=err.to_detail()) from err
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.to_detail()) from err


def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Principal:
    """Resolve the bearer token into the calling ``Principal``.

    Raises:
        HTTPException: If the token is invalid or expired.
    """
    try:
        return decode_access_token(credentials.credentials)
    except AuthorizationError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err


# Type alias for current principal dependency
PrincipalDep = Annotated[Principal, Depends(get_current_principal)]


def get_notifier_dep() -> ChangeNotifier:
    """Return the process-wide change notifier."""
    return get_notifier()


def get_privacy_dep() -> PrivacyLayer:
    """Return the privacy layer built from configuration."""
    return get_privacy_layer()


NotifierDep = Annotated[ChangeNotifier, Depends(get_notifier_dep)]
PrivacyDep = Annotated[PrivacyLayer, Depends(get_privacy_dep)]


def get_ledger(db: SessionDep, notifier: NotifierDep) -> CreditLedger:
    return CreditLedger(db, notifier)


def get_aggregator(db: SessionDep, notifier: NotifierDep) -> VoteAggregator:
    return VoteAggregator(db, notifier)


def get_voting_engine(
    db: SessionDep,
    notifier: NotifierDep,
    privacy: PrivacyDep,
) -> VotingEngine:
    return VotingEngine(db, privacy=privacy, notifier=notifier)


LedgerDep = Annotated[CreditLedger, Depends(get_ledger)]
AggregatorDep = Annotated[VoteAggregator, Depends(get_aggregator)]
VotingEngineDep = Annotated[VotingEngine, Depends(get_voting_engine)]
