"""Credit ledger endpoints."""

from fastapi import APIRouter, Query, status

from quadvote.core.security import ensure_can_read_ledger, ensure_service
from quadvote.models import CreditTransaction, UserCredit
from quadvote.schemas.credit import (
    AwardRequest,
    CreditBalanceResponse,
    CreditTransactionResponse,
    ReplenishResponse,
)
from quadvote.services.errors import QuadVoteError

from ..dependencies import LedgerDep, PrincipalDep, raise_http_error

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/me", response_model=CreditBalanceResponse)
def get_my_balance(principal: PrincipalDep, ledger: LedgerDep) -> UserCredit:
    """Return the caller's balance, initializing and replenishing as due."""
    try:
        return ledger.get_balance(principal.user_id)
    except QuadVoteError as err:
        raise_http_error(err)


@router.post("/replenish", response_model=ReplenishResponse)
def replenish_due_accounts(principal: PrincipalDep, ledger: LedgerDep) -> ReplenishResponse:
    """Grant the periodic replenishment to every account that is due."""
    try:
        ensure_service(principal)
        return ReplenishResponse(granted=ledger.replenish_all_due())
    except QuadVoteError as err:
        raise_http_error(err)


@router.get("/{user_id}", response_model=CreditBalanceResponse)
def get_balance(user_id: str, principal: PrincipalDep, ledger: LedgerDep) -> UserCredit:
    """Return a user's balance; readable by that user and the service identity."""
    try:
        ensure_can_read_ledger(principal, user_id)
        return ledger.get_balance(user_id)
    except QuadVoteError as err:
        raise_http_error(err)


@router.get("/{user_id}/transactions", response_model=list[CreditTransactionResponse])
def list_transactions(
    user_id: str,
    principal: PrincipalDep,
    ledger: LedgerDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[CreditTransaction]:
    """Return a user's ledger history, newest first."""
    try:
        ensure_can_read_ledger(principal, user_id)
    except QuadVoteError as err:
        raise_http_error(err)
    return ledger.get_transactions(user_id, limit=limit, offset=offset)


@router.post(
    "/{user_id}/award",
    response_model=CreditBalanceResponse,
    status_code=status.HTTP_201_CREATED,
)
def award_credits(
    user_id: str,
    payload: AwardRequest,
    principal: PrincipalDep,
    ledger: LedgerDep,
) -> UserCredit:
    """Grant credits for merit or by administrative decision."""
    try:
        ensure_service(principal)
        return ledger.award(
            user_id,
            payload.amount,
            payload.description,
            payload.reference_id,
            kind=payload.kind,
        )
    except QuadVoteError as err:
        raise_http_error(err)
