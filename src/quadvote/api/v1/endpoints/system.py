"""System and transparency endpoints for the quadvote API."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import func, select

from quadvote.core.security import ensure_service
from quadvote.core.settings import settings
from quadvote.models import CreditTransaction, IssueVoteStats, UserCredit, VoteRecord
from quadvote.services.errors import QuadVoteError

from ..dependencies import PrincipalDep, PrivacyDep, SessionDep, raise_http_error

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config(privacy: PrivacyDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings; the tally public key is included
    so voters can check their ciphertexts.

    Args:
        privacy: Privacy layer for tally key status

    Returns:
        Dictionary containing app settings, credit economics and privacy status
    """
    public_key = privacy.public_key.hex() if privacy.public_key is not None else None
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "jwt_algorithm": settings.jwt_algorithm,
            "access_token_expire_minutes": settings.access_token_expire_minutes,
            "debug": settings.debug,
        },
        "economics": {
            **settings.economics,
            "max_award_amount": settings.max_award_amount,
            "pricing": "each batch costs votes squared",
        },
        "privacy": {
            "enabled": privacy.available,
            "scheme": "exponential-elgamal-ed25519",
            "tally_public_key": public_key,
            "max_total": privacy.max_total,
        },
        "notifications": {
            "backend": settings.notify_backend,
        },
    }


@router.get("/ledger-stats")
def get_ledger_stats(db: SessionDep, principal: PrincipalDep) -> dict[str, int]:
    """Return aggregate ledger figures to the service identity.

    Ledger-wide credit totals move by exactly the cost of each vote, private
    ones included, so they are not served to the public.

    Args:
        db: Database session
        principal: Caller resolved from the bearer token

    Returns:
        Dictionary of account, credit and vote totals
    """
    try:
        ensure_service(principal)
    except QuadVoteError as err:
        raise_http_error(err)
    accounts, balance, earned, spent = db.execute(
        select(
            func.count(UserCredit.user_id),
            func.coalesce(func.sum(UserCredit.balance), 0),
            func.coalesce(func.sum(UserCredit.total_earned), 0),
            func.coalesce(func.sum(UserCredit.total_spent), 0),
        )
    ).one()
    transactions = db.execute(select(func.count(CreditTransaction.id))).scalar_one()
    votes = db.execute(select(func.count(VoteRecord.id))).scalar_one()
    issues = db.execute(select(func.count(IssueVoteStats.issue_id))).scalar_one()
    return {
        "accounts": int(accounts),
        "credits_in_circulation": int(balance),
        "credits_earned": int(earned),
        "credits_spent": int(spent),
        "transactions": int(transactions),
        "vote_records": int(votes),
        "issues_with_votes": int(issues),
    }
