"""Issue aggregate, voting window and private tally endpoints."""

import binascii

from fastapi import APIRouter, HTTPException, Query, status

from quadvote.core.security import ensure_service
from quadvote.models import IssueVoteStats
from quadvote.schemas.issue import IssueStatsResponse, VotingWindowResponse
from quadvote.schemas.privacy import (
    EncryptedAggregateResponse,
    InclusionRequest,
    InclusionResponse,
    RevealResponse,
)
from quadvote.services.errors import QuadVoteError

from ..dependencies import (
    AggregatorDep,
    PrincipalDep,
    VotingEngineDep,
    raise_http_error,
)

router = APIRouter(prefix="/issues", tags=["issues"])


@router.get("/ranked", response_model=list[IssueStatsResponse])
def list_ranked_issues(
    aggregator: AggregatorDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[IssueVoteStats]:
    """Issues ordered by urgency, most intense first."""
    return aggregator.ranked_by_urgency(limit=limit, offset=offset)


@router.get("/{issue_id}/stats", response_model=IssueStatsResponse)
def get_issue_stats(issue_id: str, aggregator: AggregatorDep) -> IssueVoteStats:
    """Return cached stats; all zero when the issue has no votes."""
    return aggregator.get_stats(issue_id)


@router.post("/{issue_id}/recompute", response_model=IssueStatsResponse)
def recompute_issue_stats(
    issue_id: str,
    principal: PrincipalDep,
    aggregator: AggregatorDep,
) -> IssueVoteStats:
    """Rebuild the cached stats from vote records."""
    try:
        ensure_service(principal)
        return aggregator.recompute(issue_id)
    except QuadVoteError as err:
        raise_http_error(err)


@router.get("/{issue_id}/window", response_model=VotingWindowResponse)
def get_voting_window(issue_id: str, engine: VotingEngineDep) -> VotingWindowResponse:
    """Report whether the issue still accepts votes."""
    closed = engine.is_closed(issue_id)
    return VotingWindowResponse(issue_id=issue_id, closed=closed)


@router.post("/{issue_id}/close", response_model=VotingWindowResponse)
def close_voting(
    issue_id: str,
    principal: PrincipalDep,
    engine: VotingEngineDep,
) -> VotingWindowResponse:
    """Stop accepting votes on the issue."""
    try:
        ensure_service(principal)
        closed_at = engine.close_voting(issue_id)
    except QuadVoteError as err:
        raise_http_error(err)
    return VotingWindowResponse(issue_id=issue_id, closed=True, closed_at=closed_at)


@router.get("/{issue_id}/aggregate", response_model=EncryptedAggregateResponse)
def get_encrypted_aggregate(issue_id: str, engine: VotingEngineDep) -> EncryptedAggregateResponse:
    """Homomorphic sum of the issue's private ballots."""
    return EncryptedAggregateResponse.from_aggregate(engine.encrypted_aggregate(issue_id))


@router.post("/{issue_id}/reveal", response_model=RevealResponse)
def reveal_private_total(
    issue_id: str,
    principal: PrincipalDep,
    engine: VotingEngineDep,
) -> RevealResponse:
    """Decrypt the private total after voting closes."""
    try:
        ensure_service(principal)
        aggregate, revealed = engine.reveal(issue_id)
    except QuadVoteError as err:
        raise_http_error(err)
    return RevealResponse.from_reveal(aggregate, revealed)


@router.post("/{issue_id}/verify-inclusion", response_model=InclusionResponse)
def verify_inclusion(
    issue_id: str,
    payload: InclusionRequest,
    engine: VotingEngineDep,
) -> InclusionResponse:
    """Check that a private ballot from a receipt is folded into the aggregate."""
    try:
        ciphertext = binascii.unhexlify(payload.commitment)
        included = engine.verify_inclusion(issue_id, payload.user_id, ciphertext)
    except (binascii.Error, ValueError) as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Commitment is not a valid ciphertext",
        ) from err
    aggregate = engine.encrypted_aggregate(issue_id)
    return InclusionResponse(
        issue_id=issue_id,
        included=included,
        merkle_root=aggregate.merkle_root,
    )
