"""Vote-related endpoints for the quadvote API."""

from fastapi import APIRouter, Query, status

from quadvote.schemas.vote import (
    PublicVoteResponse,
    VoteCastRequest,
    VoteQuoteResponse,
    VoteReceiptResponse,
)
from quadvote.services.errors import QuadVoteError
from quadvote.services.voting import PublicVote, VoteReceipt

from ..dependencies import PrincipalDep, VotingEngineDep, raise_http_error

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/", response_model=VoteReceiptResponse, status_code=status.HTTP_201_CREATED)
def cast_vote(
    vote_data: VoteCastRequest,
    principal: PrincipalDep,
    engine: VotingEngineDep,
) -> VoteReceipt:
    """Cast quadratic votes on an issue, spending votes squared credits."""
    try:
        return engine.cast_vote(
            principal.user_id,
            vote_data.issue_id,
            vote_data.votes,
            private=vote_data.private,
        )
    except QuadVoteError as err:
        raise_http_error(err)


@router.get("/quote", response_model=VoteQuoteResponse)
def quote_votes(
    principal: PrincipalDep,
    engine: VotingEngineDep,
    votes: int = Query(..., ge=0),
) -> dict[str, int | bool]:
    """Price a prospective vote count against the caller's balance."""
    try:
        return engine.quote(principal.user_id, votes)
    except QuadVoteError as err:
        raise_http_error(err)


@router.get("/issue/{issue_id}", response_model=list[PublicVoteResponse])
def list_issue_votes(
    issue_id: str,
    engine: VotingEngineDep,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[PublicVote]:
    """Public transparency listing of an issue's votes."""
    return engine.list_votes(issue_id, limit=limit, offset=offset)
