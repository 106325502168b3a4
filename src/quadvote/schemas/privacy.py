"""Schemas for encrypted aggregates, reveals and inclusion checks."""

from __future__ import annotations

from pydantic import BaseModel, Field

from quadvote.services.privacy import EncryptedAggregate, RevealedAggregate


class EncryptedAggregateResponse(BaseModel):
    """Homomorphic sum of an issue's private ballots."""

    issue_id: str
    c1: str | None = Field(None, description="Hex group element, sum of ballot nonces times G")
    c2: str | None = Field(None, description="Hex group element, encrypted vote total")
    ballot_count: int
    leaves: list[str] = Field(default_factory=list, description="BLAKE3 ballot digests")
    merkle_root: str

    @classmethod
    def from_aggregate(cls, aggregate: EncryptedAggregate) -> EncryptedAggregateResponse:
        return cls(
            issue_id=aggregate.issue_id,
            c1=aggregate.c1.hex() if aggregate.c1 is not None else None,
            c2=aggregate.c2.hex() if aggregate.c2 is not None else None,
            ballot_count=aggregate.ballot_count,
            leaves=list(aggregate.leaves),
            merkle_root=aggregate.merkle_root,
        )


class DecryptionProofResponse(BaseModel):
    """Chaum-Pedersen proof components, hex-encoded."""

    a: str
    b: str
    response: str


class RevealResponse(BaseModel):
    """Decrypted private total with its proof of correct decryption."""

    issue_id: str
    total_votes: int
    voter_count: int
    ballot_count: int
    merkle_root: str
    proof: DecryptionProofResponse | None = None
    aggregate: EncryptedAggregateResponse

    @classmethod
    def from_reveal(
        cls,
        aggregate: EncryptedAggregate,
        revealed: RevealedAggregate,
    ) -> RevealResponse:
        proof = None
        if revealed.proof is not None:
            proof = DecryptionProofResponse(
                a=revealed.proof.a.hex(),
                b=revealed.proof.b.hex(),
                response=revealed.proof.response.hex(),
            )
        return cls(
            issue_id=revealed.issue_id,
            total_votes=revealed.total_votes,
            voter_count=revealed.voter_count,
            ballot_count=revealed.ballot_count,
            merkle_root=revealed.merkle_root,
            proof=proof,
            aggregate=EncryptedAggregateResponse.from_aggregate(aggregate),
        )


class InclusionRequest(BaseModel):
    """Ballot details copied from a private vote receipt."""

    user_id: str = Field(..., min_length=1, max_length=128)
    commitment: str = Field(..., description="Hex ciphertext from the vote receipt")


class InclusionResponse(BaseModel):
    """Whether the ballot is part of the issue's aggregate."""

    issue_id: str
    included: bool
    merkle_root: str
