"""Confidential ballots via exponential ElGamal over the Ed25519 group.

A private vote of ``v`` is stored as the ciphertext ``(rG, vG + rX)`` where
``X = xG`` is the tally public key. Ciphertexts add component-wise, so the
sum of any set of ballots can be decrypted with ``x`` without decrypting a
single ballot on its own. Decryption yields ``(sum v)G``; the small total is
recovered by bounded search. A Chaum-Pedersen proof shows the reveal used the
key matching ``X`` without disclosing it.

The tally secret key stands in for an external threshold-decryption service:
whoever holds it can decrypt any single ciphertext, so it must live with the
trustees, never alongside the public API.
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Sequence
from dataclasses import dataclass

import blake3
from nacl import bindings
from nacl.exceptions import CryptoError

from quadvote.core.settings import settings
from quadvote.services.errors import InvalidVoteCountError, PrivacyServiceUnavailableError

POINT_BYTES = 32
SCALAR_BYTES = 32
CIPHERTEXT_BYTES = 2 * POINT_BYTES
_DLEQ_DOMAIN = b"quadvote/tally-dleq/v1"
_MERKLE_NODE = b"\x01"


def _scalar(value: int) -> bytes:
    return value.to_bytes(SCALAR_BYTES, "little")


def _random_scalar() -> bytes:
    return bindings.crypto_core_ed25519_scalar_reduce(secrets.token_bytes(64))


def _base_mul(scalar: bytes) -> bytes:
    return bindings.crypto_scalarmult_ed25519_base_noclamp(scalar)


def _mul(scalar: bytes, point: bytes) -> bytes:
    return bindings.crypto_scalarmult_ed25519_noclamp(scalar, point)


def _add(p: bytes, q: bytes) -> bytes:
    return bindings.crypto_core_ed25519_add(p, q)


def _sub(p: bytes, q: bytes) -> bytes:
    return bindings.crypto_core_ed25519_sub(p, q)


BASE_POINT = _base_mul(_scalar(1))


def _challenge(*parts: bytes) -> bytes:
    digest = hashlib.sha512(_DLEQ_DOMAIN + b"".join(parts)).digest()
    return bindings.crypto_core_ed25519_scalar_reduce(digest)


def merkle_root(leaves: Sequence[str]) -> str:
    """Return the BLAKE3 Merkle root over hex-encoded leaf digests."""
    if not leaves:
        return blake3.blake3(b"").hexdigest()
    level = [bytes.fromhex(leaf) for leaf in leaves]
    while len(level) > 1:
        paired: list[bytes] = []
        for index in range(0, len(level), 2):
            if index + 1 == len(level):
                paired.append(level[index])
                continue
            paired.append(blake3.blake3(_MERKLE_NODE + level[index] + level[index + 1]).digest())
        level = paired
    return level[0].hex()


@dataclass(frozen=True)
class TallyKeyPair:
    """Tally key material; ``secret_key`` belongs to the trustees."""

    public_key: bytes
    secret_key: bytes

    @property
    def public_hex(self) -> str:
        return self.public_key.hex()

    @property
    def secret_hex(self) -> str:
        return self.secret_key.hex()


def generate_keypair() -> TallyKeyPair:
    """Create a fresh tally key pair."""
    secret = _random_scalar()
    return TallyKeyPair(public_key=_base_mul(secret), secret_key=secret)


@dataclass(frozen=True)
class Commitment:
    """An encrypted ballot bound to its issue and voter."""

    issue_id: str
    user_id: str
    c1: bytes
    c2: bytes

    @property
    def ciphertext(self) -> bytes:
        return self.c1 + self.c2

    @property
    def digest(self) -> str:
        """BLAKE3 digest used as the ballot's public inclusion leaf."""
        hasher = blake3.blake3(self.issue_id.encode())
        hasher.update(b"\x00")
        hasher.update(self.user_id.encode())
        hasher.update(b"\x00")
        hasher.update(self.ciphertext)
        return hasher.hexdigest()

    @classmethod
    def from_ciphertext(cls, issue_id: str, user_id: str, ciphertext: bytes) -> Commitment:
        """Rebuild a commitment from its stored ``c1 || c2`` form."""
        if len(ciphertext) != CIPHERTEXT_BYTES:
            raise ValueError("Ciphertext must be 64 bytes")
        c1, c2 = ciphertext[:POINT_BYTES], ciphertext[POINT_BYTES:]
        if not (
            bindings.crypto_core_ed25519_is_valid_point(c1)
            and bindings.crypto_core_ed25519_is_valid_point(c2)
        ):
            raise ValueError("Ciphertext is not a pair of valid group elements")
        return cls(issue_id=issue_id, user_id=user_id, c1=c1, c2=c2)


@dataclass(frozen=True)
class EncryptedAggregate:
    """Homomorphic sum of an issue's ballots plus the list of folded leaves."""

    issue_id: str
    c1: bytes | None
    c2: bytes | None
    leaves: tuple[str, ...]
    merkle_root: str

    @property
    def ballot_count(self) -> int:
        return len(self.leaves)

    @property
    def is_empty(self) -> bool:
        return self.c1 is None


@dataclass(frozen=True)
class DecryptionProof:
    """Chaum-Pedersen proof that the reveal used the tally secret key."""

    a: bytes
    b: bytes
    response: bytes


@dataclass(frozen=True)
class RevealedAggregate:
    """Decrypted total of an issue's private ballots."""

    issue_id: str
    total_votes: int
    voter_count: int
    ballot_count: int
    merkle_root: str
    proof: DecryptionProof | None


class PrivacyLayer:
    """Encrypts, aggregates and reveals private ballots."""

    def __init__(
        self,
        public_key: bytes | None,
        secret_key: bytes | None = None,
        *,
        max_total: int | None = None,
    ) -> None:
        self.public_key = public_key
        self.secret_key = secret_key
        self.max_total = settings.tally_max_total if max_total is None else max_total

    @property
    def available(self) -> bool:
        """True when ballots can be encrypted."""
        return self.public_key is not None

    def commit(self, issue_id: str, user_id: str, votes: int) -> Commitment:
        """Encrypt ``votes`` for ``issue_id`` under the tally public key.

        Raises:
            PrivacyServiceUnavailableError: No tally public key is configured.
        """
        if self.public_key is None:
            raise PrivacyServiceUnavailableError("Private voting is not available")
        if votes <= 0:
            raise InvalidVoteCountError(votes)
        nonce = _random_scalar()
        c1 = _base_mul(nonce)
        c2 = _add(_base_mul(_scalar(votes)), _mul(nonce, self.public_key))
        return Commitment(issue_id=issue_id, user_id=user_id, c1=c1, c2=c2)

    def aggregate_commitments(
        self,
        issue_id: str,
        commitments: Sequence[Commitment],
    ) -> EncryptedAggregate:
        """Fold ``commitments`` into one ciphertext carrying only their sum."""
        c1: bytes | None = None
        c2: bytes | None = None
        leaves: list[str] = []
        for commitment in commitments:
            if commitment.issue_id != issue_id:
                raise ValueError(
                    f"Commitment for issue {commitment.issue_id} cannot join aggregate {issue_id}"
                )
            c1 = commitment.c1 if c1 is None else _add(c1, commitment.c1)
            c2 = commitment.c2 if c2 is None else _add(c2, commitment.c2)
            leaves.append(commitment.digest)
        return EncryptedAggregate(
            issue_id=issue_id,
            c1=c1,
            c2=c2,
            leaves=tuple(leaves),
            merkle_root=merkle_root(leaves),
        )

    def reveal_aggregate(
        self,
        aggregate: EncryptedAggregate,
        voter_count: int | None = None,
    ) -> RevealedAggregate:
        """Decrypt the aggregate total and prove the decryption was honest.

        ``voter_count`` defaults to the number of folded ballots.

        Raises:
            PrivacyServiceUnavailableError: The tally secret key is not held here.
            ValueError: The total exceeds the configured search bound.
        """
        if self.secret_key is None or self.public_key is None:
            raise PrivacyServiceUnavailableError("Tally decryption key is not configured")
        voters = aggregate.ballot_count if voter_count is None else voter_count
        if aggregate.c1 is None or aggregate.c2 is None:
            return RevealedAggregate(
                issue_id=aggregate.issue_id,
                total_votes=0,
                voter_count=0,
                ballot_count=0,
                merkle_root=aggregate.merkle_root,
                proof=None,
            )

        shared = _mul(self.secret_key, aggregate.c1)
        total = self._discrete_log(_sub(aggregate.c2, shared))

        nonce = _random_scalar()
        a = _base_mul(nonce)
        b = _mul(nonce, aggregate.c1)
        challenge = _challenge(BASE_POINT, self.public_key, aggregate.c1, shared, a, b)
        response = bindings.crypto_core_ed25519_scalar_add(
            nonce, bindings.crypto_core_ed25519_scalar_mul(challenge, self.secret_key)
        )
        return RevealedAggregate(
            issue_id=aggregate.issue_id,
            total_votes=total,
            voter_count=voters,
            ballot_count=aggregate.ballot_count,
            merkle_root=aggregate.merkle_root,
            proof=DecryptionProof(a=a, b=b, response=response),
        )

    def verify_reveal(self, aggregate: EncryptedAggregate, revealed: RevealedAggregate) -> bool:
        """Check a reveal against the aggregate using only public values."""
        if self.public_key is None:
            raise PrivacyServiceUnavailableError("Tally public key is not configured")
        if revealed.issue_id != aggregate.issue_id or revealed.merkle_root != aggregate.merkle_root:
            return False
        if aggregate.c1 is None or aggregate.c2 is None:
            return revealed.total_votes == 0 and revealed.proof is None
        proof = revealed.proof
        if proof is None or revealed.total_votes <= 0:
            return False
        try:
            shared = _sub(aggregate.c2, _base_mul(_scalar(revealed.total_votes)))
            challenge = _challenge(BASE_POINT, self.public_key, aggregate.c1, shared, proof.a, proof.b)
            key_matches = _base_mul(proof.response) == _add(proof.a, _mul(challenge, self.public_key))
            share_matches = _mul(proof.response, aggregate.c1) == _add(
                proof.b, _mul(challenge, shared)
            )
        except (CryptoError, ValueError):
            return False
        return key_matches and share_matches

    def verify_inclusion(self, commitment: Commitment, aggregate: EncryptedAggregate) -> bool:
        """Confirm ``commitment`` was folded into ``aggregate``."""
        if commitment.issue_id != aggregate.issue_id:
            return False
        if commitment.digest not in aggregate.leaves:
            return False
        return merkle_root(aggregate.leaves) == aggregate.merkle_root

    def verify_aggregate(
        self,
        aggregate: EncryptedAggregate,
        commitments: Sequence[Commitment],
    ) -> bool:
        """Recompute the homomorphic sum from ballots and compare."""
        rebuilt = self.aggregate_commitments(aggregate.issue_id, commitments)
        return rebuilt == aggregate

    def _discrete_log(self, point: bytes) -> int:
        candidate = BASE_POINT
        for total in range(1, self.max_total + 1):
            if candidate == point:
                return total
            candidate = _add(candidate, BASE_POINT)
        raise ValueError(f"Aggregate total exceeds the search bound of {self.max_total}")


def _decode_key(value: str | None) -> bytes | None:
    if not value:
        return None
    key = bytes.fromhex(value.strip())
    if len(key) != POINT_BYTES:
        raise ValueError("Tally keys must be 32 bytes, hex-encoded")
    return key


def get_privacy_layer() -> PrivacyLayer:
    """Build the privacy layer from configuration.

    When ``PRIVACY_ENABLED`` is off the layer is unavailable and private
    votes are rejected rather than stored in clear.
    """
    if not settings.privacy_enabled:
        return PrivacyLayer(public_key=None)
    return PrivacyLayer(
        public_key=_decode_key(settings.tally_public_key),
        secret_key=_decode_key(settings.tally_secret_key),
    )
