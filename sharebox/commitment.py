"""
ShareBox commitment scheme — Feldman commitments plus Fiat-Shamir proofs.

commitment[j] = a_j * G for every coefficient a_j. A share (i, v) is on the
committed polynomial iff

    v * G == sum_j  i^j * commitment[j]        (the "share image" X_i)

Two non-interactive proofs are built on top:

* ShareProof: a participant proves it knows v with v*G == X_i, without
  revealing v. Used for peer verification.
* DealerProof: the dealer proves it knows every committed coefficient, bound
  to the threshold and the participant list. Swapping any commitment point or
  public key invalidates it.

Both are Schnorr-style: commit to a random nonce, hash the public transcript
into the challenge, respond with nonce + challenge * secret. The verifier
recomputes the nonce commitment from the response and checks the challenge.
"""

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

from .curve import (
    G, N, POINT_SIZE, SCALAR_SIZE, Point, hash_to_scalar, random_scalar,
    scalar_add, scalar_from_bytes, scalar_mul, scalar_to_bytes,
)
from .errors import CryptoError, ValidationError
from .polynomial import Polynomial, ShareValue


SHARE_PROOF_DOMAIN = b"sharebox/share-proof/v1"
DEALER_PROOF_DOMAIN = b"sharebox/dealer-proof/v1"
SHARE_PROOF_SIZE = 2 * SCALAR_SIZE


class Commitment:
    """Ordered commitment points, one per coefficient. Public."""

    __slots__ = ('points',)

    def __init__(self, points: Sequence[Point]):
        self.points = tuple(points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __getitem__(self, j: int) -> Point:
        return self.points[j]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return self.points == other.points

    def __hash__(self) -> int:
        return hash(self.points)

    def __repr__(self) -> str:
        return f"Commitment(threshold={len(self.points)})"

    @property
    def threshold(self) -> int:
        return len(self.points)

    def is_valid(self) -> bool:
        return len(self.points) > 0 and all(p.is_valid() for p in self.points)

    def to_bytes(self) -> bytes:
        return b''.join(p.to_bytes() for p in self.points)

    @classmethod
    def from_bytes(cls, data: bytes, threshold: int) -> "Commitment":
        if len(data) != threshold * POINT_SIZE:
            raise ValidationError(
                f"Commitment for threshold {threshold} must be "
                f"{threshold * POINT_SIZE} bytes, got {len(data)}"
            )
        return cls(
            Point.from_bytes(data[i:i + POINT_SIZE])
            for i in range(0, len(data), POINT_SIZE)
        )


def commit(polynomial: Polynomial) -> Commitment:
    """commitment[j] = a_j * G."""
    return Commitment(G * a for a in polynomial.coefficients)


def share_image(commitment: Commitment, index: int) -> Point:
    """sum_j index^j * commitment[j], by Horner's method over points."""
    rev = list(reversed(commitment.points))
    result = rev[0]
    for c in rev[1:]:
        result = (result * index) + c
    return result


def verify_share_value(commitment: Commitment, share: ShareValue) -> bool:
    """Feldman check: share.value * G == share_image(commitment, share.index)."""
    if len(commitment) == 0 or share.index % N == 0:
        return False
    return G * share.value == share_image(commitment, share.index)


# ==========================================================================
# Share proof (peer verification)
# ==========================================================================

@dataclass(frozen=True)
class ShareProof:
    """Fiat-Shamir (challenge, response) for knowledge of a share value."""

    challenge: int
    response: int

    def to_bytes(self) -> bytes:
        return scalar_to_bytes(self.challenge) + scalar_to_bytes(self.response)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ShareProof":
        if len(data) != SHARE_PROOF_SIZE:
            raise CryptoError(f"Share proof must be {SHARE_PROOF_SIZE} bytes, got {len(data)}")
        return cls(
            challenge=scalar_from_bytes(data[:SCALAR_SIZE]),
            response=scalar_from_bytes(data[SCALAR_SIZE:]),
        )


def _share_challenge(public_key: Point, index: int, commitment: Commitment,
                     image: Point, nonce_point: Point) -> int:
    return hash_to_scalar(
        SHARE_PROOF_DOMAIN,
        public_key.to_bytes(),
        scalar_to_bytes(index),
        commitment.to_bytes(),
        image.to_bytes(),
        nonce_point.to_bytes(),
    )


def prove_share(share: ShareValue, commitment: Commitment, public_key: Point) -> ShareProof:
    """
    Prove knowledge of share.value such that value * G == X_index.

    The proof is computed from whatever value is supplied; a value that is not
    on the committed polynomial yields a proof that fails verification.
    """
    image = share_image(commitment, share.index)
    w = random_scalar()
    nonce_point = G * w
    c = _share_challenge(public_key, share.index, commitment, image, nonce_point)
    r = scalar_add(w, scalar_mul(c, share.value))
    return ShareProof(challenge=c, response=r)


def verify_share_proof(proof: ShareProof, index: int, commitment: Commitment,
                       public_key: Point) -> bool:
    """Recompute A = r*G - c*X_index and accept iff H(..., A) == c."""
    if not (0 <= proof.challenge < N and 0 <= proof.response < N):
        return False
    if len(commitment) == 0 or index % N == 0:
        return False

    image = share_image(commitment, index)
    if image.is_identity:
        return False
    nonce_point = G * proof.response - image * proof.challenge
    if nonce_point.is_identity:
        return False
    return _share_challenge(public_key, index, commitment, image, nonce_point) == proof.challenge


# ==========================================================================
# Dealer proof (distribution verification)
# ==========================================================================

@dataclass(frozen=True)
class DealerProof:
    """Batched proof of knowledge of every committed coefficient."""

    challenge: int
    responses: Tuple[int, ...]

    def to_bytes(self) -> bytes:
        return scalar_to_bytes(self.challenge) + b''.join(
            scalar_to_bytes(r) for r in self.responses
        )

    @classmethod
    def from_bytes(cls, data: bytes, threshold: int) -> "DealerProof":
        expected = (threshold + 1) * SCALAR_SIZE
        if len(data) != expected:
            raise ValidationError(f"Dealer proof must be {expected} bytes, got {len(data)}")
        scalars = [
            scalar_from_bytes(data[i:i + SCALAR_SIZE])
            for i in range(0, len(data), SCALAR_SIZE)
        ]
        return cls(challenge=scalars[0], responses=tuple(scalars[1:]))


def _dealer_challenge(transcript: bytes, commitment: Commitment,
                      nonce_points: Sequence[Point]) -> int:
    return hash_to_scalar(
        DEALER_PROOF_DOMAIN,
        transcript,
        commitment.to_bytes(),
        b''.join(p.to_bytes() for p in nonce_points),
    )


def prove_coefficients(polynomial: Polynomial, commitment: Commitment,
                       transcript: bytes) -> DealerProof:
    """
    Prove knowledge of a_j for every commitment[j], bound to ``transcript``
    (threshold and participant keys, see DistributionBundle.transcript).
    """
    nonces = [random_scalar() for _ in polynomial.coefficients]
    nonce_points = [G * w for w in nonces]
    c = _dealer_challenge(transcript, commitment, nonce_points)
    responses = tuple(
        scalar_add(w, scalar_mul(c, a))
        for w, a in zip(nonces, polynomial.coefficients)
    )
    return DealerProof(challenge=c, responses=responses)


def verify_coefficients(proof: DealerProof, commitment: Commitment,
                        transcript: bytes) -> bool:
    if len(proof.responses) != len(commitment) or len(commitment) == 0:
        return False
    if not 0 <= proof.challenge < N:
        return False
    if not all(0 <= r < N for r in proof.responses):
        return False

    nonce_points = []
    for r, point in zip(proof.responses, commitment):
        a = G * r - point * proof.challenge
        if a.is_identity:
            return False
        nonce_points.append(a)
    return _dealer_challenge(transcript, commitment, nonce_points) == proof.challenge
