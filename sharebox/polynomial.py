"""
ShareBox polynomial engine — Shamir splitting over Z_N.

The secret scalar is coefficient 0 of a random polynomial of degree
threshold - 1. Each participant's share is the polynomial evaluated at that
participant's canonical index, which is derived from their public key so every
party computes the same index without coordination.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Iterable, Tuple

from .curve import (
    N, Point, random_scalar, scalar_add, scalar_inv, scalar_mul, scalar_neg,
    scalar_from_bytes, scalar_to_bytes,
)
from .errors import CryptoError, DuplicateIndex, InvalidThreshold, ValidationError


INDEX_DOMAIN = b"sharebox/index/v1"
SHARE_SIZE = 64  # index(32) + value(32)


@dataclass(frozen=True)
class Polynomial:
    """Coefficients a_0..a_{t-1}; a_0 is the secret. Never printed."""

    coefficients: Tuple[int, ...] = field(repr=False)

    @property
    def threshold(self) -> int:
        return len(self.coefficients)

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    def __call__(self, x: int) -> int:
        return _eval_poly(self.coefficients, x)


@dataclass(frozen=True)
class ShareValue:
    """The polynomial evaluated at a participant's canonical index."""

    index: int
    value: int = field(repr=False)

    def to_bytes(self) -> bytes:
        return scalar_to_bytes(self.index) + scalar_to_bytes(self.value)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ShareValue":
        if len(data) != SHARE_SIZE:
            raise CryptoError(f"Share must be {SHARE_SIZE} bytes, got {len(data)}")
        index = scalar_from_bytes(data[:32])
        if index == 0:
            raise CryptoError("Share index must be nonzero")
        return cls(index=index, value=scalar_from_bytes(data[32:]))


def _eval_poly(coeffs: Iterable[int], x: int) -> int:
    """Evaluate polynomial at x using Horner's method in Z_N."""
    result = 0
    for coeff in reversed(tuple(coeffs)):
        result = (result * x + coeff) % N
    return result


def generate_polynomial(secret_scalar: int, threshold: int) -> Polynomial:
    """
    Random polynomial with f(0) = secret_scalar and degree threshold - 1.

    Raises:
        InvalidThreshold: threshold < 1
        CryptoError: secret_scalar outside Z_N
        EntropyError: no secure randomness
    """
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 1:
        raise InvalidThreshold(f"Threshold must be a positive integer, got {threshold!r}")
    if not isinstance(secret_scalar, int) or not 0 <= secret_scalar < N:
        raise CryptoError("Secret scalar must be reduced modulo the group order")

    # a_0 = secret, a_1..a_{t-1} = random
    coeffs = [secret_scalar]
    for _ in range(threshold - 1):
        coeffs.append(random_scalar())
    return Polynomial(coefficients=tuple(coeffs))


def evaluate(polynomial: Polynomial, index: int) -> ShareValue:
    """Share for the participant at ``index``. O(threshold)."""
    if index % N == 0:
        raise ValidationError("Share index must be nonzero")
    return ShareValue(index=index, value=polynomial(index))


def canonical_index(public_key: Point) -> int:
    """
    Map a public key to its evaluation point in [1, N-1].

    SHA-256 over a domain tag and the compressed key, reduced mod N-1, plus one.
    """
    digest = hashlib.sha256(INDEX_DOMAIN + public_key.to_bytes()).digest()
    return int.from_bytes(digest, 'big') % (N - 1) + 1


def interpolate_at_zero(points: Iterable[Tuple[int, int]]) -> int:
    """
    Lagrange interpolation at x = 0 over Z_N using every supplied point.

    Raises:
        DuplicateIndex: two points share an x-coordinate
    """
    points = list(points)
    x_vals = [x % N for x, _ in points]
    if len(set(x_vals)) != len(x_vals):
        raise DuplicateIndex("Duplicate share indices detected")

    secret = 0
    for i, (xi, yi) in enumerate(points):
        # L_i(0) = prod_{j != i} (0 - x_j) / (x_i - x_j)
        numerator = 1
        denominator = 1
        for j, (xj, _) in enumerate(points):
            if i == j:
                continue
            numerator = scalar_mul(numerator, scalar_neg(xj))
            denominator = scalar_mul(denominator, scalar_add(xi, scalar_neg(xj)))

        lagrange = scalar_mul(numerator, scalar_inv(denominator))
        secret = scalar_add(secret, scalar_mul(yi, lagrange))

    return secret
