"""
ShareBox field math: secp256k1 scalars and points.

Scalars live in Z_N where N is the (prime) group order; the Shamir polynomial
is defined over the same field, so a coefficient a commits to a*G directly.

Points are affine and immutable. The identity exists for intermediate results
but has no wire encoding, so it can never be decoded from untrusted input.
"""

import hashlib
import os
import secrets
import struct
from dataclasses import dataclass, field
from typing import Optional

from .errors import CryptoError, EntropyError


# secp256k1, SEC 2 section 2.4.1. Cofactor 1: every valid point is in the group.
P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
B = 7
GX = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
GY = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

SCALAR_SIZE = 32
POINT_SIZE = 33  # SEC1 compressed


# ==========================================================================
# Scalars
# ==========================================================================

def scalar_add(a: int, b: int) -> int:
    return (a + b) % N


def scalar_mul(a: int, b: int) -> int:
    return (a * b) % N


def scalar_neg(a: int) -> int:
    return (-a) % N


def scalar_inv(a: int) -> int:
    """Modular multiplicative inverse in Z_N."""
    a %= N
    if a == 0:
        raise CryptoError("Zero has no inverse modulo the group order")
    return pow(a, -1, N)


def scalar_to_bytes(a: int) -> bytes:
    if not 0 <= a < N:
        raise CryptoError("Scalar out of range")
    return a.to_bytes(SCALAR_SIZE, 'big')


def scalar_from_bytes(data: bytes) -> int:
    """Decode a 32-byte big-endian scalar, rejecting values >= N."""
    if len(data) != SCALAR_SIZE:
        raise CryptoError(f"Scalar must be {SCALAR_SIZE} bytes, got {len(data)}")
    value = int.from_bytes(data, 'big')
    if value >= N:
        raise CryptoError("Scalar encoding is not reduced modulo the group order")
    return value


def random_bytes(length: int) -> bytes:
    """Bytes from the OS CSPRNG. There is no fallback source."""
    try:
        return os.urandom(length)
    except (NotImplementedError, OSError) as e:
        raise EntropyError(f"Secure randomness unavailable: {e}") from e


def random_scalar() -> int:
    """Uniform scalar in [1, N-1]."""
    try:
        return secrets.randbelow(N - 1) + 1
    except (NotImplementedError, OSError) as e:
        raise EntropyError(f"Secure randomness unavailable: {e}") from e


def hash_to_scalar(domain: bytes, *parts: bytes) -> int:
    """
    SHA-256 over a domain tag and length-prefixed parts, reduced mod N.

    Length prefixes keep (b"ab", b"c") and (b"a", b"bc") distinct.
    """
    h = hashlib.sha256()
    h.update(struct.pack('>I', len(domain)) + domain)
    for part in parts:
        h.update(struct.pack('>I', len(part)))
        h.update(part)
    return int.from_bytes(h.digest(), 'big') % N


# ==========================================================================
# Points
# ==========================================================================

class Point:
    """An affine secp256k1 point. ``Point(None, None)`` is the identity."""

    __slots__ = ('x', 'y')

    def __init__(self, x: Optional[int], y: Optional[int]):
        self.x = x
        self.y = y

    @classmethod
    def identity(cls) -> "Point":
        return cls(None, None)

    @property
    def is_identity(self) -> bool:
        return self.x is None

    def is_valid(self) -> bool:
        """True iff this is a non-identity point on the curve."""
        if self.is_identity or self.y is None:
            return False
        x, y = self.x, self.y
        if not (0 <= x < P and 0 <= y < P):
            return False
        return (y * y - x * x * x - B) % P == 0

    def __eq__(self, other) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __neg__(self) -> "Point":
        if self.is_identity:
            return self
        return Point(self.x, (-self.y) % P)

    def __add__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        if self.is_identity:
            return other
        if other.is_identity:
            return self

        if self.x == other.x:
            if (self.y + other.y) % P == 0:
                return Point.identity()
            # Doubling
            lam = (3 * self.x * self.x) * pow(2 * self.y, -1, P) % P
        else:
            lam = (other.y - self.y) * pow(other.x - self.x, -1, P) % P

        x3 = (lam * lam - self.x - other.x) % P
        y3 = (lam * (self.x - x3) - self.y) % P
        return Point(x3, y3)

    def __sub__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        return self + (-other)

    def __mul__(self, scalar: int) -> "Point":
        """Double-and-add. Not constant time."""
        if not isinstance(scalar, int):
            return NotImplemented
        k = scalar % N
        result = Point.identity()
        addend = self
        while k:
            if k & 1:
                result = result + addend
            addend = addend + addend
            k >>= 1
        return result

    __rmul__ = __mul__

    def to_bytes(self) -> bytes:
        """SEC1 compressed encoding: 0x02/0x03 parity prefix + 32-byte x."""
        if not self.is_valid():
            raise CryptoError("Only valid non-identity points can be encoded")
        prefix = b'\x03' if self.y & 1 else b'\x02'
        return prefix + self.x.to_bytes(32, 'big')

    @classmethod
    def from_bytes(cls, data: bytes) -> "Point":
        """
        Decode and validate a compressed point.

        Raises:
            CryptoError: wrong length or prefix, x >= p, or x not on the curve
        """
        if len(data) != POINT_SIZE:
            raise CryptoError(f"Point must be {POINT_SIZE} bytes, got {len(data)}")
        prefix = data[0]
        if prefix not in (2, 3):
            raise CryptoError(f"Unsupported point prefix 0x{prefix:02x}")

        x = int.from_bytes(data[1:], 'big')
        if x >= P:
            raise CryptoError("Point x-coordinate not reduced modulo p")

        rhs = (pow(x, 3, P) + B) % P
        # p = 3 mod 4, so the square root is a single exponentiation
        y = pow(rhs, (P + 1) // 4, P)
        if (y * y) % P != rhs:
            raise CryptoError("Point is not on the curve")
        if (y & 1) != (prefix & 1):
            y = P - y
        return cls(x, y)

    def hex(self) -> str:
        return self.to_bytes().hex()

    def __repr__(self) -> str:
        if self.is_identity:
            return "Point(identity)"
        if not self.is_valid():
            return f"Point(invalid x={self.x:#x})"
        return f"Point({self.hex()})"


G = Point(GX, GY)


def coerce_point(value) -> Point:
    """Accept a Point or its 33-byte encoding; return a validated Point."""
    if isinstance(value, Point):
        if not value.is_valid():
            raise CryptoError("Point is not a valid curve point")
        return value
    if isinstance(value, (bytes, bytearray)):
        return Point.from_bytes(bytes(value))
    raise CryptoError(f"Expected a Point or its encoding, got {type(value).__name__}")


# ==========================================================================
# Key pairs
# ==========================================================================

@dataclass(frozen=True)
class KeyPair:
    """A private scalar and its public point. The repr omits the scalar."""

    private_key: int = field(repr=False)
    public_key: Point

    @classmethod
    def generate(cls) -> "KeyPair":
        """Fresh key pair from the OS CSPRNG."""
        d = random_scalar()
        return cls(private_key=d, public_key=G * d)

    @classmethod
    def from_private_key(cls, private_key: int) -> "KeyPair":
        if not isinstance(private_key, int) or not 0 < private_key < N:
            raise CryptoError("Private key must be an integer in [1, N-1]")
        return cls(private_key=private_key, public_key=G * private_key)
