"""
ShareBox secret codec — bytes <-> one field element.

A payload b encodes to int(0x01 || b). The marker byte keeps leading zero
bytes and the empty payload lossless and makes every encoded secret nonzero.
0x01 followed by 31 bytes is below 2^249 < N, so 31 bytes is the capacity.
"""

from .curve import N
from .errors import CryptoError, PayloadTooLarge, ValidationError


MARKER = 0x01
CAPACITY = 31


def bytes_to_secret(payload: bytes) -> int:
    """
    Encode a payload of at most CAPACITY bytes as a scalar.

    Raises:
        ValidationError: payload is not bytes-like
        PayloadTooLarge: len(payload) > CAPACITY
    """
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise ValidationError(f"Secret must be bytes, got {type(payload).__name__}")
    payload = bytes(payload)
    if len(payload) > CAPACITY:
        raise PayloadTooLarge(
            f"Secret must be <= {CAPACITY} bytes, got {len(payload)}"
        )
    return int.from_bytes(bytes([MARKER]) + payload, 'big')


def secret_to_bytes(secret: int) -> bytes:
    """
    Decode a scalar produced by bytes_to_secret.

    Raises:
        CryptoError: the scalar does not carry the marker byte, which is what
            interpolating shares from different polynomials produces
    """
    if not isinstance(secret, int) or not 0 < secret < N:
        raise CryptoError("Secret scalar out of range")
    length = (secret.bit_length() + 7) // 8
    raw = secret.to_bytes(length, 'big')
    if raw[0] != MARKER or len(raw) > CAPACITY + 1:
        raise CryptoError("Scalar is not an encoded secret")
    return raw[1:]
