"""
ShareBox encryption layer — per-recipient authenticated encryption.

ECIES-style: ephemeral secp256k1 key → ECDH with the recipient key →
HKDF-SHA256 → AES-256-GCM. The ciphertext travels as
(ephemeral_public_key, nonce, ciphertext, tag).

Uses the cryptography library for the key agreement, KDF and cipher.
"""

from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .curve import POINT_SIZE, KeyPair, Point, random_bytes
from .errors import CryptoError, DecryptionError


HKDF_INFO = b"sharebox/share-encryption/v1"
KEY_SIZE = 32
NONCE_SIZE = 12  # 96-bit nonce, recommended for AES-GCM
TAG_SIZE = 16


@dataclass(frozen=True)
class EncryptedShare:
    """One recipient's sealed payload, as carried in a bundle."""

    recipient: Point
    ephemeral_public_key: Point
    nonce: bytes
    ciphertext: bytes
    tag: bytes

    def to_bytes(self) -> bytes:
        return (
            self.recipient.to_bytes()
            + self.ephemeral_public_key.to_bytes()
            + self.nonce
            + self.ciphertext
            + self.tag
        )

    @classmethod
    def from_bytes(cls, data: bytes, ciphertext_size: int) -> "EncryptedShare":
        expected = 2 * POINT_SIZE + NONCE_SIZE + ciphertext_size + TAG_SIZE
        if len(data) != expected:
            raise CryptoError(f"Encrypted share must be {expected} bytes, got {len(data)}")
        pos = 0
        recipient = Point.from_bytes(data[pos:pos + POINT_SIZE])
        pos += POINT_SIZE
        ephemeral = Point.from_bytes(data[pos:pos + POINT_SIZE])
        pos += POINT_SIZE
        nonce = data[pos:pos + NONCE_SIZE]
        pos += NONCE_SIZE
        ciphertext = data[pos:pos + ciphertext_size]
        pos += ciphertext_size
        return cls(
            recipient=recipient,
            ephemeral_public_key=ephemeral,
            nonce=nonce,
            ciphertext=ciphertext,
            tag=data[pos:],
        )


def _derive_key(private_key: int, peer: Point, ephemeral: Point, recipient: Point) -> bytes:
    """ECDH(private_key, peer) → HKDF-SHA256 bound to both public keys."""
    try:
        own = ec.derive_private_key(private_key, ec.SECP256K1())
        peer_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), peer.to_bytes())
        shared = own.exchange(ec.ECDH(), peer_key)
    except ValueError as e:
        raise CryptoError(f"Key agreement failed: {e}") from e

    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=None,
        info=HKDF_INFO + ephemeral.to_bytes() + recipient.to_bytes(),
    ).derive(shared)


def _associated_data(recipient: Point, ephemeral: Point) -> bytes:
    return recipient.to_bytes() + ephemeral.to_bytes()


def encrypt(plaintext: bytes, recipient: Point) -> EncryptedShare:
    """
    Seal plaintext to the recipient's public key.

    Args:
        plaintext: Data to encrypt
        recipient: Recipient's public point

    Returns:
        EncryptedShare with a fresh ephemeral key and nonce

    Raises:
        CryptoError: recipient is not a valid point
        EntropyError: no secure randomness
    """
    if not recipient.is_valid():
        raise CryptoError("Recipient public key is not a valid curve point")

    ephemeral = KeyPair.generate()
    key = _derive_key(ephemeral.private_key, recipient, ephemeral.public_key, recipient)
    nonce = random_bytes(NONCE_SIZE)

    # Returns ciphertext + 16-byte tag appended
    ct_with_tag = AESGCM(key).encrypt(
        nonce, plaintext, _associated_data(recipient, ephemeral.public_key)
    )
    return EncryptedShare(
        recipient=recipient,
        ephemeral_public_key=ephemeral.public_key,
        nonce=nonce,
        ciphertext=ct_with_tag[:-TAG_SIZE],
        tag=ct_with_tag[-TAG_SIZE:],
    )


def decrypt(sealed: EncryptedShare, keypair: KeyPair) -> bytes:
    """
    Open a sealed share with the recipient's key pair.

    Raises:
        DecryptionError: wrong key, or any tampered field (tag mismatch)
        CryptoError: malformed ephemeral key or nonce
    """
    if len(sealed.nonce) != NONCE_SIZE:
        raise CryptoError(f"Nonce must be {NONCE_SIZE} bytes, got {len(sealed.nonce)}")
    if len(sealed.tag) != TAG_SIZE:
        raise DecryptionError("Authentication tag has the wrong length")

    key = _derive_key(
        keypair.private_key, sealed.ephemeral_public_key,
        sealed.ephemeral_public_key, keypair.public_key,
    )
    try:
        return AESGCM(key).decrypt(
            sealed.nonce,
            sealed.ciphertext + sealed.tag,
            _associated_data(keypair.public_key, sealed.ephemeral_public_key),
        )
    except InvalidTag as e:
        raise DecryptionError("Decryption failed (wrong key or tampered data)") from e
