"""
ShareBox distribution bundle — the one artifact a dealer hands to participants.

Wire layout (big-endian):

    threshold (u32) | participant_count (u32)
    | commitment points        threshold x 33 bytes
    | per participant          public_key (33) | ephemeral_public_key (33)
                               | nonce (12) | ciphertext (64) | tag (16)
    | dealer proof             challenge (32) | responses threshold x 32

The bundle is immutable and carries no private material. How it travels
between parties is the caller's business.
"""

import binascii
import hashlib
import json
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .commitment import Commitment, DealerProof, ShareProof
from .crypto import NONCE_SIZE, TAG_SIZE, EncryptedShare
from .curve import POINT_SIZE, SCALAR_SIZE, Point
from .errors import ValidationError
from .polynomial import SHARE_SIZE, canonical_index


BUNDLE_VERSION = 'sharebox_bundle_v1'
PROOF_VERSION = 'SHAREBOX_PROOF_v1'

_HEADER = struct.Struct('>II')
CIPHERTEXT_SIZE = SHARE_SIZE
RECORD_SIZE = 2 * POINT_SIZE + NONCE_SIZE + CIPHERTEXT_SIZE + TAG_SIZE


def bundle_transcript(threshold: int, public_keys: Sequence[Point]) -> bytes:
    """Public context the dealer proof is bound to: threshold and key list."""
    return struct.pack('>I', threshold) + b''.join(pk.to_bytes() for pk in public_keys)


@dataclass(frozen=True)
class DistributionBundle:
    """Threshold, participant keys, commitment, sealed shares, dealer proof."""

    threshold: int
    public_keys: Tuple[Point, ...]
    commitment: Commitment
    encrypted_shares: Tuple[EncryptedShare, ...]
    proof: DealerProof

    @property
    def participant_count(self) -> int:
        return len(self.public_keys)

    @property
    def bundle_id(self) -> str:
        """First 16 hex chars of SHA-256 over the wire bytes."""
        return hashlib.sha256(self.to_bytes()).hexdigest()[:16]

    def transcript(self) -> bytes:
        return bundle_transcript(self.threshold, self.public_keys)

    def index_of(self, public_key: Point) -> Optional[int]:
        """Canonical index of a listed participant, None if not listed."""
        if public_key not in self.public_keys:
            return None
        return canonical_index(public_key)

    def share_for(self, public_key: Point) -> Optional[EncryptedShare]:
        for sealed in self.encrypted_shares:
            if sealed.recipient == public_key:
                return sealed
        return None

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        return (
            _HEADER.pack(self.threshold, len(self.encrypted_shares))
            + self.commitment.to_bytes()
            + b''.join(s.to_bytes() for s in self.encrypted_shares)
            + self.proof.to_bytes()
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DistributionBundle":
        """
        Decode a bundle.

        Raises:
            ValidationError: truncated, trailing data, or impossible counts
            CryptoError: any point or scalar fails to decode
        """
        if len(data) < _HEADER.size:
            raise ValidationError("Bundle too short to be valid")
        threshold, count = _HEADER.unpack_from(data, 0)
        if threshold < 1 or count < threshold:
            raise ValidationError(
                f"Bundle declares threshold {threshold} with {count} participants"
            )

        expected = (
            _HEADER.size
            + threshold * POINT_SIZE
            + count * RECORD_SIZE
            + (threshold + 1) * SCALAR_SIZE
        )
        if len(data) != expected:
            raise ValidationError(f"Bundle must be {expected} bytes, got {len(data)}")

        pos = _HEADER.size
        commitment = Commitment.from_bytes(data[pos:pos + threshold * POINT_SIZE], threshold)
        pos += threshold * POINT_SIZE

        shares = []
        for _ in range(count):
            shares.append(EncryptedShare.from_bytes(data[pos:pos + RECORD_SIZE], CIPHERTEXT_SIZE))
            pos += RECORD_SIZE

        proof = DealerProof.from_bytes(data[pos:], threshold)
        return cls(
            threshold=threshold,
            public_keys=tuple(s.recipient for s in shares),
            commitment=commitment,
            encrypted_shares=tuple(shares),
            proof=proof,
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            'version': BUNDLE_VERSION,
            'bundle_id': self.bundle_id,
            'threshold': self.threshold,
            'participants': self.participant_count,
            'public_keys': [pk.hex() for pk in self.public_keys],
            'commitment': [c.hex() for c in self.commitment],
            'bundle_size': len(self.to_bytes()),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def save_bundle(bundle: DistributionBundle, output_dir: str) -> dict:
    """
    Save a bundle to disk.

    Creates:
        <output_dir>/<bundle_id>/bundle.json — public metadata
        <output_dir>/<bundle_id>/bundle.bin — wire bytes

    Returns dict with file paths.
    """
    bundle_dir = Path(output_dir) / bundle.bundle_id
    bundle_dir.mkdir(parents=True, exist_ok=True)

    meta_path = bundle_dir / 'bundle.json'
    meta_path.write_text(bundle.to_json())

    bin_path = bundle_dir / 'bundle.bin'
    bin_path.write_bytes(bundle.to_bytes())

    return {
        'metadata': str(meta_path),
        'bundle': str(bin_path),
        'directory': str(bundle_dir),
    }


def load_bundle(path: str) -> DistributionBundle:
    """Load a bundle from a bundle.bin file or the directory holding it."""
    p = Path(path)
    if p.is_dir():
        p = p / 'bundle.bin'
    return DistributionBundle.from_bytes(p.read_bytes())


# ==========================================================================
# Portable share proofs
# ==========================================================================

def format_proof(proof: ShareProof, public_key: Point, bundle_id: str) -> str:
    """
    Format a share proof as a portable string.

    Format: SHAREBOX_PROOF_v1:<bundle_id>:<public_key>:<challenge>:<response>:<crc32>
    """
    payload = (
        f"{PROOF_VERSION}:{bundle_id}:{public_key.hex()}:"
        f"{proof.challenge:064x}:{proof.response:064x}"
    )
    return f"{payload}:{_crc32_hex(payload)}"


def parse_proof(proof_str: str) -> tuple:
    """
    Parse a formatted share proof.

    Returns: (bundle_id, public_key, ShareProof)
    Raises ValidationError if format or checksum is invalid, CryptoError if
    the public key or scalars do not decode.
    """
    parts = proof_str.strip().split(':')
    if len(parts) != 6:
        raise ValidationError(f"Invalid proof format: expected 6 parts, got {len(parts)}")
    if parts[0] != PROOF_VERSION:
        raise ValidationError(f"Unknown proof version: {parts[0]}")

    payload = ':'.join(parts[:5])
    if parts[5] != _crc32_hex(payload):
        raise ValidationError("Proof checksum mismatch (corrupted or tampered)")

    bundle_id, pk_hex, c_hex, r_hex = parts[1:5]
    try:
        pk_bytes = bytes.fromhex(pk_hex)
        proof_bytes = bytes.fromhex(c_hex) + bytes.fromhex(r_hex)
    except ValueError as e:
        raise ValidationError(f"Invalid hex in proof: {e}") from e

    return bundle_id, Point.from_bytes(pk_bytes), ShareProof.from_bytes(proof_bytes)


def _crc32_hex(payload: str) -> str:
    """CRC32 checksum (unsigned), 8 hex chars."""
    crc = binascii.crc32(payload.encode()) & 0xFFFFFFFF
    return struct.pack('>I', crc).hex()
