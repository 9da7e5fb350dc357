"""
ShareBox participant — open your share, vouch for peers, reconstruct.

Lifecycle of one Participant:

    UNINITIALIZED -> INITIALIZED -> BUNDLE_VERIFIED -> SHARE_EXTRACTED
        -> [PEER_VERIFYING]* -> RECONSTRUCTED

RECONSTRUCTED and FAILED are terminal. Peer verification is optional,
repeatable and never touches the participant's own share.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Union

from . import codec
from . import crypto
from .bundle import DistributionBundle, format_proof
from .commitment import ShareProof, prove_share, verify_share_proof, verify_share_value
from .curve import KeyPair, Point, coerce_point
from .dealer import verify_distribution_shares as _verify_distribution
from .errors import (
    CryptoError, DecryptionError, DuplicateIndex, InsufficientShares,
    ProtocolStateError, ShareMismatch, ValidationError,
)
from .polynomial import ShareValue, canonical_index, interpolate_at_zero

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareBox:
    """
    A participant's decrypted share plus the proof that vouches for it.

    Private to its owner. Peers only ever need ``proof``; the value is handed
    over (through the caller's own secure channel) at reconstruction time.
    """

    public_key: Point
    index: int
    value: int = field(repr=False)
    proof: ShareProof

    @property
    def share(self) -> ShareValue:
        return ShareValue(index=self.index, value=self.value)


def _as_keypair(private_key: Union[KeyPair, int]) -> KeyPair:
    if isinstance(private_key, KeyPair):
        return private_key
    return KeyPair.from_private_key(private_key)


def extract_secret_share(bundle: DistributionBundle,
                         private_key: Union[KeyPair, int]) -> ShareBox:
    """
    Decrypt the caller's share and check it against the commitment.

    Args:
        bundle: The dealer's bundle
        private_key: The caller's KeyPair or private scalar

    Returns:
        ShareBox holding the share and a fresh share proof

    Raises:
        ValidationError: the bundle holds no share for this key
        DecryptionError: the sealed share fails authentication
        ShareMismatch: the share decrypts but is not on the committed
            polynomial (cheating dealer)
    """
    keypair = _as_keypair(private_key)
    sealed = bundle.share_for(keypair.public_key)
    if sealed is None:
        raise ValidationError("Bundle holds no share for this public key")
    if len(bundle.commitment) != bundle.threshold:
        raise ValidationError("Commitment length does not match the threshold")

    plaintext = crypto.decrypt(sealed, keypair)
    try:
        share = ShareValue.from_bytes(plaintext)
    except CryptoError as e:
        raise ShareMismatch(f"Dealer sealed a malformed share: {e}") from e

    index = canonical_index(keypair.public_key)
    if share.index != index:
        raise ShareMismatch("Share index does not match the recipient's canonical index")
    if not verify_share_value(bundle.commitment, share):
        logger.warning("Share for bundle %s is not on the committed polynomial",
                       bundle.bundle_id)
        raise ShareMismatch("Share does not match the dealer's commitment")

    proof = prove_share(share, bundle.commitment, keypair.public_key)
    logger.debug("Extracted share from bundle %s", bundle.bundle_id)
    return ShareBox(public_key=keypair.public_key, index=index,
                    value=share.value, proof=proof)


def verify_share(proof_or_share: Union[ShareProof, ShareBox, bytes],
                 bundle: DistributionBundle, public_key: Union[Point, bytes]) -> bool:
    """
    Check a peer's share proof using public data only.

    Args:
        proof_or_share: ShareProof, its 64-byte encoding, or a ShareBox (only
            its proof is used)
        bundle: The dealer's bundle
        public_key: The peer's claimed public key

    Returns:
        True iff the proof shows the peer holds a share on the committed
        polynomial at their canonical index

    Raises:
        CryptoError: the proof or public key cannot be decoded
    """
    pk = coerce_point(public_key)
    if isinstance(proof_or_share, ShareBox):
        if proof_or_share.public_key != pk:
            return False
        proof = proof_or_share.proof
    elif isinstance(proof_or_share, ShareProof):
        proof = proof_or_share
    elif isinstance(proof_or_share, (bytes, bytearray)):
        proof = ShareProof.from_bytes(bytes(proof_or_share))
    else:
        raise CryptoError(f"Unsupported proof type {type(proof_or_share).__name__}")

    index = bundle.index_of(pk)
    if index is None or len(bundle.commitment) != bundle.threshold:
        return False
    return verify_share_proof(proof, index, bundle.commitment, pk)


def reconstruct(share_boxes: Iterable[ShareBox], bundle: DistributionBundle) -> bytes:
    """
    Recover the secret from at least threshold shares.

    Interpolates over every supplied share. Each one is checked against the
    commitment first, so any consistent set gives the same answer.

    Raises:
        InsufficientShares: fewer than bundle.threshold shares
        DuplicateIndex: two shares with the same index
        ValidationError: a share from a key not listed in the bundle
        ShareMismatch: a share that is not on the committed polynomial
    """
    boxes = list(share_boxes)
    if len(boxes) < bundle.threshold:
        raise InsufficientShares(f"Need at least {bundle.threshold} shares, got {len(boxes)}")

    indices = [box.index for box in boxes]
    if len(set(indices)) != len(indices):
        raise DuplicateIndex("Duplicate share indices detected")

    for box in boxes:
        expected = bundle.index_of(box.public_key)
        if expected is None:
            raise ValidationError("Share belongs to a key not listed in the bundle")
        if expected != box.index:
            raise ValidationError("Share index does not match its public key")
        if not verify_share_value(bundle.commitment, box.share):
            logger.warning("Rejected share off the committed polynomial in bundle %s",
                           bundle.bundle_id)
            raise ShareMismatch("Share does not match the dealer's commitment")

    secret = interpolate_at_zero((box.index, box.value) for box in boxes)
    logger.debug("Reconstructed bundle %s from %d shares", bundle.bundle_id, len(boxes))
    return codec.secret_to_bytes(secret)


# ==========================================================================
# Participant role
# ==========================================================================

class ParticipantState(Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZED = 'initialized'
    BUNDLE_VERIFIED = 'bundle_verified'
    SHARE_EXTRACTED = 'share_extracted'
    PEER_VERIFYING = 'peer_verifying'
    RECONSTRUCTED = 'reconstructed'
    FAILED = 'failed'


class Participant:
    """
    The participating role: owns one key pair and at most one extracted share.

    Not thread-safe. Private-key access is unguarded, so sharing one instance
    between threads needs external locking.
    """

    def __init__(self, keypair: Optional[KeyPair] = None):
        self._keypair = keypair
        self._bundle = None
        self._share_box = None
        self.state = (ParticipantState.INITIALIZED if keypair is not None
                      else ParticipantState.UNINITIALIZED)

    @classmethod
    def generate(cls) -> "Participant":
        return cls(KeyPair.generate())

    def __repr__(self) -> str:
        pk = self._keypair.public_key.hex() if self._keypair else None
        return f"Participant(state={self.state.value}, public_key={pk})"

    def _require(self, *states: ParticipantState) -> None:
        if self.state not in states:
            allowed = ', '.join(s.value for s in states)
            raise ProtocolStateError(
                f"Operation not allowed in state {self.state.value} (needs {allowed})"
            )

    def initialize(self) -> None:
        self._require(ParticipantState.UNINITIALIZED)
        self._keypair = KeyPair.generate()
        self.state = ParticipantState.INITIALIZED

    @property
    def public_key(self) -> Point:
        if self._keypair is None:
            raise ProtocolStateError("Participant has no key pair yet")
        return self._keypair.public_key

    @property
    def share_box(self) -> Optional[ShareBox]:
        return self._share_box

    def verify_distribution_shares(self, bundle: DistributionBundle) -> bool:
        """Public bundle check. A false result leaves the state unchanged."""
        self._require(ParticipantState.INITIALIZED, ParticipantState.BUNDLE_VERIFIED)
        if not _verify_distribution(bundle):
            return False
        self._bundle = bundle
        self.state = ParticipantState.BUNDLE_VERIFIED
        return True

    def extract_secret_share(self, bundle: Optional[DistributionBundle] = None) -> ShareBox:
        """Open this participant's share. Authentication or commitment failure is terminal."""
        self._require(ParticipantState.BUNDLE_VERIFIED)
        if bundle is not None and bundle != self._bundle:
            raise ProtocolStateError("Bundle differs from the one that was verified")
        try:
            self._share_box = extract_secret_share(self._bundle, self._keypair)
        except (DecryptionError, ShareMismatch):
            self.state = ParticipantState.FAILED
            raise
        self.state = ParticipantState.SHARE_EXTRACTED
        return self._share_box

    def proof_string(self) -> str:
        """This participant's share proof in the portable text format."""
        self._require(ParticipantState.SHARE_EXTRACTED, ParticipantState.PEER_VERIFYING)
        return format_proof(self._share_box.proof, self.public_key, self._bundle.bundle_id)

    def verify_share(self, proof_or_share: Union[ShareProof, ShareBox, bytes],
                     peer_public_key: Union[Point, bytes]) -> bool:
        """Verify a peer's proof against the verified bundle."""
        self._require(ParticipantState.SHARE_EXTRACTED, ParticipantState.PEER_VERIFYING)
        self.state = ParticipantState.PEER_VERIFYING
        return verify_share(proof_or_share, self._bundle, peer_public_key)

    def reconstruct(self, share_boxes: Iterable[ShareBox]) -> bytes:
        """
        Reconstruct with peers' shares. This participant's own share is added
        when it is not among them. Precondition failures leave the state
        unchanged so more shares can be gathered.
        """
        self._require(ParticipantState.SHARE_EXTRACTED, ParticipantState.PEER_VERIFYING)
        boxes = list(share_boxes)
        if all(box.index != self._share_box.index for box in boxes):
            boxes.append(self._share_box)
        secret = reconstruct(boxes, self._bundle)
        self.state = ParticipantState.RECONSTRUCTED
        return secret
