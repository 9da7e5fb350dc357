"""
ShareBox dealer — split a secret, commit to it, and seal one share per recipient.

A distribution is:
1. The secret encoded as a scalar and placed at f(0) of a random polynomial
2. One Feldman commitment point per coefficient
3. f(i) for each participant's canonical index i, sealed to their public key
4. A dealer proof binding the commitment to the threshold and participant list

Any threshold participants can reconstruct; fewer learn nothing about the
secret. Every participant can check their own share against the commitment.
"""

import logging
from typing import Sequence, Union

from . import codec
from . import commitment as commitments
from . import crypto
from .bundle import CIPHERTEXT_SIZE, DistributionBundle, bundle_transcript
from .curve import Point, coerce_point
from .errors import InvalidThreshold, ShareBoxError, ValidationError
from .polynomial import canonical_index, evaluate, generate_polynomial

logger = logging.getLogger(__name__)


def _check_threshold(threshold: int, participants: int) -> None:
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise InvalidThreshold(f"Threshold must be an integer, got {threshold!r}")
    if threshold < 1:
        raise InvalidThreshold("Threshold must be >= 1")
    if threshold > participants:
        raise InvalidThreshold(
            f"Threshold {threshold} exceeds participant count {participants}"
        )


def distribute_secret(secret: bytes, public_keys: Sequence[Union[Point, bytes]],
                      threshold: int) -> DistributionBundle:
    """
    Split ``secret`` among ``public_keys`` so any ``threshold`` can recover it.

    Args:
        secret: Payload of at most codec.CAPACITY bytes
        public_keys: Participant public keys (Points or 33-byte encodings), in
            the order the bundle should list them
        threshold: Shares needed to reconstruct

    Returns:
        DistributionBundle

    Raises:
        InvalidThreshold: threshold outside 1..len(public_keys)
        PayloadTooLarge: secret longer than codec.CAPACITY
        ValidationError: duplicate public keys (or colliding indices)
        CryptoError: a public key is not a valid curve point
        EntropyError: no secure randomness
    """
    keys = tuple(coerce_point(pk) for pk in public_keys)
    _check_threshold(threshold, len(keys))
    if len(set(keys)) != len(keys):
        raise ValidationError("Public keys must be distinct")

    indices = [canonical_index(pk) for pk in keys]
    if len(set(indices)) != len(indices):
        raise ValidationError("Participant indices collide")

    secret_scalar = codec.bytes_to_secret(secret)
    polynomial = generate_polynomial(secret_scalar, threshold)
    commitment = commitments.commit(polynomial)

    sealed = tuple(
        crypto.encrypt(evaluate(polynomial, index).to_bytes(), pk)
        for pk, index in zip(keys, indices)
    )

    proof = commitments.prove_coefficients(
        polynomial, commitment, bundle_transcript(threshold, keys)
    )

    # Nothing below needs the coefficients
    del polynomial, secret_scalar

    bundle = DistributionBundle(
        threshold=threshold,
        public_keys=keys,
        commitment=commitment,
        encrypted_shares=sealed,
        proof=proof,
    )
    logger.debug(
        "Distributed bundle %s: %d-of-%d", bundle.bundle_id, threshold, len(keys)
    )
    return bundle


def verify_distribution_shares(bundle: Union[DistributionBundle, bytes]) -> bool:
    """
    Public consistency check of a bundle. Decrypts nothing, needs no key.

    Checks the commitment length and points, that the public keys are valid,
    distinct and have distinct indices, that there is one well-formed sealed
    share per key in listing order, and the dealer proof.
    """
    try:
        if isinstance(bundle, (bytes, bytearray)):
            bundle = DistributionBundle.from_bytes(bytes(bundle))
        return _verify_bundle(bundle)
    except ShareBoxError as e:
        logger.debug("Bundle rejected: %s", e)
        return False


def _verify_bundle(bundle: DistributionBundle) -> bool:
    threshold = bundle.threshold
    keys = bundle.public_keys
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        return False
    if not 1 <= threshold <= len(keys):
        return False

    commitment = bundle.commitment
    if not isinstance(commitment, commitments.Commitment):
        return False
    if not all(isinstance(point, Point) for point in commitment):
        return False
    if len(commitment) != threshold or not commitment.is_valid():
        return False

    if not all(isinstance(pk, Point) and pk.is_valid() for pk in keys):
        return False
    if len(set(keys)) != len(keys):
        return False
    if len({canonical_index(pk) for pk in keys}) != len(keys):
        return False

    if len(bundle.encrypted_shares) != len(keys):
        return False
    for pk, sealed in zip(keys, bundle.encrypted_shares):
        if not isinstance(sealed, crypto.EncryptedShare):
            return False
        if not isinstance(sealed.ephemeral_public_key, Point):
            return False
        if sealed.recipient != pk or not sealed.ephemeral_public_key.is_valid():
            return False
        if len(sealed.nonce) != crypto.NONCE_SIZE or len(sealed.tag) != crypto.TAG_SIZE:
            return False
        if len(sealed.ciphertext) != CIPHERTEXT_SIZE:
            return False

    if not isinstance(bundle.proof, commitments.DealerProof):
        return False
    return commitments.verify_coefficients(bundle.proof, commitment, bundle.transcript())


class Dealer:
    """
    The distributing role. Stateless: every call produces an independent
    bundle and keeps nothing afterwards. May live in the same process as any
    number of Participant instances.
    """

    def distribute_secret(self, secret: bytes, public_keys: Sequence[Union[Point, bytes]],
                          threshold: int) -> DistributionBundle:
        return distribute_secret(secret, public_keys, threshold)

    def verify_distribution_shares(self, bundle: Union[DistributionBundle, bytes]) -> bool:
        return verify_distribution_shares(bundle)
