"""ShareBox — verifiable threshold secret sharing on secp256k1."""

import logging

from .curve import KeyPair, Point
from .codec import bytes_to_secret, secret_to_bytes, CAPACITY
from .commitment import Commitment, ShareProof, DealerProof
from .crypto import EncryptedShare
from .bundle import DistributionBundle, save_bundle, load_bundle, format_proof, parse_proof
from .dealer import distribute_secret, verify_distribution_shares, Dealer
from .participant import (
    extract_secret_share, verify_share, reconstruct,
    ShareBox, Participant, ParticipantState,
)
from .errors import (
    ShareBoxError, ValidationError, InvalidThreshold, PayloadTooLarge,
    InsufficientShares, DuplicateIndex, CryptoError, DecryptionError,
    ShareMismatch, EntropyError, ProtocolStateError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'KeyPair', 'Point',
    'bytes_to_secret', 'secret_to_bytes', 'CAPACITY',
    'Commitment', 'ShareProof', 'DealerProof', 'EncryptedShare',
    'DistributionBundle', 'save_bundle', 'load_bundle', 'format_proof', 'parse_proof',
    'distribute_secret', 'verify_distribution_shares', 'Dealer',
    'extract_secret_share', 'verify_share', 'reconstruct',
    'ShareBox', 'Participant', 'ParticipantState',
    'ShareBoxError', 'ValidationError', 'InvalidThreshold', 'PayloadTooLarge',
    'InsufficientShares', 'DuplicateIndex', 'CryptoError', 'DecryptionError',
    'ShareMismatch', 'EntropyError', 'ProtocolStateError',
]
