"""
ShareBox error taxonomy.

Invalid input raises a ValueError subclass (as the rest of the codebase always
has), so callers that only care about "bad data" can keep catching ValueError.
"""


class ShareBoxError(Exception):
    """Base class for every error raised by sharebox."""


class ValidationError(ShareBoxError, ValueError):
    """Bad parameters or a malformed bundle shape."""


class InvalidThreshold(ValidationError):
    """Threshold outside 1..len(public_keys)."""


class PayloadTooLarge(ValidationError):
    """Secret payload exceeds the codec capacity of one field element."""


class InsufficientShares(ValidationError):
    """Fewer shares than the threshold were supplied for reconstruction."""


class DuplicateIndex(ValidationError):
    """Two supplied shares carry the same participant index."""


class CryptoError(ShareBoxError, ValueError):
    """Invalid point or scalar encoding, or an impossible field operation."""


class DecryptionError(CryptoError):
    """Authenticated decryption failed (wrong key or tampered ciphertext)."""


class ShareMismatch(ShareBoxError):
    """A share decrypted fine but is not on the committed polynomial."""


class EntropyError(ShareBoxError, RuntimeError):
    """The secure randomness source is unavailable. Fatal."""


class ProtocolStateError(ShareBoxError, RuntimeError):
    """A participant operation was called out of protocol order."""
