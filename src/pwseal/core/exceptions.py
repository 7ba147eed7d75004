"""
Exceptions for pwseal
Everything raised on purpose derives from PwSealError so callers have one catch-all
"""


class PwSealError(Exception):
    # general container for errors
    pass


class InvalidParameterError(PwSealError, ValueError):
    # raised on wrong salt/key/nonce length or non-positive sizes, caller-fixable
    pass


class RecordFormatError(InvalidParameterError):
    # raised when a sealed record is truncated, malformed or of an unknown version
    pass


class CryptoError(PwSealError):
    # general container for cryptographic failures
    pass


class EntropyError(CryptoError):
    # raised when the OS randomness source is unavailable; fatal, no fallback
    pass


class IntegrityError(CryptoError):
    # raised when ciphertext/tag does not verify (wrong key or tampering, never told apart)
    pass
