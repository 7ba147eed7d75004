"""AES-256-GCM authenticated encryption with detached tag.

GCM runs AES in counter mode seeded from the nonce, so input of any length is
handled without padding and every block depends on the nonce. The 128-bit tag
covers the ciphertext and any associated data and is checked in constant time
before plaintext is returned.
"""
import logging
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from pwseal.core.exceptions import IntegrityError, InvalidParameterError


logger = logging.getLogger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


def _check_sizes(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise InvalidParameterError(f"key must be {KEY_SIZE} bytes, got {len(key)}")
    if len(nonce) != NONCE_SIZE:
        raise InvalidParameterError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")


def encrypt(
    plaintext: bytes, key: bytes, nonce: bytes, aad: Optional[bytes] = None
) -> Tuple[bytes, bytes]:
    """Encrypt ``plaintext`` and return ``(ciphertext, tag)``.

    The caller must never reuse ``nonce`` with the same key.
    """
    _check_sizes(key, nonce)
    ct_full = AESGCM(key).encrypt(bytes(nonce), bytes(plaintext), aad)
    return ct_full[:-TAG_SIZE], ct_full[-TAG_SIZE:]


def decrypt(
    ciphertext: bytes, tag: bytes, key: bytes, nonce: bytes, aad: Optional[bytes] = None
) -> bytes:
    """Verify ``tag`` and return the plaintext, or raise :class:`IntegrityError`."""
    _check_sizes(key, nonce)
    if len(tag) != TAG_SIZE:
        raise InvalidParameterError(f"tag must be {TAG_SIZE} bytes, got {len(tag)}")
    try:
        return AESGCM(key).decrypt(bytes(nonce), bytes(ciphertext) + bytes(tag), aad)
    except InvalidTag:
        # same message for wrong key and tampering
        raise IntegrityError("ciphertext/tag did not verify") from None
