"""Security helpers: random source, password KDF and AEAD primitives for pwseal.

This package provides:
- OS CSPRNG salts and nonces with an injectable source for tests
- PBKDF2-HMAC-SHA256 (default) and Argon2id key derivation
- AES-256-GCM encryption with a detached 128-bit tag
- versioned sealed records tying the three together
"""

from .random import generate_random, generate_salt, generate_nonce
from .kdf import derive_key, derived_key, normalize_password, wipe, kdf_params_to_dict
from .crypto import encrypt, decrypt
from .envelope import seal, unseal, seal_bytes, unseal_bytes

__all__ = [
    "generate_random",
    "generate_salt",
    "generate_nonce",
    "derive_key",
    "derived_key",
    "normalize_password",
    "wipe",
    "kdf_params_to_dict",
    "encrypt",
    "decrypt",
    "seal",
    "unseal",
    "seal_bytes",
    "unseal_bytes",
]
