import logging
import unicodedata
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Union

from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from pwseal.core.exceptions import InvalidParameterError
from pwseal.core.models import DEFAULT_KDF_PARAMS, KDF_ARGON2ID, KdfParams


logger = logging.getLogger(__name__)

Password = Union[str, bytes]


def normalize_password(password: Password) -> bytes:
    """Return the byte form of ``password``.

    Text is NFC-normalized before UTF-8 encoding so visually identical
    passwords typed on different platforms derive the same key. Bytes are
    used verbatim.
    """
    if isinstance(password, str):
        return unicodedata.normalize("NFC", password).encode("utf-8")
    return bytes(password)


def derive_key(password: Password, salt: bytes, params: Optional[KdfParams] = None) -> bytes:
    """
    Derive a key from a password and salt.
    Pure function of its inputs: same password, salt and params give the same key.
    """
    params = params or DEFAULT_KDF_PARAMS
    params.validate()
    if len(salt) != params.salt_size:
        raise InvalidParameterError(f"salt must be {params.salt_size} bytes, got {len(salt)}")

    secret = normalize_password(password)
    logger.debug(
        "deriving %d-byte key with %s (iterations=%d)", params.key_size, params.algorithm, params.iterations
    )

    if params.algorithm == KDF_ARGON2ID:
        return hash_secret_raw(
            secret=secret,
            salt=bytes(salt),
            time_cost=params.iterations,
            memory_cost=params.memory_cost,
            parallelism=params.parallelism,
            hash_len=params.key_size,
            type=Type.ID,
        )

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=params.key_size,
        salt=bytes(salt),
        iterations=params.iterations,
    )
    return kdf.derive(secret)


def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place (best-effort)."""
    for i in range(len(buffer)):
        buffer[i] = 0


@contextmanager
def derived_key(password: Password, salt: bytes, params: Optional[KdfParams] = None) -> Iterator[bytearray]:
    """Yield a derived key as a bytearray and zero it when the block exits."""
    key = bytearray(derive_key(password, salt, params))
    try:
        yield key
    finally:
        wipe(key)


def kdf_params_to_dict(salt: bytes, params: Optional[KdfParams] = None) -> Dict:
    data = (params or DEFAULT_KDF_PARAMS).to_dict()
    data["salt"] = salt.hex()
    return data
