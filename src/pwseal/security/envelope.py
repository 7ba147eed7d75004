"""
Password-sealed secret records.

``seal`` runs the whole flow: fresh salt, key derivation, fresh nonce,
AES-256-GCM with the record header as associated data, then wipes the key.
``unseal`` re-derives the key from the parameters stored in the record itself,
so records written under an older cost setting keep decrypting after the
default changes.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from pwseal.core.exceptions import IntegrityError, InvalidParameterError, RecordFormatError
from pwseal.core.models import (
    CIPHER_AES256_GCM,
    DEFAULT_KDF_PARAMS,
    RECORD_VERSION,
    KdfParams,
    SealedRecord,
)
from .crypto import KEY_SIZE, NONCE_SIZE, TAG_SIZE, decrypt, encrypt
from .kdf import Password, derived_key
from .random import RandomSource, generate_nonce, generate_salt


logger = logging.getLogger(__name__)

# upper bound on the KDF cost read from untrusted records
DEFAULT_MAX_ITERATIONS = 10_000_000


def seal(
    plaintext: bytes,
    password: Password,
    params: Optional[KdfParams] = None,
    source: Optional[RandomSource] = None,
) -> SealedRecord:
    """Encrypt ``plaintext`` under a key derived from ``password``.

    Args:
        plaintext: data to protect
        password: text (NFC-normalized) or raw bytes
        params: KDF parameter set; defaults to PBKDF2-HMAC-SHA256, 100k iterations
        source: random source override for salt and nonce
    """
    params = params or DEFAULT_KDF_PARAMS
    params.validate()
    if params.key_size != KEY_SIZE:
        raise InvalidParameterError(f"AES-256-GCM needs a {KEY_SIZE}-byte key, params give {params.key_size}")

    salt = generate_salt(params.salt_size, source)
    nonce = generate_nonce(NONCE_SIZE, source)
    # tag placeholder only fixes the tag length written into the header
    record = SealedRecord(salt=salt, nonce=nonce, ciphertext=b"", tag=bytes(TAG_SIZE), kdf=params)
    aad = record.header()

    with derived_key(password, salt, params) as key:
        record.ciphertext, record.tag = encrypt(plaintext, key, nonce, aad)

    logger.debug("sealed %d bytes with %s", len(plaintext), params.algorithm)
    return record


def unseal(
    record: Union[SealedRecord, bytes],
    password: Password,
    max_iterations: Optional[int] = DEFAULT_MAX_ITERATIONS,
) -> bytes:
    """Decrypt a record produced by :func:`seal` (object or binary form).

    Records claiming more than ``max_iterations`` KDF iterations are rejected
    before any derivation; pass ``None`` to lift the bound.
    """
    if not isinstance(record, SealedRecord):
        record = SealedRecord.from_bytes(record)
    if record.version != RECORD_VERSION:
        raise RecordFormatError(f"unsupported record version {record.version}")
    if record.cipher_id != CIPHER_AES256_GCM:
        raise RecordFormatError(f"unsupported cipher id {record.cipher_id}")
    if record.kdf.key_size != KEY_SIZE:
        raise RecordFormatError(f"record key size {record.kdf.key_size} does not match AES-256-GCM")
    if len(record.nonce) != NONCE_SIZE:
        raise RecordFormatError(f"record nonce must be {NONCE_SIZE} bytes, got {len(record.nonce)}")
    if len(record.tag) != TAG_SIZE:
        raise RecordFormatError(f"record tag must be {TAG_SIZE} bytes, got {len(record.tag)}")
    if max_iterations is not None and record.kdf.iterations > max_iterations:
        raise RecordFormatError(
            f"record KDF cost {record.kdf.iterations} exceeds limit {max_iterations}"
        )

    aad = record.header()
    with derived_key(password, record.salt, record.kdf) as key:
        try:
            plaintext = decrypt(record.ciphertext, record.tag, key, record.nonce, aad)
        except IntegrityError:
            logger.warning("sealed record failed authentication")
            raise

    logger.debug("unsealed %d bytes with %s", len(plaintext), record.kdf.algorithm)
    return plaintext


def seal_bytes(
    plaintext: bytes,
    password: Password,
    params: Optional[KdfParams] = None,
    source: Optional[RandomSource] = None,
) -> bytes:
    return seal(plaintext, password, params=params, source=source).to_bytes()


def unseal_bytes(
    blob: bytes, password: Password, max_iterations: Optional[int] = DEFAULT_MAX_ITERATIONS
) -> bytes:
    return unseal(SealedRecord.from_bytes(blob), password, max_iterations=max_iterations)
