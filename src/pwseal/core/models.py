"""
Data models for KDF parameter sets and sealed secret records.

Binary record layout (all big-endian):
- 4 bytes: magic b'PWS1'
- 1 byte: version (1)
- 1 byte: kdf_id (1 = PBKDF2-HMAC-SHA256, 2 = Argon2id)
- 4 bytes: iterations (Argon2 time cost for argon2id)
- 4 bytes: memory_cost in KiB (0 for PBKDF2)
- 1 byte: parallelism (0 for PBKDF2)
- 1 byte: key_size
- 1 byte: cipher_id (1 = AES-256-GCM)
- 1 byte: tag length (T)
- 1 byte: salt length (S), S bytes salt
- 1 byte: nonce length (N), N bytes nonce

Body: ciphertext bytes followed by the T-byte tag.

Everything before the body is the header; it is fed to the cipher as associated
data so the parameters, salt and nonce are covered by the tag.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Dict

from pwseal.core.exceptions import InvalidParameterError, RecordFormatError


MAGIC = b"PWS1"
RECORD_VERSION = 1

KDF_PBKDF2_SHA256 = "pbkdf2-sha256"
KDF_ARGON2ID = "argon2id"

# wire ids, never renumber
KDF_IDS = {KDF_PBKDF2_SHA256: 1, KDF_ARGON2ID: 2}
KDF_NAMES = {v: k for k, v in KDF_IDS.items()}

CIPHER_AES256_GCM = 1

_FIXED = struct.Struct(">4sBBIIBBBB")


@dataclass(frozen=True)
class KdfParams:
    """Parameter set for one key derivation.

    ``iterations`` is the PBKDF2 iteration count, or the Argon2 time cost when
    ``algorithm`` is argon2id. ``memory_cost`` (KiB) and ``parallelism`` only
    apply to Argon2id.
    """

    algorithm: str = KDF_PBKDF2_SHA256
    iterations: int = 100_000
    salt_size: int = 32
    key_size: int = 32
    memory_cost: int = 65536
    parallelism: int = 1

    def validate(self) -> None:
        if self.algorithm not in KDF_IDS:
            raise InvalidParameterError(f"unsupported KDF algorithm: {self.algorithm!r}")
        if self.key_size <= 0:
            raise InvalidParameterError(f"key size must be positive, got {self.key_size}")
        if self.salt_size <= 0:
            raise InvalidParameterError(f"salt size must be positive, got {self.salt_size}")
        if self.iterations <= 0:
            raise InvalidParameterError(f"iterations must be positive, got {self.iterations}")
        if self.algorithm == KDF_ARGON2ID:
            if self.salt_size < 8:
                raise InvalidParameterError("argon2id salt must be at least 8 bytes")
            if self.key_size < 4:
                raise InvalidParameterError("argon2id key size must be at least 4 bytes")
            if self.parallelism <= 0:
                raise InvalidParameterError("argon2id parallelism must be positive")
            # argon2 requires at least 8 KiB per lane
            if self.memory_cost < 8 * self.parallelism:
                raise InvalidParameterError("argon2id memory cost too small for parallelism")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "algo": self.algorithm,
            "iterations": self.iterations,
            "salt_size": self.salt_size,
            "key_size": self.key_size,
        }
        if self.algorithm == KDF_ARGON2ID:
            data["memory"] = self.memory_cost
            data["parallelism"] = self.parallelism
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KdfParams":
        defaults = cls()
        params = cls(
            algorithm=data.get("algo", defaults.algorithm),
            iterations=int(data.get("iterations", defaults.iterations)),
            salt_size=int(data.get("salt_size", defaults.salt_size)),
            key_size=int(data.get("key_size", defaults.key_size)),
            memory_cost=int(data.get("memory", defaults.memory_cost)),
            parallelism=int(data.get("parallelism", defaults.parallelism)),
        )
        params.validate()
        return params


DEFAULT_KDF_PARAMS = KdfParams()


@dataclass
class SealedRecord:
    """A persisted secret: everything needed to decrypt it except the password."""

    salt: bytes
    nonce: bytes
    ciphertext: bytes
    tag: bytes
    kdf: KdfParams = field(default_factory=KdfParams)
    cipher_id: int = CIPHER_AES256_GCM
    version: int = RECORD_VERSION

    def header(self) -> bytes:
        """Serialize the non-secret header (also used as associated data)."""
        if self.kdf.algorithm == KDF_ARGON2ID:
            memory_cost, parallelism = self.kdf.memory_cost, self.kdf.parallelism
        else:
            memory_cost, parallelism = 0, 0
        try:
            fixed = _FIXED.pack(
                MAGIC,
                self.version,
                KDF_IDS[self.kdf.algorithm],
                self.kdf.iterations,
                memory_cost,
                parallelism,
                self.kdf.key_size,
                self.cipher_id,
                len(self.tag),
            )
            return (
                fixed
                + struct.pack("B", len(self.salt))
                + self.salt
                + struct.pack("B", len(self.nonce))
                + self.nonce
            )
        except (KeyError, struct.error) as e:
            raise InvalidParameterError(f"record fields out of range: {e}") from e

    def to_bytes(self) -> bytes:
        return self.header() + self.ciphertext + self.tag

    @classmethod
    def from_bytes(cls, blob: bytes) -> "SealedRecord":
        blob = bytes(blob)
        if len(blob) < _FIXED.size:
            raise RecordFormatError("record too short to contain a header")
        (
            magic,
            version,
            kdf_id,
            iterations,
            memory_cost,
            parallelism,
            key_size,
            cipher_id,
            tag_len,
        ) = _FIXED.unpack_from(blob, 0)
        if magic != MAGIC:
            raise RecordFormatError("invalid record format (magic mismatch)")
        if version != RECORD_VERSION:
            raise RecordFormatError(f"unsupported record version {version}")
        if kdf_id not in KDF_NAMES:
            raise RecordFormatError(f"unsupported KDF id {kdf_id}")
        if cipher_id != CIPHER_AES256_GCM:
            raise RecordFormatError(f"unsupported cipher id {cipher_id}")

        offset = _FIXED.size
        salt, offset = _read_prefixed(blob, offset, "salt")
        nonce, offset = _read_prefixed(blob, offset, "nonce")
        if len(blob) - offset < tag_len:
            raise RecordFormatError("truncated record (missing tag)")

        algorithm = KDF_NAMES[kdf_id]
        kdf = KdfParams(
            algorithm=algorithm,
            iterations=iterations,
            salt_size=len(salt),
            key_size=key_size,
            memory_cost=memory_cost if algorithm == KDF_ARGON2ID else DEFAULT_KDF_PARAMS.memory_cost,
            parallelism=parallelism if algorithm == KDF_ARGON2ID else DEFAULT_KDF_PARAMS.parallelism,
        )
        try:
            kdf.validate()
        except InvalidParameterError as e:
            raise RecordFormatError(f"invalid KDF parameters in record: {e}") from e

        end = len(blob) - tag_len
        return cls(
            salt=salt,
            nonce=nonce,
            ciphertext=blob[offset:end],
            tag=blob[end:],
            kdf=kdf,
            cipher_id=cipher_id,
            version=version,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "kdf": self.kdf.to_dict(),
            "cipher": self.cipher_id,
            "salt": self.salt.hex(),
            "nonce": self.nonce.hex(),
            "ciphertext": self.ciphertext.hex(),
            "tag": self.tag.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SealedRecord":
        try:
            return cls(
                salt=bytes.fromhex(data["salt"]),
                nonce=bytes.fromhex(data["nonce"]),
                ciphertext=bytes.fromhex(data["ciphertext"]),
                tag=bytes.fromhex(data["tag"]),
                kdf=KdfParams.from_dict(data["kdf"]),
                cipher_id=int(data.get("cipher", CIPHER_AES256_GCM)),
                version=int(data.get("version", RECORD_VERSION)),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            if isinstance(e, InvalidParameterError):
                raise
            raise RecordFormatError(f"malformed record dict: {e}") from e


def _read_prefixed(blob: bytes, offset: int, what: str):
    # one length byte followed by that many bytes
    if offset >= len(blob):
        raise RecordFormatError(f"truncated record (missing {what} length)")
    length = blob[offset]
    offset += 1
    if len(blob) - offset < length:
        raise RecordFormatError(f"truncated record (short {what})")
    return blob[offset:offset + length], offset + length
