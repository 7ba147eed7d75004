"""
Unit tests for sealed secret records.
"""

import json
import logging
import struct
from itertools import count

import pytest

from pwseal.core.exceptions import IntegrityError, InvalidParameterError, RecordFormatError
from pwseal.core.models import KDF_ARGON2ID, KdfParams, SealedRecord
from pwseal.security import envelope
from pwseal.security.envelope import seal, seal_bytes, unseal, unseal_bytes


FAST = KdfParams(iterations=1000)


class CountingSource:
    """Deterministic byte source: 0x00, 0x01, ... wrapping at 256."""

    def __init__(self):
        self._counter = count()

    def __call__(self, n):
        return bytes(next(self._counter) % 256 for _ in range(n))


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def record():
    return seal(b"top secret", "correct horse battery staple", params=FAST)


# ==============================================================================
# Tests: Seal / Unseal
# ==============================================================================

def test_seal_produces_all_fields(record):
    assert len(record.salt) == 32
    assert len(record.nonce) == 12
    assert len(record.tag) == 16
    assert len(record.ciphertext) == len(b"top secret")
    assert record.kdf == FAST
    assert record.version == 1


def test_unseal_record(record):
    assert unseal(record, "correct horse battery staple") == b"top secret"


def test_unseal_binary_form(record):
    assert unseal(record.to_bytes(), "correct horse battery staple") == b"top secret"


def test_seal_bytes_and_unseal_bytes():
    blob = seal_bytes(b"payload" * 1000, b"pw", params=FAST)
    assert blob.startswith(b"PWS1")
    assert unseal_bytes(blob, b"pw") == b"payload" * 1000


def test_empty_plaintext_and_empty_password():
    blob = seal_bytes(b"", "", params=FAST)
    assert unseal_bytes(blob, "") == b""


def test_dict_form_survives_json(record):
    restored = SealedRecord.from_dict(json.loads(json.dumps(record.to_dict())))
    assert unseal(restored, "correct horse battery staple") == b"top secret"


def test_fresh_salt_and_nonce_per_seal():
    a = seal(b"same", "pw", params=FAST)
    b = seal(b"same", "pw", params=FAST)
    assert a.salt != b.salt
    assert a.nonce != b.nonce
    assert a.ciphertext != b.ciphertext


def test_injected_source_gives_reproducible_records():
    a = seal_bytes(b"same", "pw", params=FAST, source=CountingSource())
    b = seal_bytes(b"same", "pw", params=FAST, source=CountingSource())
    assert a == b
    record = SealedRecord.from_bytes(a)
    assert record.salt == bytes(range(32))
    assert record.nonce == bytes(range(32, 44))


def test_default_params_roundtrip():
    record = seal(b"default cost", "pw")
    assert record.kdf.iterations == 100_000
    assert unseal(record.to_bytes(), "pw") == b"default cost"


def test_records_keep_their_own_parameters():
    """A record sealed under an older cost still opens with the params it carries."""
    old = seal_bytes(b"legacy", "pw", params=KdfParams(iterations=500))
    parsed = SealedRecord.from_bytes(old)
    assert parsed.kdf.iterations == 500
    assert unseal_bytes(old, "pw") == b"legacy"


def test_argon2id_records_roundtrip():
    params = KdfParams(algorithm=KDF_ARGON2ID, iterations=1, memory_cost=8, parallelism=1, salt_size=16)
    blob = seal_bytes(b"memory hard", "pw", params=params)
    parsed = SealedRecord.from_bytes(blob)
    assert parsed.kdf == params
    assert unseal_bytes(blob, "pw") == b"memory hard"


# ==============================================================================
# Tests: Failures
# ==============================================================================

def test_wrong_password_fails(record):
    with pytest.raises(IntegrityError, match="did not verify"):
        unseal(record, "wrong password")


def test_tampered_ciphertext_fails(record):
    record.ciphertext = bytes([record.ciphertext[0] ^ 0x01]) + record.ciphertext[1:]
    with pytest.raises(IntegrityError):
        unseal(record, "correct horse battery staple")


def test_tampered_tag_fails(record):
    blob = bytearray(record.to_bytes())
    blob[-1] ^= 0x80
    with pytest.raises(IntegrityError):
        unseal_bytes(bytes(blob), "correct horse battery staple")


def test_tampered_salt_fails(record):
    record.salt = bytes([record.salt[0] ^ 0x01]) + record.salt[1:]
    with pytest.raises(IntegrityError):
        unseal(record, "correct horse battery staple")


def test_downgraded_iterations_fail(record):
    blob = bytearray(record.to_bytes())
    # iterations live right after magic, version and kdf id
    blob[6:10] = struct.pack(">I", 999)
    with pytest.raises(IntegrityError):
        unseal_bytes(bytes(blob), "correct horse battery staple")


def test_integrity_failure_is_logged_without_secrets(record, caplog):
    with caplog.at_level(logging.DEBUG, logger="pwseal"):
        with pytest.raises(IntegrityError):
            unseal(record, "hunter2")
    assert "failed authentication" in caplog.text
    assert "hunter2" not in caplog.text
    assert "top secret" not in caplog.text


def test_seal_logs_without_password(caplog):
    with caplog.at_level(logging.DEBUG, logger="pwseal"):
        seal(b"data", "hunter2", params=FAST)
    assert "sealed 4 bytes" in caplog.text
    assert "hunter2" not in caplog.text


def test_non_aes256_key_size_rejected():
    with pytest.raises(InvalidParameterError, match="32-byte key"):
        seal(b"data", "pw", params=KdfParams(iterations=10, key_size=16))


def test_unsupported_version_rejected(record):
    record.version = 9
    with pytest.raises(RecordFormatError, match="version"):
        unseal(record, "pw")


def test_unsupported_cipher_rejected(record):
    record.cipher_id = 7
    with pytest.raises(RecordFormatError, match="cipher"):
        unseal(record, "pw")


def test_garbage_rejected():
    with pytest.raises(RecordFormatError):
        unseal_bytes(b"not a sealed record at all", "pw")


def test_key_wiped_after_unseal(record, monkeypatch):
    seen = []
    real = envelope.derived_key

    def spy(*args, **kwargs):
        cm = real(*args, **kwargs)

        class Wrapper:
            def __enter__(self):
                key = cm.__enter__()
                seen.append(key)
                return key

            def __exit__(self, *exc):
                return cm.__exit__(*exc)

        return Wrapper()

    monkeypatch.setattr(envelope, "derived_key", spy)
    assert unseal(record, "correct horse battery staple") == b"top secret"
    assert seen and all(k == bytearray(len(k)) for k in seen)


# ==============================================================================
# Tests: Boundary Rejection Before Derivation
# ==============================================================================

@pytest.fixture
def no_derivation(monkeypatch):
    calls = []

    def fail(*args, **kwargs):
        calls.append(args)
        raise AssertionError("key derivation should not run")

    monkeypatch.setattr(envelope, "derived_key", fail)
    return calls


@pytest.mark.parametrize("nonce_len", [0, 11, 13, 16])
def test_wrong_nonce_length_rejected_before_derivation(record, no_derivation, nonce_len):
    record.nonce = b"\x00" * nonce_len
    with pytest.raises(RecordFormatError, match="nonce must be 12 bytes"):
        unseal(record, "correct horse battery staple")
    assert no_derivation == []


def test_wrong_tag_length_rejected_before_derivation(record, no_derivation):
    blob = bytearray(record.to_bytes())
    blob[17] = 15  # tag length byte
    with pytest.raises(RecordFormatError, match="tag must be 16 bytes"):
        unseal_bytes(bytes(blob), "correct horse battery staple")
    assert no_derivation == []


def test_excessive_iterations_rejected_before_derivation(record, no_derivation):
    blob = bytearray(record.to_bytes())
    blob[6:10] = struct.pack(">I", 0xFFFFFFFF)
    with pytest.raises(RecordFormatError, match="exceeds limit"):
        unseal_bytes(bytes(blob), "correct horse battery staple")
    assert no_derivation == []


def test_iteration_limit_is_configurable(record):
    with pytest.raises(RecordFormatError, match="exceeds limit 999"):
        unseal(record, "correct horse battery staple", max_iterations=999)
    assert unseal(record, "correct horse battery staple", max_iterations=None) == b"top secret"
    assert unseal_bytes(record.to_bytes(), "correct horse battery staple", max_iterations=1000) == b"top secret"
