"""Cryptographically secure random bytes for salts and nonces.

Output always comes from the operating system CSPRNG (``os.urandom``). A
different source can be injected as any callable ``(n) -> bytes``; tests use
this to pin salts and nonces. There is no fallback: if the OS facility is
unavailable or keeps returning short reads, :class:`EntropyError` is raised.
"""
import logging
import os
from typing import Callable, Optional

from pwseal.core.exceptions import EntropyError, InvalidParameterError


logger = logging.getLogger(__name__)

RandomSource = Callable[[int], bytes]

DEFAULT_SALT_SIZE = 32
DEFAULT_NONCE_SIZE = 12
MAX_READ_ATTEMPTS = 3


def generate_random(n: int, source: Optional[RandomSource] = None) -> bytes:
    """Return ``n`` random bytes from ``source`` (the OS CSPRNG by default)."""
    if n < 0:
        raise InvalidParameterError(f"random length must be non-negative, got {n}")
    if n == 0:
        return b""
    read = source if source is not None else os.urandom

    for attempt in range(1, MAX_READ_ATTEMPTS + 1):
        try:
            data = read(n)
        except (OSError, NotImplementedError) as e:
            raise EntropyError(f"secure random source unavailable: {e}") from e
        if len(data) == n:
            return bytes(data)
        logger.warning("short read from random source (%d of %d bytes, attempt %d)", len(data), n, attempt)

    raise EntropyError(f"random source returned short reads after {MAX_READ_ATTEMPTS} attempts")


def generate_salt(size: int = DEFAULT_SALT_SIZE, source: Optional[RandomSource] = None) -> bytes:
    if size <= 0:
        raise InvalidParameterError(f"salt size must be positive, got {size}")
    return generate_random(size, source)


def generate_nonce(size: int = DEFAULT_NONCE_SIZE, source: Optional[RandomSource] = None) -> bytes:
    if size <= 0:
        raise InvalidParameterError(f"nonce size must be positive, got {size}")
    return generate_random(size, source)
