"""Short code allocation.

Codes are fixed-length strings over a 62-symbol alphabet, built from a
cryptographically strong random source::

    random bytes (2 * length)
    ┌────┬────┬────┬────┬─ ─ ─┐
    │ b0 │ b1 │ b2 │ b3 │  …  │
    └────┴────┴────┴────┴─ ─ ─┘
       └──┬──┘  └──┬──┘
      uint16 BE  uint16 BE
          │         │
       % 62       % 62
          ▼         ▼
      ALPHABET[i] ALPHABET[j] …

Reducing a 16-bit value modulo 62 is slightly non-uniform: 65536 is not a
multiple of 62, so the first 65536 % 62 == 2 symbols ("a" and "b") are
picked with probability 1058/65536 instead of 1057/65536. The bias is well
under 1% and is kept on purpose.

Uniqueness is not decided here. The store's unique index is the only
authority; callers retry with a fresh code on a conflict.
"""

import secrets
from collections.abc import Callable

from shortener.errors import RandomSourceError

__all__ = ["ALPHABET", "SHORT_CODE_LENGTH", "generate_short_code", "is_well_formed"]

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SHORT_CODE_LENGTH = 5

RandomBytes = Callable[[int], bytes]


def generate_short_code(length: int = SHORT_CODE_LENGTH, random_bytes: RandomBytes = secrets.token_bytes) -> str:
    """Generate a random short code.

    Args:
        length: Number of characters in the code.
        random_bytes: Source of random bytes, ``secrets.token_bytes`` unless a
            test injects a deterministic one.

    Returns:
        str: A code of exactly ``length`` characters drawn from ``ALPHABET``.

    Raises:
        RandomSourceError: If the random source fails or returns short data.
    """
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"

    wanted = length * 2
    try:
        buffer = random_bytes(wanted)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError(f"random source unavailable: {exc}") from exc

    if len(buffer) < wanted:
        raise RandomSourceError(f"random source returned {len(buffer)} bytes, expected {wanted}")

    base = len(ALPHABET)
    chars = []
    for offset in range(0, wanted, 2):
        value = int.from_bytes(buffer[offset:offset + 2], "big")
        chars.append(ALPHABET[value % base])
    return "".join(chars)


def is_well_formed(code: str, length: int = SHORT_CODE_LENGTH) -> bool:
    return len(code) == length and all(c in ALPHABET for c in code)
