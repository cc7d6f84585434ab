"""Record identifiers.

Ids only need to be unique on one device: records are never merged across
devices, so a millisecond timestamp plus a short random suffix is enough and
works without a cryptographic random source.
"""

import random
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 encoding needs a non-negative number")
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_id(now=None, rng=random) -> str:
    """Return an id such as ``id-lq3k9x2a-4fz81c``."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = ''.join(rng.choice(_ALPHABET) for _ in range(6))
    return f"id-{to_base36(millis)}-{suffix}"
