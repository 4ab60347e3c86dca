"""Content fingerprints used as freshness tokens for replica buffers."""

from __future__ import annotations

import hashlib

FINGERPRINT_BYTES = 8


def fingerprint_int(data: bytes | bytearray | memoryview) -> int:
    """Return an order-sensitive 64-bit fingerprint of ``data``.

    BLAKE2b is used purely for speed and distribution; the value only tells
    two buffers apart and carries no security guarantee.
    """

    digest = hashlib.blake2b(data, digest_size=FINGERPRINT_BYTES).digest()
    return int.from_bytes(digest, "little")


def fingerprint(data: bytes | bytearray | memoryview) -> str:
    """Return the fingerprint of ``data`` rendered as a base-10 string."""

    return str(fingerprint_int(data))


__all__ = ["FINGERPRINT_BYTES", "fingerprint", "fingerprint_int"]
