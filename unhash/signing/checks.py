"""Integrity helpers: incremental SHA-256, constant-time compare & verify."""

from __future__ import annotations

import hashlib
import hmac
from pathlib import Path

from unhash.digest import Digest
from unhash.errors import HashMismatch

CHUNK_SIZE = 1024 * 1024


def digests_equal(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)


def sha256_file(path: Path) -> Digest:
    """Return the SHA-256 :class:`Digest` of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return Digest(h.digest())


def verify_bytes(data: bytes, expected: Digest) -> None:
    """Raise HashMismatch if *data* does not hash to *expected*."""
    got = hashlib.sha256(data).digest()
    if not digests_equal(got, expected.raw):
        raise HashMismatch(expected.hex, got.hex())


class StreamVerifier:
    """Accumulate a response body chunk by chunk, hashing as it goes.

    With *expected* set, :meth:`finish` compares the running digest against it
    and raises HashMismatch on failure. Without it the body is returned as-is::

        verifier = StreamVerifier(digest)
        async for chunk in response.aiter_bytes():
            verifier.update(chunk)
        body = verifier.finish()
    """

    def __init__(self, expected: Digest | None = None, *, host: str | None = None, url: str | None = None):
        self._expected = expected
        self._hasher = hashlib.sha256() if expected is not None else None
        self._chunks: list[bytes] = []
        self._received = 0
        self._host = host
        self._url = url

    @property
    def received(self) -> int:
        return self._received

    def update(self, chunk: bytes) -> None:
        self._chunks.append(chunk)
        self._received += len(chunk)
        if self._hasher is not None:
            self._hasher.update(chunk)

    def finish(self) -> bytes:
        if self._hasher is not None:
            got = self._hasher.digest()
            if not digests_equal(got, self._expected.raw):
                raise HashMismatch(self._expected.hex, got.hex(), host=self._host, url=self._url)
        return b"".join(self._chunks)
