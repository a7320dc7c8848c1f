"""Hash normalization: hex / base64 / base64url / raw bytes -> 32-byte Digest.

Text input is classified by length only:

- 64 characters are hexadecimal,
- 43 or 44 characters are base64 (standard or URL-safe alphabet, padding optional),
- anything else is rejected.

The base64url form (``+`` -> ``-``, ``/`` -> ``_``, no ``=``) is what goes into
request paths.
"""

from __future__ import annotations

import base64
import binascii
import string
from dataclasses import dataclass

from unhash.errors import InvalidEncoding, InvalidLength, InvalidType

DIGEST_SIZE = 32
HEX_LENGTH = 64
BASE64_LENGTHS = (43, 44)

_PREFIXES = ("sha256:", "sha256-")
_HEXDIGITS = frozenset(string.hexdigits)


def base64url(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=").replace("+", "-").replace("/", "_")


@dataclass(frozen=True)
class Digest:
    """An immutable 32-byte SHA-256 digest."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != DIGEST_SIZE:
            raise InvalidLength(len(self.raw), DIGEST_SIZE)
        object.__setattr__(self, "raw", bytes(self.raw))

    @property
    def hex(self) -> str:
        return self.raw.hex()

    @property
    def urlsafe(self) -> str:
        return base64url(self.raw)

    def __str__(self) -> str:
        return self.urlsafe


def _strip_prefix(text: str) -> str:
    text = text.strip()
    for prefix in _PREFIXES:
        if text.lower().startswith(prefix):
            return text[len(prefix) :]
    return text


def _decode_hex(text: str, original: str) -> bytes:
    if not all(c in _HEXDIGITS for c in text):
        raise InvalidEncoding(f'Not a valid hex encoded hash "{original}"')
    return bytes.fromhex(text)


def _decode_base64(text: str, original: str) -> bytes:
    # 43/44 hex digits are a truncated hex digest, not base64
    if all(c in _HEXDIGITS for c in text):
        raise InvalidEncoding(f'Not a valid hex/base64/base64url encoded hash "{original}"')

    body = text.rstrip("=").replace("-", "+").replace("_", "/")
    padded = body + "=" * (-len(body) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidEncoding(f'Not a valid base64/base64url encoded hash "{original}"') from exc

    if len(raw) != DIGEST_SIZE or base64url(raw) != body.replace("+", "-").replace("/", "_"):
        raise InvalidEncoding(f'Not a valid base64/base64url encoded hash "{original}"')
    return raw


def normalize(value: object) -> Digest:
    """Return the :class:`Digest` named by *value*.

    Raises InvalidEncoding for undecodable text, InvalidLength for binary input
    that is not 32 bytes and InvalidType for anything that is neither.
    """
    if isinstance(value, Digest):
        return value

    if isinstance(value, str):
        text = _strip_prefix(value)
        if len(text) == HEX_LENGTH:
            return Digest(_decode_hex(text, value))
        if len(text) in BASE64_LENGTHS:
            return Digest(_decode_base64(text, value))
        raise InvalidEncoding(f'Not a valid hex/base64/base64url encoded hash "{value}"')

    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if len(raw) != DIGEST_SIZE:
            raise InvalidLength(len(raw), DIGEST_SIZE)
        return Digest(raw)

    raise InvalidType(type(value).__name__)
