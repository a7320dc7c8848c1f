"""Error taxonomy for hash normalization and race fetching."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from unhash.types import LegReport


class UnhashError(Exception):
    """Base class for every error raised by unhash."""


class ConfigError(UnhashError):
    pass


# --- Normalization ----------------------------------------------------------


class InvalidHash(UnhashError, ValueError):
    pass


class InvalidEncoding(InvalidHash):
    pass


class InvalidLength(InvalidHash):
    def __init__(self, actual: int, expected: int = 32):
        self.actual = actual
        self.expected = expected
        super().__init__(f"Hash is invalid length: {actual} (should be: {expected} bytes)")


class InvalidType(UnhashError, TypeError):
    def __init__(self, actual_type: str):
        self.actual_type = actual_type
        super().__init__(f"Hash is invalid type: {actual_type}")


# --- Fetching ---------------------------------------------------------------


class FetchError(UnhashError):
    """A leg or race failure. *host* and *url* identify the leg when known."""

    def __init__(self, message: str, *, host: str | None = None, url: str | None = None):
        self.host = host
        self.url = url
        super().__init__(message)


class HashMismatch(FetchError):
    def __init__(self, expected: str, actual: str, **kwargs: Any):
        self.expected = expected
        self.actual = actual
        where = f" from {kwargs['host']}" if kwargs.get("host") else ""
        super().__init__(f"hash mismatch{where}: expected {expected}, got {actual}", **kwargs)


class NetworkError(FetchError):
    pass


class BadStatus(FetchError):
    def __init__(self, status_code: int, **kwargs: Any):
        self.status_code = status_code
        super().__init__(f"unexpected status {status_code} from {kwargs.get('url')}", **kwargs)


class FetchTimeout(FetchError):
    pass


class AllLegsFailed(FetchError):
    """Every leg of a race failed. ``reports`` and ``errors`` are in host order."""

    def __init__(self, reports: list[LegReport], errors: list[Exception]):
        self.reports = reports
        self.errors = errors
        lines = "; ".join(f"{r.host}: {r.error}" for r in reports)
        super().__init__(f"all {len(reports)} hosts failed ({lines})")
