"""Race fetcher: ask every mirror for a digest at once, keep the first answer.

One leg per host is started in a single anyio task group sharing one
``httpx.AsyncClient``. Each leg streams its response body through a
:class:`~unhash.signing.checks.StreamVerifier`, so the SHA-256 is computed
incrementally while chunks arrive. Once the race is decided the task group's
cancel scope is cancelled, which aborts the remaining legs and closes their
streams.

Policies
--------
first-settled
    Whichever leg settles first decides the outcome, success or failure. A
    fast failing mirror therefore beats a slow correct one.
first-success
    Failures are recorded until some leg succeeds. If every leg fails the race
    raises AllLegsFailed with one report per host.
"""

from __future__ import annotations

import anyio
import httpx
from pydantic import ValidationError

from unhash.digest import Digest, base64url, normalize
from unhash.errors import (
    AllLegsFailed,
    BadStatus,
    ConfigError,
    FetchError,
    FetchTimeout,
    NetworkError,
)
from unhash.logging import get_logger
from unhash.signing.checks import StreamVerifier
from unhash.types import FetchSettings, LegReport

log = get_logger()


def leg_url(host: str, digest: Digest, scheme: str = "https") -> str:
    return f"{scheme}://{host}/{base64url(digest.raw)}"


class _Race:
    """Settlement bookkeeping shared by the legs of one race."""

    def __init__(self, hosts: tuple[str, ...], policy: str):
        self.policy = policy
        self.reports: list[LegReport | None] = [None] * len(hosts)
        self.errors: list[Exception | None] = [None] * len(hosts)
        self.done = False
        self.body: bytes | None = None
        self.error: Exception | None = None
        self.scope: anyio.CancelScope | None = None

    def succeed(self, index: int, report: LegReport, body: bytes) -> None:
        self.reports[index] = report
        if self.done:
            return
        self.body = body
        self._decide()

    def fail(self, index: int, report: LegReport, error: Exception) -> None:
        self.reports[index] = report
        self.errors[index] = error
        if self.done:
            return
        if self.policy == "first-settled":
            self.error = error
            self._decide()
        elif all(e is not None for e in self.errors):
            self.error = AllLegsFailed(list(self.reports), list(self.errors))
            self._decide()

    def _decide(self) -> None:
        self.done = True
        if self.scope is not None:
            self.scope.cancel()


async def _run_leg(
    client: httpx.AsyncClient,
    race: _Race,
    index: int,
    host: str,
    digest: Digest,
    settings: FetchSettings,
) -> None:
    url = leg_url(host, digest, settings.scheme)
    report = LegReport(host=host, url=url)
    verifier = StreamVerifier(digest if settings.verify else None, host=host, url=url)
    try:
        async with client.stream("GET", url) as response:
            log.debug("received reply from %s", host)
            if settings.require_ok and not response.is_success:
                raise BadStatus(response.status_code, host=host, url=url)
            async for chunk in response.aiter_bytes():
                verifier.update(chunk)
        body = verifier.finish()
    except FetchError as exc:
        report.received = verifier.received
        report.error = str(exc)
        race.fail(index, report, exc)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        err = NetworkError(f"{type(exc).__name__} from {host}: {exc}", host=host, url=url)
        err.__cause__ = exc
        report.received = verifier.received
        report.error = str(err)
        race.fail(index, report, err)
    else:
        report.ok = True
        report.received = len(body)
        log.debug("accepted %d bytes from %s", len(body), host)
        race.succeed(index, report, body)


async def fetch(
    digest: Digest | str | bytes,
    hosts: list[str] | tuple[str, ...] | None = None,
    verify: bool | None = None,
    *,
    settings: FetchSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> bytes:
    """Race every host for *digest* and return the winning body.

    *hosts* and *verify* override the matching fields of *settings*. A caller
    supplied *client* is used as-is and left open; otherwise a client without
    timeouts is created for the race and closed afterwards.
    """
    digest = normalize(digest)
    settings = settings or FetchSettings()
    overrides = {k: v for k, v in {"hosts": hosts, "verify": verify}.items() if v is not None}
    if overrides:
        try:
            settings = FetchSettings(**{**settings.model_dump(), **overrides})
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc

    race = _Race(settings.hosts, settings.policy)
    log.debug("requesting %s from %d hosts", digest.urlsafe, len(settings.hosts))

    owned = client is None
    if owned:
        client = httpx.AsyncClient(timeout=None)
    try:
        with anyio.fail_after(settings.timeout):
            async with anyio.create_task_group() as tg:
                race.scope = tg.cancel_scope
                for index, host in enumerate(settings.hosts):
                    tg.start_soon(_run_leg, client, race, index, host, digest, settings)
    except TimeoutError as exc:
        raise FetchTimeout(
            f"no host settled within {settings.timeout}s for {digest.urlsafe}"
        ) from exc
    finally:
        if owned:
            await client.aclose()

    if race.error is not None:
        raise race.error
    return race.body
