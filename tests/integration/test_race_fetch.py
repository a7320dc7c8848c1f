from __future__ import annotations

import hashlib
import logging

import anyio
import httpx
import pytest

from unhash.core import resolve
from unhash.digest import Digest, normalize
from unhash.errors import (
    AllLegsFailed,
    BadStatus,
    ConfigError,
    FetchTimeout,
    HashMismatch,
    InvalidEncoding,
    NetworkError,
)
from unhash.race.fetcher import fetch, leg_url
from unhash.types import FetchSettings

pytestmark = pytest.mark.anyio

CONTENT = b"hello"
DIGEST = Digest(hashlib.sha256(CONTENT).digest())


def _ok(body: bytes = CONTENT, delay: float = 0.0):
    async def handler(request: httpx.Request) -> httpx.Response:
        if delay:
            await anyio.sleep(delay)
        return httpx.Response(200, content=body)

    return handler


def _refused(delay: float = 0.0):
    async def handler(request: httpx.Request) -> httpx.Response:
        if delay:
            await anyio.sleep(delay)
        raise httpx.ConnectError("connection refused", request=request)

    return handler


async def test_request_url_uses_base64url_path(mirrors) -> None:
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=CONTENT)

    async with mirrors({"m1.test": handler}) as client:
        await fetch(DIGEST, ["m1.test"], client=client)

    assert seen == ["https://m1.test/LPJNul-wow4m6DsqxbninhsWHlwfp0JecwQzYpOLmCQ"]
    assert seen[0] == leg_url("m1.test", DIGEST)


async def test_single_matching_mirror_returns_exact_bytes(mirrors) -> None:
    async with mirrors({"m1.test": _ok()}) as client:
        assert await fetch(DIGEST, ["m1.test"], client=client) == CONTENT


async def test_single_mismatching_mirror_raises(mirrors) -> None:
    async with mirrors({"m1.test": _ok(b"tampered")}) as client:
        with pytest.raises(HashMismatch) as ei:
            await fetch(DIGEST, ["m1.test"], client=client)
    assert ei.value.host == "m1.test"
    assert ei.value.expected == DIGEST.hex


async def test_without_verification_bytes_are_returned(mirrors) -> None:
    async with mirrors({"m1.test": _ok(b"anything")}) as client:
        assert await fetch(DIGEST, ["m1.test"], verify=False, client=client) == b"anything"


async def test_chunked_body_is_hashed_incrementally(mirrors) -> None:
    payload = b"".join(bytes([i]) * 4096 for i in range(64))
    digest = Digest(hashlib.sha256(payload).digest())

    async def chunks():
        for i in range(0, len(payload), 4096):
            yield payload[i : i + 4096]

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunks())

    async with mirrors({"big.test": handler}) as client:
        assert await fetch(digest, ["big.test"], client=client) == payload


@pytest.mark.timeout(10)
async def test_fast_success_wins_over_slow(mirrors) -> None:
    routes = {"slow.test": _ok(b"slow", delay=5), "fast.test": _ok()}
    async with mirrors(routes) as client:
        with anyio.fail_after(2):
            assert await fetch(DIGEST, list(routes), client=client) == CONTENT


@pytest.mark.timeout(10)
async def test_fast_failure_beats_slow_success(mirrors) -> None:
    routes = {"slow.test": _ok(delay=0.3), "broken.test": _refused()}
    async with mirrors(routes) as client:
        with pytest.raises(NetworkError) as ei:
            await fetch(DIGEST, list(routes), client=client)
    assert ei.value.host == "broken.test"
    assert isinstance(ei.value.__cause__, httpx.ConnectError)


@pytest.mark.timeout(10)
async def test_first_success_policy_waits_for_a_good_leg(mirrors) -> None:
    routes = {
        "slow.test": _ok(delay=0.3),
        "broken.test": _refused(),
        "liar.test": _ok(b"tampered"),
    }
    settings = FetchSettings(hosts=tuple(routes), policy="first-success")
    async with mirrors(routes) as client:
        assert await fetch(DIGEST, settings=settings, client=client) == CONTENT


@pytest.mark.timeout(10)
async def test_first_success_policy_reports_every_failure(mirrors) -> None:
    routes = {"broken.test": _refused(delay=0.05), "liar.test": _ok(b"tampered")}
    settings = FetchSettings(hosts=tuple(routes), policy="first-success")
    async with mirrors(routes) as client:
        with pytest.raises(AllLegsFailed) as ei:
            await fetch(DIGEST, settings=settings, client=client)

    err = ei.value
    assert [r.host for r in err.reports] == ["broken.test", "liar.test"]
    assert not any(r.ok for r in err.reports)
    assert isinstance(err.errors[0], NetworkError)
    assert isinstance(err.errors[1], HashMismatch)
    assert err.reports[1].received == len(b"tampered")
    assert "broken.test" in str(err) and "liar.test" in str(err)


@pytest.mark.timeout(10)
async def test_losing_legs_are_cancelled(mirrors) -> None:
    cancelled = anyio.Event()

    async def hung(request: httpx.Request) -> httpx.Response:
        try:
            await anyio.sleep(30)
        except anyio.get_cancelled_exc_class():
            cancelled.set()
            raise
        return httpx.Response(200, content=CONTENT)

    async with mirrors({"hung.test": hung, "fast.test": _ok()}) as client:
        assert await fetch(DIGEST, ["hung.test", "fast.test"], client=client) == CONTENT
    assert cancelled.is_set()


async def test_error_status_is_rejected_by_default(mirrors) -> None:
    async def not_found(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, content=CONTENT)

    async with mirrors({"m1.test": not_found}) as client:
        with pytest.raises(BadStatus) as ei:
            await fetch(DIGEST, ["m1.test"], client=client)
        assert ei.value.status_code == 404

        # Opting out restores body-only acceptance
        settings = FetchSettings(hosts=("m1.test",), require_ok=False)
        assert await fetch(DIGEST, settings=settings, client=client) == CONTENT


@pytest.mark.timeout(10)
async def test_timeout_bounds_a_hung_race(mirrors) -> None:
    settings = FetchSettings(hosts=("hung.test",), timeout=0.1)
    async with mirrors({"hung.test": _ok(delay=30)}) as client:
        with pytest.raises(FetchTimeout):
            await fetch(DIGEST, settings=settings, client=client)


async def test_resolve_normalizes_before_any_request(mirrors) -> None:
    calls: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=CONTENT)

    settings = FetchSettings(hosts=("m1.test",))
    async with mirrors({"m1.test": handler}) as client:
        with pytest.raises(InvalidEncoding):
            await resolve("not-a-hash", settings=settings, client=client)
        assert calls == []

        for form in (DIGEST.hex, DIGEST.urlsafe, DIGEST.raw):
            assert await resolve(form, settings=settings, client=client) == CONTENT
    assert len(calls) == 3


async def test_dispatch_and_reply_are_logged(mirrors, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="unhash")
    async with mirrors({"m1.test": _ok(), "m2.test": _ok()}) as client:
        await fetch(normalize(DIGEST.hex), ["m1.test", "m2.test"], client=client)

    messages = [r.getMessage() for r in caplog.records if r.name == "unhash"]
    assert f"requesting {DIGEST.urlsafe} from 2 hosts" in messages
    assert any(m.startswith("received reply from m") for m in messages)


async def test_unparseable_host_fails_its_leg_as_network_error(mirrors) -> None:
    # model_construct skips host validation, as a hand-built settings object would
    settings = FetchSettings.model_construct(hosts=("mirror.example:abc",))
    async with mirrors({}) as client:
        with pytest.raises(NetworkError) as ei:
            await fetch(DIGEST, settings=settings, client=client)
    assert ei.value.host == "mirror.example:abc"
    assert isinstance(ei.value.__cause__, httpx.InvalidURL)


async def test_invalid_host_overrides_raise_config_error(mirrors) -> None:
    async with mirrors({}) as client:
        with pytest.raises(ConfigError):
            await fetch(DIGEST, [], client=client)
        with pytest.raises(ConfigError):
            await fetch(DIGEST, ["[::1"], client=client)
