"""Resolve a hash to content: normalize, race, return (verified) bytes."""

from __future__ import annotations

from functools import partial

import anyio
import httpx

from unhash.digest import normalize
from unhash.race.fetcher import fetch
from unhash.types import FetchSettings


async def resolve(
    hash_input: object,
    *,
    settings: FetchSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> bytes:
    """Return the content addressed by *hash_input*.

    Normalization errors are raised before any request is made.
    """
    digest = normalize(hash_input)
    return await fetch(digest, settings=settings, client=client)


def resolve_sync(hash_input: object, *, settings: FetchSettings | None = None) -> bytes:
    return anyio.run(partial(resolve, hash_input, settings=settings))
