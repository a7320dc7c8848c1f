"""Shared Pydantic models."""

from __future__ import annotations

from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_HOSTS: tuple[str, ...] = ("unhash.link",)

Policy = Literal["first-settled", "first-success"]


class FetchSettings(BaseModel):
    """How a race is run: which mirrors, whether to verify, who wins."""

    model_config = ConfigDict(frozen=True)

    hosts: tuple[str, ...] = DEFAULT_HOSTS
    verify: bool = True
    policy: Policy = "first-settled"
    require_ok: bool = True
    timeout: float | None = Field(default=None, gt=0)
    scheme: Literal["https", "http"] = "https"

    @field_validator("hosts", mode="before")
    @classmethod
    def _split_hosts(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return tuple(h.strip().rstrip("/") for h in v if h and h.strip())

    @field_validator("hosts")
    @classmethod
    def _non_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("at least one host is required")
        for h in v:
            if "/" in h:
                raise ValueError(f"host must be a bare name, got {h!r}")
            try:
                httpx.URL(f"https://{h}/")
            except httpx.InvalidURL as exc:
                raise ValueError(f"invalid host {h!r}: {exc}") from exc
        return v


class LegReport(BaseModel):
    host: str
    url: str
    ok: bool = False
    error: str | None = None
    received: int = 0
