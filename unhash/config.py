"""Settings loading: compiled-in defaults < JSON file < environment < explicit.

Environment variables
---------------------
UNHASH_HOSTS       comma-separated mirror hostnames
UNHASH_VERIFY      ``0``/``false``/``no``/``off`` disables verification
UNHASH_POLICY      ``first-settled`` | ``first-success``
UNHASH_TIMEOUT     seconds bounding the whole race
UNHASH_REQUIRE_OK  ``0``/``false``/``no``/``off`` accepts any status code
UNHASH_CONFIG      path to a JSON settings file
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from unhash.errors import ConfigError
from unhash.types import FetchSettings

_FALSY = {"0", "false", "no", "off"}


def _flag(value: str) -> bool:
    return value.strip().lower() not in _FALSY


def _from_env(env: dict[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if env.get("UNHASH_HOSTS"):
        data["hosts"] = env["UNHASH_HOSTS"]
    if env.get("UNHASH_VERIFY"):
        data["verify"] = _flag(env["UNHASH_VERIFY"])
    if env.get("UNHASH_POLICY"):
        data["policy"] = env["UNHASH_POLICY"].strip()
    if env.get("UNHASH_TIMEOUT"):
        data["timeout"] = env["UNHASH_TIMEOUT"].strip()
    if env.get("UNHASH_REQUIRE_OK"):
        data["require_ok"] = _flag(env["UNHASH_REQUIRE_OK"])
    return data


def _from_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Missing config file: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(
    path: str | Path | None = None,
    *,
    env: dict[str, str] | None = None,
    **overrides: Any,
) -> FetchSettings:
    """Build :class:`FetchSettings` from *path*, the environment and *overrides*.

    ``None`` overrides are ignored so CLI options can be passed straight through.
    """
    env = dict(os.environ) if env is None else env
    path = path or env.get("UNHASH_CONFIG")

    data: dict[str, Any] = {}
    if path:
        data.update(_from_file(Path(path)))
    data.update(_from_env(env))
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return FetchSettings(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
