"""JSON-lines logging for unhash, plus the DEBUG=unhash channel switch."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any

_TRUTHY = {"1", "true", "yes", "on"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def debug_enabled(env: dict[str, str] | None = None) -> bool:
    """True when UNHASH_DEBUG is set, or DEBUG names the ``unhash`` channel."""
    env = os.environ if env is None else env
    if env.get("UNHASH_DEBUG", "").strip().lower() in _TRUTHY:
        return True
    channels = {c.strip() for c in env.get("DEBUG", "").split(",")}
    return bool(channels & {"unhash", "unhash*", "*"})


def get_logger(name: str = "unhash") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
    return logger
