"""Lightweight JSON logger utility.

Provides a consistent logger adapter that emits structured logs with
environment and run_id fields when available.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from typing import Any, Dict, Optional


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        env = getattr(record, "environment", None) or os.environ.get("ENVIRONMENT")
        if env:
            payload["environment"] = env
        run_id = getattr(record, "run_id", None)
        if run_id:
            payload["run_id"] = run_id
        for key in ("logical_name", "intent_count", "violation_count"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if not hasattr(record, "asctime"):
            payload["timestamp"] = record.created
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class _Adapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: Dict[str, Any]):  # type: ignore[override]
        extra = self.extra.copy() if isinstance(self.extra, dict) else {}
        if "extra" in kwargs and isinstance(kwargs["extra"], dict):
            extra.update(kwargs["extra"])  # merge per-call extras
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, run_id: Optional[str] = None) -> logging.LoggerAdapter:
    """Return a JSON-formatted logger adapter with optional run_id."""
    base = logging.getLogger(name)
    if not base.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        base.addHandler(handler)
    base.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    extras = {"environment": os.environ.get("ENVIRONMENT")}
    if run_id:
        extras["run_id"] = run_id
    return _Adapter(base, extras)


def new_run_id() -> str:
    """Return a fresh identifier used to correlate one planning run's log lines."""
    return uuid.uuid4().hex
