"""
Structured logging: single-line JSON events and root logger set-up.
"""
import json
import logging
import os
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set the root level from LOG_LEVEL (default INFO). Handlers are only added once."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(resolved)


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """
    Emit one JSON log line {"event": ..., **fields}. None values are dropped.
    Unserializable payloads degrade to {"event", "error": "serialization_failed"}.
    """
    payload: dict[str, Any] = {"event": event}
    for k, v in fields.items():
        if v is not None:
            payload[k] = v
    try:
        out = json.dumps(payload, default=str)
    except (TypeError, ValueError):
        out = json.dumps({"event": event, "error": "serialization_failed"})
    logger.log(level, out)
