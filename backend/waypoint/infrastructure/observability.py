"""Structured Logging — JSON lines for the API process.

Invariants:
    - Every line has timestamp, level, logger and message
    - Only whitelisted extra fields (user_id, place_id, district, ...) are emitted,
      so arbitrary `extra=` payloads cannot leak into log storage
    - setup_logging is idempotent: calling it twice leaves exactly one handler

Design Decisions:
    - JSONFormatter on stdlib logging, configured once from the lifespan
    - SQLAlchemy engine and firebase_admin chatter capped at WARNING
"""

import json
import logging
from datetime import datetime, timezone

_EXTRA_FIELDS = (
    "user_id", "place_id", "district", "error_code", "attempt",
    "xp_awarded", "path",
)
_NOISY_LOGGERS = ("sqlalchemy.engine", "firebase_admin", "urllib3")
_HANDLER_NAME = "waypoint"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, record.__dict__[key]) for key in _EXTRA_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the root handler. fmt is "json" or anything else for plain text."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"),
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
