"""Logging setup for the Sedia Arcive API.

Two output formats: one JSON object per line (``LOG_FORMAT=json``) for log
shippers, or a single readable line (``LOG_FORMAT=text``) for local work.
Both carry the request id and the authenticated user id when the request
context middleware and ``require_auth`` have set them.

Share tokens, session tokens and blob signatures are masked before any
handler sees the record.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="")

_MASK = "***"

# (pattern, replacement). Group 1 is always the part that stays visible.
_MASKS = [
    (re.compile(r"(?i)(bearer\s+)[\w.\-]{16,}"), r"\1" + _MASK),
    (re.compile(r"(?i)(arcive_session=)[\w.\-]+"), r"\1" + _MASK),
    (re.compile(r"(?i)([?&]signature=)[0-9a-f]+"), r"\1" + _MASK),
    (re.compile(r"(/api/share/)(?!internal\b|access\b)[A-Za-z0-9]{16,}"), r"\1" + _MASK),
    (re.compile(r"(?i)((?:password|smtp_password|secret)\s*[=:]\s*)\S+"), r"\1" + _MASK),
]

# Extra fields whose value is never logged.
_SENSITIVE_FIELDS = frozenset({"password", "token", "share_token", "signature", "password_hash"})


def mask_secrets(text: str) -> str:
    for pattern, replacement in _MASKS:
        text = pattern.sub(replacement, text)
    return text


class _ContextFilter(logging.Filter):
    """Attach request/user ids and mask secrets in message, args and extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        record.user_ctx = user_id_var.get("")

        record.msg = mask_secrets(str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(mask_secrets(a) if isinstance(a, str) else a for a in record.args)
        for field in _SENSITIVE_FIELDS:
            if field in record.__dict__:
                setattr(record, field, _MASK)
        if isinstance(getattr(record, "path", None), str):
            record.path = mask_secrets(record.path)
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per record. ``extra`` fields are merged at top level."""

    _BUILTIN = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
        "request_id", "user_ctx", "message", "asctime",
    }

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.request_id:
            entry["request_id"] = record.request_id
        if record.user_ctx:
            entry["user_id"] = record.user_ctx

        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in self._BUILTIN and key not in entry
        )

        if record.exc_info:
            entry["exc"] = mask_secrets(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


class _TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def formatException(self, ei) -> str:
        return mask_secrets(super().formatException(ei))


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_level: Standard level name. Defaults to INFO.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_ContextFilter())
    handler.setFormatter(_JsonFormatter() if fmt == "json" else _TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # The request context middleware writes its own access line.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("multipart").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
