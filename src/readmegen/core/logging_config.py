"""Structured logging configuration for readmegen.

Provides JSON-formatted logs for services and human-readable text for the
command line. A contextvars-based generation_id is included in every log
record while a generation call is running, so interleaved log lines from
concurrent requests can be told apart.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Iterable, Optional


# Shared contextvar — set by the generation client, read by the formatter.
generation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("generation_id", default="")


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single JSON line.

    Merges any ``extra`` fields from the record into the top-level object
    so callers can do ``logger.info("msg", extra={"model": "x"})`` and
    get ``{"model": "x"}`` alongside the standard fields.
    """

    # Keys that belong to the LogRecord itself and should not leak into output.
    _RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        gid = generation_id_var.get("")
        if gid:
            payload["generation_id"] = gid

        # Merge caller-supplied extra fields.
        for key, value in record.__dict__.items():
            if key not in self._RESERVED and key not in payload:
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


# ---------------------------------------------------------------------------
# Credential redaction: provider errors often echo the key that was sent
# ---------------------------------------------------------------------------

_KEY_PATTERNS = [
    re.compile(r'\b(sk-[a-zA-Z0-9_\-]{20,})\b'),          # OpenAI / Anthropic style keys
    re.compile(r'(?i)(bearer\s+)[a-zA-Z0-9._\-]{20,}'),   # Authorization header echoes
    re.compile(r'(?i)(api_key[=:]\s*)[^\s,\'"]{8,}'),      # api_key=... in kwargs dumps
]

_REDACTED = "***REDACTED***"


class _SecretFilter(logging.Filter):
    """Redact the provider credential from log messages and exception text.

    Literal ``secrets`` (the configured key, whatever its format) are
    replaced first; the patterns catch keys that never went through
    settings, e.g. a provider echoing an env-var key back.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self._secrets = tuple(s for s in secrets if s)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = self._redact(str(record.msg))
        if record.exc_text:
            record.exc_text = self._redact(record.exc_text)
        return True

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, _REDACTED)
        for pattern in _KEY_PATTERNS:
            text = pattern.sub(_replace_secret, text)
        return text


def _replace_secret(match: re.Match) -> str:
    # Group 1 is either the key itself or a label prefix ("Bearer ", "api_key=").
    prefix = match.group(1)
    if prefix[-1].isspace() or prefix[-1] in "=:":
        return prefix + _REDACTED
    return _REDACTED


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    secrets: Iterable[str] = (),
) -> None:
    """Configure logging for the process.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.
        log_format: ``"json"`` for structured output, ``"text"`` for human-readable.
                    Defaults to ``"json"``.
        secrets: Credential values to scrub from every record, typically
                 ``settings.resolve_api_key()``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(_SecretFilter(secrets))

    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Reduce noise from third-party libraries.
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging configured", extra={"level": level, "format": fmt})
