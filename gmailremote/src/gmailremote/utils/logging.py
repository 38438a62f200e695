"""Structured JSON logging with redaction of message content.

What:
  Offer a tiny facade over Python streams so every gmailremote component emits
  JSON log lines with consistent fields and automatic removal of sensitive
  payloads.

Why:
  Mailbox automation is debugged by grepping logs. A structured layout keeps
  parsing trivial while preventing message subjects, bodies, or credentials
  from leaking into shared log storage.

How:
  Provide a :class:`JsonLogger` dataclass that accepts a target stream and
  enforces uppercase severity levels. ``extra`` dictionaries are scrubbed via a
  recursive redaction helper before being serialised with ``json.dump``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Every payload includes an ISO8601 timestamp, severity, and component name.
  - Keys listed in the runtime ``logging.redact`` setting are replaced with
    ``[redacted]`` even inside nested dictionaries.
  - Streams are flushed after every write.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Optional


REDACTED = "[redacted]"
DEFAULT_SENSITIVE_KEYS: FrozenSet[str] = frozenset(
    {"subject", "body", "preview", "snippet", "password"}
)


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emits single-line JSON log entries that include timestamps, severity, a
      component tag, and optional supplemental fields.

    Why:
      Centralising structured logging avoids duplicating the redaction logic and
      gives tests a uniform schema to assert on.

    How:
      Stores the destination stream (``None`` means the current
      ``sys.stdout``), component label, and sensitive key set, then exposes
      :meth:`log` plus level helpers that merge a canonical payload with
      redacted extras.
    """

    stream: Any = None
    component: str = "gmailremote"
    sensitive_keys: FrozenSet[str] = DEFAULT_SENSITIVE_KEYS

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        Args:
          level: Human-readable severity (e.g., ``"info"`` or ``"error"``).
          message: Core log message.
          extra: Optional context dictionary that will be redacted recursively.
        """

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        stream = self.stream if self.stream is not None else sys.stdout
        json.dump(payload, stream, separators=(",", ":"), default=str)
        stream.write("\n")
        stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    def _redact(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with sensitive keys masked at any depth."""

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in self.sensitive_keys:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = self._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str, *, stream: Any = None) -> JsonLogger:
    """Construct a :class:`JsonLogger` for ``component``.

    What:
      Returns a logger whose component tag is prefixed with the configured
      root component and whose redaction keys come from the runtime config.

    Why:
      Call sites should not instantiate :class:`JsonLogger` directly so shared
      settings (redaction keys, default stream) evolve in one place.

    How:
      Reads :func:`gmailremote.config.get_runtime_config` lazily to avoid an
      import cycle, then builds the dataclass.

    Args:
      component: Logical subsystem name, e.g. ``"imap.client"``.
      stream: Optional override of the output stream (defaults to ``stdout``).

    Returns:
      Configured :class:`JsonLogger` instance.
    """

    from ..config.loader import get_runtime_config

    settings = get_runtime_config().logging
    return JsonLogger(
        stream=stream,
        component=f"{settings.component}.{component}",
        sensitive_keys=frozenset(settings.redact),
    )
