"""Runtime configuration package.

What:
  Re-export the loader helpers and Pydantic schema that form the supported
  configuration surface.

Why:
  Callers should not depend on the internal module layout; keeping ``__all__``
  explicit documents which names are stable.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config
  - RuntimeConfig and its nested settings models
  - RuntimeConfigError
"""

from .loader import (
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import (
    DEFAULT_PREFETCH,
    FetchSettings,
    ImapSettings,
    LoggingSettings,
    MailboxSettings,
    RuntimeConfig,
)

__all__ = [
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
    "RuntimeConfigError",
    "DEFAULT_PREFETCH",
    "FetchSettings",
    "ImapSettings",
    "LoggingSettings",
    "MailboxSettings",
    "RuntimeConfig",
]
