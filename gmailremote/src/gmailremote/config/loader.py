"""Loader for the gmailremote runtime configuration.

What:
  Locate, parse, validate, and cache ``gmailremote.yaml``.

Why:
  Mailbox names, connection defaults, and the prefetch attribute list vary
  between accounts (localised Gmail folder names, test servers). Centralising
  discovery and validation means the session and message layers can trust the
  resulting model.

How:
  Resolve candidate file locations from an explicit parameter, the
  ``GMAILREMOTE_CONFIG_PATH`` environment variable, and well-known defaults.
  Parse YAML with ``yaml.safe_load``, validate with Pydantic, and memoise the
  result until :func:`reset_runtime_config` is called.

Interfaces:
  :func:`load_runtime_config`, :func:`get_runtime_config`,
  :func:`reset_runtime_config`, :class:`RuntimeConfigError`.

Invariants:
  - Explicitly requested files (argument or environment) must exist; a typo is
    an error, not a silent fallback.
  - When no default location holds a file, the built-in defaults apply so the
    library works without any configuration.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from ..errors import GmailRemoteError
from .schema import RuntimeConfig


class RuntimeConfigError(GmailRemoteError):
    """Error raised when ``gmailremote.yaml`` cannot be loaded or validated."""


_CONFIG_ENV = "GMAILREMOTE_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("gmailremote.yaml"),
    Path("~/.config/gmailremote/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Optional[Path], RuntimeConfig]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Tuple[Path, bool]]:
    """Yield ``(path, required)`` pairs in priority order.

    Explicit and environment paths are ``required``; the defaults are only
    consulted when present on disk.
    """

    seen: set[Path] = set()
    if path is not None:
        seen.add(path)
        yield path, True
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, True
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, False


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    """Parse YAML text into a mapping, wrapping failures with file context."""

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError(f"{source} must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Read and validate the configuration stored at ``path``.

    Raises:
      RuntimeConfigError: If the file cannot be read or fails validation.
    """

    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid configuration in {path}: {exc}") from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate the configuration file using the precedence chain, parse it, and
      return a validated :class:`RuntimeConfig`.

    Why:
      The IMAP client and every message handle read settings; caching avoids
      repeated disk IO while ``reload`` enables deterministic refreshes.

    How:
      Consult the cache unless ``reload`` is requested or a different explicit
      path is given, then walk the candidates. Required candidates that do not
      exist raise; optional ones are skipped. With no file at all the model
      defaults are cached.

    Args:
      path: Optional explicit location of the configuration file.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If a required file is missing or any file is invalid.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    for candidate, required in _candidate_paths(requested_path):
        if not candidate.exists():
            if required:
                raise RuntimeConfigError(f"Configuration file missing: {candidate}")
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    config = RuntimeConfig()
    _RUNTIME_CACHE = (None, config)
    return config


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
