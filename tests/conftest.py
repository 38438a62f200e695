"""Pytest configuration shared by every suite.

What:
  Establish project import paths and apply a canned runtime configuration to
  every test.

Why:
  Tests must import the source tree rather than an installed wheel, and the
  runtime configuration is cached globally; without explicit resets tests could
  depend on execution order or on a developer's home directory.

How:
  Prepend ``gmailremote/src`` to ``sys.path`` when present and define the
  autouse :func:`runtime_config` fixture that points
  ``GMAILREMOTE_CONFIG_PATH`` at ``tests/data/gmailremote.yaml`` while
  clearing the cache before and after each test.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "gmailremote" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from gmailremote.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "gmailremote.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test."""

    monkeypatch.setenv("GMAILREMOTE_CONFIG_PATH", str(CONFIG_PATH))
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
