"""Pytest fixtures for unit tests requiring the IMAP fake.

What:
  Make ``tests/unit`` importable and expose an ``imap_client`` fixture backed by
  :class:`FakeGmailBackend`.

Why:
  Message tests need the real :class:`GmailImapClient` (locking, selection,
  bundle normalisation) without network access.

How:
  Monkeypatch ``gmailremote.imap.client.IMAPClient`` to return the fake, then
  yield the client inside its context manager so login/logout run as in
  production.

Invariants & Safety:
  - Each test receives a fresh backend instance.
"""

import sys
from pathlib import Path

import pytest

from gmailremote.imap.client import GmailImapClient, GmailImapConfig

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeGmailBackend


@pytest.fixture
def backend() -> FakeGmailBackend:
    return FakeGmailBackend()


@pytest.fixture
def imap_client(monkeypatch: pytest.MonkeyPatch, backend: FakeGmailBackend):
    """Yield ``(GmailImapClient, FakeGmailBackend)`` with the session open."""

    monkeypatch.setattr(
        "gmailremote.imap.client.IMAPClient", lambda host, **kwargs: backend
    )
    config = GmailImapConfig(username="user@example.test", password="secret")
    with GmailImapClient(config) as client:
        yield client, backend
