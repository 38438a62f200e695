"""Facade for the IMAP session layer.

What:
  Surface the :class:`~gmailremote.imap.client.GmailImapClient` session, its
  :class:`~gmailremote.imap.client.GmailImapConfig`, and the
  :class:`~gmailremote.imap.session.Session` protocol it satisfies.

Why:
  Keeping the import surface minimal lets the transport evolve without
  touching callers of :class:`~gmailremote.message.RemoteMessage`.

Interfaces:
  ``GmailImapClient``, ``GmailImapConfig``, ``Session``, ``StoreOp``,
  ``build_search``.

Invariants & Safety:
  - Consumers operate in UID mode only.
  - All commands go through one session so selection stays serialised.
"""

from .client import GmailImapClient, GmailImapConfig
from .search import build_search
from .session import Session, StoreOp

__all__ = ["GmailImapClient", "GmailImapConfig", "Session", "StoreOp", "build_search"]
