"""
Module: gmailremote.__init__

What:
  Client-side abstraction over Gmail's IMAP dialect: a stateful, lazily
  populated :class:`RemoteMessage` handle plus the session it runs on.

Why:
  Applications want to read, label, archive, and delete Gmail messages without
  handling mailbox selection, label encoding, or cache staleness themselves.

How:
  Re-export the public names. The IMAP layer is imported before
  :mod:`gmailremote.message` because the client module builds message handles.

Interfaces:
  - RemoteMessage and the flag/label constants.
  - GmailImapClient / GmailImapConfig: the imapclient-backed session.
  - Envelope / ParsedMessage / EmailMessageParser: structured message views.
  - The error hierarchy from :mod:`gmailremote.errors`.
"""

from .envelope import Address, Envelope
from .errors import (
    GmailRemoteError,
    InvalidStateError,
    MailboxSelectionError,
    MessageNotFoundError,
    RateLimitError,
    TransportError,
    UnsupportedOperationError,
)
from .imap import GmailImapClient, GmailImapConfig, Session, StoreOp
from .message import (
    FLAGGED,
    INBOX_LABEL,
    SEEN,
    SPAM_LABEL,
    TRASH_LABEL,
    RemoteMessage,
)
from .parser import Attachment, EmailMessageParser, MessageParser, ParsedMessage

__all__ = [
    "Address",
    "Attachment",
    "EmailMessageParser",
    "Envelope",
    "FLAGGED",
    "GmailImapClient",
    "GmailImapConfig",
    "GmailRemoteError",
    "INBOX_LABEL",
    "InvalidStateError",
    "MailboxSelectionError",
    "MessageNotFoundError",
    "MessageParser",
    "ParsedMessage",
    "RateLimitError",
    "RemoteMessage",
    "SEEN",
    "SPAM_LABEL",
    "Session",
    "StoreOp",
    "TRASH_LABEL",
    "TransportError",
    "UnsupportedOperationError",
]

__version__ = "0.1.0"
