"""Error taxonomy shared by the session and message layers.

What:
  Define the exception hierarchy raised by :mod:`gmailremote`. Every error is a
  :class:`GmailRemoteError` so callers can catch the whole family at once.

Why:
  Transport failures, vanished messages, and caller mistakes need different
  handling upstream. Distinct types keep that decision at the call site instead
  of forcing string matching on messages.

How:
  Plain subclasses of :class:`Exception`. Some also inherit from a builtin
  (``LookupError``, ``AttributeError``) so generic handlers keep working.

Interfaces:
  :class:`GmailRemoteError`, :class:`TransportError`,
  :class:`MailboxSelectionError`, :class:`RateLimitError`,
  :class:`MessageNotFoundError`, :class:`UnsupportedOperationError`,
  :class:`InvalidStateError`.

Invariants & Safety:
  - Removing an absent flag or label is never an error; there is no
    ``LabelNotFound`` type.
  - Transport errors are raised with ``from`` so the original imapclient or
    socket exception stays available on ``__cause__``.
"""
from __future__ import annotations


class GmailRemoteError(Exception):
    """Base class for every error raised by :mod:`gmailremote`."""


class TransportError(GmailRemoteError):
    """The IMAP session failed to carry out a command.

    What:
      Wraps protocol-level refusals and socket failures reported by the
      underlying ``imapclient`` connection.

    Why:
      Callers should not depend on ``imapclient`` exception types. This core
      never retries, so the error is surfaced unchanged in meaning.
    """


class MailboxSelectionError(TransportError):
    """The server refused to SELECT a mailbox (missing or not permitted)."""


class RateLimitError(TransportError):
    """The per-minute cap on mutating commands was reached locally.

    Nothing was sent to the server; the command can be issued again once the
    window moves on.
    """

    def __init__(self, limit: int) -> None:
        super().__init__(f"IMAP action rate limit exceeded ({limit} per minute)")
        self.limit = limit


class MessageNotFoundError(GmailRemoteError, LookupError):
    """The server returned no attributes for a UID.

    What:
      Raised by the fetch protocol when the message vanished or the UID is not
      valid in the selected mailbox.

    Why:
      An empty FETCH response must be read as "message unavailable", never
      cached as an empty attribute bundle.
    """

    def __init__(self, mailbox: str, uid: int) -> None:
        super().__init__(f"No message with UID {uid} in {mailbox!r}")
        self.mailbox = mailbox
        self.uid = uid


class UnsupportedOperationError(GmailRemoteError, AttributeError):
    """Neither the envelope nor the parsed message offers a capability."""

    def __init__(self, capability: str) -> None:
        super().__init__(f"Unsupported message capability {capability!r}")
        self.capability = capability


class InvalidStateError(GmailRemoteError):
    """An operation was attempted on a handle that cannot address its message.

    Raised when the mailbox view is unknown, or when neither a UID nor a
    pre-fetched attribute bundle is available to resolve one.
    """
