"""Stateful handle on one message stored on a Gmail IMAP server.

What:
  :class:`RemoteMessage` identifies a message by UID inside one mailbox view
  and offers lazy accessors for server-side attributes (envelope, body, flags,
  labels, Gmail message and thread ids) plus mutators (flag, label, archive,
  delete, move) that translate intents into UID STORE commands.

Why:
  Gmail has no real folders: every message lives in All Mail and mailboxes are
  label views. Archive, delete, and spam are label edits, and the label edits
  have to reach the canonical record. Bundling those rules with a coherent
  attribute cache keeps callers from re-implementing them and from reading
  stale state after a mutation.

How:
  The first accessor issues one batched FETCH of the prefetch attribute list
  and stores the response as a single cache generation
  (:class:`_FetchedAttributes`). Every mutator selects the owning mailbox,
  issues its STORE through the shared session, and drops the whole generation
  so the next read reflects server truth.

Interfaces:
  :class:`RemoteMessage` and the flag/label constants.

Invariants & Safety:
  - At most one FETCH per cache generation, whichever accessors are called.
  - A successful mutator leaves no cache behind; a failed one leaves the
    previous generation untouched.
  - Every remote command runs inside ``session.run_in_mailbox``; no selection
    is assumed to persist between calls.
  - Removing an absent flag or label succeeds; IMAP STORE treats it as a no-op.
"""
from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Optional, TypeVar

from imapclient import imap_utf7

from .config.loader import get_runtime_config
from .envelope import Envelope
from .errors import InvalidStateError, MessageNotFoundError, UnsupportedOperationError
from .imap.session import AttributeBundle, StoreOp
from .parser import EmailMessageParser, MessageParser, ParsedMessage
from .utils.logging import get_logger

if TYPE_CHECKING:
    from .imap.session import Session

T = TypeVar("T")

SEEN = "\\Seen"
FLAGGED = "\\Flagged"

INBOX_LABEL = "\\Inbox"
SPAM_LABEL = "\\Spam"
TRASH_LABEL = "\\Trash"


class _FetchedAttributes:
    """One cache generation: a FETCH response plus the fields derived from it.

    Derived fields are memoised on this object, so discarding it clears them
    all at once.
    """

    def __init__(self, bundle: AttributeBundle, parser: MessageParser) -> None:
        self.bundle = bundle
        self._parser = parser

    @cached_property
    def uid(self) -> Optional[int]:
        value = self.bundle.get("UID")
        return int(value) if value is not None else None

    @cached_property
    def message_id(self) -> Optional[int]:
        return self.bundle.get("X-GM-MSGID")

    @cached_property
    def thread_id(self) -> Optional[int]:
        return self.bundle.get("X-GM-THRID")

    @cached_property
    def envelope(self) -> Optional[Envelope]:
        raw = self.bundle.get("ENVELOPE")
        return Envelope.from_imap(raw) if raw is not None else None

    @cached_property
    def parsed_message(self) -> ParsedMessage:
        raw = self.bundle.get("BODY[]")
        if raw is None:
            raw = self.bundle.get("RFC822", b"")
        return self._parser.parse(raw)

    @cached_property
    def flags(self) -> FrozenSet[str]:
        return frozenset(self.bundle.get("FLAGS", ()))

    @cached_property
    def labels(self) -> FrozenSet[str]:
        return frozenset(self.bundle.get("X-GM-LABELS", ()))


class RemoteMessage:
    """A message addressed by UID inside one Gmail mailbox view.

    What:
      Lazily fetches and caches server attributes and exposes flag/label
      mutators, including the Gmail folder emulation (archive, delete, spam).

    Why:
      Higher layers want to say "archive this" or "is it read?" without
      thinking about mailbox selection, STORE syntax, label encoding, or cache
      staleness.

    How:
      Holds the mailbox *name* and the shared session (neither owned), the UID,
      and at most one :class:`_FetchedAttributes` generation.

    Args:
      session: Shared :class:`~gmailremote.imap.session.Session`.
      mailbox: Name of the mailbox view the UID belongs to.
      uid: Message UID, or ``None`` when ``attributes`` carries it.
      attributes: Optional pre-fetched bundle, used as the first generation.
      parser: :class:`~gmailremote.parser.MessageParser` for the raw body.
    """

    def __init__(
        self,
        session: "Session",
        mailbox: str,
        uid: Optional[int] = None,
        attributes: Optional[AttributeBundle] = None,
        *,
        parser: Optional[MessageParser] = None,
    ) -> None:
        self._session = session
        self._mailbox = mailbox
        self._uid = uid
        self._parser: MessageParser = parser or EmailMessageParser()
        self._cache: Optional[_FetchedAttributes] = None
        if attributes:
            self._cache = _FetchedAttributes(attributes, self._parser)

    def __repr__(self) -> str:
        parts = [f"mailbox={self._mailbox!r}"]
        if self._uid is not None:
            parts.append(f"uid={self._uid}")
        if self._cache is not None and self._cache.message_id is not None:
            parts.append(f"message_id={self._cache.message_id}")
        return f"<RemoteMessage {' '.join(parts)}>"

    @property
    def mailbox(self) -> str:
        return self._mailbox

    @property
    def is_cached(self) -> bool:
        """Whether a cache generation is currently held."""

        return self._cache is not None

    # Attribute cache ------------------------------------------------------
    def _require_mailbox(self) -> str:
        if not self._mailbox:
            raise InvalidStateError("Message has no mailbox view")
        return self._mailbox

    def _in_mailbox(self, work: Callable[[], T]) -> T:
        return self._session.run_in_mailbox(self._require_mailbox(), work)

    def _attributes(self) -> _FetchedAttributes:
        """Return the current generation, fetching it if needed.

        Raises:
          MessageNotFoundError: When the server returns nothing for the UID.
        """

        if self._cache is not None:
            return self._cache
        uid = self.uid
        prefetch = get_runtime_config().fetch.prefetch
        bundle = self._in_mailbox(lambda: self._session.fetch_by_uid(uid, prefetch))
        if not bundle:
            raise MessageNotFoundError(self._mailbox, uid)
        self._cache = _FetchedAttributes(bundle, self._parser)
        return self._cache

    def invalidate(self) -> None:
        """Drop the cache generation; the next accessor fetches again."""

        self._cache = None

    @property
    def uid(self) -> int:
        """Message UID, resolved from the pre-fetched bundle when not given.

        Raises:
          InvalidStateError: If neither a UID nor a bundle carrying one exists.
        """

        if self._uid is None:
            resolved = self._cache.uid if self._cache is not None else None
            if resolved is None:
                raise InvalidStateError("Message has neither a UID nor fetched attributes")
            self._uid = resolved
        return self._uid

    @property
    def message_id(self) -> Optional[int]:
        """Gmail ``X-GM-MSGID``, stable across every mailbox view."""

        return self._attributes().message_id

    @property
    def thread_id(self) -> Optional[int]:
        """Gmail ``X-GM-THRID``."""

        return self._attributes().thread_id

    @property
    def envelope(self) -> Optional[Envelope]:
        return self._attributes().envelope

    @property
    def parsed_message(self) -> ParsedMessage:
        """Parsed body; parsed at most once per cache generation."""

        return self._attributes().parsed_message

    @property
    def flags(self) -> FrozenSet[str]:
        return self._attributes().flags

    @property
    def labels(self) -> FrozenSet[str]:
        return self._attributes().labels

    def lookup(self, capability: str) -> Any:
        """Resolve ``capability`` on the envelope, then on the parsed message.

        What:
          Explicit replacement for open-ended attribute forwarding: ``subject``,
          ``date``, ``attachments`` and similar names resolve against the two
          structured views in a fixed priority order.

        Why:
          Both views know some of the same things (``subject``, ``date``); the
          envelope is authoritative and already fetched, so it wins.

        Args:
          capability: Field or property name.

        Returns:
          The resolved value.

        Raises:
          UnsupportedOperationError: When neither view offers ``capability``.
        """

        envelope = self.envelope
        if envelope is not None and capability in Envelope.capabilities():
            return getattr(envelope, capability)
        parsed = self.parsed_message
        if capability in getattr(type(parsed), "CAPABILITIES", frozenset()):
            return getattr(parsed, capability)
        raise UnsupportedOperationError(capability)

    # Flag and label mutation ----------------------------------------------
    def _store(self, op: StoreOp, value: str) -> bool:
        uid = self.uid
        token = imap_utf7.encode(value) if op.is_label_op else value
        self._in_mailbox(lambda: self._session.store_by_uid(uid, op, [token]))
        self.invalidate()
        return True

    def set_flag(self, name: str) -> bool:
        """Add IMAP flag ``name`` (e.g. ``"\\\\Seen"``)."""

        return self._store(StoreOp.ADD_FLAGS, name)

    def clear_flag(self, name: str) -> bool:
        """Remove IMAP flag ``name``; absent flags are a no-op success."""

        return self._store(StoreOp.REMOVE_FLAGS, name)

    def add_label(self, name: str) -> bool:
        """Apply Gmail label ``name`` (system labels start with a backslash)."""

        return self._store(StoreOp.ADD_LABELS, name)

    def remove_label(self, name: str) -> bool:
        """Remove Gmail label ``name``; absent labels are a no-op success."""

        return self._store(StoreOp.REMOVE_LABELS, name)

    def is_read(self) -> bool:
        return SEEN in self.flags

    def is_starred(self) -> bool:
        return FLAGGED in self.flags

    def mark_read(self) -> bool:
        return self.set_flag(SEEN)

    def mark_unread(self) -> bool:
        return self.clear_flag(SEEN)

    def star(self) -> bool:
        return self.set_flag(FLAGGED)

    def unstar(self) -> bool:
        return self.clear_flag(FLAGGED)

    def mark_as_spam(self) -> bool:
        """Apply ``\\Spam``; :meth:`unarchive` undoes it."""

        return self.add_label(SPAM_LABEL)

    def delete(self) -> bool:
        """Apply ``\\Trash``; :meth:`unarchive` undoes it."""

        return self.add_label(TRASH_LABEL)

    def unarchive(self) -> bool:
        """Re-apply ``\\Inbox``. Also restores deleted and spam messages."""

        return self.add_label(INBOX_LABEL)

    def mark(self, name: str) -> bool:
        """Apply a named state: read, unread, deleted, spam, or a raw flag."""

        actions: Dict[str, Callable[[], bool]] = {
            "read": self.mark_read,
            "unread": self.mark_unread,
            "deleted": self.delete,
            "spam": self.mark_as_spam,
        }
        action = actions.get(name)
        if action is None:
            return self.set_flag(name)
        return action()

    def move(self, to_label: str, from_label: Optional[str] = None) -> bool:
        """Add ``to_label`` then, if given, remove ``from_label``.

        The two STOREs are independent: if the second fails ``to_label`` stays
        applied.
        """

        self.add_label(to_label)
        if from_label:
            self.remove_label(from_label)
        return True

    # Archive --------------------------------------------------------------
    def _in_view(self, name: str) -> bool:
        if self._mailbox.upper() == "INBOX" or name.upper() == "INBOX":
            return self._mailbox.upper() == name.upper()
        return self._mailbox == name

    def _locate_in(self, mailbox: str) -> Optional["RemoteMessage"]:
        """Find this message's counterpart in ``mailbox`` by Gmail message id.

        Lists the whole mailbox and filters client-side; the first match wins.
        Candidates that vanish during the scan are skipped. Without a Gmail
        message id there is nothing to match on and ``None`` is returned.
        """

        message_id = self.message_id
        if message_id is None:
            return None
        for candidate in self._session.list_messages(mailbox):
            try:
                if candidate.message_id == message_id:
                    return candidate
            except MessageNotFoundError:
                continue
        return None

    def archive(self) -> bool:
        """Remove ``\\Inbox`` from the message.

        What:
          Viewed through the Inbox, the label is first removed from the All
          Mail counterpart (matched by Gmail message id), then from this view.

        Why:
          A label removal issued against a label view does not reliably clear
          the label on the record Gmail treats as canonical.

        Raises:
          InvalidStateError: If the mailbox view is unknown.
        """

        self._require_mailbox()
        mailboxes = get_runtime_config().mailboxes
        if self._in_view(mailboxes.inbox):
            counterpart = self._locate_in(mailboxes.all_mail)
            if counterpart is None:
                get_logger("message").warning(
                    "no All Mail counterpart",
                    mailbox=self._mailbox,
                    uid=self.uid,
                    message_id=self.message_id,
                )
            else:
                counterpart.remove_label(INBOX_LABEL)
        return self.remove_label(INBOX_LABEL)
