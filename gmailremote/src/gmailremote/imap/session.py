"""Session capability consumed by :class:`~gmailremote.message.RemoteMessage`.

What:
  Formalise the narrow IMAP surface the message layer depends on: mailbox
  selection, a scoped "select then run" helper, UID FETCH, UID STORE, and
  mailbox listing.

Why:
  A structural protocol decouples message semantics from
  :class:`~gmailremote.imap.client.GmailImapClient`, so alternative sessions
  (fakes, pooled connections) only need to match these signatures.

How:
  :class:`StoreOp` names the four STORE variants; :class:`Session` annotates the
  required methods.

Interfaces:
  :class:`StoreOp`, :class:`Session`, :data:`AttributeBundle`.

Invariants & Safety:
  - All message addressing is by UID; sequence numbers are never used.
  - ``run_in_mailbox`` is the only way to make a selection stick for a unit of
    work; nothing may assume a selection survives between calls.
"""
from __future__ import annotations

import enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
)

if TYPE_CHECKING:
    from ..message import RemoteMessage

T = TypeVar("T")

AttributeBundle = Dict[str, Any]
"""FETCH response for one message keyed by upper-case attribute name."""


class StoreOp(enum.Enum):
    """UID STORE variants, valued by their IMAP data item."""

    ADD_FLAGS = "+FLAGS"
    REMOVE_FLAGS = "-FLAGS"
    ADD_LABELS = "+X-GM-LABELS"
    REMOVE_LABELS = "-X-GM-LABELS"

    @property
    def is_label_op(self) -> bool:
        return self in (StoreOp.ADD_LABELS, StoreOp.REMOVE_LABELS)


class Session(Protocol):
    """IMAP operations required by the message layer."""

    def select_mailbox(self, name: str) -> None:
        """Make ``name`` the active mailbox.

        Raises:
          MailboxSelectionError: When the server refuses the selection.
        """

    def run_in_mailbox(self, name: str, work: Callable[[], T]) -> T:
        """Select ``name`` and run ``work`` as one atomic unit on the session.

        The result of ``work`` is returned and its exceptions propagate
        unchanged.
        """

    def fetch_by_uid(self, uid: int, attributes: Sequence[str]) -> Optional[AttributeBundle]:
        """Fetch ``attributes`` for ``uid`` in the selected mailbox.

        Returns:
          The normalised attribute bundle, or ``None`` when the server returned
          nothing for ``uid``.
        """

    def store_by_uid(self, uid: int, op: StoreOp, values: Iterable[bytes | str]) -> None:
        """Apply a STORE to ``uid`` in the selected mailbox.

        Label values arrive already IMAP-UTF-7 encoded. Removing an absent
        value is a successful no-op.
        """

    def list_messages(
        self, mailbox: str, filters: Optional[Mapping[str, object]] = None
    ) -> List["RemoteMessage"]:
        """Return handles for every message in ``mailbox`` matching ``filters``."""
