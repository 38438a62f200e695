"""Gmail IMAP session built on ``imapclient``.

What:
  Wrap the third-party ``imapclient`` library into the
  :class:`~gmailremote.imap.session.Session` capability: connection lifecycle,
  locked mailbox selection, UID FETCH/STORE with Gmail label support, and
  mailbox listing that yields :class:`~gmailremote.message.RemoteMessage`
  handles.

Why:
  IMAP is stateful: a STORE acts on whichever mailbox was selected last on the
  connection. Two callers interleaving SELECT and STORE on one connection would
  edit the wrong mailbox. Centralising selection behind a lock, translating
  imapclient failures into :mod:`gmailremote.errors`, and normalising FETCH
  responses keeps the message layer free of transport details.

How:
  Loads defaults from the runtime configuration, opens the connection in
  :meth:`GmailImapClient.__enter__`, and guards every select-then-command unit
  with a re-entrant lock. Mutating commands pass through :meth:`_throttle`,
  which enforces a per-minute action cap.

Interfaces:
  :class:`GmailImapConfig` and :class:`GmailImapClient`.

Invariants & Safety:
  - All operations run in UID mode; sequence-number methods are avoided.
  - A selection and the commands depending on it always run under one lock
    acquisition.
  - Label tokens are sent IMAP-UTF-7 encoded; FETCH results come back decoded.
"""
from __future__ import annotations

import contextlib
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Deque,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
)

from imapclient import IMAPClient, imap_utf7
from imapclient.exceptions import IMAPClientError

from ..config.loader import get_runtime_config
from ..errors import MailboxSelectionError, RateLimitError, TransportError
from ..message import RemoteMessage
from ..utils.logging import get_logger
from .search import build_search
from .session import AttributeBundle, StoreOp

T = TypeVar("T")


@dataclass
class GmailImapConfig:
    """Connection parameters for a Gmail IMAP account.

    What:
      Captures credentials and optional connection overrides.

    Why:
      Operators usually only supply a username and an app password; host, port,
      TLS, and timeout default from :func:`get_runtime_config`.

    Attributes:
      username: Login credential (the Gmail address).
      password: App password or OAuth-derived token.
      host: IMAP hostname.
      port: IMAP port.
      ssl: Whether to use implicit TLS.
      timeout: Socket timeout in seconds passed to imapclient.
    """

    username: str
    password: str
    host: Optional[str] = None
    port: Optional[int] = None
    ssl: Optional[bool] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        settings = get_runtime_config().imap
        if self.host is None:
            self.host = settings.host
        if self.port is None:
            self.port = settings.port
        if self.ssl is None:
            self.ssl = settings.ssl
        if self.timeout is None:
            self.timeout = settings.timeout

    def __repr__(self) -> str:
        return (
            f"GmailImapConfig(username={self.username!r}, host={self.host!r}, "
            f"port={self.port!r}, ssl={self.ssl!r})"
        )


@contextlib.contextmanager
def _transport_errors(action: str) -> Iterator[None]:
    """Re-raise imapclient and socket failures as :class:`TransportError`."""

    try:
        yield
    except (IMAPClientError, OSError) as exc:
        raise TransportError(f"IMAP {action} failed: {exc}") from exc


def _decode_token(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("ascii", errors="replace")
    return str(value)


def _decode_label(value: Any) -> str:
    # imapclient parses an all-digit label atom as an int.
    if isinstance(value, (bytes, str)):
        return imap_utf7.decode(value)
    return str(value)


def _normalise_bundle(data: Mapping[Any, Any]) -> AttributeBundle:
    """Key a raw imapclient FETCH dict by upper-case ``str`` names.

    ``FLAGS`` become a frozenset of ``str`` tokens and ``X-GM-LABELS`` a
    frozenset of UTF-7 decoded label names. Other values pass through.
    """

    bundle: AttributeBundle = {}
    for key, value in data.items():
        name = _decode_token(key).upper()
        if name == "FLAGS":
            value = frozenset(_decode_token(flag) for flag in value or ())
        elif name == "X-GM-LABELS":
            value = frozenset(_decode_label(label) for label in value or ())
        bundle[name] = value
    return bundle


class GmailImapClient:
    """Context manager owning one Gmail IMAP connection.

    What:
      Implements :class:`~gmailremote.imap.session.Session` over a single
      ``imapclient.IMAPClient``.

    Why:
      Every :class:`RemoteMessage` shares this object. Serialising selection and
      command execution here is what makes message operations safe to call in
      any order, from any thread.

    How:
      Lazily connects in :meth:`__enter__`, tracks the active mailbox, and
      exposes :meth:`run_in_mailbox` / :meth:`session` as the only ways to pair
      a SELECT with the commands that depend on it.
    """

    def __init__(self, config: GmailImapConfig):
        settings = get_runtime_config()
        self._config = config
        self._client: Optional[IMAPClient] = None
        self._selected: Optional[str] = None
        self._lock = threading.RLock()
        self._actions: Deque[float] = deque()
        self._max_actions = settings.imap.max_actions_per_minute
        self._log = get_logger("imap.client")

    def __enter__(self) -> "GmailImapClient":
        """Open the connection and log in.

        Raises:
          TransportError: When the server is unreachable or rejects the login.
        """

        self._log.info("connecting", host=self._config.host, port=self._config.port)
        with _transport_errors("connect"):
            self._client = IMAPClient(
                self._config.host,
                port=self._config.port,
                ssl=self._config.ssl,
                timeout=self._config.timeout,
            )
        try:
            with _transport_errors("login"):
                self._client.login(self._config.username, self._config.password)
        except TransportError:
            self._client = None
            raise
        if not self._client.has_capability("X-GM-EXT-1"):
            self._log.warning("server lacks Gmail extensions", host=self._config.host)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._client is None:
            return
        try:
            with _transport_errors("logout"):
                self._client.logout()
        finally:
            self._client = None
            self._selected = None
            self._log.info("disconnected", host=self._config.host)

    @property
    def client(self) -> IMAPClient:
        """Expose the underlying ``IMAPClient`` connection.

        Raises:
          RuntimeError: If accessed before :meth:`__enter__`.
        """

        if self._client is None:
            raise RuntimeError("IMAP client not connected")
        return self._client

    @property
    def config(self) -> GmailImapConfig:
        return self._config

    @property
    def selected(self) -> Optional[str]:
        """Name of the mailbox most recently selected on the connection."""

        return self._selected

    def select_mailbox(self, name: str) -> None:
        """Select ``name`` on the connection.

        Raises:
          MailboxSelectionError: When the server refuses the mailbox.
          TransportError: On socket failures.
        """

        with self._lock:
            try:
                self.client.select_folder(name)
            except IMAPClientError as exc:
                self._selected = None
                self._log.error("select failed", mailbox=name, error=str(exc))
                raise MailboxSelectionError(f"Cannot select mailbox {name!r}: {exc}") from exc
            except OSError as exc:
                self._selected = None
                raise TransportError(f"IMAP select failed: {exc}") from exc
            self._selected = name

    @contextlib.contextmanager
    def session(self, mailbox: str) -> Iterator[str]:
        """Hold the session lock with ``mailbox`` selected for the block.

        The previous selection is not restored; callers re-select for every
        unit of work.

        Yields:
          The selected mailbox name.
        """

        with self._lock:
            self.select_mailbox(mailbox)
            yield mailbox

    def run_in_mailbox(self, name: str, work: Callable[[], T]) -> T:
        with self.session(name):
            return work()

    def _throttle(self) -> None:
        """Enforce the per-minute cap on mutating commands.

        Raises:
          RateLimitError: When the cap is already reached.
        """

        now = time.monotonic()
        while self._actions and now - self._actions[0] > 60:
            self._actions.popleft()
        if len(self._actions) >= self._max_actions:
            raise RateLimitError(self._max_actions)
        self._actions.append(now)

    def fetch_by_uid(self, uid: int, attributes: Sequence[str]) -> Optional[AttributeBundle]:
        """Fetch ``attributes`` for ``uid`` from the selected mailbox.

        Returns:
          Normalised bundle (see :func:`_normalise_bundle`) or ``None`` when the
          server returned no data for ``uid``.
        """

        with self._lock, _transport_errors("fetch"):
            response = self.client.fetch([uid], list(attributes))
        data = response.get(uid)
        if not data:
            return None
        return _normalise_bundle(data)

    def store_by_uid(self, uid: int, op: StoreOp, values: Iterable[bytes | str]) -> None:
        """Issue a silent UID STORE for ``uid`` in the selected mailbox."""

        tokens: List[bytes | str] = list(values)
        with self._lock:
            self._throttle()
            with _transport_errors("store"):
                if op is StoreOp.ADD_FLAGS:
                    self.client.add_flags([uid], tokens, silent=True)
                elif op is StoreOp.REMOVE_FLAGS:
                    self.client.remove_flags([uid], tokens, silent=True)
                elif op is StoreOp.ADD_LABELS:
                    self.client.add_gmail_labels([uid], tokens, silent=True)
                else:
                    self.client.remove_gmail_labels([uid], tokens, silent=True)
            self._log.info(
                "store",
                mailbox=self._selected,
                uid=uid,
                op=op.value,
                values=[_decode_token(token) for token in tokens],
            )

    def list_messages(
        self, mailbox: str, filters: Optional[Mapping[str, object]] = None
    ) -> List[RemoteMessage]:
        """Return a handle per message in ``mailbox`` matching ``filters``.

        Handles carry only their UID; attributes are fetched lazily on first
        access.
        """

        criteria = build_search(filters)
        with self.session(mailbox), _transport_errors("search"):
            uids = self.client.search(criteria)
        return [RemoteMessage(self, mailbox, uid) for uid in sorted(uids)]

