"""MIME parsing capability consumed by :class:`~gmailremote.message.RemoteMessage`.

What:
  Define the :class:`MessageParser` protocol and a default implementation that
  turns a raw RFC 822 payload into a :class:`ParsedMessage` with header, body,
  and attachment accessors.

Why:
  Full MIME parsing is not this library's job. The message layer only needs a
  narrow contract so applications can plug in their own parser while the
  default stays on the standard library.

How:
  :class:`EmailMessageParser` uses :class:`email.parser.BytesParser` with the
  default policy. :class:`ParsedMessage` computes its views on demand from the
  resulting :class:`email.message.EmailMessage`.

Interfaces:
  :class:`MessageParser`, :class:`EmailMessageParser`, :class:`ParsedMessage`,
  :class:`Attachment`.

Invariants & Safety:
  - Text parts are decoded with ``errors="ignore"`` so undecodable bytes never
    raise out of an accessor.
  - Parsing never touches the network.
"""
from __future__ import annotations

from dataclasses import dataclass
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from functools import cached_property
from typing import Dict, FrozenSet, Optional, Protocol, Tuple


@dataclass(frozen=True)
class Attachment:
    """A non-body MIME part carrying a filename or attachment disposition."""

    filename: Optional[str]
    content_type: str
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


class ParsedMessage:
    """Structured view of a parsed message.

    Attribute access is limited to :data:`CAPABILITIES` when resolved through
    :meth:`RemoteMessage.lookup`; the wrapped :class:`EmailMessage` stays
    available as :attr:`message` for anything else.
    """

    CAPABILITIES: FrozenSet[str] = frozenset(
        {"message", "headers", "subject", "sender", "date", "text", "html", "attachments"}
    )

    def __init__(self, message: EmailMessage) -> None:
        self.message = message

    @cached_property
    def headers(self) -> Dict[str, str]:
        """Header values keyed by lowercase name (last occurrence wins)."""

        return {name.lower(): str(value) for name, value in self.message.items()}

    @property
    def subject(self) -> Optional[str]:
        return self.headers.get("subject")

    @property
    def sender(self) -> Optional[str]:
        return self.headers.get("from")

    @property
    def date(self) -> Optional[str]:
        return self.headers.get("date")

    @cached_property
    def text(self) -> Optional[str]:
        return self._body_content(("plain",))

    @cached_property
    def html(self) -> Optional[str]:
        return self._body_content(("html",))

    @cached_property
    def attachments(self) -> Tuple[Attachment, ...]:
        found = []
        for part in self.message.iter_attachments():
            payload = part.get_payload(decode=True) or b""
            found.append(
                Attachment(
                    filename=part.get_filename(),
                    content_type=part.get_content_type(),
                    payload=payload,
                )
            )
        return tuple(found)

    def _body_content(self, preference: Tuple[str, ...]) -> Optional[str]:
        body = self.message.get_body(preferencelist=preference)
        if body is None:
            return None
        payload = body.get_content()
        if isinstance(payload, bytes):
            payload = payload.decode(body.get_content_charset("utf-8"), errors="ignore")
        return payload


class MessageParser(Protocol):
    """Anything able to turn raw message bytes into a :class:`ParsedMessage`."""

    def parse(self, raw: bytes) -> ParsedMessage:
        ...


class EmailMessageParser:
    """Default :class:`MessageParser` backed by :mod:`email`."""

    def parse(self, raw: bytes) -> ParsedMessage:
        message = BytesParser(policy=policy.default).parsebytes(raw)
        return ParsedMessage(message)
