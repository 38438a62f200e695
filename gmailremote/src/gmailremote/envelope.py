"""Typed view of the IMAP ENVELOPE structure.

What:
  Convert the :class:`imapclient.response_types.Envelope` returned by FETCH into
  frozen dataclasses whose text fields are decoded ``str`` values.

Why:
  imapclient hands back raw bytes, possibly RFC 2047 encoded-words, and ``None``
  for absent address lists. Callers asking for ``envelope.subject`` expect a
  readable string, and the capability lookup on
  :class:`~gmailremote.message.RemoteMessage` needs an enumerated field set.

How:
  :meth:`Envelope.from_imap` walks the imapclient tuple once, decoding each
  value through :func:`_decode_text` (``email.header`` based).

Interfaces:
  :class:`Address`, :class:`Envelope`.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from email.header import decode_header, make_header
from typing import Any, FrozenSet, Iterable, Optional, Tuple


def _decode_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value)
    try:
        return str(make_header(decode_header(text)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return text


@dataclass(frozen=True)
class Address:
    """One mailbox from an envelope address list."""

    name: Optional[str]
    mailbox: Optional[str]
    host: Optional[str]

    @property
    def email(self) -> str:
        if self.host:
            return f"{self.mailbox}@{self.host}"
        return self.mailbox or ""

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email

    @classmethod
    def from_imap(cls, address: Any) -> "Address":
        return cls(
            name=_decode_text(address.name),
            mailbox=_decode_text(address.mailbox),
            host=_decode_text(address.host),
        )


def _addresses(values: Optional[Iterable[Any]]) -> Tuple[Address, ...]:
    if not values:
        return ()
    return tuple(Address.from_imap(value) for value in values)


@dataclass(frozen=True)
class Envelope:
    """Decoded ENVELOPE summary of a message.

    Attributes:
      date: Parsed ``Date`` header, or ``None`` when unparseable.
      subject: Decoded subject line.
      from_: ``From`` addresses (trailing underscore mirrors imapclient).
      sender, reply_to, to, cc, bcc: Remaining address lists.
      in_reply_to: Raw ``In-Reply-To`` value.
      message_id: RFC 5322 ``Message-ID`` header (not the Gmail X-GM-MSGID).
    """

    date: Optional[datetime]
    subject: Optional[str]
    from_: Tuple[Address, ...]
    sender: Tuple[Address, ...]
    reply_to: Tuple[Address, ...]
    to: Tuple[Address, ...]
    cc: Tuple[Address, ...]
    bcc: Tuple[Address, ...]
    in_reply_to: Optional[str]
    message_id: Optional[str]

    @classmethod
    def capabilities(cls) -> FrozenSet[str]:
        """Names a caller may resolve through :meth:`RemoteMessage.lookup`."""

        return frozenset(field.name for field in fields(cls)) | {"from_address"}

    @property
    def from_address(self) -> Optional[Address]:
        return self.from_[0] if self.from_ else None

    @classmethod
    def from_imap(cls, envelope: Any) -> "Envelope":
        """Build an :class:`Envelope` from an imapclient ENVELOPE response."""

        date = envelope.date if isinstance(envelope.date, datetime) else None
        return cls(
            date=date,
            subject=_decode_text(envelope.subject),
            from_=_addresses(envelope.from_),
            sender=_addresses(envelope.sender),
            reply_to=_addresses(envelope.reply_to),
            to=_addresses(envelope.to),
            cc=_addresses(envelope.cc),
            bcc=_addresses(envelope.bcc),
            in_reply_to=_decode_text(envelope.in_reply_to),
            message_id=_decode_text(envelope.message_id),
        )
