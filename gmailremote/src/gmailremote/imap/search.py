"""Translate filter dictionaries into imapclient search criteria.

What:
  Provide a deterministic mapping from gmailremote filter dictionaries to the
  flat criteria lists consumed by ``IMAPClient.search``.

Why:
  Keeping the translation centralised ensures listing queries stay consistent
  and lets Gmail extension keys (``X-GM-LABELS``, ``X-GM-MSGID``,
  ``X-GM-THRID``) be whitelisted in one place.

How:
  Iterates through the filter dictionary, converting supported keys into IMAP
  keyword/value pairs while ignoring ``None`` entries. An empty result becomes
  ``["ALL"]``.

Interfaces:
  :func:`build_search`.

Invariants & Safety:
  - Only whitelisted keys are translated; anything else raises ``ValueError``
    rather than being passed through to the server.
  - Boolean toggles emit bare keywords only when true.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Mapping, Optional

from imapclient import imap_utf7


def build_search(filters: Optional[Mapping[str, object]] = None) -> List[object]:
    """Convert a filter mapping into IMAP search criteria.

    What:
      Inspects ``filters`` for supported keys (``since``, ``before``,
      ``unseen``, ``flagged``, ``subject``, ``sender``, ``label``,
      ``message_id``, ``thread_id``) and builds an ordered criteria list.

    Why:
      IMAP search syntax is positional and picky about argument formats; Gmail
      labels additionally need the same UTF-7 encoding used for STORE.

    How:
      Skips ``None`` values, dispatches on the key, and appends keyword/value
      pairs. ``datetime`` values are narrowed to ``date`` as IMAP only compares
      days.

    Args:
      filters: User-specified filter mapping, or ``None``.

    Returns:
      Criteria list suitable for ``IMAPClient.search``.

    Raises:
      ValueError: For an unknown key or a value of the wrong type.
    """

    criteria: List[object] = []
    for key, value in (filters or {}).items():
        if value is None:
            continue
        if key in ("since", "before"):
            if not isinstance(value, date):
                raise ValueError(f"{key} filter requires a date, got {value!r}")
            day = value.date() if isinstance(value, datetime) else value
            criteria.extend([key.upper(), day])
        elif key in ("unseen", "flagged"):
            if value:
                criteria.append(key.upper())
        elif key == "subject":
            criteria.extend(["SUBJECT", str(value)])
        elif key == "sender":
            criteria.extend(["FROM", str(value)])
        elif key == "label":
            criteria.extend(["X-GM-LABELS", imap_utf7.encode(str(value))])
        elif key == "message_id":
            criteria.extend(["X-GM-MSGID", int(value)])
        elif key == "thread_id":
            criteria.extend(["X-GM-THRID", int(value)])
        else:
            raise ValueError(f"Unsupported search filter {key!r}")
    return criteria or ["ALL"]
