"""Pydantic models describing the gmailremote runtime configuration."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_PREFETCH = [
    "UID",
    "ENVELOPE",
    "BODY.PEEK[]",
    "FLAGS",
    "X-GM-LABELS",
    "X-GM-MSGID",
    "X-GM-THRID",
]


class ImapSettings(BaseModel):
    """Server level connection defaults."""

    model_config = ConfigDict(extra="forbid")

    host: str = "imap.gmail.com"
    port: int = Field(default=993, gt=0)
    ssl: bool = True
    timeout: Optional[float] = Field(default=None, gt=0)
    max_actions_per_minute: int = Field(default=500, gt=0)


class MailboxSettings(BaseModel):
    """Names of the Gmail system mailboxes as exposed over IMAP."""

    model_config = ConfigDict(extra="forbid")

    inbox: str = "INBOX"
    all_mail: str = "[Gmail]/All Mail"


class FetchSettings(BaseModel):
    """Attribute list requested whenever a message cache is populated."""

    model_config = ConfigDict(extra="forbid")

    prefetch: List[str] = Field(default_factory=lambda: list(DEFAULT_PREFETCH))

    @field_validator("prefetch")
    @classmethod
    def _require_core_attributes(cls, value: List[str]) -> List[str]:
        normalised = [item.upper() for item in value]
        missing = [item for item in DEFAULT_PREFETCH if item not in normalised]
        if missing:
            raise ValueError(f"prefetch must include {', '.join(missing)}")
        return normalised


class LoggingSettings(BaseModel):
    """JSON logger defaults."""

    model_config = ConfigDict(extra="forbid")

    component: str = "gmailremote"
    redact: List[str] = Field(
        default_factory=lambda: ["subject", "body", "preview", "snippet", "password"]
    )


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``gmailremote.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    imap: ImapSettings = Field(default_factory=ImapSettings)
    mailboxes: MailboxSettings = Field(default_factory=MailboxSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
