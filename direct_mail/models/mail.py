"""Pydantic models for outbound and retrieved mail."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from ..exceptions import ValidationError


class Protocol(str, Enum):
    """Protocol used to retrieve mail."""

    POP3 = "pop3"
    IMAP = "imap"


class SendOutcome(str, Enum):
    """Outcome of one send attempt.

    Completion is not an outcome; the ``on_complete`` hook signals it after
    either of these.
    """

    SUCCESS = "success"
    FAILURE = "failure"


def normalize_recipients(value: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Turn a recipient list or comma-separated string into an ordered, de-duplicated tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")

    seen: set[str] = set()
    result = []
    for item in value:
        address = str(item).strip()
        if address and address not in seen:
            seen.add(address)
            result.append(address)
    return tuple(result)


class OutboundMessage(BaseModel):
    """Message to be sent."""

    recipients: tuple[str, ...] = Field(default=(), description="To recipients, in order")
    subject: str | None = Field(default=None, description="Email subject")
    body: str | None = Field(default=None, description="Plain-text body")
    attachment_path: Path | None = Field(default=None, description="File to attach")

    model_config = {"frozen": True}

    @field_validator("recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value):
        return normalize_recipients(value)

    @property
    def is_sendable(self) -> bool:
        """Whether the message has at least one recipient and a body."""
        return bool(self.recipients) and self.body is not None

    def require_body(self) -> None:
        """Raise if the message has no body."""
        if self.body is None:
            raise ValidationError("Message body is required to send")


class SendResult(BaseModel):
    """Result of one send attempt."""

    outcome: SendOutcome = Field(description="SUCCESS or FAILURE")
    message_id: str | None = Field(default=None, description="Message-ID header of sent message")
    error: str | None = Field(default=None, description="Error message if failed")
    attachment_skipped: bool = Field(
        default=False, description="Whether the attachment could not be read and was left out"
    )
    sent_at: datetime | None = Field(default=None, description="Date/time the message was sent")

    model_config = {"frozen": True}

    @property
    def success(self) -> bool:
        return self.outcome == SendOutcome.SUCCESS


class EmailAddress(BaseModel):
    """Email address with optional display name."""

    email: str = Field(description="Email address")
    name: str = Field(default="", description="Display name")

    model_config = {"frozen": True}


class RetrievedMessage(BaseModel):
    """Message read from a POP3 or IMAP mailbox."""

    index: int = Field(description="Zero-based position in the mailbox")
    subject: str = Field(default="", description="Email subject")
    body: str = Field(default="", description="Plain-text (or HTML) body content")
    sender: EmailAddress | None = Field(default=None, description="Sender email address")
    recipients: list[EmailAddress] = Field(default_factory=list, description="To recipients")
    cc_recipients: list[EmailAddress] = Field(default_factory=list, description="CC recipients")
    sent_at: datetime | None = Field(default=None, description="Date/time sent")
    has_attachments: bool = Field(default=False, description="Whether message has attachments")

    model_config = {"frozen": True}
