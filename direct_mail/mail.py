"""Mail client sending over SMTP and reading over POP3/IMAP.

Each send is one SMTP round trip run in the background by a
:class:`~direct_mail.dispatcher.Dispatcher`. Results are reported through
``on_success``/``on_error`` followed by ``on_complete``; send failures are
never raised to the caller.
"""

import asyncio
import email
import email.utils
import logging
import mimetypes
from datetime import UTC, datetime
from email import encoders
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from .dispatcher import Dispatcher, SendListener, SendTask
from .exceptions import AttachmentUnavailableError, DirectMailError, ValidationError
from .models.account import AccountConfiguration
from .models.mail import (
    EmailAddress,
    OutboundMessage,
    Protocol,
    RetrievedMessage,
    SendOutcome,
    SendResult,
)
from .transport import open_imap, open_pop3, open_smtp

logger = logging.getLogger(__name__)

# Folder read by IMAP retrieval
_IMAP_FOLDER = "INBOX"


def _decode_header_value(value: str | None) -> str:
    """Decode an RFC 2047 header, keeping the raw text if a charset is unknown."""
    if not value:
        return ""
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError):
        return value


def _parse_address_list(header_value: str | None) -> list[EmailAddress]:
    """Parse a comma-separated list of email addresses."""
    if not header_value:
        return []
    return [
        EmailAddress(email=email_addr, name=_decode_header_value(name))
        for name, email_addr in email.utils.getaddresses([header_value])
        if email_addr
    ]


def _parse_sender(header_value: str | None) -> EmailAddress | None:
    addresses = _parse_address_list(header_value)
    return addresses[0] if addresses else None


def _parse_date(date_string: str | None) -> datetime | None:
    if not date_string:
        return None
    try:
        return email.utils.parsedate_to_datetime(date_string)
    except (TypeError, ValueError):
        return None


def _get_body(msg: Message) -> str:
    """Extract the plain-text body, falling back to HTML."""
    if not msg.is_multipart():
        payload = msg.get_payload(decode=True)
        if not payload:
            return ""
        return payload.decode(msg.get_content_charset() or "utf-8", errors="replace")

    text_body = ""
    html_body = ""
    for part in msg.walk():
        if "attachment" in part.get("Content-Disposition", ""):
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue
        payload = part.get_payload(decode=True)
        if not payload:
            continue
        content = payload.decode(part.get_content_charset() or "utf-8", errors="replace")
        if content_type == "text/plain" and not text_body:
            text_body = content
        elif content_type == "text/html" and not html_body:
            html_body = content
    return text_body or html_body


def _has_attachments(msg: Message) -> bool:
    """Check if message has attachments."""
    if not msg.is_multipart():
        return False
    return any("attachment" in part.get("Content-Disposition", "") for part in msg.walk())


def _parse_retrieved(index: int, raw: bytes) -> RetrievedMessage:
    msg = email.message_from_bytes(raw)
    return RetrievedMessage(
        index=index,
        subject=_decode_header_value(msg.get("Subject", "")),
        body=_get_body(msg),
        sender=_parse_sender(msg.get("From")),
        recipients=_parse_address_list(msg.get("To")),
        cc_recipients=_parse_address_list(msg.get("Cc")),
        sent_at=_parse_date(msg.get("Date")),
        has_attachments=_has_attachments(msg),
    )


def _attachment_part(path: Path) -> MIMEBase:
    """Load a file into a MIME attachment part.

    Raises:
        AttachmentUnavailableError: If the file cannot be read
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise AttachmentUnavailableError(f"Cannot read attachment {path}: {e}") from e

    content_type, encoding = mimetypes.guess_type(path.name)
    if content_type is None or encoding is not None:
        content_type = "application/octet-stream"
    maintype, subtype = content_type.split("/", 1)

    part = MIMEBase(maintype, subtype)
    part.set_payload(data)
    encoders.encode_base64(part)
    part.add_header("Content-Disposition", "attachment", filename=path.name)
    return part


def select_indices(count: int, start: int, stop: int) -> range:
    """Zero-based message indices to retrieve from a mailbox of ``count`` messages.

    - ``start == 0 and stop == 0``: every message
    - ``start == 0``: ``[0, stop)``
    - both given: ``[start, stop)``
    - ``start > 0 and stop == 0``: ``[start, count)``

    Ranges are clipped to the mailbox size.
    """
    if stop == 0:
        if start > 0:
            logger.warning(
                f"Retrieval with start={start} and no stop has unclear semantics; "
                f"reading from {start} to the end of the mailbox"
            )
        return range(min(start, count), count)
    return range(min(start, count), min(stop, count))


class MailClient:
    """Client bound to one account configuration and its secret.

    The secret is only handed to the transport layer through
    :meth:`provide_credentials`. It is never logged or serialized.

    Usage:
        registry = ProviderRegistry.default()
        config = registry.build("me@gmail.com", "me", "app-password", "gmail")
        client = config.create_client(
            listener=SendListener(on_success=lambda: print("sent"))
        )
        task = client.send(["friend@example.com"], "Hello", "Message body")
    """

    def __init__(
        self,
        config: AccountConfiguration,
        secret: str,
        listener: SendListener | None = None,
        timeout: int = 30,
        debug: bool = False,
        dispatcher: Dispatcher | None = None,
    ):
        """Initialize the mail client.

        Args:
            config: Account configuration to send from
            secret: Password matching the configuration's username
            listener: Default hooks for sends without their own listener
            timeout: Socket timeout in seconds
            debug: Print protocol conversations from the standard library clients
            dispatcher: Runs sends in the background (default: new Dispatcher)

        Raises:
            ValidationError: If the configuration or secret is missing
        """
        if config is None:
            raise ValidationError("Cannot create a MailClient without a configuration")
        if not secret:
            raise ValidationError("Cannot create a MailClient without a secret")

        self._config = config
        self._secret = secret
        self._listener = listener
        self._timeout = timeout
        self._debug = debug
        self._dispatcher = dispatcher or Dispatcher()

    def __repr__(self) -> str:
        return f"MailClient({self._config.email_address!r} via {self._config.smtp_host!r})"

    @property
    def config(self) -> AccountConfiguration:
        return self._config

    def provide_credentials(self) -> tuple[str, str]:
        """Return (username, secret) for server login."""
        return self._config.username, self._secret

    def set_listener(self, listener: SendListener | None) -> None:
        """Set the default hooks for sends without their own listener."""
        self._listener = listener

    def build_mime(
        self, message: OutboundMessage, sent_at: datetime | None = None
    ) -> tuple[MIMEMultipart, bool]:
        """Assemble a new multipart message.

        A fresh container is built on every call. An attachment that cannot be
        read is logged and left out.

        Args:
            message: Message to assemble
            sent_at: Timestamp for the Date header (default: now)

        Returns:
            Tuple of (MIME message, whether the attachment was skipped)
        """
        sent_at = sent_at or datetime.now(tz=UTC)

        msg = MIMEMultipart()
        msg["From"] = self._config.email_address
        msg["To"] = ", ".join(message.recipients)
        if message.subject is not None:
            msg["Subject"] = message.subject
        msg["Date"] = email.utils.format_datetime(sent_at)
        domain = self._config.email_address.rpartition("@")[2] or None
        msg["Message-ID"] = email.utils.make_msgid(domain=domain)

        msg.attach(MIMEText(message.body or "", "plain", "utf-8"))

        attachment_skipped = False
        if message.attachment_path is not None:
            try:
                msg.attach(_attachment_part(message.attachment_path))
            except AttachmentUnavailableError as e:
                logger.warning(f"Sending without attachment: {e}")
                attachment_skipped = True

        return msg, attachment_skipped

    def deliver(self, message: OutboundMessage) -> SendResult:
        """Send a message in the calling thread.

        This is one blocking attempt with no retry. Failures are returned as a
        FAILURE result instead of being raised.
        """
        try:
            message.require_body()
            sent_at = datetime.now(tz=UTC)
            msg, attachment_skipped = self.build_mime(message, sent_at)
            with open_smtp(self._config, self, self._timeout, self._debug) as smtp:
                smtp.sendmail(
                    self._config.email_address, list(message.recipients), msg.as_string()
                )
        except (DirectMailError, OSError, ValueError) as e:
            logger.error(f"Failed to send to {len(message.recipients)} recipient(s): {e}")
            return SendResult(outcome=SendOutcome.FAILURE, error=str(e))

        logger.info(f"Sent message to {len(message.recipients)} recipient(s)")
        return SendResult(
            outcome=SendOutcome.SUCCESS,
            message_id=msg["Message-ID"],
            attachment_skipped=attachment_skipped,
            sent_at=sent_at,
        )

    def send(
        self,
        recipients: list[str] | str,
        subject: str | None,
        body: str | None,
        attachment: Path | str | None = None,
        listener: SendListener | None = None,
    ) -> SendTask | None:
        """Send a message in the background.

        Args:
            recipients: Recipient address(es); a string may be comma-separated
            subject: Email subject (optional)
            body: Plain-text body
            attachment: Path of a single file to attach (optional)
            listener: Hooks for this send (default: the client's listener)

        Returns:
            SendTask for the running send, or None if there are no recipients

        A missing body is reported through ``on_error`` like any other send
        failure.
        """
        message = OutboundMessage(
            recipients=recipients, subject=subject, body=body, attachment_path=attachment
        )
        return self.send_message(message, listener)

    def send_message(
        self, message: OutboundMessage, listener: SendListener | None = None
    ) -> SendTask | None:
        """Send a prebuilt message in the background. See :meth:`send`."""
        if not message.recipients:
            logger.debug("No recipients, nothing to send")
            return None

        return self._dispatcher.dispatch(
            lambda: self.deliver(message),
            listener if listener is not None else self._listener,
            name=f"send-{self._config.email_address}",
        )

    def list_messages(
        self, protocol: Protocol | str | None = Protocol.POP3, start: int = 0, stop: int = 0
    ) -> list[RetrievedMessage] | None:
        """Read messages from the mailbox.

        Indices are zero-based and ``stop`` is exclusive. See
        :func:`select_indices` for how ``start`` and ``stop`` are interpreted.

        Args:
            protocol: POP3 or IMAP (default: POP3)
            start: First index to read
            stop: Index to stop before (0 means no upper bound)

        Returns:
            The messages, or None if retrieval is unavailable or failed
        """
        if start < 0 or stop < 0 or (stop and stop < start):
            logger.warning(f"Invalid message range: start={start}, stop={stop}")
            return None

        try:
            if not isinstance(protocol, Protocol):
                protocol = Protocol(str(protocol or Protocol.POP3.value).lower())
            if protocol == Protocol.IMAP:
                return self._list_imap(start, stop)
            return self._list_pop3(start, stop)
        except (DirectMailError, ValueError) as e:
            logger.warning(f"Could not retrieve messages over {protocol}: {e}")
            return None

    def _list_pop3(self, start: int, stop: int) -> list[RetrievedMessage]:
        with open_pop3(self._config, self, self._timeout, self._debug) as pop:
            count, _ = pop.stat()
            messages = []
            for index in select_indices(count, start, stop):
                _, lines, _ = pop.retr(index + 1)
                messages.append(_parse_retrieved(index, b"\r\n".join(lines)))
            return messages

    def _list_imap(self, start: int, stop: int) -> list[RetrievedMessage]:
        with open_imap(self._config, self, self._timeout, self._debug) as imap:
            status, data = imap.select(_IMAP_FOLDER, readonly=True)
            if status != "OK":
                raise ValueError(f"Failed to select folder: {_IMAP_FOLDER}")
            count = int(data[0].decode())

            messages = []
            for index in select_indices(count, start, stop):
                status, data = imap.fetch(str(index + 1), "(RFC822)")
                if status != "OK" or not data or not isinstance(data[0], tuple):
                    logger.warning(f"Skipping message {index}: unexpected IMAP response")
                    continue
                messages.append(_parse_retrieved(index, data[0][1]))
            return messages


class AsyncMailClient:
    """Asynchronous mail client.

    This is a thin async wrapper around MailClient using asyncio.to_thread().
    Listener hooks run on the event loop after the send finishes.
    """

    def __init__(
        self,
        config: AccountConfiguration,
        secret: str,
        listener: SendListener | None = None,
        timeout: int = 30,
        debug: bool = False,
    ):
        """Initialize the async mail client.

        Args are the same as for MailClient.

        Raises:
            ValidationError: If the configuration or secret is missing
        """
        self._sync_client = MailClient(config, secret, listener, timeout, debug)

    @property
    def config(self) -> AccountConfiguration:
        return self._sync_client.config

    def provide_credentials(self) -> tuple[str, str]:
        """Return (username, secret) for server login."""
        return self._sync_client.provide_credentials()

    def set_listener(self, listener: SendListener | None) -> None:
        """Set the default hooks for sends without their own listener."""
        self._sync_client.set_listener(listener)

    async def build_mime(
        self, message: OutboundMessage, sent_at: datetime | None = None
    ) -> tuple[MIMEMultipart, bool]:
        """Assemble a new multipart message."""
        return await asyncio.to_thread(self._sync_client.build_mime, message, sent_at)

    async def deliver(self, message: OutboundMessage) -> SendResult:
        """Send a message without firing listener hooks."""
        return await asyncio.to_thread(self._sync_client.deliver, message)

    async def send(
        self,
        recipients: list[str] | str,
        subject: str | None,
        body: str | None,
        attachment: Path | str | None = None,
        listener: SendListener | None = None,
    ) -> SendResult | None:
        """Send a message and wait for the result."""
        message = OutboundMessage(
            recipients=recipients, subject=subject, body=body, attachment_path=attachment
        )
        return await self.send_message(message, listener)

    async def send_message(
        self, message: OutboundMessage, listener: SendListener | None = None
    ) -> SendResult | None:
        """Send a prebuilt message and wait for the result.

        Returns None without firing hooks if there are no recipients.
        """
        if not message.recipients:
            return None

        result = await asyncio.to_thread(
            Dispatcher.attempt,
            lambda: self._sync_client.deliver(message),
            f"send-{self.config.email_address}",
        )
        Dispatcher.notify(
            result, listener if listener is not None else self._sync_client._listener
        )
        return result

    async def list_messages(
        self, protocol: Protocol | str | None = Protocol.POP3, start: int = 0, stop: int = 0
    ) -> list[RetrievedMessage] | None:
        """Read messages from the mailbox."""
        return await asyncio.to_thread(self._sync_client.list_messages, protocol, start, stop)
