"""Pytest configuration and fixtures.

Network access is replaced by fake SMTP, POP3 and IMAP servers patched into
the standard library modules.
"""

import imaplib
import logging
import poplib
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import pytest
from dotenv import load_dotenv

from direct_mail import ProviderRegistry

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Load environment variables
load_dotenv()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires live credentials)",
    )


@pytest.fixture
def registry():
    """A registry with the built-in providers."""
    return ProviderRegistry.default()


@pytest.fixture
def gmail_config(registry):
    """Gmail configuration with a bound secret."""
    return registry.build("a@gmail.com", "a", "x", "gmail")


class SMTPServer:
    """Records sessions opened against the fake SMTP server."""

    def __init__(self):
        self.sessions: list["FakeSMTP"] = []
        self.fail_connect = False
        self.fail_login = False
        self.fail_send = False

    @property
    def sent(self) -> list[tuple[str, list[str], str]]:
        return [mail for session in self.sessions for mail in session.sent]


class FakeSMTP:
    """Stand-in for smtplib.SMTP and smtplib.SMTP_SSL."""

    server: SMTPServer
    implicit_tls = False

    def __init__(self, host, port, timeout=None, context=None):
        if self.server.fail_connect:
            raise ConnectionRefusedError(f"Connection refused: {host}:{port}")
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in_as: tuple[str, str] | None = None
        self.debuglevel = 0
        self.closed = False
        self.sent: list[tuple[str, list[str], str]] = []
        self.server.sessions.append(self)

    def set_debuglevel(self, level):
        self.debuglevel = level

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        if self.server.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"Authentication failed")
        self.logged_in_as = (user, password)

    def sendmail(self, from_addr, to_addrs, msg):
        if self.server.fail_send:
            raise smtplib.SMTPRecipientsRefused({addr: (550, b"No such user") for addr in to_addrs})
        self.sent.append((from_addr, list(to_addrs), msg))
        return {}

    def quit(self):
        self.closed = True

    def close(self):
        self.closed = True


@pytest.fixture
def smtp_server(monkeypatch):
    """Patch smtplib with a recording fake server."""
    server = SMTPServer()

    class PlainSMTP(FakeSMTP):
        pass

    class ImplicitTLSSMTP(FakeSMTP):
        implicit_tls = True

    PlainSMTP.server = server
    ImplicitTLSSMTP.server = server
    monkeypatch.setattr(smtplib, "SMTP", PlainSMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", ImplicitTLSSMTP)
    return server


def _raw_message(index: int) -> bytes:
    msg = MIMEMultipart()
    msg["From"] = "Sender Name <sender@example.com>"
    msg["To"] = "a@gmail.com, Other <other@example.com>"
    msg["Subject"] = f"Message {index}"
    msg["Date"] = "Mon, 06 Jan 2025 10:00:00 +0000"
    msg.attach(MIMEText(f"Body of message {index}", "plain", "utf-8"))
    return msg.as_bytes()


@pytest.fixture
def mailbox():
    """Ten raw messages, indexed 0-9."""
    return [_raw_message(i) for i in range(10)]


class MailboxServer:
    """Records POP3/IMAP logins against a fake mailbox."""

    def __init__(self, messages: list[bytes]):
        self.messages = messages
        self.logins: list[tuple[str, str, str]] = []
        self.fail_login = False
        self.hosts: list[tuple[str, int]] = []


@pytest.fixture
def pop3_server(monkeypatch, mailbox):
    """Patch poplib.POP3_SSL with a fake mailbox."""
    server = MailboxServer(mailbox)

    class FakePOP3:
        def __init__(self, host, port, context=None, timeout=None):
            server.hosts.append((host, port))

        def set_debuglevel(self, level):
            pass

        def user(self, user):
            self._user = user

        def pass_(self, password):
            if server.fail_login:
                raise poplib.error_proto(b"-ERR authentication failed")
            server.logins.append(("pop3", self._user, password))

        def stat(self):
            return len(server.messages), sum(len(m) for m in server.messages)

        def retr(self, which):
            raw = server.messages[which - 1]
            return b"+OK", raw.split(b"\n"), len(raw)

        def quit(self):
            pass

    monkeypatch.setattr(poplib, "POP3_SSL", FakePOP3)
    return server


@pytest.fixture
def imap_server(monkeypatch, mailbox):
    """Patch imaplib.IMAP4_SSL with a fake mailbox."""
    server = MailboxServer(mailbox)

    class FakeIMAP:
        def __init__(self, host, port, ssl_context=None, timeout=None):
            server.hosts.append((host, port))
            self.debug = 0

        def login(self, user, password):
            if server.fail_login:
                raise imaplib.IMAP4.error("LOGIN failed")
            server.logins.append(("imap", user, password))
            return "OK", [b"Logged in"]

        def select(self, mailbox="INBOX", readonly=False):
            return "OK", [str(len(server.messages)).encode()]

        def fetch(self, message_set, message_parts):
            number = int(message_set)
            raw = server.messages[number - 1]
            return "OK", [(f"{number} (RFC822 {{{len(raw)}}}".encode(), raw), b")"]

        def logout(self):
            return "BYE", [b"Logging out"]

    monkeypatch.setattr(imaplib, "IMAP4_SSL", FakeIMAP)
    return server
