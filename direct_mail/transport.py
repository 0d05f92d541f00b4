"""Session setup for SMTP, POP3 and IMAP.

Credentials reach the sessions through the :class:`CredentialsProvider`
capability rather than being stored on the configuration.
"""

import imaplib
import logging
import poplib
import smtplib
import ssl
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from .exceptions import AuthenticationError, TransportError
from .models.account import AccountConfiguration

logger = logging.getLogger(__name__)

# SMTP submission port that upgrades with STARTTLS; every other port uses implicit TLS
STARTTLS_PORT = 587


class CredentialsProvider(Protocol):
    """Anything that can hand out (username, secret) for a login."""

    def provide_credentials(self) -> tuple[str, str]: ...


@contextmanager
def open_smtp(
    config: AccountConfiguration,
    credentials: CredentialsProvider,
    timeout: int = 30,
    debug: bool = False,
) -> Iterator[smtplib.SMTP]:
    """Open an authenticated SMTP session.

    Port 587 connects in plain text and upgrades with STARTTLS. Any other
    SMTP port connects with implicit TLS on the configuration's socket port.

    Raises:
        AuthenticationError: If the server rejects the login
        TransportError: If connecting or talking to the server fails
    """
    context = ssl.create_default_context()
    use_starttls = config.smtp_port == STARTTLS_PORT

    try:
        if use_starttls:
            smtp = smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=timeout)
        else:
            smtp = smtplib.SMTP_SSL(
                config.smtp_host, config.socket_port, timeout=timeout, context=context
            )
    except (smtplib.SMTPException, OSError) as e:
        port = config.smtp_port if use_starttls else config.socket_port
        raise TransportError(f"Failed to connect to {config.smtp_host}:{port}: {e}") from e

    try:
        if debug:
            smtp.set_debuglevel(1)
        if use_starttls:
            smtp.starttls(context=context)
        if config.smtp_requires_auth:
            username, secret = credentials.provide_credentials()
            smtp.login(username, secret)
        logger.info(f"SMTP session open to {config.smtp_host}")
        yield smtp
    except smtplib.SMTPAuthenticationError as e:
        raise AuthenticationError(f"SMTP authentication failed: {e}") from e
    except smtplib.SMTPException as e:
        raise TransportError(f"SMTP error: {e}") from e
    except (OSError, TimeoutError) as e:
        raise TransportError(f"Network error: {e}") from e
    finally:
        try:
            smtp.quit()
        except (smtplib.SMTPException, OSError):
            smtp.close()


@contextmanager
def open_pop3(
    config: AccountConfiguration,
    credentials: CredentialsProvider,
    timeout: int = 30,
    debug: bool = False,
) -> Iterator[poplib.POP3_SSL]:
    """Open an authenticated POP3 session over TLS.

    Raises:
        AuthenticationError: If the server rejects the login
        TransportError: If connecting or talking to the server fails
    """
    if not config.pop_host:
        raise TransportError("No POP3 server configured")

    context = ssl.create_default_context()
    try:
        pop = poplib.POP3_SSL(config.pop_host, config.pop_port, context=context, timeout=timeout)
    except (poplib.error_proto, OSError) as e:
        raise TransportError(
            f"Failed to connect to {config.pop_host}:{config.pop_port}: {e}"
        ) from e

    try:
        if debug:
            pop.set_debuglevel(1)
        if config.pop_requires_auth:
            username, secret = credentials.provide_credentials()
            try:
                pop.user(username)
                pop.pass_(secret)
            except poplib.error_proto as e:
                raise AuthenticationError(f"POP3 login failed: {e}") from e
        logger.info(f"POP3 session open to {config.pop_host}")
        yield pop
    except poplib.error_proto as e:
        raise TransportError(f"POP3 error: {e}") from e
    except (OSError, TimeoutError) as e:
        raise TransportError(f"Network error: {e}") from e
    finally:
        try:
            pop.quit()
        except (poplib.error_proto, OSError):
            pass  # Ignore errors during logout


@contextmanager
def open_imap(
    config: AccountConfiguration,
    credentials: CredentialsProvider,
    timeout: int = 30,
    debug: bool = False,
) -> Iterator[imaplib.IMAP4_SSL]:
    """Open an authenticated IMAP session over TLS.

    Raises:
        AuthenticationError: If the server rejects the login
        TransportError: If connecting or talking to the server fails
    """
    if not config.imap_host:
        raise TransportError("No IMAP server configured")

    context = ssl.create_default_context()
    try:
        imap = imaplib.IMAP4_SSL(
            config.imap_host, config.imap_port, ssl_context=context, timeout=timeout
        )
    except (imaplib.IMAP4.error, OSError) as e:
        raise TransportError(
            f"Failed to connect to {config.imap_host}:{config.imap_port}: {e}"
        ) from e

    try:
        if debug:
            imap.debug = 4
        if config.imap_requires_auth:
            username, secret = credentials.provide_credentials()
            try:
                imap.login(username, secret)
            except imaplib.IMAP4.error as e:
                raise AuthenticationError(f"IMAP login failed: {e}") from e
        logger.info(f"IMAP session open to {config.imap_host}")
        yield imap
    except imaplib.IMAP4.error as e:
        raise TransportError(f"IMAP error: {e}") from e
    except (OSError, TimeoutError) as e:
        raise TransportError(f"Network error: {e}") from e
    finally:
        try:
            imap.logout()
        except (imaplib.IMAP4.error, OSError):
            pass  # Ignore errors during logout
