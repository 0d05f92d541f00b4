"""direct-mail - Send mail straight over SMTP without a local mail app."""

__version__ = "0.1.0"

# Main clients
from .dispatcher import Dispatcher, SendListener, SendTask

# Exceptions
from .exceptions import (
    AttachmentUnavailableError,
    AuthenticationError,
    DirectMailError,
    SecretDecryptionError,
    TransportError,
    UnknownProviderError,
    ValidationError,
)
from .mail import AsyncMailClient, MailClient

# Models
from .models import (
    AccountConfiguration,
    EmailAddress,
    OutboundMessage,
    Protocol,
    RetrievedMessage,
    SendOutcome,
    SendResult,
)
from .options import MailOptions, send_with_options
from .providers import Provider, ProviderRegistry
from .settings import account_from_env
from .transport import CredentialsProvider

__all__ = [
    # Version
    "__version__",
    # Main clients
    "MailClient",
    "AsyncMailClient",
    "Dispatcher",
    "SendListener",
    "SendTask",
    # Configuration
    "Provider",
    "ProviderRegistry",
    "MailOptions",
    "send_with_options",
    "account_from_env",
    "CredentialsProvider",
    # Models
    "AccountConfiguration",
    "EmailAddress",
    "OutboundMessage",
    "Protocol",
    "RetrievedMessage",
    "SendOutcome",
    "SendResult",
    # Exceptions
    "DirectMailError",
    "ValidationError",
    "UnknownProviderError",
    "SecretDecryptionError",
    "AttachmentUnavailableError",
    "TransportError",
    "AuthenticationError",
]
