"""Pydantic models for direct-mail.

You can import from specific modules:
    from direct_mail.models.account import AccountConfiguration
    from direct_mail.models.mail import OutboundMessage, SendResult

Or from the main models module:
    from direct_mail.models import AccountConfiguration, OutboundMessage
"""

# Account models
from .account import DEFAULT_SOCKET_PORT, FIELD_ORDER, AccountConfiguration

# Mail models
from .mail import (
    EmailAddress,
    OutboundMessage,
    Protocol,
    RetrievedMessage,
    SendOutcome,
    SendResult,
    normalize_recipients,
)

__all__ = [
    # Account models
    "AccountConfiguration",
    "DEFAULT_SOCKET_PORT",
    "FIELD_ORDER",
    # Mail models
    "EmailAddress",
    "OutboundMessage",
    "Protocol",
    "RetrievedMessage",
    "SendOutcome",
    "SendResult",
    "normalize_recipients",
]
