"""Custom exceptions for direct-mail package."""


class DirectMailError(Exception):
    """Base exception for all direct-mail errors."""

    pass


class ValidationError(DirectMailError):
    """Raised when a required argument is missing or invalid."""

    pass


class UnknownProviderError(DirectMailError):
    """Raised when a provider is not present in the registry."""

    pass


class SecretDecryptionError(DirectMailError):
    """Raised when an encrypted secret cannot be decrypted with the given key phrase."""

    pass


class AttachmentUnavailableError(DirectMailError):
    """Raised when an attachment file cannot be read."""

    pass


class TransportError(DirectMailError):
    """Raised when a network, protocol or session failure occurs."""

    pass


class AuthenticationError(TransportError):
    """Raised when the mail server rejects the credentials."""

    pass
