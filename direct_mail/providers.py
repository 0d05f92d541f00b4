"""Connection presets for common mail providers."""

import logging
from enum import Enum

from .exceptions import UnknownProviderError, ValidationError
from .models.account import AccountConfiguration

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    """Common mail providers with known server settings."""

    GMAIL = "gmail"
    YAHOO = "yahoo"
    AOL = "aol"
    HOTMAIL = "hotmail"


# Built-in server settings. Hotmail does not offer IMAP.
_BUILTIN_SETTINGS = {
    Provider.GMAIL: {
        "smtp_host": "smtp.gmail.com",
        "smtp_port": 465,
        "pop_host": "pop.gmail.com",
        "pop_port": 995,
        "imap_host": "imap.gmail.com",
        "imap_port": 993,
    },
    Provider.YAHOO: {
        "smtp_host": "smtp.mail.yahoo.com",
        "smtp_port": 465,
        "pop_host": "plus.pop.mail.yahoo.com",
        "pop_port": 995,
        "imap_host": "imap.mail.yahoo.com",
        "imap_port": 993,
    },
    Provider.AOL: {
        "smtp_host": "smtp.aol.com",
        "smtp_port": 587,
        "pop_host": "pop.aol.com",
        "pop_port": 995,
        "imap_host": "imap.aol.com",
        "imap_port": 993,
    },
    Provider.HOTMAIL: {
        "smtp_host": "smtp.live.com",
        "smtp_port": 587,
        "pop_host": "pop3.live.com",
        "pop_port": 995,
    },
}


def _provider_key(provider: Provider | str | None) -> str:
    if isinstance(provider, Provider):
        return provider.value
    if not provider or not isinstance(provider, str):
        raise UnknownProviderError(f"Unknown provider: {provider!r}")
    return provider.strip().lower()


class ProviderRegistry:
    """Lookup table from provider name to connection template.

    Create one registry at startup and pass it to the code that needs
    lookups::

        registry = ProviderRegistry.default()
        config = registry.build("me@gmail.com", "me", "app-password", Provider.GMAIL)
    """

    def __init__(self, templates: dict[str, AccountConfiguration] | None = None):
        """Initialize the registry.

        Args:
            templates: Initial templates keyed by provider name (default: empty)
        """
        self._templates: dict[str, AccountConfiguration] = {}
        for name, template in (templates or {}).items():
            self.register(name, template)

    @classmethod
    def default(cls) -> "ProviderRegistry":
        """Create a registry holding the built-in providers."""
        registry = cls()
        for provider, settings in _BUILTIN_SETTINGS.items():
            imap_host = settings.get("imap_host", "")
            registry.register(
                provider,
                AccountConfiguration(
                    smtp_requires_auth=True,
                    pop_requires_auth=True,
                    imap_requires_auth=bool(imap_host),
                    **settings,
                ),
            )
        return registry

    def register(self, name: Provider | str, template: AccountConfiguration) -> None:
        """Add or replace a provider template.

        Only the connection settings are kept; identity and secret are dropped.
        """
        key = _provider_key(name)
        self._templates[key] = template.as_template()
        logger.debug(f"Registered provider template: {key}")

    def lookup(self, provider: Provider | str) -> AccountConfiguration:
        """Get the connection template for a provider.

        Args:
            provider: Provider enum member or case-insensitive name

        Returns:
            Copy of the template configuration, with empty identity

        Raises:
            UnknownProviderError: If the provider is not registered
        """
        key = _provider_key(provider)
        template = self._templates.get(key)
        if template is None:
            raise UnknownProviderError(
                f"Unknown provider: {provider}. Supported: {self.names()}"
            )
        return template.model_copy()

    def build(
        self,
        email_address: str,
        username: str,
        secret: str,
        provider: Provider | str,
    ) -> AccountConfiguration:
        """Build an account configuration preconfigured for a provider.

        Args:
            email_address: Sender email address
            username: Login username
            secret: Account password
            provider: Registered provider

        Returns:
            Configuration with the provider's server settings and the given identity

        Raises:
            UnknownProviderError: If the provider is not registered
            ValidationError: If email address, username or secret is empty
        """
        template = self.lookup(provider)
        missing = [
            name
            for name, value in (
                ("email_address", email_address),
                ("username", username),
                ("secret", secret),
            )
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required values: {', '.join(missing)}")

        return AccountConfiguration.from_template(
            secret, template, email_address=email_address, username=username
        )

    def names(self) -> list[str]:
        """Registered provider names."""
        return list(self._templates)

    def __contains__(self, provider: object) -> bool:
        try:
            return _provider_key(provider) in self._templates  # type: ignore[arg-type]
        except UnknownProviderError:
            return False

    def __len__(self) -> int:
        return len(self._templates)
