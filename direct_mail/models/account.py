"""Pydantic model for mail account configuration."""

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, PrivateAttr

from ..crypto import decrypt_secret, encrypt_secret
from ..exceptions import ValidationError

if TYPE_CHECKING:
    from ..mail import MailClient

DEFAULT_SOCKET_PORT = 465

# Order of the flat persisted form
FIELD_ORDER = (
    "email_address",
    "username",
    "secret",
    "smtp_host",
    "smtp_port",
    "smtp_requires_auth",
    "pop_host",
    "pop_port",
    "pop_requires_auth",
    "imap_host",
    "imap_port",
    "imap_requires_auth",
    "socket_port",
)

_INT_FIELDS = {"smtp_port", "pop_port", "imap_port", "socket_port"}
_BOOL_FIELDS = {"smtp_requires_auth", "pop_requires_auth", "imap_requires_auth"}

# Connection settings copied from a template
_SERVER_FIELDS = (
    "smtp_host",
    "smtp_port",
    "smtp_requires_auth",
    "pop_host",
    "pop_port",
    "pop_requires_auth",
    "imap_host",
    "imap_port",
    "imap_requires_auth",
    "socket_port",
)


class AccountConfiguration(BaseModel):
    """Connection settings and identity of one mail account.

    The secret (password) is held in a private attribute. It is not a model
    field, so it never shows up in ``model_dump()``, ``repr()`` or the flat
    persisted form unless explicitly encrypted with a key phrase.
    """

    smtp_host: str = Field(default="", description="SMTP server hostname")
    smtp_port: int = Field(default=0, description="SMTP server port")
    smtp_requires_auth: bool = Field(default=False, description="Whether SMTP requires login")
    pop_host: str = Field(default="", description="POP3 server hostname")
    pop_port: int = Field(default=0, description="POP3 server port")
    pop_requires_auth: bool = Field(default=False, description="Whether POP3 requires login")
    imap_host: str = Field(default="", description="IMAP server hostname")
    imap_port: int = Field(default=0, description="IMAP server port")
    imap_requires_auth: bool = Field(default=False, description="Whether IMAP requires login")
    socket_port: int = Field(
        default=DEFAULT_SOCKET_PORT, description="Port for the implicit TLS socket"
    )
    email_address: str = Field(default="", description="Sender email address")
    username: str = Field(default="", description="Login username")

    model_config = {"frozen": True}

    _secret: str | None = PrivateAttr(default=None)

    @classmethod
    def from_template(
        cls,
        secret: str | None,
        template: "AccountConfiguration",
        email_address: str | None = None,
        username: str | None = None,
    ) -> "AccountConfiguration":
        """Build a configuration from a caller-supplied template.

        Explicit identity values win over the template's. The template may
        carry the email address and username itself.

        Args:
            secret: Account password
            template: Configuration providing connection settings
            email_address: Sender address (default: template's address)
            username: Login username (default: template's username)

        Raises:
            ValidationError: If the secret is missing, or neither the arguments
                nor the template supply an email address and username
        """
        if template is None:
            raise ValidationError("A template configuration is required")
        if not secret:
            raise ValidationError("Secret must be provided")

        email_address = email_address or template.email_address
        username = username or template.username
        if not email_address:
            raise ValidationError("Email address must be provided or present in the template")
        if not username:
            raise ValidationError("Username must be provided or present in the template")

        settings = {name: getattr(template, name) for name in _SERVER_FIELDS}
        config = cls(email_address=email_address, username=username, **settings)
        config._secret = secret
        return config

    def as_template(self) -> "AccountConfiguration":
        """Return the connection settings only, without identity or secret."""
        return AccountConfiguration(**{name: getattr(self, name) for name in _SERVER_FIELDS})

    def with_identity(
        self, email_address: str | None = None, username: str | None = None
    ) -> "AccountConfiguration":
        """Return a copy with a new email address and/or username.

        The copy keeps the same secret. If this configuration was persisted,
        the stored copy must be updated by the caller.
        """
        update: dict[str, Any] = {}
        if email_address is not None:
            update["email_address"] = email_address
        if username is not None:
            update["username"] = username
        return self.model_copy(update=update)

    @property
    def has_secret(self) -> bool:
        """Whether a secret is bound to this configuration."""
        return bool(self._secret)

    @property
    def supports_imap(self) -> bool:
        """Whether an IMAP server is configured."""
        return bool(self.imap_host)

    def encrypt_secret(self, key_phrase: str) -> str:
        """Encrypt the bound secret under the given key phrase.

        Raises:
            ValidationError: If no secret is bound or the key phrase is empty
        """
        if not self._secret:
            raise ValidationError("No secret is bound to this configuration")
        return encrypt_secret(self._secret, key_phrase)

    def decrypt_secret(self, cipher_text: str, key_phrase: str) -> str:
        """Decrypt a stored secret and bind it to this configuration.

        Raises:
            SecretDecryptionError: If the key phrase is wrong or the text is corrupt
        """
        secret = decrypt_secret(cipher_text, key_phrase)
        self._secret = secret
        return secret

    def to_fields(self, key_phrase: str | None = None) -> list[str | int]:
        """Flatten into the ordered persisted form.

        The secret slot holds the encrypted secret when a key phrase is given
        and a secret is bound, otherwise an empty string.
        """
        fields: list[str | int] = []
        for name in FIELD_ORDER:
            if name == "secret":
                if key_phrase and self._secret:
                    fields.append(self.encrypt_secret(key_phrase))
                else:
                    fields.append("")
            elif name in _BOOL_FIELDS:
                fields.append(1 if getattr(self, name) else 0)
            else:
                value = getattr(self, name)
                fields.append("" if value is None else value)
        return fields

    @classmethod
    def from_fields(
        cls, fields: list[str | int], key_phrase: str | None = None
    ) -> "AccountConfiguration":
        """Rebuild a configuration from :meth:`to_fields` output.

        Raises:
            ValidationError: If the field count or a numeric value is wrong
            SecretDecryptionError: If the stored secret cannot be decrypted
        """
        if len(fields) != len(FIELD_ORDER):
            raise ValidationError(
                f"Expected {len(FIELD_ORDER)} fields, got {len(fields)}"
            )

        values: dict[str, Any] = {}
        encrypted = ""
        for name, raw in zip(FIELD_ORDER, fields, strict=True):
            if name == "secret":
                encrypted = str(raw or "")
                continue
            if name in _INT_FIELDS or name in _BOOL_FIELDS:
                try:
                    number = int(raw)
                except (TypeError, ValueError) as e:
                    raise ValidationError(f"Field {name} must be an integer, got {raw!r}") from e
                values[name] = number == 1 if name in _BOOL_FIELDS else number
            else:
                values[name] = "" if raw is None else str(raw)

        config = cls(**values)
        if key_phrase and encrypted:
            config.decrypt_secret(encrypted, key_phrase)
        return config

    def to_json(self, key_phrase: str | None = None) -> str:
        """Serialize the flat form as a JSON array."""
        return json.dumps(self.to_fields(key_phrase))

    @classmethod
    def from_json(cls, text: str, key_phrase: str | None = None) -> "AccountConfiguration":
        """Rebuild a configuration from :meth:`to_json` output."""
        try:
            fields = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid stored configuration: {e}") from e
        if not isinstance(fields, list):
            raise ValidationError("Stored configuration must be a JSON array")
        return cls.from_fields(fields, key_phrase)

    def create_client(self, **kwargs) -> "MailClient":
        """Create a MailClient bound to this configuration and its secret.

        Keyword arguments are passed through to MailClient.

        Raises:
            ValidationError: If no secret is bound
        """
        from ..mail import MailClient

        if not self._secret:
            raise ValidationError("No secret is bound to this configuration")
        return MailClient(self, self._secret, **kwargs)
