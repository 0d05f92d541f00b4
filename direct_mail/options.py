"""Typed send options built from a mapping or JSON document.

Example JSON::

    {
        "email": "john.doe@gmail.com",
        "username": "john.doe",
        "password": "app-password",
        "provider": "gmail",
        "destinations": ["jane.doe@yahoo.com", "bill.doe@yahoo.com"],
        "subject": "Hello",
        "message": "Have a great day at work!",
        "attachment": "path/to/file.txt"
    }

Keys are matched case-insensitively and unknown keys are ignored.
``destination`` may be used for a single address, and ``destinations`` may
also be a comma-separated string. ``provider`` is either a registered
provider name or an inline mapping of server settings.
"""

import json
import logging
from typing import Any

import pydantic
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from .dispatcher import SendListener, SendTask
from .exceptions import ValidationError
from .models.account import AccountConfiguration
from .models.mail import OutboundMessage, normalize_recipients
from .providers import ProviderRegistry

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {
    "email",
    "username",
    "password",
    "provider",
    "destination",
    "destinations",
    "subject",
    "message",
    "attachment",
}


class MailOptions(BaseModel):
    """Account and message options for a single send."""

    email: str | None = Field(default=None, description="Sender email address")
    username: str | None = Field(default=None, description="Login username")
    password: SecretStr | None = Field(default=None, description="Account password")
    provider: str | dict[str, Any] | None = Field(
        default=None, description="Provider name or inline server settings"
    )
    destinations: tuple[str, ...] = Field(default=(), description="Recipient addresses")
    subject: str | None = Field(default=None, description="Email subject")
    message: str | None = Field(default=None, description="Plain-text body")
    attachment: str | None = Field(default=None, description="Path of a file to attach")

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        normalized: dict[str, Any] = {}
        for key, value in data.items():
            name = str(key).lower()
            if name in _KNOWN_KEYS:
                normalized[name] = value

        single = normalized.pop("destination", None)
        if "destinations" not in normalized and single is not None:
            normalized["destinations"] = [single]
        return normalized

    @field_validator("destinations", mode="before")
    @classmethod
    def _split_destinations(cls, value):
        return normalize_recipients(value)

    @field_validator("provider", mode="before")
    @classmethod
    def _lower_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "MailOptions":
        """Build options from a dictionary.

        Raises:
            ValidationError: If a value has the wrong type
        """
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid mail options: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> "MailOptions":
        """Build options from a JSON object.

        Raises:
            ValidationError: If the JSON is malformed or not an object
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Malformed mail options JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError("Mail options JSON must be an object")
        return cls.from_mapping(data)

    def build_configuration(self, registry: ProviderRegistry) -> AccountConfiguration:
        """Build the account configuration described by these options.

        Raises:
            ValidationError: If the provider or a required identity value is missing
            UnknownProviderError: If the provider name is not registered
        """
        if not self.provider:
            raise ValidationError("A provider name or inline server settings is required")

        secret = self.password.get_secret_value() if self.password else ""

        if isinstance(self.provider, dict):
            try:
                template = AccountConfiguration.model_validate(self.provider)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid inline provider settings: {e}") from e
            return AccountConfiguration.from_template(
                secret, template, email_address=self.email, username=self.username
            )

        return registry.build(self.email or "", self.username or "", secret, self.provider)

    def to_message(self) -> OutboundMessage:
        """The message described by these options."""
        return OutboundMessage(
            recipients=self.destinations,
            subject=self.subject,
            body=self.message,
            attachment_path=self.attachment,
        )

    def create_client(self, registry: ProviderRegistry, **kwargs):
        """Create a MailClient for the account in these options.

        Keyword arguments are passed through to MailClient.
        """
        return self.build_configuration(registry).create_client(**kwargs)


def send_with_options(
    options: MailOptions,
    registry: ProviderRegistry,
    listener: SendListener | None = None,
    **client_kwargs,
) -> SendTask | None:
    """Build a client from options and send the message they describe.

    Nothing is sent (and None is returned) unless the options carry both
    destinations and a message.

    Raises:
        ValidationError: If the account options are incomplete
        UnknownProviderError: If the provider name is not registered
    """
    if not options.destinations or options.message is None:
        logger.debug("Options have no destinations or message, nothing to send")
        return None

    client = options.create_client(registry, **client_kwargs)
    return client.send_message(options.to_message(), listener)
