"""Account settings loaded from environment variables."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ValidationError
from .models.account import AccountConfiguration
from .providers import ProviderRegistry

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "DIRECT_MAIL_"


def account_from_env(
    registry: ProviderRegistry,
    env_file: str | Path | None = None,
    prefix: str = DEFAULT_PREFIX,
) -> AccountConfiguration:
    """Build an account configuration from environment variables.

    Reads ``{prefix}EMAIL``, ``{prefix}USERNAME``, ``{prefix}PASSWORD`` and
    ``{prefix}PROVIDER``. The username defaults to the email address.

    Args:
        registry: Registry used to resolve the provider
        env_file: Optional .env file loaded before reading the environment
        prefix: Variable name prefix

    Returns:
        Configuration with the secret bound

    Raises:
        ValidationError: If a required variable is not set
        UnknownProviderError: If the provider is not registered
    """
    if env_file is not None:
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment from {env_file}")

    email_address = os.environ.get(f"{prefix}EMAIL")
    username = os.environ.get(f"{prefix}USERNAME") or email_address
    password = os.environ.get(f"{prefix}PASSWORD")
    provider = os.environ.get(f"{prefix}PROVIDER")

    missing = [
        f"{prefix}{name}"
        for name, value in (("EMAIL", email_address), ("PASSWORD", password), ("PROVIDER", provider))
        if not value
    ]
    if missing:
        raise ValidationError(f"Missing environment variables: {', '.join(missing)}")

    return registry.build(email_address, username, password, provider)
