"""Tests for loading accounts from the environment."""

import pytest

from direct_mail import UnknownProviderError, ValidationError, account_from_env


@pytest.fixture
def clean_env(monkeypatch):
    """Remove DIRECT_MAIL_* variables for the test."""
    for name in ("EMAIL", "USERNAME", "PASSWORD", "PROVIDER"):
        monkeypatch.delenv(f"DIRECT_MAIL_{name}", raising=False)
    return monkeypatch


class TestAccountFromEnv:
    """Tests for account_from_env."""

    def test_reads_environment(self, clean_env, registry):
        """Test an account is built from environment variables."""
        clean_env.setenv("DIRECT_MAIL_EMAIL", "a@gmail.com")
        clean_env.setenv("DIRECT_MAIL_USERNAME", "a")
        clean_env.setenv("DIRECT_MAIL_PASSWORD", "x")
        clean_env.setenv("DIRECT_MAIL_PROVIDER", "gmail")

        config = account_from_env(registry)

        assert config.email_address == "a@gmail.com"
        assert config.username == "a"
        assert config.smtp_host == "smtp.gmail.com"
        assert config.has_secret

    def test_username_defaults_to_email(self, clean_env, registry):
        """Test the username falls back to the email address."""
        clean_env.setenv("DIRECT_MAIL_EMAIL", "a@yahoo.com")
        clean_env.setenv("DIRECT_MAIL_PASSWORD", "x")
        clean_env.setenv("DIRECT_MAIL_PROVIDER", "yahoo")

        assert account_from_env(registry).username == "a@yahoo.com"

    def test_missing_variables(self, clean_env, registry):
        """Test missing variables are named in the error."""
        clean_env.setenv("DIRECT_MAIL_EMAIL", "a@gmail.com")

        with pytest.raises(ValidationError, match="DIRECT_MAIL_PASSWORD"):
            account_from_env(registry)

    def test_unknown_provider(self, clean_env, registry):
        """Test an unknown provider raises UnknownProviderError."""
        clean_env.setenv("DIRECT_MAIL_EMAIL", "a@example.com")
        clean_env.setenv("DIRECT_MAIL_PASSWORD", "x")
        clean_env.setenv("DIRECT_MAIL_PROVIDER", "example")

        with pytest.raises(UnknownProviderError):
            account_from_env(registry)

    def test_env_file(self, clean_env, registry, tmp_path):
        """Test variables are loaded from a .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "MYAPP_EMAIL=b@aol.com\nMYAPP_USERNAME=b\nMYAPP_PASSWORD=y\nMYAPP_PROVIDER=aol\n"
        )
        for name in ("EMAIL", "USERNAME", "PASSWORD", "PROVIDER"):
            clean_env.delenv(f"MYAPP_{name}", raising=False)

        config = account_from_env(registry, env_file=env_file, prefix="MYAPP_")

        assert config.email_address == "b@aol.com"
        assert config.smtp_port == 587
