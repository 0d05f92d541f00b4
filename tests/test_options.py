"""Tests for MailOptions parsing and option-driven sends."""

import json

import pytest

from direct_mail import (
    MailOptions,
    SendListener,
    UnknownProviderError,
    ValidationError,
    send_with_options,
)

FULL_OPTIONS = {
    "email": "john.doe@gmail.com",
    "username": "john.doe",
    "password": "idkmypsswd",
    "provider": "gmail",
    "destinations": ["jane.doe@yahoo.com", "bill.doe@yahoo.com"],
    "subject": "I love you",
    "message": "Have a great day at work!",
    "attachment": "path/to/file.txt",
}


class TestMailOptionsParsing:
    """Tests for key normalization and value parsing."""

    def test_from_mapping(self):
        """Test all known keys are read."""
        options = MailOptions.from_mapping(FULL_OPTIONS)

        assert options.email == "john.doe@gmail.com"
        assert options.username == "john.doe"
        assert options.password.get_secret_value() == "idkmypsswd"
        assert options.provider == "gmail"
        assert options.destinations == ("jane.doe@yahoo.com", "bill.doe@yahoo.com")
        assert options.subject == "I love you"
        assert options.message == "Have a great day at work!"
        assert options.attachment == "path/to/file.txt"

    def test_from_json(self):
        """Test parsing a JSON document."""
        options = MailOptions.from_json(json.dumps(FULL_OPTIONS))

        assert options.destinations == ("jane.doe@yahoo.com", "bill.doe@yahoo.com")

    def test_keys_are_case_insensitive(self):
        """Test keys match regardless of case."""
        options = MailOptions.from_mapping(
            {"EMAIL": "a@gmail.com", "UserName": "a", "Provider": "GMAIL", "Message": "hi"}
        )

        assert options.email == "a@gmail.com"
        assert options.username == "a"
        assert options.provider == "gmail"
        assert options.message == "hi"

    def test_unknown_keys_ignored(self):
        """Test unknown keys are dropped."""
        options = MailOptions.from_mapping({"email": "a@gmail.com", "color": "blue"})

        assert options.email == "a@gmail.com"
        assert "color" not in options.model_dump()

    def test_single_destination(self):
        """Test 'destination' holds a single address."""
        options = MailOptions.from_mapping({"destination": "jane@yahoo.com"})

        assert options.destinations == ("jane@yahoo.com",)

    def test_comma_separated_destinations(self):
        """Test a comma-separated destinations string is split."""
        options = MailOptions.from_mapping({"destinations": "a@x.com, b@x.com,,a@x.com"})

        assert options.destinations == ("a@x.com", "b@x.com")

    def test_password_hidden_in_repr(self):
        """Test the password is masked in repr."""
        options = MailOptions.from_mapping(FULL_OPTIONS)

        assert "idkmypsswd" not in repr(options)

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]", '"string"'])
    def test_invalid_json(self, text):
        """Test malformed or non-object JSON raises ValidationError."""
        with pytest.raises(ValidationError):
            MailOptions.from_json(text)

    def test_wrong_value_type(self):
        """Test a wrongly typed value raises ValidationError."""
        with pytest.raises(ValidationError):
            MailOptions.from_mapping({"subject": ["not", "a", "string"]})


class TestBuildConfiguration:
    """Tests for building account configurations from options."""

    def test_registry_provider(self, registry):
        """Test a provider name resolves through the registry."""
        config = MailOptions.from_mapping(FULL_OPTIONS).build_configuration(registry)

        assert config.smtp_host == "smtp.gmail.com"
        assert config.email_address == "john.doe@gmail.com"
        assert config.username == "john.doe"
        assert config.has_secret

    def test_inline_provider(self, registry):
        """Test inline server settings are used as the template."""
        options = MailOptions.from_mapping(
            {
                "email": "me@example.com",
                "username": "me",
                "password": "pw",
                "provider": {"smtp_host": "mail.example.com", "smtp_port": 2525},
            }
        )
        config = options.build_configuration(registry)

        assert config.smtp_host == "mail.example.com"
        assert config.smtp_port == 2525
        assert config.email_address == "me@example.com"

    def test_missing_provider(self, registry):
        """Test a missing provider is an explicit error."""
        options = MailOptions.from_mapping({"email": "a@gmail.com", "username": "a", "password": "x"})

        with pytest.raises(ValidationError):
            options.build_configuration(registry)

    def test_unknown_provider(self, registry):
        """Test an unknown provider name is an explicit error."""
        options = MailOptions.from_mapping(
            {"email": "a@gmail.com", "username": "a", "password": "x", "provider": "nope"}
        )

        with pytest.raises(UnknownProviderError):
            options.build_configuration(registry)

    def test_missing_password(self, registry):
        """Test a missing password raises ValidationError."""
        options = MailOptions.from_mapping({"email": "a@gmail.com", "username": "a", "provider": "gmail"})

        with pytest.raises(ValidationError):
            options.build_configuration(registry)

    def test_to_message(self):
        """Test the message built from options."""
        message = MailOptions.from_mapping(FULL_OPTIONS).to_message()

        assert message.recipients == ("jane.doe@yahoo.com", "bill.doe@yahoo.com")
        assert message.subject == "I love you"
        assert message.body == "Have a great day at work!"
        assert str(message.attachment_path) == "path/to/file.txt"


class TestSendWithOptions:
    """Tests for sending straight from options."""

    def test_sends_message(self, registry, smtp_server):
        """Test a complete set of options sends one message."""
        events = []
        options = MailOptions.from_mapping({**FULL_OPTIONS, "attachment": None})

        task = send_with_options(
            options,
            registry,
            SendListener(
                on_success=lambda: events.append("success"),
                on_error=lambda: events.append("error"),
                on_complete=lambda: events.append("complete"),
            ),
        )

        assert task is not None
        assert task.wait(5)
        assert events == ["success", "complete"]
        from_addr, to_addrs, _ = smtp_server.sent[0]
        assert from_addr == "john.doe@gmail.com"
        assert to_addrs == ["jane.doe@yahoo.com", "bill.doe@yahoo.com"]

    @pytest.mark.parametrize("missing", ["destinations", "message"])
    def test_nothing_to_send(self, registry, smtp_server, missing):
        """Test nothing is sent without destinations or a message."""
        data = {key: value for key, value in FULL_OPTIONS.items() if key != missing}

        assert send_with_options(MailOptions.from_mapping(data), registry) is None
        assert smtp_server.sessions == []
