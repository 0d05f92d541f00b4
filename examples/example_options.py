"""Example: Sending from a JSON options document."""

import sys

from direct_mail import MailOptions, ProviderRegistry, SendListener, send_with_options

OPTIONS = """
{
    "email": "john.doe@gmail.com",
    "username": "john.doe",
    "password": "idkmypsswd",
    "provider": "gmail",
    "destinations": ["jane.doe@yahoo.com", "bill.doe@yahoo.com"],
    "subject": "I love you",
    "message": "Have a great day at work!"
}
"""

# Options may also name an inline server instead of a provider:
#   "provider": {"smtp_host": "mail.example.com", "smtp_port": 587}

text = open(sys.argv[1]).read() if len(sys.argv) > 1 else OPTIONS
options = MailOptions.from_json(text)

task = send_with_options(
    options,
    ProviderRegistry.default(),
    SendListener(
        on_success=lambda: print("Sent"),
        on_error=lambda: print("Failed"),
    ),
)

if task is None:
    print("Nothing to send: destinations and message are required")
else:
    task.wait(60)
    print(f"Result: {task.result.outcome.value}")
