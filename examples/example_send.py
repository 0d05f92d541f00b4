#!/usr/bin/env python3
"""Example: Sending and reading mail with MailClient.

This example demonstrates:
1. Building an account from a provider name
2. Sending a message in the background with callbacks
3. Reading the first messages from the inbox
"""

import os

from dotenv import load_dotenv

from direct_mail import Protocol, ProviderRegistry, SendListener

# Load environment variables from .env file
load_dotenv(override=True)

EMAIL = os.getenv("DIRECT_MAIL_EMAIL")
PASSWORD = os.getenv("DIRECT_MAIL_PASSWORD")
PROVIDER = os.getenv("DIRECT_MAIL_PROVIDER", "gmail")

if not EMAIL or not PASSWORD:
    print("Error: DIRECT_MAIL_EMAIL and DIRECT_MAIL_PASSWORD environment variables must be set")
    print("\nCreate a .env file with:")
    print("DIRECT_MAIL_EMAIL=you@gmail.com")
    print("DIRECT_MAIL_PASSWORD=your_app_password")
    print("DIRECT_MAIL_PROVIDER=gmail")
    exit(1)

registry = ProviderRegistry.default()
config = registry.build(EMAIL, os.getenv("DIRECT_MAIL_USERNAME", EMAIL), PASSWORD, PROVIDER)

client = config.create_client(
    listener=SendListener(
        on_success=lambda: print("Message sent"),
        on_error=lambda: print("Message failed"),
        on_complete=lambda: print("Send finished"),
    )
)

print("=== Sending ===\n")
task = client.send(EMAIL, "Hello from direct-mail", "This message was sent straight over SMTP.")
task.wait(60)
if task.result and not task.result.success:
    print(f"Error: {task.result.error}")

print("\n=== Reading inbox ===\n")
messages = client.list_messages(Protocol.POP3, 0, 3)
if messages is None:
    print("Retrieval unavailable")
else:
    for message in messages:
        sender = message.sender.email if message.sender else "Unknown"
        print(f"  [{message.index}] {message.subject} (from {sender})")
