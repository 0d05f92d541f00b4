"""Example: Using AsyncMailClient."""

import asyncio
import os

from dotenv import load_dotenv

from direct_mail import AsyncMailClient, Protocol, ProviderRegistry, account_from_env

# Load environment variables from .env file
load_dotenv()


async def main():
    """Main async function."""
    registry = ProviderRegistry.default()
    config = account_from_env(registry)
    print("=== Async MailClient Example ===\n")

    async_client = AsyncMailClient(config, os.environ["DIRECT_MAIL_PASSWORD"])

    # Send two messages concurrently
    print("1. Sending two messages...")
    results = await asyncio.gather(
        async_client.send(config.email_address, "First", "First message"),
        async_client.send(config.email_address, "Second", "Second message"),
    )
    for result in results:
        print(f"  - {result.outcome.value}: {result.message_id or result.error}")

    # Read the inbox over IMAP when the provider has it
    protocol = Protocol.IMAP if config.supports_imap else Protocol.POP3
    print(f"\n2. Reading inbox over {protocol.value}...")
    messages = await async_client.list_messages(protocol, 0, 5)
    for message in messages or []:
        print(f"  - {message.subject}")


if __name__ == "__main__":
    asyncio.run(main())
