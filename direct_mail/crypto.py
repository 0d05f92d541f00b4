"""Symmetric transform for storing account secrets at rest.

Key derivation is PBKDF2-HMAC-SHA256 over the key phrase with a random
16-byte salt and 390000 iterations. The derived 32-byte key is used as a
Fernet key (AES-128-CBC with an HMAC-SHA256 tag).

Cipher text layout: ``<base64url(salt)>.<fernet token>``
"""

import base64
import binascii
import os

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import SecretDecryptionError, ValidationError

SALT_SIZE = 16
KDF_ITERATIONS = 390_000
_SEPARATOR = "."


def _derive_key(key_phrase: str, salt: bytes) -> bytes:
    """Derive a Fernet key from a key phrase and salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(key_phrase.encode("utf-8")))


def encrypt_secret(secret: str, key_phrase: str) -> str:
    """Encrypt a secret under a key phrase.

    Args:
        secret: The plain secret (password)
        key_phrase: Phrase the encryption key is derived from

    Returns:
        ASCII cipher text safe to persist

    Raises:
        ValidationError: If the secret or key phrase is empty
    """
    if not secret:
        raise ValidationError("Cannot encrypt an empty secret")
    if not key_phrase:
        raise ValidationError("Key phrase must not be empty")

    salt = os.urandom(SALT_SIZE)
    token = Fernet(_derive_key(key_phrase, salt)).encrypt(secret.encode("utf-8"))
    salt_text = base64.urlsafe_b64encode(salt).decode("ascii")
    return f"{salt_text}{_SEPARATOR}{token.decode('ascii')}"


def decrypt_secret(cipher_text: str, key_phrase: str) -> str:
    """Decrypt a secret produced by :func:`encrypt_secret`.

    Args:
        cipher_text: Value returned by encrypt_secret
        key_phrase: The phrase used at encryption time

    Returns:
        The plain secret

    Raises:
        ValidationError: If the key phrase is empty
        SecretDecryptionError: If the text is malformed or the key phrase is wrong
    """
    if not key_phrase:
        raise ValidationError("Key phrase must not be empty")

    salt_text, sep, token = (cipher_text or "").partition(_SEPARATOR)
    if not sep or not salt_text or not token:
        raise SecretDecryptionError("Malformed encrypted secret")

    try:
        salt = base64.urlsafe_b64decode(salt_text.encode("ascii"))
        plain = Fernet(_derive_key(key_phrase, salt)).decrypt(token.encode("ascii"))
    except (InvalidToken, binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise SecretDecryptionError("Could not decrypt secret with the given key phrase") from e

    return plain.decode("utf-8")
