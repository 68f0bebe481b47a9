"""Encryption utilities for posted form data stored at rest."""

import base64
import hashlib
import json

from cryptography.fernet import Fernet

from easyweb.config import settings


def _get_fernet_key(secret_key: str) -> bytes:
    """Derive a Fernet-compatible key from the secret_key."""
    key_bytes = hashlib.sha256(secret_key.encode()).digest()
    return base64.urlsafe_b64encode(key_bytes)


def _get_fernet(secret_key: str | None = None) -> Fernet:
    return Fernet(_get_fernet_key(secret_key or settings.security.secret_key))


def encrypt_payload(payload: dict, secret_key: str | None = None) -> str:
    """Encrypt a form payload for storage."""
    fernet = _get_fernet(secret_key)
    return fernet.encrypt(json.dumps(payload).encode()).decode()


def decrypt_payload(encrypted: str, secret_key: str | None = None) -> dict:
    """Decrypt a stored form payload."""
    fernet = _get_fernet(secret_key)
    return json.loads(fernet.decrypt(encrypted.encode()).decode())


def mask_email(email: str) -> str:
    """Mask an email address for logs (e.g., 'a***@example.com')."""
    local, sep, domain = email.partition("@")
    if not sep or not local:
        return "***"
    return f"{local[0]}***@{domain}"
