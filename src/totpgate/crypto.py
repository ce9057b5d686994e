"""AES-256-GCM encryption for TOTP secrets at rest."""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from totpgate.errors import ConfigurationError, InvalidSecret

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM


def load_master_key(raw: str) -> bytes:
    """Decode a base64 master key and check it is 256 bits."""
    if not raw:
        raise ConfigurationError("TOTPGATE_MASTER_KEY not set")
    try:
        key = base64.b64decode(raw, validate=True)
    except binascii.Error as e:
        raise ConfigurationError("TOTPGATE_MASTER_KEY is not valid base64") from e
    if len(key) != 32:
        raise ConfigurationError("TOTPGATE_MASTER_KEY must be 32 bytes (base64-encoded)")
    return key


def encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt a string. Returns base64(nonce + ciphertext)."""
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext.encode(), None)
    return base64.b64encode(nonce + ct).decode()


def decrypt(token: str, key: bytes) -> str:
    """Decrypt a base64(nonce + ciphertext) token back to plaintext."""
    try:
        raw = base64.b64decode(token, validate=True)
        nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
        return AESGCM(key).decrypt(nonce, ct, None).decode()
    except (binascii.Error, InvalidTag, ValueError) as e:
        raise InvalidSecret("stored secret could not be decrypted") from e
