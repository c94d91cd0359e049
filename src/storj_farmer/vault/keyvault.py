"""Password-based vault for the node's private key.

Blob layout before base64 encoding::

    version (1) | salt (16) | nonce (12) | ciphertext + GCM tag

The key is derived from the password with scrypt and the plaintext is
sealed with AES-256-GCM, so a wrong password and a corrupt blob both fail
the tag check instead of yielding garbage.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from stellar_sdk import Keypair
from stellar_sdk.exceptions import Ed25519SecretSeedInvalidError

from storj_farmer.errors import DecryptionError

log = logging.getLogger(__name__)

BLOB_VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32

# scrypt cost parameters
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

_HEADER_SIZE = 1 + SALT_SIZE + NONCE_SIZE


def _derive_key(password: str, salt: bytes) -> bytes:
    kdf = Scrypt(salt=salt, length=KEY_SIZE, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(password.encode("utf-8"))


def encrypt(password: str, plaintext: str) -> str:
    """Seal ``plaintext`` under ``password`` and return a text-safe blob."""
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(_derive_key(password, salt))
    header = bytes([BLOB_VERSION]) + salt + nonce
    # header is bound as associated data so it cannot be swapped
    sealed = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), header)
    return base64.urlsafe_b64encode(header + sealed).decode("ascii")


def decrypt(password: str, blob: str) -> str:
    """Open a blob produced by :func:`encrypt`.

    Raises DecryptionError for a wrong password, a truncated or tampered
    blob, or text that is not a blob at all.
    """
    try:
        raw = base64.b64decode(blob.strip(), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError("key file is not a valid encrypted blob") from exc

    if len(raw) < _HEADER_SIZE + TAG_SIZE:
        raise DecryptionError("key file is truncated")
    if raw[0] != BLOB_VERSION:
        raise DecryptionError(f"unsupported key file version {raw[0]}")

    header = raw[:_HEADER_SIZE]
    salt = raw[1:1 + SALT_SIZE]
    nonce = raw[1 + SALT_SIZE:_HEADER_SIZE]
    aesgcm = AESGCM(_derive_key(password, salt))
    try:
        plaintext = aesgcm.decrypt(nonce, raw[_HEADER_SIZE:], header)
    except InvalidTag as exc:
        raise DecryptionError() from exc

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionError("decrypted key is not valid text") from exc


def generate_key() -> str:
    """Fresh private key material for a new node."""
    return Keypair.random().secret


def unlock_keypair(password: str, blob: str) -> Keypair:
    """Decrypt the key file contents and import them as the node keypair.

    A plaintext that does not parse as a secret seed is treated exactly
    like a wrong password.
    """
    secret = decrypt(password, blob)
    try:
        keypair = Keypair.from_secret(secret)
    except (Ed25519SecretSeedInvalidError, ValueError) as exc:
        raise DecryptionError("decrypted key is not a valid private key") from exc
    log.debug("Unlocked keypair %s", keypair.public_key)
    return keypair
