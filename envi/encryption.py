"""Encrypted blob envelope.

An envelope is ``base64(salt || iv || tag || ciphertext)`` where the
ciphertext is AES-256-GCM over the gzip-compressed UTF-8 plaintext and the
key is stretched from the secret with Argon2id under a fresh random salt.
A blob is the envelope framed by ``__envi_start__`` / ``__envi_end__`` lines
so it survives being pasted through chat tools.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Optional

from argon2.low_level import Type as _ArgonType, hash_secret_raw as _argon_hash
from Cryptodome.Cipher import AES

from . import codec
from .constants import BLOB_END, BLOB_START, IV_SIZE, KEY_SIZE, SALT_SIZE, TAG_SIZE
from .errors import AuthenticationError, EnvelopeError

HEADER_SIZE = SALT_SIZE + IV_SIZE + TAG_SIZE

# Fixed Argon2id parameters; the envelope does not carry them
ARGON_TIME_COST = 3
ARGON_MEMORY_COST_KIB = 64 * 1024  # 64 MiB
ARGON_PARALLELISM = 4


@dataclass
class EncryptionParams:
    salt: bytes
    time_cost: int = ARGON_TIME_COST
    memory_cost_kib: int = ARGON_MEMORY_COST_KIB
    parallelism: int = ARGON_PARALLELISM


def derive_key(secret: str, params: EncryptionParams) -> bytes:
    return _argon_hash(
        secret.encode("utf-8"),
        params.salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost_kib,
        parallelism=params.parallelism,
        hash_len=KEY_SIZE,
        type=_ArgonType.ID,
    )


class EncryptionContext:
    def __init__(self, key: bytes, params: EncryptionParams):
        if len(key) != KEY_SIZE:
            raise ValueError("Key must be 32 bytes for AES-256-GCM")
        self.key = key
        self.params = params

    @classmethod
    def create(cls, secret: str) -> "EncryptionContext":
        params = EncryptionParams(salt=os.urandom(SALT_SIZE))
        return cls(derive_key(secret, params), params)

    @classmethod
    def from_salt(cls, secret: str, salt: bytes) -> "EncryptionContext":
        if len(salt) != SALT_SIZE:
            raise ValueError(f"Salt must be {SALT_SIZE} bytes")
        params = EncryptionParams(salt=salt)
        return cls(derive_key(secret, params), params)

    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt under a fresh IV; returns ``salt || iv || tag || ciphertext``."""
        iv = os.urandom(IV_SIZE)
        cipher = AES.new(self.key, AES.MODE_GCM, nonce=iv, mac_len=TAG_SIZE)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return self.params.salt + iv + tag + ciphertext

    def decrypt(self, payload: bytes) -> bytes:
        if len(payload) < HEADER_SIZE:
            raise EnvelopeError("Encrypted payload too short")
        iv = payload[SALT_SIZE:SALT_SIZE + IV_SIZE]
        tag = payload[SALT_SIZE + IV_SIZE:HEADER_SIZE]
        ciphertext = payload[HEADER_SIZE:]
        cipher = AES.new(self.key, AES.MODE_GCM, nonce=iv, mac_len=TAG_SIZE)
        try:
            return cipher.decrypt_and_verify(ciphertext, tag)
        except ValueError as e:
            raise AuthenticationError("Decryption failed: wrong secret or corrupted blob") from e


def encrypt(plaintext: str, secret: str) -> str:
    """Compress, encrypt and base64-encode ``plaintext`` under ``secret``.

    Every call draws a new salt and IV, so encrypting the same plaintext
    twice never yields the same envelope.
    """
    ctx = EncryptionContext.create(secret)
    payload = ctx.encrypt(codec.compress(plaintext.encode("utf-8")))
    return base64.b64encode(payload).decode("ascii")


def _b64decode(envelope: str) -> bytes:
    try:
        return base64.b64decode("".join(envelope.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise EnvelopeError(f"Envelope is not valid base64: {e}") from e


def decrypt(envelope: str, secret: str) -> str:
    """Reverse :func:`encrypt`.

    Raises:
        AuthenticationError: The secret is wrong or the data was altered.
        EnvelopeError: The envelope is not structurally valid.
    """
    payload = _b64decode(envelope)
    if len(payload) < HEADER_SIZE:
        raise EnvelopeError(
            f"Envelope too short: {len(payload)} bytes, need at least {HEADER_SIZE}"
        )
    ctx = EncryptionContext.from_salt(secret, payload[:SALT_SIZE])
    data = codec.decompress(ctx.decrypt(payload))
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EnvelopeError("Decrypted payload is not valid UTF-8") from e


def format_blob(envelope: str) -> str:
    return f"{BLOB_START}\n{envelope}\n{BLOB_END}"


def parse_blob(text: str) -> Optional[str]:
    """Extract the envelope from a blob, or None when ``text`` is not a blob.

    All whitespace is removed first, so indentation, CRLF line endings and
    lines collapsed or re-wrapped by messaging tools are tolerated.
    """
    normalized = "".join(text.split())
    start = normalized.find(BLOB_START)
    end = normalized.find(BLOB_END)
    if start == -1 or end == -1 or start >= end:
        return None
    envelope = normalized[start + len(BLOB_START):end]
    if not envelope:
        return None
    return envelope


__all__ = [
    "EncryptionContext",
    "EncryptionParams",
    "decrypt",
    "derive_key",
    "encrypt",
    "format_blob",
    "parse_blob",
]
