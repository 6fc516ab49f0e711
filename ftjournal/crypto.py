"""
At-rest encryption for the database file.

The file starts with a small header that says whether the body is encrypted,
so status can be reported without the key. Encrypted bodies are AES-256-GCM
with a key derived from the passphrase via bcrypt-pbkdf and a per-file salt.
"""

import os
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

import bcrypt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ftjournal.errors import AuthError, ValidationError

MAGIC = b"FTJRNL"
FORMAT_VERSION = 1
FLAG_ENCRYPTED = 0x01

PREFIX = struct.Struct(">6sBB")  # magic, version, flags
KDF_BLOCK = struct.Struct(">I16s12s")  # rounds, salt, nonce
ENCRYPTED_HEADER_LEN = PREFIX.size + KDF_BLOCK.size

SALT_LEN = 16
NONCE_LEN = 12
KEY_LEN = 32
MIN_PASSPHRASE_LEN = 8

# Upper bound on rounds accepted from a file header; keeps unlock time bounded
MAX_KDF_ROUNDS = 1024


@dataclass
class FileHeader:
    """Decoded database file header."""
    encrypted: bool
    kdf_rounds: int = 0
    salt: bytes = b""
    nonce: bytes = b""

    @property
    def length(self) -> int:
        return ENCRYPTED_HEADER_LEN if self.encrypted else PREFIX.size


class DatabaseCipher:
    """Encode and decode database file contents."""

    @staticmethod
    def check_passphrase(passphrase: Optional[str]) -> str:
        if passphrase is None or len(passphrase) < MIN_PASSPHRASE_LEN:
            raise ValidationError(
                f"passphrase must be at least {MIN_PASSPHRASE_LEN} characters"
            )
        return passphrase

    @staticmethod
    def new_salt() -> bytes:
        return os.urandom(SALT_LEN)

    @staticmethod
    def derive_key(passphrase: str, salt: bytes, rounds: int) -> bytes:
        """Derive the symmetric key with bcrypt-pbkdf."""
        if not 1 <= rounds <= MAX_KDF_ROUNDS:
            raise ValidationError(f"KDF rounds out of range: {rounds}")
        return bcrypt.kdf(
            password=passphrase.encode(),
            salt=salt,
            desired_key_bytes=KEY_LEN,
            rounds=rounds,
            ignore_few_rounds=True,
        )

    @staticmethod
    def read_header(blob: bytes) -> FileHeader:
        """
        Parse the header of a database file.

        Raises:
            ValidationError: if the bytes are not a journal database file
        """
        if len(blob) < PREFIX.size:
            raise ValidationError("not a journal database file")

        magic, version, flags = PREFIX.unpack_from(blob, 0)
        if magic != MAGIC:
            raise ValidationError("not a journal database file")
        if version != FORMAT_VERSION:
            raise ValidationError(f"unsupported database format version: {version}")

        if not flags & FLAG_ENCRYPTED:
            return FileHeader(encrypted=False)

        if len(blob) < ENCRYPTED_HEADER_LEN:
            raise ValidationError("truncated encrypted database header")

        rounds, salt, nonce = KDF_BLOCK.unpack_from(blob, PREFIX.size)
        if not 1 <= rounds <= MAX_KDF_ROUNDS:
            raise ValidationError(f"KDF rounds out of range: {rounds}")

        return FileHeader(encrypted=True, kdf_rounds=rounds, salt=salt, nonce=nonce)

    @staticmethod
    def seal(image: bytes, key: Optional[bytes] = None, salt: bytes = b"", rounds: int = 0) -> bytes:
        """Build file contents for a SQLite image; encrypts when a key is given."""
        if key is None:
            return PREFIX.pack(MAGIC, FORMAT_VERSION, 0) + image

        nonce = os.urandom(NONCE_LEN)
        header = PREFIX.pack(MAGIC, FORMAT_VERSION, FLAG_ENCRYPTED) + KDF_BLOCK.pack(
            rounds, salt, nonce
        )
        return header + AESGCM(key).encrypt(nonce, image, header)

    @staticmethod
    def open(blob: bytes, key: Optional[bytes] = None) -> Tuple[FileHeader, bytes]:
        """
        Return (header, SQLite image) for file contents.

        Raises:
            AuthError: if the key fails to authenticate the ciphertext
        """
        header = DatabaseCipher.read_header(blob)
        body = blob[header.length:]

        if not header.encrypted:
            return header, body

        if key is None:
            raise AuthError("passphrase required for encrypted database")

        try:
            image = AESGCM(key).decrypt(header.nonce, body, blob[:header.length])
        except InvalidTag:
            raise AuthError("wrong passphrase") from None

        return header, image
