"""
Database lifecycle: Unconfigured -> Locked / Unlocked.

State is always derived from the file on disk plus whether an in-memory
store is currently open, so it can be re-evaluated from scratch at any time.
"""

import logging
from typing import Optional

from ftjournal.config import Config
from ftjournal.crypto import DatabaseCipher, FileHeader
from ftjournal.db.seed import seed_database
from ftjournal.db.session import StoreHandle, read_file
from ftjournal.domain.models import DbStatus
from ftjournal.errors import AuthError, ConflictError, JournalError, LockedError, ValidationError

logger = logging.getLogger(__name__)


class DatabaseLifecycle:
    """Owns the database file, its key and the open store."""

    def __init__(self, config: Config):
        self.config = config
        self.path = config.path
        self.header: Optional[FileHeader] = None
        self.store: Optional[StoreHandle] = None
        try:
            self.reload()
        except JournalError as e:
            # Stay locked; unlock retries the load and reports the error
            logger.error("Cannot open database at %s: %s", self.path, e)

    def status(self) -> DbStatus:
        return DbStatus(
            configured=self.header is not None,
            encrypted=bool(self.header and self.header.encrypted),
            unlocked=self.store is not None,
        )

    def require_store(self) -> StoreHandle:
        if self.store is None:
            if self.header is None:
                raise LockedError("database is not configured")
            raise LockedError("database is locked")
        return self.store

    def reload(self):
        """Forget everything in memory and re-read state from the file."""
        self._close_store()
        self.header = None

        if not self.path.exists():
            logger.info("No database at %s", self.path)
            return

        blob = read_file(self.path)
        self.header = DatabaseCipher.read_header(blob)

        if self.header.encrypted:
            logger.info("Encrypted database at %s is locked", self.path)
            return

        _, image = DatabaseCipher.open(blob)
        self.store = StoreHandle(self.path, image)
        logger.info("Opened database at %s", self.path)

    def init(self, encrypted: bool, passphrase: Optional[str] = None) -> DbStatus:
        """Create a new database file and leave it unlocked."""
        if self.header is not None or self.path.exists():
            raise ConflictError(f"database already exists at {self.path}")

        key = None
        salt = b""
        rounds = 0
        if encrypted:
            passphrase = DatabaseCipher.check_passphrase(passphrase)
            salt = DatabaseCipher.new_salt()
            rounds = self.config.kdf_rounds
            key = DatabaseCipher.derive_key(passphrase, salt, rounds)

        store = StoreHandle(self.path, key=key, salt=salt, rounds=rounds)
        try:
            with store.session() as session:
                seed_database(session)
            store.persist()
        except Exception:
            store.close()
            raise

        self.store = store
        self.header = FileHeader(encrypted=encrypted, kdf_rounds=rounds, salt=salt)
        logger.info("Created %s database at %s", "encrypted" if encrypted else "plaintext", self.path)
        return self.status()

    def unlock(self, passphrase: Optional[str]) -> DbStatus:
        """Derive the key from the stored salt and open the database."""
        if self.header is None:
            raise LockedError("database is not configured")
        if self.store is not None:
            return self.status()
        if not self.header.encrypted:
            self.reload()
            return self.status()
        if not isinstance(passphrase, str) or not passphrase:
            raise ValidationError("passphrase is required")

        blob = read_file(self.path)
        header = DatabaseCipher.read_header(blob)
        key = DatabaseCipher.derive_key(passphrase, header.salt, header.kdf_rounds)
        try:
            _, image = DatabaseCipher.open(blob, key)
        except AuthError:
            logger.warning("Unlock failed for %s", self.path)
            raise

        self.header = header
        self.store = StoreHandle(self.path, image, key=key, salt=header.salt, rounds=header.kdf_rounds)
        logger.info("Unlocked database at %s", self.path)
        return self.status()

    def lock(self) -> DbStatus:
        """Drop the key and in-memory data of an encrypted database."""
        if self.header is None:
            raise LockedError("database is not configured")
        if self.header.encrypted and self.store is not None:
            self._close_store()
            logger.info("Locked database at %s", self.path)
        return self.status()

    def discard_changes(self):
        """Roll the open store back to what is on disk."""
        store = self.require_store()
        _, image = DatabaseCipher.open(read_file(self.path), store.key)
        store.load(image)
        logger.warning("Discarded unsaved changes for %s", self.path)

    def close(self):
        """Release the in-memory store without changing the file."""
        self._close_store()

    def _close_store(self):
        if self.store is not None:
            self.store.close()
            self.store = None
