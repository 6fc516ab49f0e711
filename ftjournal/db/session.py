"""Database handle, file I/O and initialization."""

import logging
import os
import sqlite3
import uuid
from pathlib import Path
from typing import Optional

from sqlmodel import SQLModel, create_engine, Session
from sqlmodel.pool import StaticPool

from ftjournal.crypto import DatabaseCipher
from ftjournal.errors import FileIOError, ValidationError

logger = logging.getLogger(__name__)


def read_file(path: Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise FileIOError(f"read {path}: {e}") from e


def write_file_atomic(path: Path, data: bytes):
    """Write to a sibling temp file, then rename over the target."""
    path = Path(path)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise FileIOError(f"write {path}: {e}") from e


def open_image(image: Optional[bytes] = None) -> sqlite3.Connection:
    """Load a SQLite image into a new in-memory connection and check it."""
    connection = sqlite3.connect(":memory:", check_same_thread=False)
    if not image:
        return connection
    try:
        connection.deserialize(image)
        (result,) = connection.execute("PRAGMA quick_check").fetchone()
    except sqlite3.DatabaseError as e:
        connection.close()
        raise ValidationError(f"not a journal database: {e}") from e
    if result != "ok":
        connection.close()
        raise ValidationError(f"database image is damaged: {result}")
    return connection


class StoreHandle:
    """
    An unlocked database: the SQLite image held in memory, plus what is
    needed to seal it back into the database file.
    """

    def __init__(
        self,
        path: Path,
        image: Optional[bytes] = None,
        key: Optional[bytes] = None,
        salt: bytes = b"",
        rounds: int = 0,
    ):
        self.path = Path(path)
        self.key = key
        self.salt = salt
        self.rounds = rounds

        self.connection = open_image(image)

        # Every session shares the one in-memory connection
        self.engine = create_engine(
            "sqlite://",
            creator=lambda: self.connection,
            poolclass=StaticPool,
            echo=False,
        )
        SQLModel.metadata.create_all(self.engine)
        self._persisted_changes = self.connection.total_changes

    @property
    def encrypted(self) -> bool:
        return self.key is not None

    def session(self) -> Session:
        """Get a new session; objects stay readable after commit."""
        return Session(self.engine, expire_on_commit=False)

    @property
    def has_unsaved_changes(self) -> bool:
        return self.connection.total_changes != self._persisted_changes

    def persist(self):
        """Seal the current image and replace the database file with it."""
        blob = DatabaseCipher.seal(self.connection.serialize(), self.key, self.salt, self.rounds)
        write_file_atomic(self.path, blob)
        self._persisted_changes = self.connection.total_changes
        logger.debug("Persisted %d bytes to %s", len(blob), self.path)

    def load(self, image: bytes):
        """Replace the in-memory database with an image (used to drop unsaved changes)."""
        connection = open_image(image)
        self.engine.dispose()
        self.connection = connection
        self._persisted_changes = self.connection.total_changes

    def close(self):
        self.engine.dispose()
        self.connection.close()
