"""Whole-file backup export and restore."""

import logging
from pathlib import Path

from ftjournal.crypto import DatabaseCipher
from ftjournal.db.models import Meta
from ftjournal.db.session import StoreHandle, read_file, write_file_atomic
from ftjournal.errors import ValidationError

logger = logging.getLogger(__name__)

# AES-GCM tag appended to every sealed image
GCM_TAG_LENGTH = 16


class BackupManager:
    """
    Copies the database file verbatim (still encrypted if it was).
    Callers must hold the engine lock so no write lands mid-copy.
    """

    @staticmethod
    def export(active_path: Path, dest_path) -> Path:
        dest = Path(dest_path).expanduser()
        if dest.resolve() == Path(active_path).resolve():
            raise ValidationError("backup destination is the active database file")

        blob = read_file(active_path)
        write_file_atomic(dest, blob)
        logger.info("Exported database to %s (%d bytes)", dest, len(blob))
        return dest

    @staticmethod
    def verify(blob: bytes, src: Path):
        """
        Check a backup before it replaces anything.

        Plaintext images are opened in a scratch store and must carry the
        meta row. Encrypted bodies can only be checked for length here; the
        tag is verified on unlock.
        """
        header = DatabaseCipher.read_header(blob)
        if header.encrypted:
            if len(blob) < header.length + GCM_TAG_LENGTH:
                raise ValidationError(f"truncated encrypted backup: {src}")
            return header

        _, image = DatabaseCipher.open(blob)
        scratch = StoreHandle(src, image)
        try:
            with scratch.session() as session:
                meta = session.get(Meta, 1)
        finally:
            scratch.close()
        if meta is None:
            raise ValidationError(f"not a journal backup: {src}")
        return header

    @staticmethod
    def restore(src_path, active_path: Path):
        """
        Replace the active database file with src_path.

        The source is fully read and checked before anything is written, and
        the swap is a rename, so a failure leaves the previous file intact.
        """
        src = Path(src_path).expanduser()
        blob = read_file(src)
        header = BackupManager.verify(blob, src)

        write_file_atomic(Path(active_path), blob)
        logger.info(
            "Restored %s database from %s",
            "encrypted" if header.encrypted else "plaintext",
            src,
        )
