"""Exceptions raised by the journal engine."""


class JournalError(Exception):
    """Base exception for engine operations."""

    pass


class ValidationError(JournalError):
    """Input has the wrong shape or is out of range."""

    pass


class NotFoundError(JournalError):
    """No record with the requested id."""

    pass


class LockedError(JournalError):
    """Database is not configured or not unlocked."""

    pass


class AuthError(JournalError):
    """Passphrase did not decrypt the database."""

    pass


class ConflictError(JournalError):
    """Database already exists."""

    pass


class FileIOError(JournalError):
    """Reading, writing or copying a file failed."""

    pass
