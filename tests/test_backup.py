from __future__ import annotations

import sqlite3

import pytest

from ftjournal.api import handle
from ftjournal.config import Config
from ftjournal.crypto import DatabaseCipher
from ftjournal.engine import JournalEngine
from ftjournal.errors import FileIOError, ValidationError


def _snapshot(engine):
    return [t.model_dump() for t in engine.trades_list()]


def test_export_then_import_round_trips(engine, make_trade, tmp_path, utc_ms):
    for day in (2, 3, 4):
        engine.trades_create(
            make_trade(
                symbol=f"T{day}",
                entry_time_utc=utc_ms(2026, 2, day, 14),
                exit_time_utc=utc_ms(2026, 2, day, 15),
            )
        )
    before = _snapshot(engine)
    backup = tmp_path / "backups" / "journal-backup.db"

    status = engine.backup_export(str(backup))
    assert status.db.unlocked is True
    assert backup.exists()

    engine.trades_create(make_trade(symbol="AFTER"))
    assert len(engine.trades_list()) == 4

    status = engine.backup_import(str(backup))
    assert (status.db.configured, status.db.encrypted, status.db.unlocked) == (True, False, True)
    assert _snapshot(engine) == before


def test_export_is_verbatim_copy_of_encrypted_file(encrypted_engine, make_trade, config, tmp_path):
    encrypted_engine.trades_create(make_trade())
    backup = tmp_path / "enc-backup.db"

    status = encrypted_engine.backup_export(str(backup))

    assert status.db.encrypted is True
    assert backup.read_bytes() == config.path.read_bytes()


def test_import_reevaluates_lifecycle(engine, make_trade, tmp_path, passphrase):
    other = JournalEngine(Config(db_path=str(tmp_path / "other.db"), kdf_rounds=4))
    other.db_init(encrypted=True, passphrase=passphrase)
    other.trades_create(make_trade(symbol="FROM_OTHER"))
    other.close()

    status = engine.backup_import(str(tmp_path / "other.db"))

    assert (status.db.configured, status.db.encrypted, status.db.unlocked) == (True, True, False)
    engine.db_unlock(passphrase)
    assert [t.symbol for t in engine.trades_list()] == ["FROM_OTHER"]


def test_import_rejects_foreign_file_and_keeps_current(engine, make_trade, config, tmp_path):
    engine.trades_create(make_trade(symbol="KEEP"))
    before = config.path.read_bytes()
    junk = tmp_path / "junk.db"
    junk.write_bytes(b"definitely not a journal")

    with pytest.raises(ValidationError):
        engine.backup_import(str(junk))

    assert config.path.read_bytes() == before
    assert [t.symbol for t in engine.trades_list()] == ["KEEP"]


def test_import_rejects_corrupt_body_and_keeps_current(engine, make_trade, config, tmp_path):
    engine.trades_create(make_trade(symbol="KEEP"))
    before = config.path.read_bytes()
    corrupt = tmp_path / "corrupt.db"
    corrupt.write_bytes(DatabaseCipher.seal(b"this is not sqlite at all" * 40))

    response = handle(engine, "backup_import", {"srcPath": str(corrupt)})

    assert response["error"]["type"] == "ValidationError"
    assert config.path.read_bytes() == before
    assert engine.get_status().db.unlocked is True
    assert [t.symbol for t in engine.trades_list()] == ["KEEP"]

    engine.close()
    reopened = JournalEngine(config)
    assert [t.symbol for t in reopened.trades_list()] == ["KEEP"]


def test_import_rejects_sqlite_without_journal_tables(engine, config, tmp_path):
    before = config.path.read_bytes()
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE notes (body TEXT)")
    foreign = tmp_path / "foreign.db"
    foreign.write_bytes(DatabaseCipher.seal(connection.serialize()))
    connection.close()

    with pytest.raises(ValidationError):
        engine.backup_import(str(foreign))

    assert config.path.read_bytes() == before


def test_import_rejects_truncated_encrypted_body(engine, config, tmp_path):
    before = config.path.read_bytes()
    sealed = DatabaseCipher.seal(b"image", key=b"k" * 32, salt=b"s" * 16, rounds=4)
    truncated = tmp_path / "truncated.db"
    truncated.write_bytes(sealed[:-10])

    with pytest.raises(ValidationError):
        engine.backup_import(str(truncated))

    assert config.path.read_bytes() == before


def test_import_failed_swap_keeps_current(engine, make_trade, config, tmp_path, monkeypatch):
    from ftjournal.io import backup as backup_module

    engine.trades_create(make_trade(symbol="KEEP"))
    exported = tmp_path / "copy.db"
    engine.backup_export(str(exported))
    before = config.path.read_bytes()

    def fail_write(path, data):
        raise FileIOError("disk full")

    monkeypatch.setattr(backup_module, "write_file_atomic", fail_write)
    with pytest.raises(FileIOError):
        engine.backup_import(str(exported))

    assert config.path.read_bytes() == before
    assert engine.get_status().db.unlocked is True


def test_import_missing_source_is_io_error(engine, tmp_path):
    with pytest.raises(FileIOError):
        engine.backup_import(str(tmp_path / "missing.db"))


def test_export_onto_active_file_rejected(engine, config):
    with pytest.raises(ValidationError):
        engine.backup_export(str(config.path))
