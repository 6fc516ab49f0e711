"""Test configuration and fixtures."""

from datetime import datetime

import pytest
import pytz

from ftjournal.config import Config
from ftjournal.db.models import TradeInput
from ftjournal.engine import JournalEngine

PASSPHRASE = "correct horse battery"


@pytest.fixture(name="passphrase")
def passphrase_fixture():
    return PASSPHRASE


@pytest.fixture(name="config")
def config_fixture(tmp_path):
    """Config pointing at a temp database file; low KDF cost keeps tests fast."""
    return Config(
        db_path=str(tmp_path / "data" / "ftjournal.db"),
        default_timezone="UTC",
        kdf_rounds=4,
    )


@pytest.fixture(name="engine")
def engine_fixture(config):
    """Unlocked plaintext database."""
    engine = JournalEngine(config)
    engine.db_init(encrypted=False)
    yield engine
    engine.close()


@pytest.fixture(name="encrypted_engine")
def encrypted_engine_fixture(config):
    """Unlocked encrypted database."""
    engine = JournalEngine(config)
    engine.db_init(encrypted=True, passphrase=PASSPHRASE)
    yield engine
    engine.close()


@pytest.fixture(name="utc_ms")
def utc_ms_fixture():
    """utc_ms(2026, 2, 8, 4, 30) -> epoch milliseconds."""
    def _utc_ms(*args):
        return int(datetime(*args, tzinfo=pytz.UTC).timestamp() * 1000)
    return _utc_ms


@pytest.fixture(name="local_ms")
def local_ms_fixture():
    """local_ms("America/New_York", 2026, 2, 7, 23, 30) -> epoch milliseconds."""
    def _local_ms(zone, *args):
        aware = pytz.timezone(zone).localize(datetime(*args), is_dst=None)
        return int(aware.timestamp() * 1000)
    return _local_ms


@pytest.fixture(name="make_trade")
def make_trade_fixture(utc_ms):
    """Build a TradeInput with sensible defaults."""
    def _make(**overrides):
        fields = dict(
            market="futures",
            symbol="ES",
            side="long",
            qty=1.0,
            entry_time_utc=utc_ms(2026, 2, 2, 14, 30),
            exit_time_utc=utc_ms(2026, 2, 2, 15, 0),
            session="ny",
            pnl_amount=250.0,
            fees=4.5,
            pnl_includes_fees=False,
            notes="",
        )
        fields.update(overrides)
        return TradeInput(**fields)
    return _make


@pytest.fixture(name="write_csv")
def write_csv_fixture(tmp_path):
    """Write CSV text to a temp file and return its path."""
    def _write(text, name="trades.csv"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return _write
