"""Engine configuration from environment variables."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

# Location of the single database file
DB_PATH = os.getenv("FTJOURNAL_DB_PATH", str(Path.home() / ".ftjournal" / "ftjournal.db"))

# Zone used when settings are first created
DEFAULT_TIMEZONE = os.getenv("FTJOURNAL_DEFAULT_TIMEZONE", "UTC")

KDF_ROUNDS = int(os.getenv("FTJOURNAL_KDF_ROUNDS", "64"))

LOG_LEVEL = os.getenv("FTJOURNAL_LOG_LEVEL", "WARNING")


@dataclass(frozen=True)
class Config:
    """Settings the engine needs; tests build their own instead of using the env."""
    db_path: str = DB_PATH
    default_timezone: str = DEFAULT_TIMEZONE
    kdf_rounds: int = KDF_ROUNDS

    @property
    def path(self) -> Path:
        return Path(self.db_path).expanduser()


def configure_logging(level: str = LOG_LEVEL):
    """Attach a basic stderr handler and set the package log level."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("ftjournal").setLevel(getattr(logging, level.upper(), logging.WARNING))
