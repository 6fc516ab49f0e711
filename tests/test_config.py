from __future__ import annotations

import logging
from pathlib import Path

from ftjournal.config import Config, configure_logging


def test_config_expands_home():
    config = Config(db_path="~/journal/ftjournal.db")
    assert config.path == Path.home() / "journal" / "ftjournal.db"


def test_configure_logging_sets_package_level():
    logger = logging.getLogger("ftjournal")
    previous = logger.level
    try:
        configure_logging("debug")
        assert logger.level == logging.DEBUG

        configure_logging("nonsense")
        assert logger.level == logging.WARNING
    finally:
        logger.setLevel(previous)
