"""
Journal engine: one entry point per request.

Every operation runs under a single process-wide lock, so mutations, reads
and backups never interleave. Everything except get_status, db_init and
db_unlock requires an unlocked database.
"""

import logging
import threading
from contextlib import contextmanager
from typing import List, Optional

from sqlmodel import Session

from ftjournal.config import Config
from ftjournal.db.lifecycle import DatabaseLifecycle
from ftjournal.db.models import Rule, RuleInput, Settings, Trade, TradeInput
from ftjournal.domain.journal import DailyJournal, JournalAggregator
from ftjournal.domain.models import (
    AppStatus,
    CsvImportResult,
    DailyEntry,
    DaySummary,
    TradeHighlight,
    TradeWithRules,
)
from ftjournal.domain.rules import RulesStore
from ftjournal.domain.settings import SettingsStore
from ftjournal.domain.trades import DEFAULT_LIST_LIMIT, TradeStore
from ftjournal.errors import FileIOError
from ftjournal.io.backup import BackupManager
from ftjournal.io.csv_importer import GenericCSVImporter

logger = logging.getLogger(__name__)


class JournalEngine:

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self._lock = threading.RLock()
        with self._lock:
            self.lifecycle = DatabaseLifecycle(self.config)

    @contextmanager
    def _session(self):
        """
        Session on the unlocked store. Commits on success and writes the file
        if anything changed; on error nothing is committed or written.
        """
        with self._lock:
            store = self.lifecycle.require_store()
            with store.session() as session:
                yield session
                session.commit()

            if store.has_unsaved_changes:
                try:
                    store.persist()
                except FileIOError:
                    self.lifecycle.discard_changes()
                    raise

    def _timezone(self, session: Session) -> str:
        return SettingsStore.timezone(session, self.config.default_timezone)

    # Lifecycle

    def get_status(self) -> AppStatus:
        with self._lock:
            return AppStatus(db=self.lifecycle.status())

    def db_init(self, encrypted: bool, passphrase: Optional[str] = None) -> AppStatus:
        with self._lock:
            return AppStatus(db=self.lifecycle.init(encrypted, passphrase))

    def db_unlock(self, passphrase: str) -> AppStatus:
        with self._lock:
            return AppStatus(db=self.lifecycle.unlock(passphrase))

    def db_lock(self) -> AppStatus:
        with self._lock:
            return AppStatus(db=self.lifecycle.lock())

    # Settings

    def settings_get(self) -> Settings:
        with self._session() as session:
            return SettingsStore.get(session, self.config.default_timezone)

    def settings_update(self, timezone: str) -> Settings:
        with self._session() as session:
            return SettingsStore.update(session, timezone)

    # Rules

    def rules_list(self) -> List[Rule]:
        with self._session() as session:
            return RulesStore.list(session)

    def rules_upsert(self, rule: RuleInput):
        with self._session() as session:
            RulesStore.upsert(session, rule)

    def rules_delete(self, rule_id: str):
        with self._session() as session:
            RulesStore.delete(session, rule_id)

    # Trades

    def trades_list(self, limit: int = DEFAULT_LIST_LIMIT, offset: int = 0) -> List[Trade]:
        with self._session() as session:
            return TradeStore.list(session, limit, offset)

    def trades_get(self, trade_id: str) -> TradeWithRules:
        with self._session() as session:
            return TradeStore.get(session, trade_id)

    def trades_create(self, data: TradeInput) -> Trade:
        with self._session() as session:
            return TradeStore.create(session, data, self._timezone(session))

    def trades_update(self, trade_id: str, data: TradeInput) -> Trade:
        with self._session() as session:
            return TradeStore.update(session, trade_id, data, self._timezone(session))

    def trades_delete(self, trade_id: str):
        with self._session() as session:
            TradeStore.delete(session, trade_id)

    # Journal

    def journal_month_summary(self, year: int, month: int) -> List[DaySummary]:
        with self._session() as session:
            return JournalAggregator.month_summary(session, self._timezone(session), year, month)

    def journal_day_trades(self, date_local: str) -> List[TradeHighlight]:
        with self._session() as session:
            return JournalAggregator.day_trades(session, self._timezone(session), date_local)

    def journal_entry_get(self, date_local: str) -> DailyEntry:
        with self._session() as session:
            return DailyJournal.get(session, date_local)

    def journal_entry_upsert(self, date_local: str, text: str) -> DailyEntry:
        with self._session() as session:
            return DailyJournal.upsert(session, date_local, text)

    # Import / backup

    def csv_import_generic(self, path: str) -> CsvImportResult:
        with self._session() as session:
            return GenericCSVImporter.import_file(session, path, self._timezone(session))

    def backup_export(self, dest_path: str) -> AppStatus:
        with self._lock:
            self.lifecycle.require_store()
            BackupManager.export(self.lifecycle.path, dest_path)
            return AppStatus(db=self.lifecycle.status())

    def backup_import(self, src_path: str) -> AppStatus:
        """Swap in another database file; the caller has confirmed data loss."""
        with self._lock:
            self.lifecycle.require_store()
            BackupManager.restore(src_path, self.lifecycle.path)
            self.lifecycle.reload()
            return AppStatus(db=self.lifecycle.status())

    def close(self):
        with self._lock:
            self.lifecycle.close()
