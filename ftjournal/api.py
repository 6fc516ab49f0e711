"""
Request/response surface of the engine.

    response = handle(engine, "trades_get", {"id": trade_id})

Success is {"ok": True, "data": ...}; failure is
{"ok": False, "error": {"type": "<ErrorClass>", "message": "..."}}.
"""

import dataclasses
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PayloadError
from sqlmodel import SQLModel

from ftjournal.db.models import RuleInput, Settings, TradeInput
from ftjournal.domain.trades import DEFAULT_LIST_LIMIT
from ftjournal.engine import JournalEngine
from ftjournal.errors import JournalError

logger = logging.getLogger(__name__)


class DbInitRequest(SQLModel):
    encrypted: bool
    passphrase: Optional[str] = None


class DbUnlockRequest(SQLModel):
    passphrase: str


class IdRequest(SQLModel):
    id: str


class TradesListRequest(SQLModel):
    limit: int = DEFAULT_LIST_LIMIT
    offset: int = 0


class TradeUpdateRequest(SQLModel):
    id: str
    input: TradeInput


class MonthRequest(SQLModel):
    year: int
    month: int


class DateRequest(SQLModel):
    date_local: str


class EntryUpsertRequest(SQLModel):
    date_local: str
    text: str = ""


class PathRequest(SQLModel):
    path: str


class ExportRequest(SQLModel):
    destPath: str


class ImportRequest(SQLModel):
    srcPath: str


def to_payload(value: Any) -> Any:
    """Convert engine results to plain JSON-compatible structures."""
    if isinstance(value, SQLModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_payload(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    return value


OPERATIONS: Dict[str, Callable[[JournalEngine, Dict], Any]] = {
    "get_status": lambda e, p: e.get_status(),
    "db_init": lambda e, p: e.db_init(**DbInitRequest.model_validate(p).model_dump()),
    "db_unlock": lambda e, p: e.db_unlock(DbUnlockRequest.model_validate(p).passphrase),
    "db_lock": lambda e, p: e.db_lock(),
    "settings_get": lambda e, p: e.settings_get(),
    "settings_update": lambda e, p: e.settings_update(Settings.model_validate(p).timezone),
    "rules_list": lambda e, p: e.rules_list(),
    "rules_upsert": lambda e, p: e.rules_upsert(RuleInput.model_validate(p)),
    "rules_delete": lambda e, p: e.rules_delete(IdRequest.model_validate(p).id),
    "trades_list": lambda e, p: e.trades_list(**TradesListRequest.model_validate(p).model_dump()),
    "trades_get": lambda e, p: e.trades_get(IdRequest.model_validate(p).id),
    "trades_create": lambda e, p: e.trades_create(TradeInput.model_validate(p)),
    "trades_update": lambda e, p: _trades_update(e, TradeUpdateRequest.model_validate(p)),
    "trades_delete": lambda e, p: e.trades_delete(IdRequest.model_validate(p).id),
    "journal_month_summary": lambda e, p: e.journal_month_summary(**MonthRequest.model_validate(p).model_dump()),
    "journal_day_trades": lambda e, p: e.journal_day_trades(DateRequest.model_validate(p).date_local),
    "journal_entry_get": lambda e, p: e.journal_entry_get(DateRequest.model_validate(p).date_local),
    "journal_entry_upsert": lambda e, p: e.journal_entry_upsert(**EntryUpsertRequest.model_validate(p).model_dump()),
    "csv_import_generic": lambda e, p: e.csv_import_generic(PathRequest.model_validate(p).path),
    "backup_export": lambda e, p: e.backup_export(ExportRequest.model_validate(p).destPath),
    "backup_import": lambda e, p: e.backup_import(ImportRequest.model_validate(p).srcPath),
}


def _trades_update(engine: JournalEngine, req: TradeUpdateRequest):
    return engine.trades_update(req.id, req.input)


def _error(kind: str, message: str) -> Dict:
    return {"ok": False, "error": {"type": kind, "message": message}}


def handle(engine: JournalEngine, operation: str, payload: Optional[Dict] = None) -> Dict:
    """Run one operation and wrap its result or error."""
    op = OPERATIONS.get(operation)
    if op is None:
        return _error("ValidationError", f"unknown operation: {operation}")

    try:
        result = op(engine, payload or {})
    except PayloadError as e:
        return _error("ValidationError", str(e))
    except JournalError as e:
        logger.info("%s failed: %s: %s", operation, type(e).__name__, e)
        return _error(type(e).__name__, str(e))

    return {"ok": True, "data": to_payload(result)}
