"""
Generic CSV trade import.

Header names are matched case-insensitively. Each row is imported on its own:
bad rows are reported with their line number and never stop the batch, and
rows matching an existing (symbol, entry, exit) are skipped.
"""

import csv
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from sqlmodel import Session, select

from ftjournal.db.models import Trade, TradeInput
from ftjournal.domain.models import CsvImportResult, ParsedRow
from ftjournal.domain.timezones import get_zone, localize_to_utc_ms, to_utc_ms
from ftjournal.domain.trades import TradeStore
from ftjournal.errors import FileIOError, JournalError

logger = logging.getLogger(__name__)

# Naive wall-clock formats accepted in *_local columns
TIMESTAMP_FORMATS = [
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
]

SIDE_ALIASES = {
    "long": "long",
    "buy": "long",
    "short": "short",
    "sell": "short",
}

TRUE_VALUES = {"true", "1", "yes", "y"}
FALSE_VALUES = {"false", "0", "no", "n"}

# Cap on error strings returned to the caller
MAX_REPORTED_ERRORS = 100


def normalize_header(name) -> str:
    return str(name).strip().lower().replace(" ", "_").replace("-", "_")


class GenericCSVImporter:
    """Parse a delimited file and create trades row by row."""

    @staticmethod
    def read_frame(path) -> Tuple[pd.DataFrame, List[Tuple[int, str]]]:
        """
        Load the file with every cell as a string, indexed by file line.

        Blank lines are ignored. Rows with more fields than the header are
        left out of the frame and returned as (line, reason) pairs.
        """
        path = Path(path)
        header: List[str] = []
        lines: List[int] = []
        rows: List[List[str]] = []
        malformed: List[Tuple[int, str]] = []

        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                reader = csv.reader(f, skipinitialspace=True)
                start = 1
                for fields in reader:
                    line, start = start, reader.line_num + 1
                    if not any(field.strip() for field in fields):
                        continue
                    if not header:
                        header = [normalize_header(c) for c in fields]
                        continue
                    if len(fields) > len(header):
                        malformed.append(
                            (line, f"malformed row with {len(fields)} fields, expected {len(header)}")
                        )
                        continue
                    lines.append(line)
                    rows.append(fields + [""] * (len(header) - len(fields)))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise FileIOError(f"read csv {path}: {e}") from e

        frame = pd.DataFrame(rows, columns=header, index=lines, dtype=str)
        return frame, malformed

    @staticmethod
    def _cell(record: Dict, name: str) -> str:
        value = record.get(name)
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return ""
        return str(value).strip()

    @staticmethod
    def _number(record: Dict, name: str, default: Optional[float] = None) -> float:
        raw = GenericCSVImporter._cell(record, name)
        if not raw:
            if default is None:
                raise ValueError(f"missing {name}")
            return default
        try:
            value = float(raw)
        except ValueError:
            raise ValueError(f"invalid {name}: {raw!r}") from None
        if not math.isfinite(value):
            raise ValueError(f"invalid {name}: {raw!r}")
        return value

    @staticmethod
    def _flag(record: Dict, name: str, default: bool) -> bool:
        raw = GenericCSVImporter._cell(record, name).lower()
        if not raw:
            return default
        if raw in TRUE_VALUES:
            return True
        if raw in FALSE_VALUES:
            return False
        raise ValueError(f"invalid {name}: {raw!r}")

    @staticmethod
    def parse_local_timestamp(value: str, tz) -> int:
        """
        Parse a local timestamp to UTC ms.

        Values carrying an explicit offset are used as-is; naive values are
        interpreted in tz.
        """
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            parsed = None

        if parsed is not None and parsed.tzinfo is not None:
            return to_utc_ms(parsed)

        for fmt in TIMESTAMP_FORMATS:
            try:
                naive = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"unsupported datetime format: {value!r}")

        return localize_to_utc_ms(naive, tz)

    @staticmethod
    def _timestamp(record: Dict, prefix: str, tz) -> int:
        raw_ms = GenericCSVImporter._cell(record, f"{prefix}_time_utc_ms")
        if raw_ms:
            try:
                return int(raw_ms)
            except ValueError:
                pass
            try:
                value = float(raw_ms)
            except ValueError:
                value = math.nan
            if not value.is_integer():
                raise ValueError(f"invalid {prefix}_time_utc_ms: {raw_ms!r}")
            return int(value)

        raw_local = GenericCSVImporter._cell(record, f"{prefix}_local")
        if raw_local:
            return GenericCSVImporter.parse_local_timestamp(raw_local, tz)

        raise ValueError(f"missing {prefix}_time_utc_ms or {prefix}_local")

    @staticmethod
    def parse_row(record: Dict, line: int, tz) -> ParsedRow:
        """
        Resolve one CSV record onto trade fields.

        Raises:
            ValueError: with a human-readable reason
        """
        symbol = GenericCSVImporter._cell(record, "symbol")
        if not symbol:
            raise ValueError("missing symbol")

        raw_side = GenericCSVImporter._cell(record, "side")
        side = SIDE_ALIASES.get(raw_side.lower())
        if side is None:
            raise ValueError(f"invalid side: {raw_side!r}" if raw_side else "missing side")

        return ParsedRow(
            line=line,
            symbol=symbol,
            side=side,
            qty=GenericCSVImporter._number(record, "qty"),
            entry_time_utc=GenericCSVImporter._timestamp(record, "entry", tz),
            exit_time_utc=GenericCSVImporter._timestamp(record, "exit", tz),
            market=GenericCSVImporter._cell(record, "market") or "futures",
            session=GenericCSVImporter._cell(record, "session") or "other",
            pnl_amount=GenericCSVImporter._number(record, "pnl_amount", 0.0),
            fees=GenericCSVImporter._number(record, "fees", 0.0),
            pnl_includes_fees=GenericCSVImporter._flag(record, "pnl_includes_fees", True),
            notes=GenericCSVImporter._cell(record, "notes"),
        )

    @staticmethod
    def import_file(session: Session, path, timezone: str) -> CsvImportResult:
        """
        Import every row of a CSV file.

        Args:
            session: open session; caller commits
            path: CSV file path
            timezone: zone for *_local timestamps and for the stored trades

        Returns:
            CsvImportResult with created/skipped counts and per-line errors
        """
        tz = get_zone(timezone)
        frame, malformed = GenericCSVImporter.read_frame(path)
        result = CsvImportResult()
        errors: List[Tuple[int, str]] = list(malformed)

        # Existing keys already in the store; rows may come back as Row objects
        existing = {
            tuple(row)
            for row in session.exec(
                select(Trade.symbol, Trade.entry_time_utc, Trade.exit_time_utc)
            ).all()
        }

        for line, record in zip(frame.index, frame.to_dict("records")):
            try:
                parsed = GenericCSVImporter.parse_row(record, line, tz)
            except ValueError as e:
                errors.append((line, str(e)))
                logger.debug("CSV line %d rejected: %s", line, e)
                continue

            # Duplicate in the store or earlier in this file
            if parsed.dedup_key in existing:
                result.skipped += 1
                continue

            data = TradeInput(
                market=parsed.market,
                symbol=parsed.symbol,
                side=parsed.side,
                qty=parsed.qty,
                entry_time_utc=parsed.entry_time_utc,
                exit_time_utc=parsed.exit_time_utc,
                timezone=tz.zone,
                session=parsed.session,
                pnl_amount=parsed.pnl_amount,
                fees=parsed.fees,
                pnl_includes_fees=parsed.pnl_includes_fees,
                notes=parsed.notes,
            )
            try:
                TradeStore.create(session, data, tz.zone)
            except JournalError as e:
                errors.append((line, f"failed to create trade: {e}"))
                continue

            existing.add(parsed.dedup_key)
            result.created += 1

        messages = [f"line {line}: {reason}" for line, reason in sorted(errors)]
        if len(messages) > MAX_REPORTED_ERRORS:
            omitted = len(messages) - MAX_REPORTED_ERRORS
            messages = messages[:MAX_REPORTED_ERRORS]
            messages.append(f"{omitted} more errors not shown")
        result.errors = messages

        logger.info(
            "CSV import from %s: %d created, %d skipped, %d errors",
            path, result.created, result.skipped, len(errors),
        )
        return result
