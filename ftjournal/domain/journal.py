"""Calendar aggregation and daily notes."""

from datetime import date, timedelta
from typing import Dict, List

from sqlmodel import Session, select

from ftjournal.db.models import JournalEntry, Trade
from ftjournal.domain.models import DailyEntry, DaySummary, TradeHighlight
from ftjournal.domain.timezones import get_zone, local_date_str, parse_date_local, utc_window
from ftjournal.domain.trades import now_utc_ms
from ftjournal.errors import ValidationError


class JournalAggregator:
    """Bucket trades into local calendar days by exit time."""

    @staticmethod
    def month_summary(
        session: Session,
        timezone: str,
        year: int,
        month: int,
    ) -> List[DaySummary]:
        """
        One DaySummary per local day of the month that has at least one exit.

        The zone is the current settings zone, not the zone stored on each
        trade. Days without trades are not emitted.
        """
        if not isinstance(year, int) or not 1900 <= year <= 9998:
            raise ValidationError(f"invalid year: {year}")
        if not isinstance(month, int) or not 1 <= month <= 12:
            raise ValidationError(f"invalid month: {month}")

        tz = get_zone(timezone)
        month_start = date(year, month, 1)
        next_month = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        start_ms, end_ms = utc_window(month_start, next_month, tz)

        rows = session.exec(
            select(Trade.exit_time_utc, Trade.pnl_net).where(
                Trade.exit_time_utc >= start_ms,
                Trade.exit_time_utc < end_ms,
            )
        ).all()

        prefix = month_start.strftime("%Y-%m-")
        by_day: Dict[str, DaySummary] = {}
        for exit_ms, pnl_net in rows:
            day = local_date_str(exit_ms, tz)
            if not day.startswith(prefix):
                continue
            summary = by_day.setdefault(day, DaySummary(date_local=day))
            summary.trade_count += 1
            summary.pnl_net_total += float(pnl_net)

        return [by_day[day] for day in sorted(by_day)]

    @staticmethod
    def day_trades(session: Session, timezone: str, date_local: str) -> List[TradeHighlight]:
        """Trades exiting on a local day, earliest exit first."""
        day = parse_date_local(date_local)
        tz = get_zone(timezone)
        start_ms, end_ms = utc_window(day, day + timedelta(days=1), tz)

        trades = session.exec(
            select(Trade)
            .where(Trade.exit_time_utc >= start_ms, Trade.exit_time_utc < end_ms)
            .order_by(Trade.exit_time_utc, Trade.id)
        ).all()

        day_str = day.strftime("%Y-%m-%d")
        return [
            TradeHighlight(
                id=t.id,
                symbol=t.symbol,
                qty=t.qty,
                pnl_net=t.pnl_net,
                notes=t.notes,
                exit_time_utc=t.exit_time_utc,
            )
            for t in trades
            if local_date_str(t.exit_time_utc, tz) == day_str
        ]


class DailyJournal:
    """One free-text entry per local date."""

    @staticmethod
    def _find(session: Session, date_local: str):
        return session.exec(
            select(JournalEntry).where(
                JournalEntry.date_local == date_local,
                JournalEntry.entry_type == "daily",
            )
        ).first()

    @staticmethod
    def get(session: Session, date_local: str) -> DailyEntry:
        day_str = parse_date_local(date_local).strftime("%Y-%m-%d")
        entry = DailyJournal._find(session, day_str)
        return DailyEntry(date_local=day_str, text=entry.text if entry else "")

    @staticmethod
    def upsert(session: Session, date_local: str, text: str) -> DailyEntry:
        day_str = parse_date_local(date_local).strftime("%Y-%m-%d")
        if not isinstance(text, str):
            raise ValidationError("text must be a string")

        now = now_utc_ms()
        entry = DailyJournal._find(session, day_str)
        if entry is None:
            entry = JournalEntry(date_local=day_str, text=text, created_at_utc=now, updated_at_utc=now)
        else:
            entry.text = text
            entry.updated_at_utc = now
        session.add(entry)
        session.flush()
        return DailyEntry(date_local=day_str, text=text)
