from __future__ import annotations

import pytest

from ftjournal.domain.models import DaySummary
from ftjournal.errors import ValidationError


def _add_exit(engine, make_trade, exit_ms, pnl=100.0, symbol="ES"):
    return engine.trades_create(
        make_trade(
            symbol=symbol,
            entry_time_utc=exit_ms - 60_000,
            exit_time_utc=exit_ms,
            pnl_amount=pnl,
            fees=0.0,
        )
    )


def test_late_evening_exit_buckets_into_local_day(engine, make_trade, local_ms, utc_ms):
    engine.settings_update("America/New_York")
    exit_ms = local_ms("America/New_York", 2026, 2, 7, 23, 30)
    assert exit_ms == utc_ms(2026, 2, 8, 4, 30)

    _add_exit(engine, make_trade, exit_ms, pnl=120.0)

    assert engine.journal_month_summary(2026, 2) == [
        DaySummary(date_local="2026-02-07", trade_count=1, pnl_net_total=120.0)
    ]


def test_changing_zone_rebuckets(engine, make_trade, utc_ms):
    engine.settings_update("America/New_York")
    _add_exit(engine, make_trade, utc_ms(2026, 2, 8, 4, 30), pnl=50.0)
    _add_exit(engine, make_trade, utc_ms(2026, 2, 8, 15, 0), pnl=-20.0, symbol="NQ")

    ny = engine.journal_month_summary(2026, 2)
    assert [(d.date_local, d.trade_count, d.pnl_net_total) for d in ny] == [
        ("2026-02-07", 1, 50.0),
        ("2026-02-08", 1, -20.0),
    ]

    engine.settings_update("UTC")
    utc = engine.journal_month_summary(2026, 2)
    assert [(d.date_local, d.trade_count, d.pnl_net_total) for d in utc] == [
        ("2026-02-08", 2, 30.0),
    ]


def test_month_edges_follow_local_zone(engine, make_trade, utc_ms):
    engine.settings_update("America/New_York")
    # 2026-02-01 03:00 UTC is still January 31 in New York
    _add_exit(engine, make_trade, utc_ms(2026, 2, 1, 3, 0))
    # 2026-03-01 03:00 UTC is still February 28 in New York
    _add_exit(engine, make_trade, utc_ms(2026, 3, 1, 3, 0), symbol="NQ")

    assert [d.date_local for d in engine.journal_month_summary(2026, 1)] == ["2026-01-31"]
    assert [d.date_local for d in engine.journal_month_summary(2026, 2)] == ["2026-02-28"]
    assert engine.journal_month_summary(2026, 3) == []


def test_dst_transition_uses_zone_rules(engine, make_trade, utc_ms):
    engine.settings_update("America/New_York")
    # Clocks moved to EDT (UTC-4) on 2026-03-08; a fixed UTC-5 offset
    # would put this exit on March 8 instead of March 9.
    _add_exit(engine, make_trade, utc_ms(2026, 3, 9, 4, 30))

    assert [d.date_local for d in engine.journal_month_summary(2026, 3)] == ["2026-03-09"]


def test_no_zero_filled_days(engine, make_trade, utc_ms):
    _add_exit(engine, make_trade, utc_ms(2026, 2, 3, 15))
    _add_exit(engine, make_trade, utc_ms(2026, 2, 3, 16), symbol="NQ")
    _add_exit(engine, make_trade, utc_ms(2026, 2, 20, 15), symbol="CL")

    summary = engine.journal_month_summary(2026, 2)
    assert [(d.date_local, d.trade_count) for d in summary] == [
        ("2026-02-03", 2),
        ("2026-02-20", 1),
    ]


def test_summary_reflects_edits_immediately(engine, make_trade, utc_ms):
    trade = _add_exit(engine, make_trade, utc_ms(2026, 2, 3, 15), pnl=10.0)
    assert engine.journal_month_summary(2026, 2)[0].pnl_net_total == 10.0

    engine.trades_update(
        trade.id,
        make_trade(
            entry_time_utc=trade.entry_time_utc,
            exit_time_utc=trade.exit_time_utc,
            pnl_amount=10.0,
            fees=3.0,
            pnl_includes_fees=False,
        ),
    )
    assert engine.journal_month_summary(2026, 2)[0].pnl_net_total == 7.0

    engine.trades_delete(trade.id)
    assert engine.journal_month_summary(2026, 2) == []


def test_invalid_month_rejected(engine):
    with pytest.raises(ValidationError):
        engine.journal_month_summary(2026, 13)
    with pytest.raises(ValidationError):
        engine.journal_month_summary(2026, 0)


def test_day_trades_lists_local_day_in_exit_order(engine, make_trade, utc_ms):
    engine.settings_update("America/New_York")
    late = _add_exit(engine, make_trade, utc_ms(2026, 2, 8, 4, 30), symbol="LATE")
    early = _add_exit(engine, make_trade, utc_ms(2026, 2, 7, 15, 0), symbol="EARLY")
    _add_exit(engine, make_trade, utc_ms(2026, 2, 8, 15, 0), symbol="NEXTDAY")

    highlights = engine.journal_day_trades("2026-02-07")
    assert [h.id for h in highlights] == [early.id, late.id]
    assert highlights[0].symbol == "EARLY"


def test_day_trades_rejects_bad_date(engine):
    with pytest.raises(ValidationError):
        engine.journal_day_trades("02/07/2026")


def test_daily_entry_get_and_upsert(engine):
    assert engine.journal_entry_get("2026-02-07").text == ""

    engine.journal_entry_upsert("2026-02-07", "Chased the open.")
    engine.journal_entry_upsert("2026-02-07", "Chased the open. Stopped after two losses.")

    entry = engine.journal_entry_get("2026-02-07")
    assert entry.date_local == "2026-02-07"
    assert entry.text == "Chased the open. Stopped after two losses."
    assert engine.journal_entry_get("2026-02-08").text == ""
