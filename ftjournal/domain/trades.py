"""
Trade CRUD and rule-check associations.
Net/gross PnL are always recomputed here; callers can never set them.
"""

import time
from typing import Dict, List, Optional, Tuple

from sqlmodel import Session, delete, select

from ftjournal.db.models import Trade, TradeInput, TradeRuleCheck
from ftjournal.domain.models import TradeWithRules
from ftjournal.domain.rules import RulesStore
from ftjournal.domain.timezones import validate_timezone
from ftjournal.errors import NotFoundError, ValidationError

SIDES = ("long", "short")

DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 1000


def now_utc_ms() -> int:
    return int(time.time() * 1000)


def derive_pnl(pnl_amount: float, fees: float, includes_fees: bool) -> Tuple[float, float]:
    """Return (net, gross). Fees always separate the two."""
    if includes_fees:
        return pnl_amount, pnl_amount + fees
    return pnl_amount - fees, pnl_amount


class TradeStore:

    @staticmethod
    def _editable_fields(data: TradeInput, default_timezone: str) -> Dict:
        """Validate input and return column values, including derived PnL."""
        symbol = (data.symbol or "").strip()
        if not symbol:
            raise ValidationError("symbol is required")

        side = (data.side or "").strip().lower()
        if side not in SIDES:
            raise ValidationError(f"side must be one of {', '.join(SIDES)}: {data.side!r}")

        tz_name = validate_timezone(data.timezone) if data.timezone else validate_timezone(default_timezone)

        pnl_net, pnl_gross = derive_pnl(data.pnl_amount, data.fees, data.pnl_includes_fees)

        return {
            "market": data.market,
            "symbol": symbol,
            "side": side,
            "qty": data.qty,
            "entry_time_utc": data.entry_time_utc,
            "exit_time_utc": data.exit_time_utc,
            "timezone": tz_name,
            "session": data.session,
            "pnl_amount": data.pnl_amount,
            "fees": data.fees,
            "pnl_includes_fees": data.pnl_includes_fees,
            "pnl_net": pnl_net,
            "pnl_gross": pnl_gross,
            "notes": data.notes,
        }

    @staticmethod
    def _replace_checks(session: Session, trade_id: str, rules_checked: Optional[Dict[str, bool]]):
        """
        Rebuild this trade's checks: one row per currently existing rule,
        unmentioned rules stored as unchecked.
        """
        rules_checked = rules_checked or {}
        session.exec(delete(TradeRuleCheck).where(TradeRuleCheck.trade_id == trade_id))
        for rule in RulesStore.list(session):
            session.add(
                TradeRuleCheck(
                    trade_id=trade_id,
                    rule_id=rule.id,
                    checked=bool(rules_checked.get(rule.id, False)),
                )
            )

    @staticmethod
    def create(session: Session, data: TradeInput, default_timezone: str) -> Trade:
        fields = TradeStore._editable_fields(data, default_timezone)

        now = now_utc_ms()
        trade = Trade(created_at_utc=now, updated_at_utc=now, **fields)
        session.add(trade)
        session.flush()

        TradeStore._replace_checks(session, trade.id, data.rules_checked)
        session.flush()
        return trade

    @staticmethod
    def update(session: Session, trade_id: str, data: TradeInput, default_timezone: str) -> Trade:
        trade = session.get(Trade, trade_id)
        if trade is None:
            raise NotFoundError(f"trade not found: {trade_id}")

        fields = TradeStore._editable_fields(data, default_timezone)
        for name, value in fields.items():
            setattr(trade, name, value)
        trade.updated_at_utc = max(now_utc_ms(), trade.created_at_utc)
        session.add(trade)

        TradeStore._replace_checks(session, trade.id, data.rules_checked)
        session.flush()
        return trade

    @staticmethod
    def get(session: Session, trade_id: str) -> TradeWithRules:
        """Trade plus every current rule; checks for deleted rules are ignored."""
        trade = session.get(Trade, trade_id)
        if trade is None:
            raise NotFoundError(f"trade not found: {trade_id}")

        rules = RulesStore.list(session)
        rows = session.exec(
            select(TradeRuleCheck).where(TradeRuleCheck.trade_id == trade_id)
        ).all()
        stored = {row.rule_id: row.checked for row in rows}

        checked = {rule.id: bool(stored.get(rule.id, False)) for rule in rules}
        return TradeWithRules(trade=trade, rules=rules, checked=checked)

    @staticmethod
    def delete(session: Session, trade_id: str):
        trade = session.get(Trade, trade_id)
        if trade is None:
            raise NotFoundError(f"trade not found: {trade_id}")
        session.exec(delete(TradeRuleCheck).where(TradeRuleCheck.trade_id == trade_id))
        session.delete(trade)
        session.flush()

    @staticmethod
    def list(session: Session, limit: int = DEFAULT_LIST_LIMIT, offset: int = 0) -> List[Trade]:
        """Most recent exit first."""
        if not isinstance(limit, int) or not 1 <= limit <= MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if not isinstance(offset, int) or offset < 0:
            raise ValidationError("offset must be >= 0")

        stmt = (
            select(Trade)
            .order_by(Trade.exit_time_utc.desc(), Trade.id)
            .offset(offset)
            .limit(limit)
        )
        return list(session.exec(stmt).all())
