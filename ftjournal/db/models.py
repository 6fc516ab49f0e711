"""
SQLModel definitions for the trading journal store.
Timestamps are integer milliseconds since the epoch, UTC.
"""

from typing import Dict, Optional
from sqlalchemy import Index
from sqlmodel import SQLModel, Field
import uuid

SCHEMA_VERSION = 1


class Meta(SQLModel, table=True):
    """Single row describing the store itself."""
    __tablename__ = "meta"

    id: int = Field(default=1, primary_key=True)
    schema_version: int = Field(default=SCHEMA_VERSION)
    created_at_utc: int = Field()


class AppSetting(SQLModel, table=True):
    """Key/value preferences (timezone, ...)."""
    __tablename__ = "app_setting"

    key: str = Field(primary_key=True)  # e.g., "timezone"
    value: str = Field()  # e.g., "America/New_York"


class Settings(SQLModel):
    """Settings as returned to and accepted from callers."""
    timezone: str


class RuleBase(SQLModel):
    label: str
    sort_order: int = 0


class RuleInput(RuleBase):
    """Upsert payload; id is the user-chosen slug."""
    id: str


class Rule(RuleBase, table=True):
    """Checklist rule (e.g., "Waited for confirmation")."""
    __tablename__ = "rule"

    id: str = Field(primary_key=True)


class TradeBase(SQLModel):
    """Editable trade fields shared by input and storage."""
    market: str = "futures"
    symbol: str
    side: str  # long or short
    qty: float
    entry_time_utc: int
    exit_time_utc: int
    session: str = "other"  # asia, london, ny, overlap, other
    pnl_amount: float = 0.0
    fees: float = 0.0
    pnl_includes_fees: bool = True
    notes: str = ""


class TradeInput(TradeBase):
    """Create/update payload. Net and gross PnL are never accepted from callers."""
    timezone: Optional[str] = None  # defaults to the current settings zone
    rules_checked: Optional[Dict[str, bool]] = None


class Trade(TradeBase, table=True):
    """A single round-trip trade."""
    __tablename__ = "trade"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    symbol: str = Field(index=True)
    exit_time_utc: int = Field(index=True)

    # Zone active when the trade was saved; aggregation ignores it
    timezone: str = Field()

    # Derived from (pnl_amount, fees, pnl_includes_fees) on every save
    pnl_net: float = Field(default=0.0)
    pnl_gross: float = Field(default=0.0)

    created_at_utc: int = Field()
    updated_at_utc: int = Field()

    __table_args__ = (
        Index("ix_trade_dedup", "symbol", "entry_time_utc", "exit_time_utc"),
    )


class TradeRuleCheck(SQLModel, table=True):
    """Whether a rule was checked for a trade, as of the trade's last save.

    rule_id deliberately has no foreign key: deleting a rule leaves these rows
    behind and readers ignore them.
    """
    __tablename__ = "trade_rule_check"

    trade_id: str = Field(primary_key=True)
    rule_id: str = Field(primary_key=True)
    checked: bool = Field(default=False)


class JournalEntry(SQLModel, table=True):
    """Free-text note attached to a local calendar day."""
    __tablename__ = "journal_entry"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    date_local: str = Field(index=True)  # YYYY-MM-DD
    entry_type: str = Field(default="daily")
    text: str = Field(default="")
    created_at_utc: int = Field()
    updated_at_utc: int = Field()
