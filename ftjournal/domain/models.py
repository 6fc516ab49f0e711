"""Domain value objects."""

from typing import Dict, List
from dataclasses import dataclass, field

from ftjournal.db.models import Rule, Trade


@dataclass
class DbStatus:
    """Lifecycle flags, always available without the key."""
    configured: bool = False
    encrypted: bool = False
    unlocked: bool = False


@dataclass
class AppStatus:
    db: DbStatus


@dataclass
class TradeWithRules:
    """A trade plus every current rule and its checked flag."""
    trade: Trade
    rules: List[Rule]
    checked: Dict[str, bool]


@dataclass
class DaySummary:
    """Trade count and net PnL for one local calendar day."""
    date_local: str  # YYYY-MM-DD
    trade_count: int = 0
    pnl_net_total: float = 0.0


@dataclass
class TradeHighlight:
    """Compact trade row for a day drill-down."""
    id: str
    symbol: str
    qty: float
    pnl_net: float
    notes: str
    exit_time_utc: int


@dataclass
class DailyEntry:
    date_local: str
    text: str = ""


@dataclass
class ParsedRow:
    """A CSV data row resolved onto trade fields."""
    line: int
    symbol: str
    side: str
    qty: float
    entry_time_utc: int
    exit_time_utc: int
    market: str = "futures"
    session: str = "other"
    pnl_amount: float = 0.0
    fees: float = 0.0
    pnl_includes_fees: bool = True
    notes: str = ""

    @property
    def dedup_key(self):
        return (self.symbol, self.entry_time_utc, self.exit_time_utc)


@dataclass
class CsvImportResult:
    created: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
