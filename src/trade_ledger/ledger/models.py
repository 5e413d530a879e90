# src/trade_ledger/ledger/models.py
"""Data models for the trade ledger."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from trade_ledger.clock import as_utc, utc_now
from trade_ledger.metrics.models import Market, Outcome, TradeType
from trade_ledger.rules.models import RuleEvaluation


class TradeSource(str, Enum):
    """Where a trade record came from."""

    MANUAL = "manual"
    MT5 = "mt5"


@dataclass
class Trade:
    """A single trade in an owner's ledger."""

    id: str
    owner_id: str

    # Market facts
    asset: str
    market: Market
    trade_type: TradeType
    entry_price: float
    exit_price: float
    position_size: float
    stop_loss: float | None
    take_profit: float | None
    trade_date: datetime

    # Derived facts
    profit_loss: float
    outcome: Outcome
    risk: float = 0.0
    reward: float = 0.0
    rr_ratio: float | None = None
    rule_evaluations: list[RuleEvaluation] = field(default_factory=list)

    # Identity of externally sourced trades
    source: TradeSource = TradeSource.MANUAL
    external_account_id: str | None = None
    external_ticket: str | None = None
    external_id: str | None = None
    broker: str | None = None

    # Narrative
    notes: str = ""
    images: list[str] = field(default_factory=list)

    strategy_id: str | None = None

    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_external(self) -> bool:
        """Check if the trade was synced from a trading platform."""
        return self.source != TradeSource.MANUAL


@dataclass
class Strategy:
    """An owner-scoped strategy label trades can be linked to."""

    id: str
    owner_id: str
    name: str
    description: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class TradeFilter:
    """Query filters for listing trades.

    Attributes:
        start_date: Earliest trade_date to include (inclusive).
        end_date: Latest trade_date to include (inclusive).
        asset: Case-insensitive substring of the asset symbol.
        outcome: Only trades with this outcome.
        strategy_id: Only trades linked to this strategy.
    """

    start_date: datetime | None = None
    end_date: datetime | None = None
    asset: str | None = None
    outcome: Outcome | None = None
    strategy_id: str | None = None

    def matches(self, trade: Trade) -> bool:
        """Check whether a trade passes every configured filter."""
        trade_date = as_utc(trade.trade_date)
        if self.start_date is not None and trade_date < as_utc(self.start_date):
            return False
        if self.end_date is not None and trade_date > as_utc(self.end_date):
            return False
        if self.asset and self.asset.lower() not in trade.asset.lower():
            return False
        if self.outcome is not None and trade.outcome != self.outcome:
            return False
        if self.strategy_id is not None and trade.strategy_id != self.strategy_id:
            return False
        return True


@dataclass
class ApiKeyRecord:
    """Hashed sync API key issued to an owner."""

    owner_id: str
    key_hash: str
    created_at: datetime = field(default_factory=utc_now)
