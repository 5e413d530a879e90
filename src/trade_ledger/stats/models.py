# src/trade_ledger/stats/models.py
"""Data models for ledger statistics."""
from dataclasses import dataclass, field
from datetime import datetime

NO_STRATEGY_ID = "none"
NO_STRATEGY_NAME = "No Strategy"


@dataclass
class TradeSummary:
    """Headline performance figures over a set of trades.

    Attributes:
        total_trades: Number of trades.
        total_wins: Trades with outcome WIN.
        total_losses: Trades with outcome LOSS.
        win_rate: total_wins / total_trades * 100 (0 for no trades).
        total_profit_loss: Sum of profit/loss.
        avg_win: Mean profit/loss of winning trades.
        avg_loss: Mean profit/loss of losing trades (a negative number).
        avg_rr: Mean RR ratio over trades with a positive RR ratio.
    """

    total_trades: int = 0
    total_wins: int = 0
    total_losses: int = 0
    win_rate: float = 0.0
    total_profit_loss: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    avg_rr: float = 0.0


@dataclass
class PeriodPnL:
    """Profit/loss summed over one "month/year" bucket."""

    name: str
    value: float


@dataclass
class EquityPoint:
    """Cumulative profit/loss after one trade."""

    date: datetime
    value: float


@dataclass
class AssetPerformance:
    """Profit/loss summed per asset symbol."""

    name: str
    value: float


@dataclass
class StrategyPerformance:
    """Performance of the trades linked to one strategy."""

    strategy_id: str
    name: str
    total_trades: int
    win_rate: float
    total_profit_loss: float
    avg_win: float
    avg_loss: float


@dataclass
class TradeStatistics:
    """All trade-level statistics views for one owner."""

    summary: TradeSummary = field(default_factory=TradeSummary)
    monthly_pnl: list[PeriodPnL] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)
    asset_performance: list[AssetPerformance] = field(default_factory=list)
