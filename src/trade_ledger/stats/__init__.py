"""Statistics aggregation over ledger trades."""

from trade_ledger.stats.models import (
    NO_STRATEGY_ID,
    NO_STRATEGY_NAME,
    AssetPerformance,
    EquityPoint,
    PeriodPnL,
    StrategyPerformance,
    TradeStatistics,
    TradeSummary,
)
from trade_ledger.stats.stats_aggregator import StatisticsAggregator

__all__ = [
    "NO_STRATEGY_ID",
    "NO_STRATEGY_NAME",
    "AssetPerformance",
    "EquityPoint",
    "PeriodPnL",
    "StatisticsAggregator",
    "StrategyPerformance",
    "TradeStatistics",
    "TradeSummary",
]
