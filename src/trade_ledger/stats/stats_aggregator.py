# src/trade_ledger/stats/stats_aggregator.py
"""Aggregation of trade statistics for the journal dashboard."""
from typing import TYPE_CHECKING, Iterable, Sequence

from trade_ledger.clock import as_utc
from trade_ledger.metrics.models import Outcome
from trade_ledger.rules.models import RuleCompliance
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

if TYPE_CHECKING:
    from trade_ledger.ledger.models import Strategy, Trade


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class StatisticsAggregator:
    """Calculates performance rollups from a set of trades.

    Every view is a pure function of its input and keeps a stable order:
    ties are reported in the order the trades were given.
    """

    def aggregate(self, trades: Sequence["Trade"]) -> TradeStatistics:
        """Calculate all trade-level views.

        Args:
            trades: Trades to analyze, usually one owner's ledger.

        Returns:
            TradeStatistics with summary, monthly P/L, equity curve and
            asset performance. All zero/empty for no trades.
        """
        if not trades:
            return TradeStatistics()

        return TradeStatistics(
            summary=self.summary(trades),
            monthly_pnl=self.monthly_pnl(trades),
            equity_curve=self.equity_curve(trades),
            asset_performance=self.asset_performance(trades),
        )

    def summary(self, trades: Sequence["Trade"]) -> TradeSummary:
        """Calculate win rate, totals and averages.

        Args:
            trades: Trades to summarize.

        Returns:
            TradeSummary; zero-valued when trades is empty.
        """
        if not trades:
            return TradeSummary()

        wins = [t for t in trades if t.outcome == Outcome.WIN]
        losses = [t for t in trades if t.outcome == Outcome.LOSS]
        rr_ratios = [t.rr_ratio for t in trades if t.rr_ratio is not None and t.rr_ratio > 0]

        total_trades = len(trades)

        return TradeSummary(
            total_trades=total_trades,
            total_wins=len(wins),
            total_losses=len(losses),
            win_rate=len(wins) / total_trades * 100,
            total_profit_loss=sum(t.profit_loss for t in trades),
            avg_win=_mean([t.profit_loss for t in wins]),
            avg_loss=_mean([t.profit_loss for t in losses]),
            avg_rr=_mean(rr_ratios),
        )

    def monthly_pnl(self, trades: Iterable["Trade"]) -> list[PeriodPnL]:
        """Sum profit/loss per calendar month.

        Buckets are keyed "month/year" (month 1-12) and listed in the order
        each month is first seen in the input, not chronologically.
        """
        buckets: dict[str, float] = {}
        for trade in trades:
            trade_date = as_utc(trade.trade_date)
            key = f"{trade_date.month}/{trade_date.year}"
            buckets[key] = buckets.get(key, 0.0) + trade.profit_loss

        return [PeriodPnL(name=key, value=value) for key, value in buckets.items()]

    def equity_curve(self, trades: Iterable["Trade"]) -> list[EquityPoint]:
        """Build the cumulative profit/loss curve in trade_date order.

        Args:
            trades: Trades in any order.

        Returns:
            One EquityPoint per trade, sorted ascending by trade_date.
        """
        sorted_trades = sorted(trades, key=lambda t: as_utc(t.trade_date))
        cumulative = 0.0
        points: list[EquityPoint] = []

        for trade in sorted_trades:
            cumulative += trade.profit_loss
            points.append(EquityPoint(date=trade.trade_date, value=cumulative))

        return points

    def asset_performance(self, trades: Iterable["Trade"]) -> list[AssetPerformance]:
        """Sum profit/loss per asset, best asset first."""
        totals: dict[str, float] = {}
        for trade in trades:
            totals[trade.asset] = totals.get(trade.asset, 0.0) + trade.profit_loss

        performance = [AssetPerformance(name=name, value=value) for name, value in totals.items()]
        return sorted(performance, key=lambda p: p.value, reverse=True)

    def strategy_performance(
        self,
        trades: Sequence["Trade"],
        strategies: Iterable["Strategy"] = (),
    ) -> list[StrategyPerformance]:
        """Calculate performance per strategy, best total P/L first.

        Every known strategy gets a row, even without trades. Trades with no
        strategy are grouped in a "No Strategy" bucket, present only when
        such trades exist. Trades linked to a strategy id that is not in
        strategies are grouped under that id.

        Args:
            trades: Trades to analyze.
            strategies: The owner's strategies, for names and zero rows.

        Returns:
            List of StrategyPerformance sorted by total_profit_loss descending.
        """
        names: dict[str, str] = {s.id: s.name for s in strategies}
        groups: dict[str, list["Trade"]] = {strategy_id: [] for strategy_id in names}
        unlinked: list["Trade"] = []

        for trade in trades:
            if trade.strategy_id is None:
                unlinked.append(trade)
            else:
                groups.setdefault(trade.strategy_id, []).append(trade)

        rows = [
            self._strategy_row(strategy_id, names.get(strategy_id, strategy_id), group)
            for strategy_id, group in groups.items()
        ]
        if unlinked:
            rows.append(self._strategy_row(NO_STRATEGY_ID, NO_STRATEGY_NAME, unlinked))

        return sorted(rows, key=lambda r: r.total_profit_loss, reverse=True)

    def rule_compliance(self, trades: Iterable["Trade"]) -> list[RuleCompliance]:
        """Count how often each rule passed across stored evaluations.

        Rules are keyed by id; the first name seen for a rule is reported.
        Order follows the first appearance of each rule.
        """
        totals: dict[str, tuple[str, int, int]] = {}
        for trade in trades:
            for evaluation in trade.rule_evaluations:
                name, total, passed = totals.get(
                    evaluation.rule_id, (evaluation.rule_name, 0, 0)
                )
                totals[evaluation.rule_id] = (
                    name,
                    total + 1,
                    passed + (1 if evaluation.passed else 0),
                )

        return [
            RuleCompliance(
                rule_id=rule_id,
                rule_name=name,
                total=total,
                passed=passed,
                pass_rate=passed / total * 100,
            )
            for rule_id, (name, total, passed) in totals.items()
        ]

    def _strategy_row(
        self, strategy_id: str, name: str, trades: list["Trade"]
    ) -> StrategyPerformance:
        """Calculate one strategy's performance row."""
        total_trades = len(trades)
        wins = [t.profit_loss for t in trades if t.profit_loss > 0]
        losses = [t.profit_loss for t in trades if t.profit_loss < 0]

        return StrategyPerformance(
            strategy_id=strategy_id,
            name=name,
            total_trades=total_trades,
            win_rate=len(wins) / total_trades * 100 if total_trades > 0 else 0.0,
            total_profit_loss=sum(t.profit_loss for t in trades),
            avg_win=_mean(wins),
            avg_loss=_mean(losses),
        )
