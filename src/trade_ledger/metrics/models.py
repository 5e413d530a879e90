# src/trade_ledger/metrics/models.py
"""Data models for trade risk metrics."""
from dataclasses import dataclass
from enum import Enum


class TradeType(str, Enum):
    """Side of a trade."""

    BUY = "buy"
    SELL = "sell"


class Market(str, Enum):
    """Market category of the traded instrument."""

    FOREX = "forex"
    CRYPTO = "crypto"
    STOCKS = "stocks"
    INDICES = "indices"
    COMMODITIES = "commodities"
    OTHER = "other"


class Outcome(str, Enum):
    """Result label derived from the sign of a trade's profit/loss."""

    WIN = "win"
    LOSS = "loss"
    BREAK_EVEN = "break-even"

    @classmethod
    def from_pnl(cls, profit_loss: float) -> "Outcome":
        """Get the outcome for a profit/loss figure.

        Args:
            profit_loss: Realized or computed profit/loss.

        Returns:
            Outcome based on the sign:
                - profit_loss > 0 -> WIN
                - profit_loss < 0 -> LOSS
                - otherwise -> BREAK_EVEN
        """
        if profit_loss > 0:
            return cls.WIN
        elif profit_loss < 0:
            return cls.LOSS
        else:
            return cls.BREAK_EVEN


@dataclass(frozen=True)
class RiskMetrics:
    """Derived risk and performance figures for a single trade.

    Attributes:
        risk: Monetary distance from entry to stop-loss (0 without a stop).
        reward: Monetary distance from entry to take-profit (0 without a target).
        rr_ratio: reward / risk, only when both are strictly positive.
        profit_loss: Realized or computed profit/loss.
        outcome: Label derived from the profit/loss sign.
        contract_size: Multiplier used for the computation.
    """

    risk: float
    reward: float
    rr_ratio: float | None
    profit_loss: float
    outcome: Outcome
    contract_size: float
