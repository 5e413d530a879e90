# src/trade_ledger/ledger/derivation.py
"""Re-derivation of a trade's computed fields."""
import uuid

from trade_ledger.ledger.models import Trade
from trade_ledger.metrics.contract_size import resolve_contract_size
from trade_ledger.metrics.risk_calculator import calculate_risk_metrics


def new_id() -> str:
    """Generate a record id."""
    return uuid.uuid4().hex


def apply_risk_metrics(trade: Trade, realized_pnl: float | None = None) -> Trade:
    """Recompute risk, reward, RR ratio, profit/loss and outcome in place.

    Args:
        trade: Trade whose market facts are already set.
        realized_pnl: Broker- or user-reported profit/loss to keep as-is.

    Returns:
        The same trade, for chaining.
    """
    contract_size = resolve_contract_size(trade.asset, trade.market)
    metrics = calculate_risk_metrics(
        entry_price=trade.entry_price,
        stop_loss=trade.stop_loss,
        take_profit=trade.take_profit,
        position_size=trade.position_size,
        side=trade.trade_type,
        contract_size=contract_size,
        exit_price=trade.exit_price,
        realized_pnl=realized_pnl,
    )
    trade.risk = metrics.risk
    trade.reward = metrics.reward
    trade.rr_ratio = metrics.rr_ratio
    trade.profit_loss = metrics.profit_loss
    trade.outcome = metrics.outcome
    return trade
