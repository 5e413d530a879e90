# src/trade_ledger/metrics/risk_calculator.py
"""Risk, reward and profit/loss derivation for a single trade."""
from trade_ledger.metrics.models import Outcome, RiskMetrics, TradeType


def _coerce_side(side: TradeType | str) -> TradeType:
    if isinstance(side, TradeType):
        return side
    return TradeType.BUY if str(side).strip().lower() == TradeType.BUY.value else TradeType.SELL


def calculate_profit_loss(
    entry_price: float,
    exit_price: float,
    position_size: float,
    side: TradeType | str,
    contract_size: float = 1.0,
) -> float:
    """Calculate profit/loss from entry and exit prices.

    Args:
        entry_price: Entry price.
        exit_price: Exit price.
        position_size: Position size in lots or units.
        side: BUY or SELL.
        contract_size: Contract-size multiplier.

    Returns:
        (exit - entry) for buys, (entry - exit) for sells, scaled by size
        and contract size.
    """
    if _coerce_side(side) == TradeType.BUY:
        price_move = exit_price - entry_price
    else:
        price_move = entry_price - exit_price
    return price_move * position_size * contract_size


def calculate_risk_metrics(
    entry_price: float,
    stop_loss: float | None,
    take_profit: float | None,
    position_size: float,
    side: TradeType | str,
    contract_size: float = 1.0,
    exit_price: float | None = None,
    realized_pnl: float | None = None,
) -> RiskMetrics:
    """Derive risk, reward, RR ratio, profit/loss and outcome.

    A stop-loss or take-profit of None or 0 counts as not set. A realized
    profit/loss supplied by the caller (a broker feed) is taken verbatim and
    the price formula is skipped.

    Args:
        entry_price: Entry price.
        stop_loss: Optional stop-loss price.
        take_profit: Optional take-profit price.
        position_size: Position size in lots or units.
        side: BUY or SELL.
        contract_size: Contract-size multiplier.
        exit_price: Exit price, used when realized_pnl is None.
        realized_pnl: Broker-reported profit/loss.

    Returns:
        RiskMetrics with all derived values.
    """
    risk = 0.0
    reward = 0.0

    if stop_loss:
        risk = abs(entry_price - stop_loss) * position_size * contract_size
    if take_profit:
        reward = abs(take_profit - entry_price) * position_size * contract_size

    # Risk and reward are never negative, even for negative sizes
    risk = abs(risk)
    reward = abs(reward)

    rr_ratio = reward / risk if risk > 0 and reward > 0 else None

    if realized_pnl is not None:
        profit_loss = float(realized_pnl)
    elif exit_price is not None:
        profit_loss = calculate_profit_loss(
            entry_price, exit_price, position_size, side, contract_size
        )
    else:
        profit_loss = 0.0

    return RiskMetrics(
        risk=risk,
        reward=reward,
        rr_ratio=rr_ratio,
        profit_loss=profit_loss,
        outcome=Outcome.from_pnl(profit_loss),
        contract_size=contract_size,
    )
