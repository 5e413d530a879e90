"""Contract-size resolution and risk metric derivation."""

from trade_ledger.metrics.contract_size import normalize_symbol, resolve_contract_size
from trade_ledger.metrics.models import Market, Outcome, RiskMetrics, TradeType
from trade_ledger.metrics.risk_calculator import calculate_profit_loss, calculate_risk_metrics

__all__ = [
    "Market",
    "Outcome",
    "RiskMetrics",
    "TradeType",
    "calculate_profit_loss",
    "calculate_risk_metrics",
    "normalize_symbol",
    "resolve_contract_size",
]
