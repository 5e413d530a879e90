# src/trade_ledger/metrics/contract_size.py
"""Heuristic contract-size lookup by symbol and market."""
import re

from trade_ledger.metrics.models import Market

GOLD_CONTRACT_SIZE = 100.0
SILVER_CONTRACT_SIZE = 5000.0
FOREX_CONTRACT_SIZE = 100000.0
DEFAULT_CONTRACT_SIZE = 1.0

GOLD_MARKERS = ("XAU", "GOLD")
SILVER_MARKERS = ("XAG", "SILVER")
MAJOR_CURRENCIES = frozenset({"USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "NZD"})

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_symbol(symbol: str | None) -> str:
    """Uppercase a symbol and strip everything but letters and digits."""
    if not symbol:
        return ""
    return _NON_ALNUM.sub("", str(symbol).upper())


def _market_value(market: Market | str | None) -> str | None:
    if market is None:
        return None
    if isinstance(market, Market):
        return market.value
    return str(market).strip().lower() or None


def is_major_currency_pair(normalized: str) -> bool:
    """Check whether a normalized symbol is two major 3-letter currency codes."""
    if len(normalized) != 6:
        return False
    return normalized[:3] in MAJOR_CURRENCIES and normalized[3:] in MAJOR_CURRENCIES


def resolve_contract_size(symbol: str | None, market: Market | str | None = None) -> float:
    """Resolve the contract-size multiplier for an instrument.

    Best-effort heuristic used in the absence of a per-instrument contract
    table. Rules are checked in order and the first match wins:
        1. Gold marker (XAU/GOLD) -> 100, silver marker (XAG/SILVER) -> 5000
        2. Market is forex -> 100000
        3. Six-letter pair of major currencies -> 100000
        4. Market is crypto -> 1
        5. Anything else -> 1

    Args:
        symbol: Free-text asset symbol, e.g. "XAUUSD" or "eur/usd".
        market: Market category, as a Market or its string value.

    Returns:
        Positive contract-size multiplier.
    """
    normalized = normalize_symbol(symbol)

    if any(marker in normalized for marker in GOLD_MARKERS):
        return GOLD_CONTRACT_SIZE
    if any(marker in normalized for marker in SILVER_MARKERS):
        return SILVER_CONTRACT_SIZE

    market_value = _market_value(market)
    if market_value == Market.FOREX.value:
        return FOREX_CONTRACT_SIZE
    if is_major_currency_pair(normalized):
        return FOREX_CONTRACT_SIZE
    if market_value == Market.CRYPTO.value:
        return DEFAULT_CONTRACT_SIZE

    return DEFAULT_CONTRACT_SIZE
