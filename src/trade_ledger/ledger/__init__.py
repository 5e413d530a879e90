"""Ledger module for trades, strategies and rules."""

from trade_ledger.ledger.json_store import JsonLedgerStore
from trade_ledger.ledger.models import ApiKeyRecord, Strategy, Trade, TradeFilter, TradeSource
from trade_ledger.ledger.rule_manager import RuleManager
from trade_ledger.ledger.settings import LedgerSettings
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.ledger.strategy_manager import StrategyManager
from trade_ledger.ledger.trade_manager import TradeManager

__all__ = [
    "ApiKeyRecord",
    "JsonLedgerStore",
    "LedgerSettings",
    "LedgerStore",
    "RuleManager",
    "Strategy",
    "StrategyManager",
    "Trade",
    "TradeFilter",
    "TradeManager",
    "TradeSource",
]
