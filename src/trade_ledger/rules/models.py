# src/trade_ledger/rules/models.py
"""Data models for trading rules and their evaluations."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from trade_ledger.clock import utc_now

NOT_APPLICABLE = "N/A"
MISSING_DATA = "Missing Data"
UNSUPPORTED_FIELD = "Unsupported Field"
UNSUPPORTED_OPERATOR = "Unsupported Operator"


class RuleCategory(str, Enum):
    """Grouping used to organise rules in the journal."""

    RISK = "risk"
    ENTRY = "entry"
    TRADE = "trade"
    TIME = "time"


class RuleOperator(str, Enum):
    """Operators accepted in a rule condition."""

    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "="
    NEQ = "!="
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class RuleField(str, Enum):
    """Trade fields a rule condition can reference."""

    TIME = "time"
    DAY_OF_WEEK = "dayOfWeek"
    DURATION = "duration"
    RISK = "risk"
    REWARD = "reward"
    RR_RATIO = "rrRatio"
    PROFIT_LOSS = "profitLoss"
    ENTRY_PRICE = "entryPrice"
    EXIT_PRICE = "exitPrice"
    POSITION_SIZE = "positionSize"
    STOP_LOSS = "stopLoss"
    TAKE_PROFIT = "takeProfit"
    TRADE_TYPE = "tradeType"
    ASSET = "asset"
    SYMBOL = "symbol"
    MARKET = "market"
    OUTCOME = "outcome"


@dataclass
class RuleCondition:
    """A single `field operator value` condition.

    Attributes:
        field: Name of the trade field, normally a RuleField value.
        operator: Comparison or existence operator.
        value: Literal to compare against (unused by exists/not_exists).
    """

    field: str
    operator: RuleOperator
    value: Any = None


@dataclass
class TradingRule:
    """An owner-scoped rule checked against every new or edited trade."""

    id: str
    owner_id: str
    name: str
    condition: RuleCondition
    category: RuleCategory = RuleCategory.RISK
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class RuleEvaluation:
    """Snapshot of one rule's result for one trade.

    The rule name is copied so the record stays readable after the rule is
    renamed or deleted.

    Attributes:
        rule_id: Id of the evaluated rule.
        rule_name: Rule name at evaluation time.
        passed: Whether the trade satisfied the condition.
        observed_value: Value read from the trade, or one of the
            NOT_APPLICABLE / MISSING_DATA / UNSUPPORTED_* markers.
    """

    rule_id: str
    rule_name: str
    passed: bool
    observed_value: Any


@dataclass
class RuleCompliance:
    """How often a rule was satisfied across an owner's trades."""

    rule_id: str
    rule_name: str
    total: int
    passed: int
    pass_rate: float
