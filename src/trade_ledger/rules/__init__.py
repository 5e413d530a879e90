"""Trading rule language and evaluation engine."""

from trade_ledger.rules.models import (
    MISSING_DATA,
    NOT_APPLICABLE,
    UNSUPPORTED_FIELD,
    UNSUPPORTED_OPERATOR,
    RuleCategory,
    RuleCompliance,
    RuleCondition,
    RuleEvaluation,
    RuleField,
    RuleOperator,
    TradingRule,
)
from trade_ledger.rules.rule_engine import RuleEngine, compare, to_number

__all__ = [
    "MISSING_DATA",
    "NOT_APPLICABLE",
    "UNSUPPORTED_FIELD",
    "UNSUPPORTED_OPERATOR",
    "RuleCategory",
    "RuleCompliance",
    "RuleCondition",
    "RuleEngine",
    "RuleEvaluation",
    "RuleField",
    "RuleOperator",
    "TradingRule",
    "compare",
    "to_number",
]
