# src/trade_ledger/rules/rule_engine.py
"""Evaluation of trading rule conditions against trades."""
import logging
import math
import operator
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable

from trade_ledger.clock import as_utc
from trade_ledger.rules.models import (
    MISSING_DATA,
    NOT_APPLICABLE,
    UNSUPPORTED_FIELD,
    UNSUPPORTED_OPERATOR,
    RuleEvaluation,
    RuleField,
    RuleOperator,
    TradingRule,
)

if TYPE_CHECKING:
    from trade_ledger.ledger.models import Trade

logger = logging.getLogger(__name__)

_ORDERINGS: dict[RuleOperator, Callable[[Any, Any], bool]] = {
    RuleOperator.GT: operator.gt,
    RuleOperator.LT: operator.lt,
    RuleOperator.GTE: operator.ge,
    RuleOperator.LTE: operator.le,
}


def _plain(value: Any) -> Any:
    """Unwrap enum members so rule literals compare against raw values."""
    if isinstance(value, Enum):
        return value.value
    return value


def _attribute(name: str) -> Callable[["Trade"], Any]:
    def extract(trade: "Trade") -> Any:
        return _plain(getattr(trade, name, None))

    return extract


def _hour_of_day(trade: "Trade") -> int | None:
    trade_date: datetime | None = getattr(trade, "trade_date", None)
    return as_utc(trade_date).hour if trade_date is not None else None


def _day_of_week(trade: "Trade") -> int | None:
    trade_date: datetime | None = getattr(trade, "trade_date", None)
    if trade_date is None:
        return None
    # Sunday = 0 ... Saturday = 6
    return (as_utc(trade_date).weekday() + 1) % 7


def _duration(trade: "Trade") -> None:
    # Trades only carry one timestamp, so duration cannot be computed yet.
    return None


def _rr_ratio(trade: "Trade") -> float | None:
    rr_ratio = getattr(trade, "rr_ratio", None)
    if rr_ratio is not None:
        return rr_ratio
    risk = getattr(trade, "risk", None)
    reward = getattr(trade, "reward", None)
    if risk and reward:
        return reward / risk
    return None


FIELD_EXTRACTORS: dict[RuleField, Callable[["Trade"], Any]] = {
    RuleField.TIME: _hour_of_day,
    RuleField.DAY_OF_WEEK: _day_of_week,
    RuleField.DURATION: _duration,
    RuleField.RISK: _attribute("risk"),
    RuleField.REWARD: _attribute("reward"),
    RuleField.RR_RATIO: _rr_ratio,
    RuleField.PROFIT_LOSS: _attribute("profit_loss"),
    RuleField.ENTRY_PRICE: _attribute("entry_price"),
    RuleField.EXIT_PRICE: _attribute("exit_price"),
    RuleField.POSITION_SIZE: _attribute("position_size"),
    RuleField.STOP_LOSS: _attribute("stop_loss"),
    RuleField.TAKE_PROFIT: _attribute("take_profit"),
    RuleField.TRADE_TYPE: _attribute("trade_type"),
    RuleField.ASSET: _attribute("asset"),
    RuleField.SYMBOL: _attribute("asset"),
    RuleField.MARKET: _attribute("market"),
    RuleField.OUTCOME: _attribute("outcome"),
}


def to_number(value: Any) -> float | None:
    """Convert a value to float when it represents a number cleanly.

    Args:
        value: Raw trade value or rule literal.

    Returns:
        The numeric value, or None for text, empty strings, NaN and
        anything else that is not a number.
    """
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def compare(observed: Any, op: RuleOperator, literal: Any) -> bool:
    """Compare an observed value with a rule literal.

    Numbers are compared numerically when both sides convert cleanly;
    otherwise the raw values are compared with native equality or ordering.
    Text literals such as tradeType = "buy" go through the fallback.
    Orderings between incomparable types are a failed check.
    """
    observed_number = to_number(observed)
    literal_number = to_number(literal)
    if observed_number is not None and literal_number is not None:
        left, right = observed_number, literal_number
    else:
        left, right = observed, literal

    if op == RuleOperator.EQ:
        return left == right
    if op == RuleOperator.NEQ:
        return left != right

    try:
        return bool(_ORDERINGS[op](left, right))
    except TypeError:
        return False


class RuleEngine:
    """Evaluates trading rule conditions against trade snapshots.

    Fields are resolved through a fixed dispatch table. Missing data never
    raises: existence checks report it directly and comparisons fail closed.
    """

    def extract(self, trade: "Trade", field_name: str) -> tuple[bool, Any]:
        """Read a rule field from a trade.

        Args:
            trade: Trade snapshot to read from.
            field_name: RuleField value named by the condition.

        Returns:
            Tuple of (supported, value). supported is False when the field
            is not part of the rule vocabulary.
        """
        try:
            rule_field = RuleField(field_name)
        except ValueError:
            return False, None
        return True, FIELD_EXTRACTORS[rule_field](trade)

    def evaluate(self, trade: "Trade", rule: TradingRule) -> RuleEvaluation:
        """Evaluate one rule against one trade.

        Args:
            trade: Trade snapshot.
            rule: Rule whose condition is checked.

        Returns:
            RuleEvaluation with the pass/fail result and observed value.
        """
        passed, observed = self._check(trade, rule)
        return RuleEvaluation(
            rule_id=rule.id,
            rule_name=rule.name,
            passed=passed,
            observed_value=observed,
        )

    def evaluate_all(
        self, trade: "Trade", rules: Iterable[TradingRule]
    ) -> list[RuleEvaluation]:
        """Evaluate every active rule against a trade.

        Args:
            trade: Trade snapshot.
            rules: Rules in the order results should be reported.

        Returns:
            One RuleEvaluation per active rule; empty when there are none.
        """
        return [self.evaluate(trade, rule) for rule in rules if rule.is_active]

    def _check(self, trade: "Trade", rule: TradingRule) -> tuple[bool, Any]:
        condition = rule.condition
        supported, observed = self.extract(trade, condition.field)
        if not supported:
            logger.debug(f"Rule '{rule.name}' references unsupported field '{condition.field}'")
            return False, UNSUPPORTED_FIELD

        try:
            op = RuleOperator(condition.operator)
        except ValueError:
            logger.debug(f"Rule '{rule.name}' has unknown operator '{condition.operator}'")
            return False, UNSUPPORTED_OPERATOR

        if op == RuleOperator.EXISTS:
            return observed is not None, NOT_APPLICABLE
        if op == RuleOperator.NOT_EXISTS:
            return observed is None, NOT_APPLICABLE

        if observed is None:
            return False, MISSING_DATA

        return compare(observed, op, condition.value), observed
