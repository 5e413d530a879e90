# src/trade_ledger/ledger/rule_manager.py
"""Manager for owner-scoped trading rules."""
import logging
from typing import Any

from pydantic import BaseModel, Field

from trade_ledger.clock import utc_now
from trade_ledger.errors import NotFoundError
from trade_ledger.ledger.derivation import new_id
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.ledger.trade_manager import validate_input
from trade_ledger.rules.models import (
    RuleCategory,
    RuleCompliance,
    RuleCondition,
    RuleField,
    RuleOperator,
    TradingRule,
)
from trade_ledger.stats.stats_aggregator import StatisticsAggregator

logger = logging.getLogger(__name__)


class ConditionInput(BaseModel):
    """A rule condition as submitted by the user."""

    field: RuleField
    operator: RuleOperator
    value: Any = None


class RuleInput(BaseModel):
    """Fields accepted when creating a rule."""

    name: str = Field(min_length=1)
    category: RuleCategory = RuleCategory.RISK
    condition: ConditionInput
    is_active: bool = True


class RuleUpdate(BaseModel):
    """Partial update of a rule."""

    name: str | None = Field(default=None, min_length=1)
    category: RuleCategory | None = None
    condition: ConditionInput | None = None
    is_active: bool | None = None


def _to_condition(condition: ConditionInput) -> RuleCondition:
    return RuleCondition(
        field=condition.field.value,
        operator=condition.operator,
        value=condition.value,
    )


class RuleManager:
    """Creates, edits and deletes trading rules and reports compliance.

    Changing or deleting a rule never rewrites evaluations already stored
    on trades.
    """

    def __init__(
        self,
        store: LedgerStore,
        aggregator: StatisticsAggregator | None = None,
    ) -> None:
        self._store = store
        self._aggregator = aggregator or StatisticsAggregator()

    async def list_rules(self, owner_id: str) -> list[TradingRule]:
        return await self._store.list_rules(owner_id)

    async def get_rule(self, owner_id: str, rule_id: str) -> TradingRule:
        rule = await self._store.get_rule(owner_id, rule_id)
        if rule is None:
            raise NotFoundError(f"Rule {rule_id} not found")
        return rule

    async def create_rule(self, owner_id: str, data: dict) -> TradingRule:
        """Create a rule from raw fields (see RuleInput).

        Raises:
            RecordValidationError: If the name, field or operator is invalid.
        """
        entry = validate_input(RuleInput, data)
        rule = TradingRule(
            id=new_id(),
            owner_id=owner_id,
            name=entry.name,
            category=entry.category,
            condition=_to_condition(entry.condition),
            is_active=entry.is_active,
        )
        await self._store.insert_rule(rule)
        logger.info(f"Created rule '{rule.name}' for owner {owner_id}")
        return rule

    async def update_rule(self, owner_id: str, rule_id: str, data: dict) -> TradingRule:
        """Apply a partial edit to a rule, including activation.

        Raises:
            NotFoundError: If the rule does not exist for the owner.
            RecordValidationError: If a field has an invalid value.
        """
        rule = await self.get_rule(owner_id, rule_id)
        update = validate_input(RuleUpdate, data)

        if update.name:
            rule.name = update.name
        if update.category is not None:
            rule.category = update.category
        if update.condition is not None:
            rule.condition = _to_condition(update.condition)
        if update.is_active is not None:
            rule.is_active = update.is_active
        rule.updated_at = utc_now()

        await self._store.replace_rule(rule)
        return rule

    async def delete_rule(self, owner_id: str, rule_id: str) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If the rule does not exist for the owner.
        """
        if not await self._store.delete_rule(owner_id, rule_id):
            raise NotFoundError(f"Rule {rule_id} not found")
        logger.info(f"Deleted rule {rule_id}")

    async def compliance(self, owner_id: str) -> list[RuleCompliance]:
        """Pass counts per rule across the owner's stored evaluations."""
        trades = await self._store.list_trades(owner_id)
        return self._aggregator.rule_compliance(trades)
