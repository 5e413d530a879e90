# tests/ledger/test_rule_manager.py
"""Tests for RuleManager."""
from datetime import datetime, timezone
from pathlib import Path

import pytest

from trade_ledger.errors import NotFoundError, RecordValidationError
from trade_ledger.ledger.json_store import JsonLedgerStore
from trade_ledger.ledger.rule_manager import RuleManager
from trade_ledger.ledger.settings import LedgerSettings
from trade_ledger.ledger.trade_manager import TradeManager
from trade_ledger.rules.models import RuleCategory, RuleOperator


def make_rule_data(**overrides) -> dict:
    """Create rule input for testing."""
    data = {
        "name": "Max risk",
        "category": "risk",
        "condition": {"field": "risk", "operator": "<=", "value": 150},
    }
    data.update(overrides)
    return data


def make_trade_data(stop_loss: float) -> dict:
    """Create a gold trade input with the given stop for testing."""
    return {
        "asset": "XAUUSD",
        "trade_type": "buy",
        "entry_price": 2000.0,
        "exit_price": 2010.0,
        "position_size": 0.1,
        "stop_loss": stop_loss,
        "trade_date": datetime(2024, 1, 8, tzinfo=timezone.utc),
    }


class TestRuleManager:
    """Tests for RuleManager."""

    @pytest.fixture
    def settings(self, tmp_path: Path) -> LedgerSettings:
        """Create settings with a temporary data directory."""
        return LedgerSettings(data_dir=str(tmp_path / "ledger"))

    @pytest.fixture
    def store(self, settings: LedgerSettings) -> JsonLedgerStore:
        """Create a JsonLedgerStore instance."""
        return JsonLedgerStore(settings)

    @pytest.fixture
    def manager(self, store: JsonLedgerStore) -> RuleManager:
        """Create a RuleManager instance."""
        return RuleManager(store=store)

    async def test_create_rule(self, manager: RuleManager):
        """A rule is created with its condition and category."""
        rule = await manager.create_rule("owner-1", make_rule_data())

        assert rule.name == "Max risk"
        assert rule.category == RuleCategory.RISK
        assert rule.condition.field == "risk"
        assert rule.condition.operator == RuleOperator.LTE
        assert rule.condition.value == 150
        assert rule.is_active is True
        assert await manager.list_rules("owner-1") == [rule]

    async def test_create_rejects_unknown_field(self, manager: RuleManager):
        """Fields outside the rule vocabulary are rejected."""
        with pytest.raises(RecordValidationError):
            await manager.create_rule("owner-1", make_rule_data(
                condition={"field": "mood", "operator": "=", "value": "calm"},
            ))

    async def test_create_rejects_unknown_operator(self, manager: RuleManager):
        """Unknown operators are rejected."""
        with pytest.raises(RecordValidationError):
            await manager.create_rule("owner-1", make_rule_data(
                condition={"field": "risk", "operator": "~", "value": 1},
            ))

    async def test_create_requires_name(self, manager: RuleManager):
        """A rule needs a name."""
        with pytest.raises(RecordValidationError):
            await manager.create_rule("owner-1", make_rule_data(name=""))

    async def test_update_rule(self, manager: RuleManager):
        """Partial updates change only the given fields."""
        rule = await manager.create_rule("owner-1", make_rule_data())

        updated = await manager.update_rule("owner-1", rule.id, {
            "is_active": False,
            "condition": {"field": "rrRatio", "operator": ">=", "value": 2},
        })

        assert updated.is_active is False
        assert updated.name == "Max risk"
        assert updated.condition.field == "rrRatio"
        stored = await manager.get_rule("owner-1", rule.id)
        assert stored.is_active is False

    async def test_delete_rule(self, manager: RuleManager):
        """Deleting an unknown rule raises NotFoundError."""
        rule = await manager.create_rule("owner-1", make_rule_data())

        await manager.delete_rule("owner-1", rule.id)

        assert await manager.list_rules("owner-1") == []
        with pytest.raises(NotFoundError):
            await manager.delete_rule("owner-1", rule.id)

    async def test_rules_are_owner_scoped(self, manager: RuleManager):
        """Another owner cannot read or edit a rule."""
        rule = await manager.create_rule("owner-1", make_rule_data())

        with pytest.raises(NotFoundError):
            await manager.get_rule("owner-2", rule.id)
        with pytest.raises(NotFoundError):
            await manager.update_rule("owner-2", rule.id, {"name": "x"})

    async def test_inactive_rule_not_evaluated(
        self, manager: RuleManager, store: JsonLedgerStore, settings: LedgerSettings
    ):
        """Deactivated rules are skipped for new trades."""
        rule = await manager.create_rule("owner-1", make_rule_data())
        await manager.update_rule("owner-1", rule.id, {"is_active": False})
        trades = TradeManager(store=store, settings=settings)

        trade = await trades.create_trade("owner-1", make_trade_data(1990.0))

        assert trade.rule_evaluations == []

    async def test_compliance(
        self, manager: RuleManager, store: JsonLedgerStore, settings: LedgerSettings
    ):
        """Compliance counts pass results across stored evaluations."""
        rule = await manager.create_rule("owner-1", make_rule_data())
        trades = TradeManager(store=store, settings=settings)
        await trades.create_trade("owner-1", make_trade_data(1990.0))
        await trades.create_trade("owner-1", make_trade_data(1900.0))

        compliance = await manager.compliance("owner-1")

        assert len(compliance) == 1
        assert compliance[0].rule_id == rule.id
        assert compliance[0].total == 2
        assert compliance[0].passed == 1
        assert compliance[0].pass_rate == 50.0
