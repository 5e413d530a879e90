# tests/sync/test_sync_pipeline.py
"""Tests for SyncPipeline."""
import asyncio
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from trade_ledger.errors import DuplicateKeyError, LedgerError, RecordValidationError
from trade_ledger.ledger.json_store import JsonLedgerStore
from trade_ledger.ledger.models import TradeSource
from trade_ledger.ledger.settings import LedgerSettings
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.metrics.models import Market, Outcome, TradeType
from trade_ledger.rules.models import RuleCondition, RuleOperator, TradingRule
from trade_ledger.sync.settings import SyncSettings
from trade_ledger.sync.sync_pipeline import SyncPipeline


def make_record(**overrides) -> dict:
    """Create an MT5 terminal record for testing."""
    record = {
        "accountId": 5001,
        "ticket": 9001,
        "symbol": "XAUUSD",
        "type": "buy",
        "volume": 0.1,
        "entryPrice": 2000.0,
        "exitPrice": 2030.0,
        "stopLoss": 1990.0,
        "takeProfit": 2030.0,
        "profit": 295.5,
        "datetime": "2024-01-08T14:30:00Z",
        "comment": "tp hit",
        "broker": "ICMarkets",
    }
    record.update(overrides)
    return record


def make_rule(rule_id: str, field: str, operator: RuleOperator, value=None) -> TradingRule:
    """Create a single-condition rule for testing."""
    return TradingRule(
        id=rule_id,
        owner_id="owner-1",
        name=f"Rule {rule_id}",
        condition=RuleCondition(field=field, operator=operator, value=value),
    )


class TestSyncPipeline:
    """Tests for SyncPipeline."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> JsonLedgerStore:
        """Create a JsonLedgerStore in a temporary directory."""
        return JsonLedgerStore(LedgerSettings(data_dir=str(tmp_path / "ledger")))

    @pytest.fixture
    def settings(self) -> SyncSettings:
        """Create default sync settings."""
        return SyncSettings()

    @pytest.fixture
    def pipeline(self, store: JsonLedgerStore, settings: SyncSettings) -> SyncPipeline:
        """Create a SyncPipeline instance."""
        return SyncPipeline(store=store, settings=settings)

    async def test_first_sync_creates_trades(
        self, pipeline: SyncPipeline, store: JsonLedgerStore
    ):
        """New tickets are created."""
        result = await pipeline.ingest("owner-1", [make_record(), make_record(ticket=9002)])

        assert (result.created, result.updated, result.total) == (2, 0, 2)
        assert len(await store.list_trades("owner-1")) == 2

    async def test_resync_is_idempotent(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """Re-sending a batch updates instead of duplicating."""
        batch = [make_record(), make_record(ticket=9002)]
        await pipeline.ingest("owner-1", batch)
        first_ids = sorted(t.id for t in await store.list_trades("owner-1"))

        result = await pipeline.ingest("owner-1", batch)

        assert (result.created, result.updated, result.total) == (0, 2, 2)
        assert sorted(t.id for t in await store.list_trades("owner-1")) == first_ids

    async def test_canonical_trade(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """A record becomes an MT5 trade with contract-size-aware metrics."""
        await pipeline.ingest("owner-1", [make_record()])

        trade = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        assert trade.source == TradeSource.MT5
        assert trade.external_id == "9001"
        assert trade.external_account_id == "5001"
        assert trade.asset == "XAUUSD"
        assert trade.market == Market.FOREX
        assert trade.trade_type == TradeType.BUY
        assert trade.position_size == 0.1
        assert trade.risk == pytest.approx(100.0)
        assert trade.reward == pytest.approx(300.0)
        assert trade.rr_ratio == pytest.approx(3.0)
        assert trade.profit_loss == 295.5
        assert trade.outcome == Outcome.WIN
        assert trade.notes == "tp hit"
        assert trade.broker == "ICMarkets"
        assert trade.trade_date == datetime(2024, 1, 8, 14, 30, tzinfo=timezone.utc)

    async def test_side_mapping(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """Only "buy" in any case maps to BUY; anything else is SELL."""
        await pipeline.ingest("owner-1", [
            make_record(ticket=1, type="BUY"),
            make_record(ticket=2, type="Sell"),
            make_record(ticket=3, type="short"),
        ])

        sides = {
            t.external_ticket: t.trade_type for t in await store.list_trades("owner-1")
        }
        assert sides == {"1": TradeType.BUY, "2": TradeType.SELL, "3": TradeType.SELL}

    async def test_zero_levels_are_unset(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """MT5 reports missing stops and targets as 0."""
        await pipeline.ingest("owner-1", [make_record(stopLoss=0, takeProfit=0)])

        trade = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        assert trade.stop_loss is None
        assert trade.take_profit is None
        assert trade.risk == 0.0
        assert trade.rr_ratio is None

    async def test_broker_pnl_verbatim(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """Broker profit wins over the price formula and sets the outcome."""
        await pipeline.ingest("owner-1", [make_record(profit=-3.2), make_record(ticket=2, profit=0)])

        loss = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        flat = await store.find_trade_by_ticket("owner-1", "5001", "2")
        assert loss.profit_loss == -3.2
        assert loss.outcome == Outcome.LOSS
        assert flat.outcome == Outcome.BREAK_EVEN

    async def test_market_from_record(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """A supplied market is used, in any letter case."""
        await pipeline.ingest("owner-1", [make_record(symbol="BTCUSD", market="CRYPTO", stopLoss=39000,
                                                      entryPrice=40000, takeProfit=0)])

        trade = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        assert trade.market == Market.CRYPTO
        assert trade.risk == pytest.approx(100.0)

    async def test_invalid_records_skipped(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """Incomplete records are skipped but still counted in total."""
        missing_ticket = make_record()
        del missing_ticket["ticket"]

        result = await pipeline.ingest("owner-1", [
            missing_ticket,
            make_record(ticket=2, symbol=""),
            make_record(ticket=3, profit=None),
            "not a record",
            make_record(ticket=4),
        ])

        assert (result.created, result.updated, result.total) == (1, 0, 5)
        assert result.skipped == 4
        assert len(await store.list_trades("owner-1")) == 1

    async def test_empty_batch_rejected(self, pipeline: SyncPipeline):
        """An empty batch is an invalid payload."""
        with pytest.raises(RecordValidationError):
            await pipeline.ingest("owner-1", [])

    async def test_oversized_batch_rejected(self, store: JsonLedgerStore):
        """Batches over the configured limit are rejected."""
        pipeline = SyncPipeline(store=store, settings=SyncSettings(max_batch_size=2))

        with pytest.raises(RecordValidationError):
            await pipeline.ingest("owner-1", [make_record(ticket=i) for i in range(3)])

    async def test_disabled_sync(self, store: JsonLedgerStore):
        """A disabled pipeline refuses batches."""
        pipeline = SyncPipeline(store=store, settings=SyncSettings(enabled=False))

        with pytest.raises(LedgerError):
            await pipeline.ingest("owner-1", [make_record()])

    async def test_update_keeps_user_fields(
        self, pipeline: SyncPipeline, store: JsonLedgerStore
    ):
        """Re-sync overwrites broker data but keeps id, strategy and images."""
        await pipeline.ingest("owner-1", [make_record()])
        trade = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        trade.strategy_id = "s1"
        trade.images = ["chart.png"]
        await store.replace_trade(trade)

        await pipeline.ingest("owner-1", [make_record(profit=150.0, comment="partial")])

        updated = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        assert updated.id == trade.id
        assert updated.created_at == trade.created_at
        assert updated.strategy_id == "s1"
        assert updated.images == ["chart.png"]
        assert updated.profit_loss == 150.0
        assert updated.notes == "partial"

    async def test_same_ticket_other_owner(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """Tickets are scoped per owner."""
        await pipeline.ingest("owner-1", [make_record()])
        result = await pipeline.ingest("owner-2", [make_record()])

        assert result.created == 1
        assert len(await store.list_trades("owner-2")) == 1

    async def test_same_ticket_other_account(
        self, pipeline: SyncPipeline, store: JsonLedgerStore
    ):
        """Two accounts of one owner may report the same ticket."""
        first = await pipeline.ingest("owner-1", [make_record(accountId=111, ticket=500)])
        second = await pipeline.ingest("owner-1", [make_record(accountId=222, ticket=500)])

        assert (second.created, second.updated) == (1, 0)
        assert first.created == 1
        assert len(await store.list_trades("owner-1")) == 2
        assert await store.find_trade_by_ticket("owner-1", "111", "500") is not None
        assert await store.find_trade_by_ticket("owner-1", "222", "500") is not None

    async def test_trade_deleted_after_lookup_is_inserted(
        self, pipeline: SyncPipeline, store: JsonLedgerStore
    ):
        """A trade removed between lookup and replace is stored again."""
        await pipeline.ingest("owner-1", [make_record()])
        stale = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        await store.delete_trade("owner-1", stale.id)

        lookup = AsyncMock(side_effect=[stale, None])
        store.find_trade_by_ticket = lookup

        result = await pipeline.ingest("owner-1", [make_record(), make_record(ticket=9002)])

        assert (result.created, result.updated, result.total) == (2, 0, 2)
        tickets = sorted(t.external_ticket for t in await store.list_trades("owner-1"))
        assert tickets == ["9001", "9002"]

    async def test_rules_evaluated(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """The owner's active rules are evaluated on synced trades."""
        await store.insert_rule(make_rule("r1", "risk", RuleOperator.LTE, 50))
        await store.insert_rule(make_rule("r2", "stopLoss", RuleOperator.EXISTS))

        await pipeline.ingest("owner-1", [make_record()])

        trade = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        assert [(e.rule_id, e.passed) for e in trade.rule_evaluations] == [("r1", False), ("r2", True)]

    async def test_rules_skipped_when_disabled(self, store: JsonLedgerStore):
        """Rule evaluation can be switched off for sync."""
        await store.insert_rule(make_rule("r1", "risk", RuleOperator.LTE, 50))
        pipeline = SyncPipeline(store=store, settings=SyncSettings(evaluate_rules=False))

        await pipeline.ingest("owner-1", [make_record()])

        trade = await store.find_trade_by_ticket("owner-1", "5001", "9001")
        assert trade.rule_evaluations == []

    async def test_lost_race_counts_as_update(self, settings: SyncSettings):
        """A duplicate-key failure after the lookup is counted as an update."""
        store = MagicMock(spec=LedgerStore)
        store.list_rules = AsyncMock(return_value=[])
        store.find_trade_by_ticket = AsyncMock(return_value=None)
        store.insert_trade = AsyncMock(side_effect=DuplicateKeyError("owner_account_ticket"))
        pipeline = SyncPipeline(store=store, settings=settings)

        result = await pipeline.ingest("owner-1", [make_record()])

        assert (result.created, result.updated, result.total) == (0, 1, 1)
        store.insert_trade.assert_awaited_once()

    async def test_concurrent_batches_store_one_trade_per_ticket(
        self, pipeline: SyncPipeline, store: JsonLedgerStore
    ):
        """Two overlapping batches never duplicate a ticket."""
        batch = [make_record(ticket=1), make_record(ticket=2)]

        first, second = await asyncio.gather(
            pipeline.ingest("owner-1", batch),
            pipeline.ingest("owner-1", batch),
        )

        assert first.created + second.created == 2
        assert first.updated + second.updated == 2
        assert len(await store.list_trades("owner-1")) == 2

    async def test_status(self, pipeline: SyncPipeline, store: JsonLedgerStore):
        """Status counts synced trades and reports the latest sync."""
        empty = await pipeline.status("owner-1")
        assert empty.total_trades == 0
        assert empty.last_sync_at is None

        await pipeline.ingest("owner-1", [make_record(ticket=1)])
        await pipeline.ingest("owner-1", [make_record(ticket=2, datetime="2024-02-01T09:00:00Z")])

        status = await pipeline.status("owner-1")
        assert status.total_trades == 2
        assert status.last_trade_date == datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc)
        assert status.last_sync_at is not None
