# src/trade_ledger/ledger/trade_manager.py
"""Manager for manual trade entry, edits, imports and queries."""
import logging
from typing import Any, Iterable

from pydantic import BaseModel, ValidationError

from trade_ledger.clock import utc_now
from trade_ledger.errors import ConflictError, DuplicateKeyError, NotFoundError, RecordValidationError
from trade_ledger.ledger.derivation import apply_risk_metrics, new_id
from trade_ledger.ledger.models import Trade, TradeFilter
from trade_ledger.ledger.schemas import ImportRow, TradeInput, TradeUpdate
from trade_ledger.ledger.settings import LedgerSettings
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.metrics.models import Outcome
from trade_ledger.rules.rule_engine import RuleEngine
from trade_ledger.stats.models import TradeStatistics
from trade_ledger.stats.stats_aggregator import StatisticsAggregator

logger = logging.getLogger(__name__)


def validate_input(schema: type[BaseModel], data: Any) -> Any:
    """Validate raw input against a schema.

    Raises:
        RecordValidationError: If required fields are missing or invalid.
    """
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise RecordValidationError(str(e)) from e


class TradeManager:
    """Coordinates trade creation, edits and queries for one ledger.

    Every write path derives risk metrics with the contract-size resolver,
    evaluates the owner's active rules, then persists the trade.
    """

    def __init__(
        self,
        store: LedgerStore,
        settings: LedgerSettings,
        rule_engine: RuleEngine | None = None,
        aggregator: StatisticsAggregator | None = None,
    ) -> None:
        """Initialize the trade manager.

        Args:
            store: Ledger persistence.
            settings: Ledger configuration settings.
            rule_engine: Engine used to evaluate rules on write.
            aggregator: Statistics aggregator for statistics().
        """
        self._store = store
        self._settings = settings
        self._rule_engine = rule_engine or RuleEngine()
        self._aggregator = aggregator or StatisticsAggregator()

    async def _evaluate_rules(self, trade: Trade) -> None:
        if not self._settings.evaluate_rules_on_create:
            return
        rules = await self._store.list_rules(trade.owner_id)
        trade.rule_evaluations = self._rule_engine.evaluate_all(trade, rules)

    async def _require_strategy(self, owner_id: str, strategy_id: str) -> None:
        if await self._store.get_strategy(owner_id, strategy_id) is None:
            raise NotFoundError(f"Strategy {strategy_id} not found")

    async def create_trade(self, owner_id: str, data: dict) -> Trade:
        """Create a manually entered trade.

        Args:
            owner_id: Authenticated owner.
            data: Raw trade fields (see TradeInput).

        Returns:
            The persisted trade.

        Raises:
            RecordValidationError: If required fields are missing.
            ConflictError: If the external id is already used by the owner.
            NotFoundError: If strategy_id does not belong to the owner.
        """
        entry = validate_input(TradeInput, data)

        if entry.external_id:
            existing = await self._store.find_trade_by_external_id(owner_id, entry.external_id)
            if existing is not None:
                raise ConflictError(f"Trade with external id '{entry.external_id}' already exists")

        if entry.strategy_id:
            await self._require_strategy(owner_id, entry.strategy_id)

        trade = Trade(
            id=new_id(),
            owner_id=owner_id,
            asset=entry.asset,
            market=entry.market or self._settings.default_market,
            trade_type=entry.trade_type,
            entry_price=entry.entry_price,
            exit_price=entry.exit_price,
            position_size=entry.position_size,
            stop_loss=entry.stop_loss,
            take_profit=entry.take_profit,
            trade_date=entry.trade_date,
            profit_loss=0.0,
            outcome=Outcome.BREAK_EVEN,
            notes=entry.notes,
            images=entry.images,
            strategy_id=entry.strategy_id or None,
            external_id=entry.external_id or None,
        )
        apply_risk_metrics(trade)
        await self._evaluate_rules(trade)

        try:
            await self._store.insert_trade(trade)
        except DuplicateKeyError as e:
            raise ConflictError(str(e)) from e

        logger.info(f"Created trade {trade.id} ({trade.asset} {trade.trade_type.value})")
        return trade

    async def update_trade(self, owner_id: str, trade_id: str, data: dict) -> Trade:
        """Apply a partial edit and re-derive every computed field.

        Broker-reported profit/loss on synced trades is kept as-is; risk,
        reward, RR ratio and rule evaluations are always recomputed.

        Raises:
            NotFoundError: If the trade or new strategy does not exist.
            RecordValidationError: If a field has an invalid value.
        """
        trade = await self.get_trade(owner_id, trade_id)
        update = validate_input(TradeUpdate, data)
        sent = update.model_fields_set

        for name in (
            "asset",
            "market",
            "trade_type",
            "entry_price",
            "exit_price",
            "position_size",
            "trade_date",
            "notes",
            "images",
        ):
            value = getattr(update, name)
            if name in sent and value is not None:
                setattr(trade, name, value)

        if "stop_loss" in sent:
            trade.stop_loss = update.stop_loss
        if "take_profit" in sent:
            trade.take_profit = update.take_profit
        if "strategy_id" in sent:
            if update.strategy_id:
                await self._require_strategy(owner_id, update.strategy_id)
            trade.strategy_id = update.strategy_id or None

        apply_risk_metrics(trade, realized_pnl=trade.profit_loss if trade.is_external else None)
        await self._evaluate_rules(trade)
        trade.updated_at = utc_now()

        try:
            await self._store.replace_trade(trade)
        except DuplicateKeyError as e:
            raise ConflictError(str(e)) from e

        logger.info(f"Updated trade {trade.id}")
        return trade

    async def delete_trade(self, owner_id: str, trade_id: str) -> None:
        """Delete one of the owner's trades.

        Raises:
            NotFoundError: If the trade does not exist for the owner.
        """
        if not await self._store.delete_trade(owner_id, trade_id):
            raise NotFoundError(f"Trade {trade_id} not found")
        logger.info(f"Deleted trade {trade_id}")

    async def get_trade(self, owner_id: str, trade_id: str) -> Trade:
        """Get one of the owner's trades.

        Raises:
            NotFoundError: If the trade does not exist for the owner.
        """
        trade = await self._store.get_trade(owner_id, trade_id)
        if trade is None:
            raise NotFoundError(f"Trade {trade_id} not found")
        return trade

    async def list_trades(
        self, owner_id: str, trade_filter: TradeFilter | None = None
    ) -> list[Trade]:
        """List the owner's trades, newest first."""
        return await self._store.list_trades(owner_id, trade_filter)

    async def import_trades(self, owner_id: str, rows: Iterable[Any]) -> list[Trade]:
        """Import parsed CSV rows, skipping any that are incomplete.

        A row's own profit/loss is kept when present; otherwise it is
        derived from prices. A strategy named in the row is linked when the
        owner has one with that name, ignoring case.

        Args:
            owner_id: Authenticated owner.
            rows: Parsed rows (see ImportRow).

        Returns:
            The trades that were created, in row order.
        """
        created: list[Trade] = []
        rules = (
            await self._store.list_rules(owner_id)
            if self._settings.evaluate_rules_on_create
            else []
        )

        for index, data in enumerate(rows):
            try:
                row = validate_input(ImportRow, data)
            except RecordValidationError as e:
                logger.warning(f"Skipping import row {index}: {e}")
                continue

            strategy_id = None
            if row.strategy:
                strategy = await self._store.find_strategy_by_name(
                    owner_id, row.strategy, ignore_case=True
                )
                strategy_id = strategy.id if strategy else None

            trade = Trade(
                id=new_id(),
                owner_id=owner_id,
                asset=row.asset,
                market=row.market or self._settings.default_market,
                trade_type=row.trade_type,
                entry_price=row.entry_price,
                exit_price=row.exit_price,
                position_size=row.position_size,
                stop_loss=row.stop_loss,
                take_profit=row.take_profit,
                trade_date=row.trade_date or utc_now(),
                profit_loss=0.0,
                outcome=Outcome.BREAK_EVEN,
                notes=row.notes,
                strategy_id=strategy_id,
            )
            apply_risk_metrics(trade, realized_pnl=row.profit_loss)
            trade.rule_evaluations = self._rule_engine.evaluate_all(trade, rules)

            try:
                await self._store.insert_trade(trade)
            except DuplicateKeyError as e:
                logger.warning(f"Skipping import row {index}: {e}")
                continue
            created.append(trade)

        logger.info(f"Imported {len(created)} trades for owner {owner_id}")
        return created

    async def reevaluate_rules(self, owner_id: str, trade_id: str) -> Trade:
        """Evaluate the owner's current active rules against a stored trade."""
        trade = await self.get_trade(owner_id, trade_id)
        rules = await self._store.list_rules(owner_id)
        trade.rule_evaluations = self._rule_engine.evaluate_all(trade, rules)
        trade.updated_at = utc_now()
        await self._store.replace_trade(trade)
        return trade

    async def statistics(
        self, owner_id: str, trade_filter: TradeFilter | None = None
    ) -> TradeStatistics:
        """Aggregate statistics over the owner's (optionally filtered) trades."""
        trades = await self._store.list_trades(owner_id, trade_filter)
        return self._aggregator.aggregate(trades)
