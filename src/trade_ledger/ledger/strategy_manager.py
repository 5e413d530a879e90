# src/trade_ledger/ledger/strategy_manager.py
"""Manager for owner-scoped strategies."""
import logging

from trade_ledger.clock import utc_now
from trade_ledger.errors import ConflictError, DuplicateKeyError, NotFoundError, RecordValidationError
from trade_ledger.ledger.derivation import new_id
from trade_ledger.ledger.models import Strategy
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.stats.models import StrategyPerformance
from trade_ledger.stats.stats_aggregator import StatisticsAggregator

logger = logging.getLogger(__name__)


class StrategyManager:
    """Creates, edits and deletes strategies and reports their performance."""

    def __init__(
        self,
        store: LedgerStore,
        aggregator: StatisticsAggregator | None = None,
    ) -> None:
        self._store = store
        self._aggregator = aggregator or StatisticsAggregator()

    async def list_strategies(self, owner_id: str) -> list[Strategy]:
        return await self._store.list_strategies(owner_id)

    async def get_strategy(self, owner_id: str, strategy_id: str) -> Strategy:
        strategy = await self._store.get_strategy(owner_id, strategy_id)
        if strategy is None:
            raise NotFoundError(f"Strategy {strategy_id} not found")
        return strategy

    async def create_strategy(
        self, owner_id: str, name: str, description: str = ""
    ) -> Strategy:
        """Create a strategy.

        Raises:
            RecordValidationError: If the name is empty.
            ConflictError: If the owner already has a strategy with this name.
        """
        name = (name or "").strip()
        if not name:
            raise RecordValidationError("Strategy name is required")

        strategy = Strategy(
            id=new_id(),
            owner_id=owner_id,
            name=name,
            description=description or "",
        )
        try:
            await self._store.insert_strategy(strategy)
        except DuplicateKeyError as e:
            raise ConflictError("Strategy already exists") from e

        logger.info(f"Created strategy '{name}' for owner {owner_id}")
        return strategy

    async def update_strategy(
        self,
        owner_id: str,
        strategy_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Strategy:
        """Rename a strategy or change its description.

        Empty values leave the current value in place.

        Raises:
            NotFoundError: If the strategy does not exist for the owner.
            ConflictError: If the new name is already taken.
        """
        strategy = await self.get_strategy(owner_id, strategy_id)
        if name and name.strip():
            strategy.name = name.strip()
        if description:
            strategy.description = description
        strategy.updated_at = utc_now()

        try:
            await self._store.replace_strategy(strategy)
        except DuplicateKeyError as e:
            raise ConflictError("Strategy already exists") from e
        return strategy

    async def delete_strategy(self, owner_id: str, strategy_id: str) -> int:
        """Delete a strategy and unlink it from the owner's trades.

        Trades are kept; their strategy link is cleared.

        Returns:
            Number of trades that were unlinked.

        Raises:
            NotFoundError: If the strategy does not exist for the owner.
        """
        await self.get_strategy(owner_id, strategy_id)
        detached = await self._store.detach_strategy(owner_id, strategy_id)
        await self._store.delete_strategy(owner_id, strategy_id)
        logger.info(f"Deleted strategy {strategy_id}, unlinked {detached} trades")
        return detached

    async def performance(self, owner_id: str) -> list[StrategyPerformance]:
        """Per-strategy performance over all of the owner's trades."""
        strategies = await self._store.list_strategies(owner_id)
        trades = await self._store.list_trades(owner_id)
        return self._aggregator.strategy_performance(trades, strategies)
