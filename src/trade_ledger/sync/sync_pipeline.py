# src/trade_ledger/sync/sync_pipeline.py
"""Idempotent ingestion of closed positions from an MT5 terminal."""
import logging
from typing import Any, Sequence

from pydantic import ValidationError

from trade_ledger.clock import as_utc
from trade_ledger.errors import (
    DuplicateKeyError,
    LedgerError,
    NotFoundError,
    RecordValidationError,
)
from trade_ledger.ledger.derivation import apply_risk_metrics, new_id
from trade_ledger.ledger.models import Trade, TradeSource
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.metrics.models import Market, Outcome
from trade_ledger.rules.models import TradingRule
from trade_ledger.rules.rule_engine import RuleEngine
from trade_ledger.sync.models import SyncResult, SyncStatus, SyncTradeRecord
from trade_ledger.sync.settings import SyncSettings

logger = logging.getLogger(__name__)


def _price_level(value: float | None) -> float | None:
    # MT5 reports an unset stop or target as 0
    return value or None


class SyncPipeline:
    """Upserts MT5 trade batches into an owner's ledger.

    Each record is keyed by (owner, account, ticket). Re-sending a batch
    updates the stored trades instead of duplicating them.
    """

    def __init__(
        self,
        store: LedgerStore,
        settings: SyncSettings,
        rule_engine: RuleEngine | None = None,
    ) -> None:
        """Initialize the sync pipeline.

        Args:
            store: Ledger persistence.
            settings: Sync configuration settings.
            rule_engine: Engine used to evaluate rules on synced trades.
        """
        self._store = store
        self._settings = settings
        self._rule_engine = rule_engine or RuleEngine()

    def build_trade(self, owner_id: str, record: SyncTradeRecord) -> Trade:
        """Convert a terminal record into a canonical trade with derived metrics."""
        trade = Trade(
            id=new_id(),
            owner_id=owner_id,
            asset=record.symbol,
            market=record.market or Market.FOREX,
            trade_type=record.trade_type,
            entry_price=record.entry_price,
            exit_price=record.exit_price,
            position_size=record.volume,
            stop_loss=_price_level(record.stop_loss),
            take_profit=_price_level(record.take_profit),
            trade_date=as_utc(record.executed_at),
            profit_loss=record.profit,
            outcome=Outcome.from_pnl(record.profit),
            source=TradeSource.MT5,
            external_account_id=record.account_id,
            external_ticket=record.ticket,
            external_id=record.ticket,
            broker=record.broker,
            notes=record.comment,
        )
        return apply_risk_metrics(trade, realized_pnl=record.profit)

    async def ingest(self, owner_id: str, records: Sequence[Any]) -> SyncResult:
        """Ingest one batch of terminal records.

        Incomplete records are skipped and the batch continues. Records are
        processed one at a time, in order.

        Args:
            owner_id: Owner resolved from the sync API key.
            records: Raw records as posted by the terminal.

        Returns:
            Created and updated counts plus the submitted record count.

        Raises:
            LedgerError: If sync is disabled.
            RecordValidationError: If the batch is empty or too large.
        """
        if not self._settings.enabled:
            raise LedgerError("MT5 sync is disabled")
        if not records:
            raise RecordValidationError("Invalid payload: no trades")
        if len(records) > self._settings.max_batch_size:
            raise RecordValidationError(
                f"Invalid payload: {len(records)} trades exceeds batch limit "
                f"of {self._settings.max_batch_size}"
            )

        rules: list[TradingRule] = []
        if self._settings.evaluate_rules:
            rules = await self._store.list_rules(owner_id)

        created = 0
        updated = 0
        for index, data in enumerate(records):
            try:
                record = SyncTradeRecord.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Skipping sync record {index}: {e.error_count()} invalid fields")
                continue

            trade = self.build_trade(owner_id, record)
            trade.rule_evaluations = self._rule_engine.evaluate_all(trade, rules)

            existing = await self._store.find_trade_by_ticket(
                owner_id, record.account_id, record.ticket
            )
            if existing is not None:
                fresh_id = trade.id
                trade.id = existing.id
                trade.created_at = existing.created_at
                trade.strategy_id = existing.strategy_id
                trade.images = existing.images
                try:
                    await self._store.replace_trade(trade)
                    updated += 1
                    logger.debug(f"Updated ticket {record.ticket} on account {record.account_id}")
                    continue
                except DuplicateKeyError as e:
                    logger.warning(f"Ticket {record.ticket} conflicts with another trade ({e.key}), keeping stored copy")
                    updated += 1
                    continue
                except NotFoundError:
                    # Deleted after the lookup
                    logger.warning(f"Ticket {record.ticket} was removed during sync, inserting it again")
                    trade.id = fresh_id
                    trade.created_at = trade.updated_at
                    trade.strategy_id = None
                    trade.images = []

            try:
                await self._store.insert_trade(trade)
                created += 1
                logger.debug(f"Created ticket {record.ticket} on account {record.account_id}")
            except DuplicateKeyError as e:
                # Inserted concurrently by another batch
                logger.warning(f"Ticket {record.ticket} already stored ({e.key}), counting as update")
                updated += 1

        result = SyncResult(created=created, updated=updated, total=len(records))
        logger.info(
            f"Synced {result.total} trades for owner {owner_id}: "
            f"{result.created} created, {result.updated} updated, {result.skipped} skipped"
        )
        return result

    async def status(self, owner_id: str) -> SyncStatus:
        """Count the owner's synced trades and report the most recent sync."""
        synced = [
            trade
            for trade in await self._store.list_trades(owner_id)
            if trade.source == TradeSource.MT5
        ]
        if not synced:
            return SyncStatus(total_trades=0, last_sync_at=None, last_trade_date=None)

        last = max(synced, key=lambda t: as_utc(t.updated_at))
        return SyncStatus(
            total_trades=len(synced),
            last_sync_at=last.updated_at,
            last_trade_date=last.trade_date,
        )
