# src/trade_ledger/ledger/json_store.py
"""Ledger store persisting collections to JSON files."""
import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from trade_ledger.clock import as_utc
from trade_ledger.errors import DuplicateKeyError, NotFoundError
from trade_ledger.ledger.models import (
    ApiKeyRecord,
    Strategy,
    Trade,
    TradeFilter,
    TradeSource,
)
from trade_ledger.ledger.settings import LedgerSettings
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.metrics.models import Market, Outcome, TradeType
from trade_ledger.rules.models import (
    RuleCategory,
    RuleCondition,
    RuleEvaluation,
    RuleOperator,
    TradingRule,
)

TRADES = "trades"
STRATEGIES = "strategies"
RULES = "rules"
API_KEYS = "api_keys"


class JsonLedgerStore(LedgerStore):
    """Ledger store backed by one JSON file per collection.

    Stores records in {data_dir}/{collection}.json as a list of objects.
    Every write re-reads the collection under a single lock, so uniqueness
    checks and the write that follows them happen as one step.
    """

    def __init__(self, settings: LedgerSettings) -> None:
        """Initialize the store.

        Args:
            settings: Ledger configuration settings.
        """
        self._settings = settings
        self._data_dir = Path(settings.data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _get_file_path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    async def _read(self, collection: str) -> list[dict]:
        """Read all rows of a collection."""
        file_path = self._get_file_path(collection)
        if not file_path.exists():
            return []

        async with aiofiles.open(file_path, "r") as f:
            content = await f.read()
            return json.loads(content) if content.strip() else []

    async def _write(self, collection: str, rows: list[dict]) -> None:
        """Write all rows of a collection.

        Rows go to a temp file that then replaces the collection file, so
        unlocked readers never see a partial write.
        """
        file_path = self._get_file_path(collection)
        temp_path = file_path.with_suffix(".tmp")
        async with aiofiles.open(temp_path, "w") as f:
            await f.write(json.dumps(rows, indent=2, default=str))
        await aiofiles.os.replace(temp_path, file_path)

    # Serialization

    def _trade_to_dict(self, trade: Trade) -> dict:
        return {
            "id": trade.id,
            "owner_id": trade.owner_id,
            "asset": trade.asset,
            "market": trade.market.value,
            "trade_type": trade.trade_type.value,
            "entry_price": trade.entry_price,
            "exit_price": trade.exit_price,
            "position_size": trade.position_size,
            "stop_loss": trade.stop_loss,
            "take_profit": trade.take_profit,
            "trade_date": trade.trade_date.isoformat(),
            "profit_loss": trade.profit_loss,
            "outcome": trade.outcome.value,
            "risk": trade.risk,
            "reward": trade.reward,
            "rr_ratio": trade.rr_ratio,
            "rule_evaluations": [
                {
                    "rule_id": evaluation.rule_id,
                    "rule_name": evaluation.rule_name,
                    "passed": evaluation.passed,
                    "observed_value": evaluation.observed_value,
                }
                for evaluation in trade.rule_evaluations
            ],
            "source": trade.source.value,
            "external_account_id": trade.external_account_id,
            "external_ticket": trade.external_ticket,
            "external_id": trade.external_id,
            "broker": trade.broker,
            "notes": trade.notes,
            "images": list(trade.images),
            "strategy_id": trade.strategy_id,
            "created_at": trade.created_at.isoformat(),
            "updated_at": trade.updated_at.isoformat(),
        }

    def _dict_to_trade(self, data: dict) -> Trade:
        return Trade(
            id=data["id"],
            owner_id=data["owner_id"],
            asset=data["asset"],
            market=Market(data["market"]),
            trade_type=TradeType(data["trade_type"]),
            entry_price=data["entry_price"],
            exit_price=data["exit_price"],
            position_size=data["position_size"],
            stop_loss=data.get("stop_loss"),
            take_profit=data.get("take_profit"),
            trade_date=datetime.fromisoformat(data["trade_date"]),
            profit_loss=data["profit_loss"],
            outcome=Outcome(data["outcome"]),
            risk=data.get("risk", 0.0),
            reward=data.get("reward", 0.0),
            rr_ratio=data.get("rr_ratio"),
            rule_evaluations=[
                RuleEvaluation(
                    rule_id=e["rule_id"],
                    rule_name=e["rule_name"],
                    passed=e["passed"],
                    observed_value=e.get("observed_value"),
                )
                for e in data.get("rule_evaluations", [])
            ],
            source=TradeSource(data.get("source", TradeSource.MANUAL.value)),
            external_account_id=data.get("external_account_id"),
            external_ticket=data.get("external_ticket"),
            external_id=data.get("external_id"),
            broker=data.get("broker"),
            notes=data.get("notes") or "",
            images=data.get("images", []),
            strategy_id=data.get("strategy_id"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def _strategy_to_dict(self, strategy: Strategy) -> dict:
        return {
            "id": strategy.id,
            "owner_id": strategy.owner_id,
            "name": strategy.name,
            "description": strategy.description,
            "created_at": strategy.created_at.isoformat(),
            "updated_at": strategy.updated_at.isoformat(),
        }

    def _dict_to_strategy(self, data: dict) -> Strategy:
        return Strategy(
            id=data["id"],
            owner_id=data["owner_id"],
            name=data["name"],
            description=data.get("description") or "",
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def _rule_to_dict(self, rule: TradingRule) -> dict:
        return {
            "id": rule.id,
            "owner_id": rule.owner_id,
            "name": rule.name,
            "category": rule.category.value,
            "is_active": rule.is_active,
            "condition": {
                "field": rule.condition.field,
                "operator": rule.condition.operator.value,
                "value": rule.condition.value,
            },
            "created_at": rule.created_at.isoformat(),
            "updated_at": rule.updated_at.isoformat(),
        }

    def _dict_to_rule(self, data: dict) -> TradingRule:
        return TradingRule(
            id=data["id"],
            owner_id=data["owner_id"],
            name=data["name"],
            category=RuleCategory(data["category"]),
            is_active=data.get("is_active", True),
            condition=RuleCondition(
                field=data["condition"]["field"],
                operator=RuleOperator(data["condition"]["operator"]),
                value=data["condition"].get("value"),
            ),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def _api_key_to_dict(self, record: ApiKeyRecord) -> dict:
        return {
            "owner_id": record.owner_id,
            "key_hash": record.key_hash,
            "created_at": record.created_at.isoformat(),
        }

    def _dict_to_api_key(self, data: dict) -> ApiKeyRecord:
        return ApiKeyRecord(
            owner_id=data["owner_id"],
            key_hash=data["key_hash"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    # Uniqueness

    def _check_trade_keys(self, rows: list[dict], trade: Trade) -> None:
        for row in rows:
            if row["id"] == trade.id or row["owner_id"] != trade.owner_id:
                continue
            both_synced = (
                trade.source == TradeSource.MT5
                and row.get("source") == TradeSource.MT5.value
            )
            # Synced trades are keyed by account and ticket instead
            if (
                trade.external_id
                and not both_synced
                and row.get("external_id") == trade.external_id
            ):
                raise DuplicateKeyError(
                    "owner_external_id",
                    f"Trade with external id '{trade.external_id}' already exists",
                )
            if (
                trade.source == TradeSource.MT5
                and row.get("source") == TradeSource.MT5.value
                and row.get("external_account_id") == trade.external_account_id
                and row.get("external_ticket") == trade.external_ticket
            ):
                raise DuplicateKeyError(
                    "owner_account_ticket",
                    f"Ticket {trade.external_ticket} on account "
                    f"{trade.external_account_id} already exists",
                )

    def _check_strategy_keys(self, rows: list[dict], strategy: Strategy) -> None:
        for row in rows:
            if row["id"] == strategy.id or row["owner_id"] != strategy.owner_id:
                continue
            if row["name"] == strategy.name:
                raise DuplicateKeyError(
                    "owner_name", f"Strategy '{strategy.name}' already exists"
                )

    # Generic row helpers

    async def _insert(self, collection: str, row: dict) -> None:
        rows = await self._read(collection)
        if any(r["id"] == row["id"] for r in rows):
            raise DuplicateKeyError("id", f"Record {row['id']} already exists")
        rows.append(row)
        await self._write(collection, rows)

    async def _replace(self, collection: str, row: dict) -> None:
        rows = await self._read(collection)
        for index, existing in enumerate(rows):
            if existing["id"] == row["id"] and existing["owner_id"] == row["owner_id"]:
                rows[index] = row
                await self._write(collection, rows)
                return
        raise NotFoundError(f"Record {row['id']} not found")

    async def _find(self, collection: str, owner_id: str, record_id: str) -> dict | None:
        for row in await self._read(collection):
            if row["id"] == record_id and row["owner_id"] == owner_id:
                return row
        return None

    async def _delete(self, collection: str, owner_id: str, record_id: str) -> bool:
        async with self._lock:
            rows = await self._read(collection)
            remaining = [
                r for r in rows if not (r["id"] == record_id and r["owner_id"] == owner_id)
            ]
            if len(remaining) == len(rows):
                return False
            await self._write(collection, remaining)
            return True

    async def _owned(self, collection: str, owner_id: str) -> list[dict]:
        return [r for r in await self._read(collection) if r["owner_id"] == owner_id]

    # Trades

    async def insert_trade(self, trade: Trade) -> Trade:
        async with self._lock:
            self._check_trade_keys(await self._read(TRADES), trade)
            await self._insert(TRADES, self._trade_to_dict(trade))
        return trade

    async def replace_trade(self, trade: Trade) -> Trade:
        async with self._lock:
            self._check_trade_keys(await self._read(TRADES), trade)
            await self._replace(TRADES, self._trade_to_dict(trade))
        return trade

    async def get_trade(self, owner_id: str, trade_id: str) -> Trade | None:
        row = await self._find(TRADES, owner_id, trade_id)
        return self._dict_to_trade(row) if row else None

    async def find_trade_by_ticket(
        self, owner_id: str, account_id: str, ticket: str
    ) -> Trade | None:
        for row in await self._owned(TRADES, owner_id):
            if (
                row.get("external_account_id") == account_id
                and row.get("external_ticket") == ticket
            ):
                return self._dict_to_trade(row)
        return None

    async def find_trade_by_external_id(
        self, owner_id: str, external_id: str
    ) -> Trade | None:
        for row in await self._owned(TRADES, owner_id):
            if row.get("external_id") == external_id:
                return self._dict_to_trade(row)
        return None

    async def list_trades(
        self, owner_id: str, trade_filter: TradeFilter | None = None
    ) -> list[Trade]:
        trades = [self._dict_to_trade(r) for r in await self._owned(TRADES, owner_id)]
        if trade_filter is not None:
            trades = [t for t in trades if trade_filter.matches(t)]
        return sorted(trades, key=lambda t: as_utc(t.trade_date), reverse=True)

    async def delete_trade(self, owner_id: str, trade_id: str) -> bool:
        return await self._delete(TRADES, owner_id, trade_id)

    async def detach_strategy(self, owner_id: str, strategy_id: str) -> int:
        async with self._lock:
            rows = await self._read(TRADES)
            detached = 0
            for row in rows:
                if row["owner_id"] == owner_id and row.get("strategy_id") == strategy_id:
                    row["strategy_id"] = None
                    detached += 1
            if detached:
                await self._write(TRADES, rows)
            return detached

    # Strategies

    async def insert_strategy(self, strategy: Strategy) -> Strategy:
        async with self._lock:
            self._check_strategy_keys(await self._read(STRATEGIES), strategy)
            await self._insert(STRATEGIES, self._strategy_to_dict(strategy))
        return strategy

    async def replace_strategy(self, strategy: Strategy) -> Strategy:
        async with self._lock:
            self._check_strategy_keys(await self._read(STRATEGIES), strategy)
            await self._replace(STRATEGIES, self._strategy_to_dict(strategy))
        return strategy

    async def get_strategy(self, owner_id: str, strategy_id: str) -> Strategy | None:
        row = await self._find(STRATEGIES, owner_id, strategy_id)
        return self._dict_to_strategy(row) if row else None

    async def find_strategy_by_name(
        self, owner_id: str, name: str, ignore_case: bool = False
    ) -> Strategy | None:
        wanted = name.lower() if ignore_case else name
        for row in await self._owned(STRATEGIES, owner_id):
            candidate = row["name"].lower() if ignore_case else row["name"]
            if candidate == wanted:
                return self._dict_to_strategy(row)
        return None

    async def list_strategies(self, owner_id: str) -> list[Strategy]:
        strategies = [self._dict_to_strategy(r) for r in await self._owned(STRATEGIES, owner_id)]
        return sorted(strategies, key=lambda s: s.name)

    async def delete_strategy(self, owner_id: str, strategy_id: str) -> bool:
        return await self._delete(STRATEGIES, owner_id, strategy_id)

    # Rules

    async def insert_rule(self, rule: TradingRule) -> TradingRule:
        async with self._lock:
            await self._insert(RULES, self._rule_to_dict(rule))
        return rule

    async def replace_rule(self, rule: TradingRule) -> TradingRule:
        async with self._lock:
            await self._replace(RULES, self._rule_to_dict(rule))
        return rule

    async def get_rule(self, owner_id: str, rule_id: str) -> TradingRule | None:
        row = await self._find(RULES, owner_id, rule_id)
        return self._dict_to_rule(row) if row else None

    async def list_rules(self, owner_id: str) -> list[TradingRule]:
        return [self._dict_to_rule(r) for r in await self._owned(RULES, owner_id)]

    async def delete_rule(self, owner_id: str, rule_id: str) -> bool:
        return await self._delete(RULES, owner_id, rule_id)

    # Sync API keys

    async def save_api_key(self, record: ApiKeyRecord) -> None:
        async with self._lock:
            rows: list[dict[str, Any]] = [
                r for r in await self._read(API_KEYS) if r["owner_id"] != record.owner_id
            ]
            rows.append(self._api_key_to_dict(record))
            await self._write(API_KEYS, rows)

    async def get_api_key(self, owner_id: str) -> ApiKeyRecord | None:
        for row in await self._read(API_KEYS):
            if row["owner_id"] == owner_id:
                return self._dict_to_api_key(row)
        return None

    async def find_api_key_by_hash(self, key_hash: str) -> ApiKeyRecord | None:
        for row in await self._read(API_KEYS):
            if row["key_hash"] == key_hash:
                return self._dict_to_api_key(row)
        return None
