# src/trade_ledger/ledger/store.py
from abc import ABC, abstractmethod

from trade_ledger.ledger.models import ApiKeyRecord, Strategy, Trade, TradeFilter
from trade_ledger.rules.models import TradingRule


class LedgerStore(ABC):
    """Abstract persistence interface for the ledger.

    Implementations must enforce, at write time:
        - (owner_id, external_id) unique when external_id is set, except
          between two MT5 trades
        - (owner_id, external_account_id, external_ticket) unique for MT5 trades
        - (owner_id, name) unique for strategies
    and raise DuplicateKeyError when a write would break one of them.
    """

    # Trades

    @abstractmethod
    async def insert_trade(self, trade: Trade) -> Trade:
        """Insert a new trade."""
        pass

    @abstractmethod
    async def replace_trade(self, trade: Trade) -> Trade:
        """Overwrite an existing trade with the same id.

        Raises:
            NotFoundError: If no trade has this id for the owner.
        """
        pass

    @abstractmethod
    async def get_trade(self, owner_id: str, trade_id: str) -> Trade | None:
        pass

    @abstractmethod
    async def find_trade_by_ticket(
        self, owner_id: str, account_id: str, ticket: str
    ) -> Trade | None:
        """Find an MT5 trade by its external account and ticket."""
        pass

    @abstractmethod
    async def find_trade_by_external_id(
        self, owner_id: str, external_id: str
    ) -> Trade | None:
        pass

    @abstractmethod
    async def list_trades(
        self, owner_id: str, trade_filter: TradeFilter | None = None
    ) -> list[Trade]:
        """List an owner's trades, newest trade_date first."""
        pass

    @abstractmethod
    async def delete_trade(self, owner_id: str, trade_id: str) -> bool:
        pass

    @abstractmethod
    async def detach_strategy(self, owner_id: str, strategy_id: str) -> int:
        """Clear strategy_id on every trade linked to a strategy.

        Returns:
            Number of trades updated.
        """
        pass

    # Strategies

    @abstractmethod
    async def insert_strategy(self, strategy: Strategy) -> Strategy:
        pass

    @abstractmethod
    async def replace_strategy(self, strategy: Strategy) -> Strategy:
        pass

    @abstractmethod
    async def get_strategy(self, owner_id: str, strategy_id: str) -> Strategy | None:
        pass

    @abstractmethod
    async def find_strategy_by_name(
        self, owner_id: str, name: str, ignore_case: bool = False
    ) -> Strategy | None:
        pass

    @abstractmethod
    async def list_strategies(self, owner_id: str) -> list[Strategy]:
        """List an owner's strategies ordered by name."""
        pass

    @abstractmethod
    async def delete_strategy(self, owner_id: str, strategy_id: str) -> bool:
        pass

    # Rules

    @abstractmethod
    async def insert_rule(self, rule: TradingRule) -> TradingRule:
        pass

    @abstractmethod
    async def replace_rule(self, rule: TradingRule) -> TradingRule:
        pass

    @abstractmethod
    async def get_rule(self, owner_id: str, rule_id: str) -> TradingRule | None:
        pass

    @abstractmethod
    async def list_rules(self, owner_id: str) -> list[TradingRule]:
        """List an owner's rules in creation order."""
        pass

    @abstractmethod
    async def delete_rule(self, owner_id: str, rule_id: str) -> bool:
        pass

    # Sync API keys

    @abstractmethod
    async def save_api_key(self, record: ApiKeyRecord) -> None:
        """Store the owner's API key hash, replacing any previous one."""
        pass

    @abstractmethod
    async def get_api_key(self, owner_id: str) -> ApiKeyRecord | None:
        pass

    @abstractmethod
    async def find_api_key_by_hash(self, key_hash: str) -> ApiKeyRecord | None:
        pass
