# src/trade_ledger/sync/models.py
"""Data models for MT5 trade synchronisation."""
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trade_ledger.metrics.models import Market, TradeType


class SyncTradeRecord(BaseModel):
    """One closed position as posted by the MT5 terminal.

    Field aliases match the terminal's JSON payload. Account id and ticket
    arrive as numbers or strings and are stored as strings.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    account_id: str = Field(alias="accountId", min_length=1)
    ticket: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    side: str = Field(alias="type", min_length=1)
    volume: float
    entry_price: float = Field(alias="entryPrice")
    exit_price: float = Field(alias="exitPrice")
    profit: float
    executed_at: datetime = Field(alias="datetime")

    stop_loss: float | None = Field(default=None, alias="stopLoss")
    take_profit: float | None = Field(default=None, alias="takeProfit")
    comment: str = ""
    rr_ratio: float | None = Field(default=None, alias="rrRatio")
    broker: str = ""
    market: Market | None = None

    @field_validator("account_id", "ticket", mode="before")
    @classmethod
    def stringify_identifier(cls, v: object) -> object:
        """Accept numeric ids from the terminal."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v)) if float(v).is_integer() else str(v)
        return v

    @field_validator("market", mode="before")
    @classmethod
    def normalize_market(cls, v: object) -> object:
        """Accept market names in any letter case; empty means unset."""
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator("comment", "broker", mode="before")
    @classmethod
    def default_empty_text(cls, v: object) -> object:
        """Treat null text fields as empty."""
        return "" if v is None else v

    @property
    def trade_type(self) -> TradeType:
        """BUY when the terminal reports "buy" in any case, else SELL."""
        return TradeType.BUY if self.side.lower() == TradeType.BUY.value else TradeType.SELL


@dataclass
class SyncResult:
    """Counts reported back to the terminal after a sync batch.

    Attributes:
        created: Records inserted as new trades.
        updated: Records that overwrote an existing trade.
        total: Records submitted, including skipped invalid ones.
    """

    created: int
    updated: int
    total: int

    @property
    def skipped(self) -> int:
        """Records dropped because they were incomplete."""
        return self.total - self.created - self.updated


@dataclass
class SyncStatus:
    """Summary of an owner's synced trades."""

    total_trades: int
    last_sync_at: datetime | None
    last_trade_date: datetime | None


@dataclass
class ApiKeyStatus:
    """Whether an owner has a sync API key and when it was issued."""

    has_key: bool
    created_at: datetime | None
