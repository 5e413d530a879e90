# src/trade_ledger/ledger/schemas.py
"""Input schemas for manual trade entry, edits and imports."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trade_ledger.metrics.models import Market, TradeType


def _lowercase(v: object) -> object:
    if isinstance(v, str):
        return v.strip().lower()
    return v


class TradeInput(BaseModel):
    """Fields accepted when a user enters a trade by hand."""

    model_config = ConfigDict(str_strip_whitespace=True)

    asset: str = Field(min_length=1)
    market: Market | None = None
    trade_type: TradeType
    entry_price: float
    exit_price: float
    position_size: float
    stop_loss: float | None = None
    take_profit: float | None = None
    trade_date: datetime
    notes: str = ""
    images: list[str] = Field(default_factory=list)
    strategy_id: str | None = None
    external_id: str | None = None

    @field_validator("market", "trade_type", mode="before")
    @classmethod
    def normalize_enums(cls, v: object) -> object:
        """Accept enum values in any letter case."""
        return _lowercase(v)


class TradeUpdate(BaseModel):
    """Partial update of a trade; only fields that were sent are applied.

    An explicit None for stop_loss or take_profit clears the level, and a
    None or empty strategy_id unlinks the strategy.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    asset: str | None = Field(default=None, min_length=1)
    market: Market | None = None
    trade_type: TradeType | None = None
    entry_price: float | None = None
    exit_price: float | None = None
    position_size: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    trade_date: datetime | None = None
    notes: str | None = None
    images: list[str] | None = None
    strategy_id: str | None = None

    @field_validator("market", "trade_type", mode="before")
    @classmethod
    def normalize_enums(cls, v: object) -> object:
        """Accept enum values in any letter case."""
        return _lowercase(v)


class ImportRow(BaseModel):
    """One row of a CSV import, already parsed into a mapping.

    Rows may carry their own profit/loss, which is then taken as-is, and
    may name a strategy, which is resolved case-insensitively.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    asset: str = Field(min_length=1)
    market: Market | None = None
    trade_type: TradeType = TradeType.BUY
    entry_price: float
    exit_price: float
    position_size: float
    stop_loss: float | None = None
    take_profit: float | None = None
    profit_loss: float | None = None
    trade_date: datetime | None = None
    notes: str = ""
    strategy: str | None = None

    @field_validator("market", "trade_type", mode="before")
    @classmethod
    def normalize_enums(cls, v: object) -> object:
        """Accept enum values in any letter case."""
        return _lowercase(v)

    @field_validator("entry_price", "exit_price", "position_size")
    @classmethod
    def require_nonzero(cls, v: float) -> float:
        """Reject zero prices and sizes, which mark an empty CSV cell."""
        if v == 0:
            raise ValueError("must be non-zero")
        return v
