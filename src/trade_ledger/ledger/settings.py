# src/trade_ledger/ledger/settings.py
"""Settings for the ledger module."""
from pydantic import BaseModel, field_validator

from trade_ledger.metrics.models import Market


class LedgerSettings(BaseModel):
    """Configuration settings for the trade ledger.

    Attributes:
        data_dir: Directory holding the ledger JSON files.
        default_market: Market assigned when a record does not name one.
        evaluate_rules_on_create: Evaluate active rules on manual create,
            edit and import.
    """

    data_dir: str = "data/ledger"
    default_market: Market = Market.FOREX
    evaluate_rules_on_create: bool = True

    @field_validator("default_market", mode="before")
    @classmethod
    def normalize_market(cls, v: object) -> object:
        """Accept market names in any letter case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v
