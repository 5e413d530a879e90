# src/trade_ledger/sync/settings.py
"""Settings for the MT5 sync module."""
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseModel):
    """Configuration settings for trade synchronisation.

    Attributes:
        enabled: Accept sync batches at all.
        evaluate_rules: Evaluate the owner's active rules on synced trades.
        max_batch_size: Largest batch accepted in one sync call.
    """

    enabled: bool = True
    evaluate_rules: bool = True
    max_batch_size: int = Field(default=1000, ge=1, le=10000)


class ApiKeyConfig(BaseSettings):
    """Secret used to hash sync API keys, read from LEDGER_API_KEY_SECRET."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    api_key_secret: str = ""
