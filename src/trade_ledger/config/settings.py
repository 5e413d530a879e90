# src/trade_ledger/config/settings.py
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from trade_ledger.ledger.settings import LedgerSettings
from trade_ledger.sync.settings import ApiKeyConfig, SyncSettings


class SystemConfig(BaseModel):
    name: str = "Trade Ledger"
    version: str = "1.0.0"


class Settings(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    api_keys: ApiKeyConfig = Field(default_factory=ApiKeyConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file with env var overrides."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        data.pop("api_keys", None)
        api_keys = ApiKeyConfig()

        return cls(
            **data,
            api_keys=api_keys,
        )
