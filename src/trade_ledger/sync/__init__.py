"""MT5 sync module for idempotent trade ingestion."""

from trade_ledger.sync.api_keys import ApiKeyManager, generate_api_key, hash_api_key
from trade_ledger.sync.models import ApiKeyStatus, SyncResult, SyncStatus, SyncTradeRecord
from trade_ledger.sync.settings import ApiKeyConfig, SyncSettings
from trade_ledger.sync.sync_pipeline import SyncPipeline

__all__ = [
    "ApiKeyConfig",
    "ApiKeyManager",
    "ApiKeyStatus",
    "SyncPipeline",
    "SyncResult",
    "SyncSettings",
    "SyncStatus",
    "SyncTradeRecord",
    "generate_api_key",
    "hash_api_key",
]
