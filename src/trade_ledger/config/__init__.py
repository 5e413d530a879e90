from trade_ledger.config.settings import Settings, SystemConfig

__all__ = ["Settings", "SystemConfig"]
