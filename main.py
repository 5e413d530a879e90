# main.py
"""Main entry point for the trade ledger."""
import argparse
import asyncio
import json
import sys
import logging
from pathlib import Path

import aiofiles
from dotenv import load_dotenv

from trade_ledger.config.settings import Settings
from trade_ledger.ledger import JsonLedgerStore, TradeManager
from trade_ledger.rules.rule_engine import RuleEngine
from trade_ledger.stats.models import TradeStatistics
from trade_ledger.sync import SyncPipeline, SyncResult


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def create_data_dirs(settings: Settings) -> None:
    """Create the ledger data directory if it doesn't exist."""
    Path(settings.ledger.data_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Data directories verified")


def print_startup_banner(settings: Settings) -> None:
    """Print system startup banner."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.system.name}")
    logger.info(f"Version: {settings.system.version}")
    logger.info("=" * 60)


def load_and_validate_config() -> Settings:
    """Load and validate configuration.

    Returns:
        Settings object loaded from YAML.

    Raises:
        SystemExit: If config file missing or YAML parsing fails.
    """
    # Load environment variables
    load_dotenv()
    logger.info("✓ Loaded environment variables")

    # Check settings.yaml exists
    config_path = Path("config/settings.yaml")
    if not config_path.exists():
        logger.error("config/settings.yaml not found")
        sys.exit(1)

    # Load settings
    try:
        settings = Settings.from_yaml(config_path)
        logger.info("✓ Settings loaded from config/settings.yaml")
    except Exception as e:
        logger.error(f"Failed to parse settings.yaml: {e}")
        sys.exit(1)

    if not settings.api_keys.api_key_secret:
        logger.warning("LEDGER_API_KEY_SECRET not set - sync API keys are unavailable")

    # Create data directories
    create_data_dirs(settings)

    return settings


def initialize_components(settings: Settings) -> dict:
    """Initialize the store, trade manager and sync pipeline.

    Args:
        settings: Loaded settings object.

    Returns:
        Dict with: store, trades, sync.
    """
    store = JsonLedgerStore(settings=settings.ledger)
    rule_engine = RuleEngine()

    trade_manager = TradeManager(
        store=store,
        settings=settings.ledger,
        rule_engine=rule_engine,
    )
    logger.info("✓ TradeManager initialized")

    sync_pipeline = SyncPipeline(
        store=store,
        settings=settings.sync,
        rule_engine=rule_engine,
    )
    logger.info("✓ SyncPipeline initialized")

    return {
        "store": store,
        "trades": trade_manager,
        "sync": sync_pipeline,
    }


async def load_sync_file(path: Path) -> list:
    """Read the `trades` array from an MT5 export file.

    Raises:
        SystemExit: If the file is missing or not a sync payload.
    """
    if not path.exists():
        logger.error(f"{path} not found")
        sys.exit(1)

    async with aiofiles.open(path, "r") as f:
        content = await f.read()

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse {path}: {e}")
        sys.exit(1)

    trades = payload.get("trades") if isinstance(payload, dict) else None
    if not isinstance(trades, list):
        logger.error(f"{path} has no 'trades' array")
        sys.exit(1)
    return trades


async def run_sync(components: dict, owner_id: str, path: Path) -> SyncResult:
    """Ingest an MT5 export file for an owner."""
    records = await load_sync_file(path)
    result = await components["sync"].ingest(owner_id, records)
    logger.info(
        f"Sync complete: {result.created} created, {result.updated} updated, "
        f"{result.total} total"
    )
    return result


async def run_stats(components: dict, owner_id: str) -> TradeStatistics:
    """Log aggregate statistics for an owner."""
    stats = await components["trades"].statistics(owner_id)
    summary = stats.summary

    logger.info(f"Trades: {summary.total_trades} ({summary.total_wins}W / {summary.total_losses}L)")
    logger.info(f"Win rate: {summary.win_rate:.1f}%")
    logger.info(f"Total P/L: {summary.total_profit_loss:,.2f}")
    logger.info(f"Avg win: {summary.avg_win:,.2f} | Avg loss: {summary.avg_loss:,.2f}")
    logger.info(f"Avg RR: {summary.avg_rr:.2f}")
    for month in stats.monthly_pnl:
        logger.info(f"  {month.name}: {month.value:,.2f}")
    for asset in stats.asset_performance:
        logger.info(f"  {asset.name}: {asset.value:,.2f}")
    return stats


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Trade ledger: MT5 sync and portfolio statistics",
    )
    parser.add_argument("--owner", required=True, help="Owner id the command runs for")

    commands = parser.add_subparsers(dest="command", required=True)

    sync_parser = commands.add_parser("sync", help="Ingest an MT5 export file")
    sync_parser.add_argument("file", type=Path, help="JSON file with a 'trades' array")

    commands.add_parser("stats", help="Print aggregate statistics")

    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    """Run one ledger command."""
    args = parse_args(argv)

    settings = load_and_validate_config()
    print_startup_banner(settings)

    components = initialize_components(settings)

    if args.command == "sync":
        await run_sync(components, args.owner, args.file)
    else:
        await run_stats(components, args.owner)


if __name__ == "__main__":
    asyncio.run(main())
