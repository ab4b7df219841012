"""Main entry point for ZimEstimate MCP server."""

import asyncio
import logging
import sys
from pathlib import Path

from config import load_config, load_secrets
from mcp_server.server import create_server
from persistence import close_store, get_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)


async def main(config_dir: str | None = None) -> None:
    """Main entry point."""
    logger.info("Starting ZimEstimate MCP server...")

    # Load configuration
    try:
        cfg_path = Path(config_dir) if config_dir else None
        config = load_config(cfg_path)
        secrets = load_secrets(cfg_path)
        logger.info(f"Loaded config for: {config.name} (owner {config.owner_id})")
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    # Projects, drafts and scraped prices need the database
    store = None
    try:
        store = await get_store(config.storage.db_path)
    except Exception as e:
        logger.warning(f"Failed to open database, continuing with static prices only: {e}")

    server = create_server(config, secrets, store)

    try:
        logger.info("MCP server running...")
        await server.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        await server.close()
        await close_store()
        logger.info("Shutdown complete")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
