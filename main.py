# main.py

"""Entry point for the stock_monitor price and stock watcher."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("stock_monitor.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    return argparse.ArgumentParser(
        prog="stock_monitor",
        description=(
            "Re-scrape every product in a storefront sitemap, record "
            "price and stock changes, and post alerts to Discord."
        ),
        epilog=(
            "Configured through the environment (or .env): "
            "SITEMAP_URL (required), DISCORD_WEBHOOK_URL, "
            "MONITOR_DB_PATH."
        ),
    )


def main() -> None:
    """Run a single monitoring pass and exit with its status code."""
    _build_parser().parse_args()

    log_file = setup_logging()
    logger.info("stock_monitor starting — log file: %s", log_file)

    from src.cli.runner import run_monitor

    try:
        exit_code = asyncio.run(run_monitor())
    except Exception:
        logger.critical("Fatal error during monitor run", exc_info=True)
        raise
    finally:
        logger.info("stock_monitor shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
