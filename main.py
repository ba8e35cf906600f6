"""
tscache - Main Entry Point

Usage:
    python main.py --env dev              # Development mode
    python main.py --env prod             # Production mode
    python main.py --port 8080            # Override listen port
    python main.py --config-dir ./config  # Custom config directory
"""

from __future__ import annotations
import asyncio
import argparse
import sys

import uvicorn

from config.config_manager import ConfigManager
from tscache.bootstrap import build_services
from tscache.domain.exceptions import FatalError
from tscache.utils.logging_setup import get_logger, set_log_timezone, setup_category_logging, shutdown_logging


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Cached range queries over an upstream time-series provider",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --env dev
  python main.py --env prod --port 8080
  PORT=8080 python main.py
        """
    )

    parser.add_argument(
        "--env",
        type=str,
        default="dev",
        choices=["dev", "prod"],
        help="Environment to run in (default: dev)"
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        default=None,
        help="Directory holding base.yaml and environment overrides"
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Bind address (overrides server.host)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listen port (overrides server.port and $PORT)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level for all categories)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set log level (overrides logging.level, ignored if --verbose is set)"
    )

    return parser.parse_args()


async def main_async(args: argparse.Namespace) -> None:
    """Load config, set up logging, build services and serve until stopped."""
    if args.config_dir:
        config_manager = ConfigManager(config_dir=args.config_dir, env=args.env)
    else:
        config_manager = ConfigManager(env=args.env)
    config = config_manager.load()

    log_tz = config.logging.timezone
    set_log_timezone(None if not log_tz or log_tz.lower() == "local" else log_tz)

    setup_category_logging(
        env=args.env,
        log_dir=config.logging.dir or None,
        level=args.log_level or config.logging.level,
        console=config.logging.console,
        verbose=args.verbose,
    )
    logger = get_logger(__name__)

    host = args.host or config.server.host
    port = args.port or config.server.port

    services = build_services(config)
    logger.info(f"Starting tscache ({args.env}) on {host}:{port}, upstream {config.upstream.base_url}")

    server = uvicorn.Server(
        uvicorn.Config(services.app, host=host, port=port, log_config=None)
    )
    try:
        await server.serve()
    finally:
        logger.info("Server is shut down")
        shutdown_logging()


def main() -> None:
    """Main entry point."""
    args = parse_args()

    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        print("Shutdown requested")
        sys.exit(0)
    except (FatalError, FileNotFoundError) as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
