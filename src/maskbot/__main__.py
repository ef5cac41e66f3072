"""maskbot entry point.

Changes:
  - 2026-10-14: Added --log-level flag.
  - 2026-10-11: Bot and OAuth2 callback server run in one process.
"""

import argparse
import asyncio
import logging
from importlib.metadata import version as get_version

from maskbot.app import build_app
from maskbot.config import get_settings
from maskbot.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="maskbot - Fastmail masked emails from Telegram",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  maskbot                            Run the bot and the callback server on :8080
  maskbot --port 9000                Serve the OAuth2 callback on another port
  maskbot --log-level DEBUG          Verbose logging
""",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=settings.http_host,
        help=f"Host to bind the callback server (default: {settings.http_host})",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=settings.http_port,
        help=f"Port for the callback server (default: {settings.http_port})",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {get_version('maskbot')}",
    )
    args = parser.parse_args()

    setup_logging(level=args.log_level)
    settings = settings.model_copy(update={"http_host": args.host, "http_port": args.port})

    try:
        app = build_app(settings)
    except ValueError as e:
        logger.error("%s", e)
        raise SystemExit(2)

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
