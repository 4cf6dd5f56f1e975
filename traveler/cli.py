"""
Traveler CLI

Commands:
  run       Fetch sources, select items, and write to Rote
  webhook   Serve the webhook-to-notes endpoint
  receiver  Serve the passive receiver (relays to OpenClaw)

Exit codes: 0 success, 1 run finished with failures, 2 configuration error.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .common.config import DEFAULT_CONFIG_PATH, TravelerConfig, load_config, load_receiver_config
from .common.errors import ConfigurationError
from .common.rote_client import RoteClient
from .curator.dedupe import SeenStore
from .curator.pipeline import RunReport, run_once

logger = logging.getLogger("traveler.cli")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="traveler", description="Traveler: interest-filtered notes for Rote.")
    parser.add_argument(
        "--log-level",
        default=os.getenv("TRAVELER_LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO or $TRAVELER_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Fetch sources, select items, and write to Rote")
    run_parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config path")
    run_parser.add_argument("--dry-run", action="store_true", help="Select and log, write nothing")

    webhook_parser = subparsers.add_parser("webhook", help="Serve the webhook-to-notes endpoint")
    webhook_parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config path")
    webhook_parser.add_argument("--host", default="0.0.0.0", help="Bind address")

    subparsers.add_parser("receiver", help="Serve the passive receiver (configured by environment)")
    return parser


async def _run(config: TravelerConfig, dry_run: bool) -> RunReport:
    note_client = None
    if not dry_run and config.rote.enabled:
        note_client = RoteClient.from_config(config.api, timeout=config.http_timeout)
    try:
        return await run_once(
            config,
            note_client=note_client,
            store=SeenStore(config.state_path),
            dry_run=dry_run,
        )
    finally:
        if note_client is not None:
            await note_client.close()


def cmd_run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    report = asyncio.run(_run(config, args.dry_run))

    logger.info(
        "Run finished: fetched=%d selected=%d written=%d failed_sources=%d failed_notes=%d",
        report.fetched, len(report.selected), len(report.written),
        len(report.failed_sources), len(report.failed_urls),
    )
    return 0 if report.ok else 1


def cmd_webhook(args: argparse.Namespace) -> int:
    import uvicorn

    from .ingress.webhook_server import create_webhook_app

    config = load_config(args.config)
    note_client = RoteClient.from_config(config.api, timeout=config.http_timeout)
    app = create_webhook_app(config, note_client)

    logger.info("Webhook server listening on http://%s:%d%s", args.host, config.webhook.port, config.webhook.path)
    uvicorn.run(app, host=args.host, port=config.webhook.port)
    return 0


def cmd_receiver(args: argparse.Namespace) -> int:
    import uvicorn

    from .ingress.receiver import create_receiver_app

    config = load_receiver_config()
    app = create_receiver_app(config)

    logger.info("traveler-receiver listening on http://%s:%d%s", config.host, config.port, config.path)
    uvicorn.run(app, host=config.host, port=config.port)
    return 0


COMMANDS = {
    "run": cmd_run,
    "webhook": cmd_webhook,
    "receiver": cmd_receiver,
}


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=str(args.log_level).upper(), format=LOG_FORMAT)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
