#!/usr/bin/env python3
"""
Command-line entry point

    order-sync sync --once [--since 2024-01-01]   run one cycle and exit
    order-sync sync                               run on SYNC_INTERVAL_MINUTES
    order-sync tags <order_id> --add X --remove Y
    order-sync retag <order_id>
    order-sync init-db
"""
import argparse
import asyncio
import sys
from typing import List, Optional

from dateutil import parser as date_parser
from pydantic import ValidationError

from order_sync.config import Settings, get_settings
from order_sync.context import SyncContext
from order_sync.models.base import init_db
from order_sync.scheduler import run_daemon
from order_sync.services.sync_service import OrderSyncService
from order_sync.utils.logger import log, setup_logger


def normalize_since(value: Optional[str]) -> Optional[str]:
    """Parse a loose date/time string into ISO-8601"""
    if not value:
        return None
    try:
        return date_parser.parse(value).isoformat()
    except (ValueError, OverflowError) as e:
        raise argparse.ArgumentTypeError(f"invalid --since value {value!r}: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="order-sync", description="Import tagged Shopify orders")
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Import tagged orders")
    sync.add_argument("--once", action="store_true", help="Run one cycle and exit")
    sync.add_argument("--since", type=normalize_since, default=None, help="Only orders created after this time")

    tags = commands.add_parser("tags", help="Add/remove tags on one order")
    tags.add_argument("order_id")
    tags.add_argument("--add", action="append", default=[], metavar="TAG")
    tags.add_argument("--remove", action="append", default=[], metavar="TAG")

    retag = commands.add_parser("retag", help="Swap the import tag for the processed tag")
    retag.add_argument("order_id")

    commands.add_parser("init-db", help="Create record store tables")

    return parser


async def _sync(context: SyncContext, once: bool, since: Optional[str]) -> int:
    init_db(context.session_factory.kw["bind"])
    service = OrderSyncService(context)
    if once:
        result = await service.run_once(since=since)
        log.bind(run_id=result.run_id).info(
            f"Imported {result.successful_imports}, failed {result.failed_imports}, "
            f"skipped {result.skipped_orders} of {result.total_orders} orders"
        )
        return 0

    await run_daemon(service, context.settings.sync_interval_minutes, since=since)
    return 0


async def _tags(context: SyncContext, order_id: str, add: List[str], remove: List[str]) -> int:
    new_tags = await context.shopify.change_tags(order_id, add=add, remove=remove)
    log.bind(shopify_id=order_id, tags=new_tags).info(f"Updated order tags: {', '.join(new_tags)}")
    return 0


async def _retag(context: SyncContext, order_id: str) -> int:
    settings = context.settings
    new_tags = await context.shopify.retag_order(
        order_id, settings.shopify_import_tag, settings.shopify_processed_tag
    )
    log.bind(shopify_id=order_id, tags=new_tags).info(f"Retagged order: {', '.join(new_tags)}")
    return 0


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    context = SyncContext.from_settings(settings)
    try:
        if args.command == "sync":
            return await _sync(context, args.once, args.since)
        if args.command == "tags":
            return await _tags(context, args.order_id, args.add, args.remove)
        if args.command == "retag":
            return await _retag(context, args.order_id)
        if args.command == "init-db":
            init_db(context.session_factory.kw["bind"])
            log.info("Database tables ready")
            return 0
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await context.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 1

    setup_logger(settings)

    try:
        return asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        log.info("Interrupted")
        return 130
    except Exception as e:
        log.bind(error=str(e)).exception(f"{args.command} failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
