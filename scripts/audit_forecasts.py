#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from freshness.bot_runtime import setup_logger
from freshness.forecast import (
    ForecastPolicy,
    build_audit_summary,
    evaluate_forecasts,
    format_audit_report,
    needs_recompute,
    now_epoch_ms,
)
from freshness.storage import (
    QUEUE_SOURCE_FILE,
    QUEUE_SOURCE_REDIS,
    RedisForecastQueue,
    StorageSettings,
    load_forecasts,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Classify queued forecasts as active or expired and print the reasons.",
    )
    parser.add_argument(
        "--source",
        choices=[QUEUE_SOURCE_FILE, QUEUE_SOURCE_REDIS],
        default=None,
        help="Forecast queue source (defaults to FORECAST_QUEUE_SOURCE).",
    )
    parser.add_argument(
        "--queue-path",
        default=None,
        help="Path to the JSON forecast queue (defaults to FORECAST_QUEUE_PATH).",
    )
    parser.add_argument("--limit", type=int, default=10, help="Rows to print per partition.")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, logger: logging.Logger) -> dict[str, object]:
    settings = StorageSettings.from_env()
    if args.source:
        settings.forecast_queue_source = args.source
    if args.queue_path:
        settings.forecast_queue_path = args.queue_path

    policy = ForecastPolicy.from_env()
    redis_queue: RedisForecastQueue | None = None
    if settings.forecast_queue_source == QUEUE_SOURCE_REDIS:
        redis_queue = RedisForecastQueue(settings, logger)
        await redis_queue.connect()

    try:
        forecasts = await load_forecasts(settings, logger=logger, redis_queue=redis_queue)
    finally:
        if redis_queue is not None:
            await redis_queue.close()

    evaluated = evaluate_forecasts(forecasts, policy, now_ms=now_epoch_ms())
    summary = build_audit_summary(evaluated, limit=args.limit)
    summary["recompute_keys"] = [item.key for item in evaluated if needs_recompute(item, policy=policy)]
    return summary


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    logger = setup_logger(logging.WARNING)

    summary = asyncio.run(run(args, logger))
    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2, default=str))
    else:
        print(format_audit_report(summary))
        if summary["recompute_keys"]:
            print(f"  recompute: {', '.join(summary['recompute_keys'][: args.limit])}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
