from __future__ import annotations

import asyncio
import logging
from typing import Any

from freshness.common import guarded_call, log_event, retry_async, wait_with_stop
from freshness.forecast import (
    ForecastPolicy,
    build_audit_summary,
    evaluate_forecasts,
    needs_recompute,
)
from freshness.rpc import BlockhashCache, ConnectionManager, ValidityToken
from freshness.storage import QUEUE_SOURCE_REDIS, RedisForecastQueue, StorageSettings, load_forecasts

from .settings import AppSettings


async def bootstrap_dependencies(
    *,
    logger: logging.Logger,
    stop_event: asyncio.Event,
    app_settings: AppSettings,
    storage_settings: StorageSettings,
    connections: ConnectionManager,
    redis_queue: RedisForecastQueue | None,
) -> None:
    while not stop_event.is_set():
        try:
            await connections.connect()
            if redis_queue is not None and storage_settings.forecast_queue_source == QUEUE_SOURCE_REDIS:
                await redis_queue.connect()
            return
        except Exception as error:
            log_event(
                logger,
                level="exception",
                event="bootstrap_error",
                message="Dependency bootstrap failed",
                error=str(error),
            )
            await guarded_call(
                connections.close,
                logger=logger,
                event="bootstrap_connections_close_failed",
                message="Failed to close RPC endpoints during bootstrap retry",
            )
            if redis_queue is not None:
                await guarded_call(
                    redis_queue.close,
                    logger=logger,
                    event="bootstrap_redis_close_failed",
                    message="Failed to close Redis during bootstrap retry",
                )

            await wait_with_stop(stop_event, app_settings.error_backoff_seconds)

    raise RuntimeError("Shutdown requested before dependencies were initialized.")


async def warm_blockhash(
    *,
    logger: logging.Logger,
    app_settings: AppSettings,
    blockhash_cache: BlockhashCache,
) -> ValidityToken:
    return await retry_async(
        blockhash_cache.get_fresh,
        logger=logger,
        event="blockhash_fetch",
        attempts=app_settings.blockhash_retry_attempts,
        backoff_seconds=app_settings.blockhash_retry_backoff_seconds,
    )


async def run_forecast_audit(
    *,
    logger: logging.Logger,
    storage_settings: StorageSettings,
    policy: ForecastPolicy,
    redis_queue: RedisForecastQueue | None = None,
    row_limit: int = 10,
) -> dict[str, Any]:
    forecasts = await load_forecasts(storage_settings, logger=logger, redis_queue=redis_queue)
    evaluated = evaluate_forecasts(forecasts, policy)
    summary = build_audit_summary(evaluated, limit=row_limit)
    recompute_keys = [item.key for item in evaluated if needs_recompute(item, policy=policy)]

    log_event(
        logger,
        level="info",
        event="forecast_audit_summary",
        message="Forecast audit completed",
        total=summary["total"],
        active=summary["active"],
        expired=summary["expired"],
        reason_counts=summary["reason_counts"],
        recompute_count=len(recompute_keys),
        recompute_keys=recompute_keys[:row_limit],
    )
    return summary


async def run_freshness_loop(
    *,
    logger: logging.Logger,
    stop_event: asyncio.Event,
    app_settings: AppSettings,
    storage_settings: StorageSettings,
    policy: ForecastPolicy,
    connections: ConnectionManager,
    blockhash_cache: BlockhashCache,
    redis_queue: RedisForecastQueue | None = None,
) -> None:
    loop = asyncio.get_running_loop()
    interval = app_settings.probe_interval_seconds
    next_tick = loop.time()
    next_audit = loop.time()
    failed = False

    while not stop_event.is_set():
        try:
            failed = False
            await connections.refresh_latencies()
            selected = connections.select()
            token = await warm_blockhash(
                logger=logger,
                app_settings=app_settings,
                blockhash_cache=blockhash_cache,
            )
            log_event(
                logger,
                level="info",
                event="freshness_tick",
                message="Endpoint and blockhash state refreshed",
                selected_endpoint=selected.name,
                latencies=connections.latencies(),
                last_valid_block_height=token.last_valid_block_height,
            )

            if loop.time() >= next_audit:
                await run_forecast_audit(
                    logger=logger,
                    storage_settings=storage_settings,
                    policy=policy,
                    redis_queue=redis_queue,
                    row_limit=app_settings.audit_row_limit,
                )
                next_audit = loop.time() + app_settings.audit_interval_seconds
        except Exception as error:
            failed = True
            log_event(
                logger,
                level="exception",
                event="freshness_loop_error",
                message="Freshness cycle failed",
                error=str(error),
            )
        finally:
            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                missed_cycles = int((now - next_tick) / interval) + 1
                next_tick += missed_cycles * interval

            delay_seconds = max(0.0, next_tick - now)
            if failed:
                delay_seconds = max(delay_seconds, app_settings.error_backoff_seconds)

            await wait_with_stop(stop_event, delay_seconds)
