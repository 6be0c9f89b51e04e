from __future__ import annotations

import asyncio
import contextlib
import signal

from dotenv import load_dotenv

from freshness.bot_runtime import (
    AppSettings,
    bootstrap_dependencies,
    run_freshness_loop,
    setup_logger,
)
from freshness.common import guarded_call, log_event
from freshness.forecast import ForecastPolicy
from freshness.rpc import BlockhashCache, ConnectionManager, SlotStream
from freshness.storage import QUEUE_SOURCE_REDIS, RedisForecastQueue, StorageSettings


async def main() -> None:
    load_dotenv()
    logger = setup_logger()

    app_settings = AppSettings.from_env()
    storage_settings = StorageSettings.from_env()
    policy = ForecastPolicy.from_env()

    connections = ConnectionManager.from_urls(
        logger=logger,
        primary_url=app_settings.rpc_primary,
        secondary_url=app_settings.rpc_secondary or None,
        primary_ws_url=app_settings.rpc_primary_ws or None,
        secondary_ws_url=app_settings.rpc_secondary_ws or None,
        timeout_seconds=app_settings.rpc_timeout_seconds,
    )
    blockhash_cache = BlockhashCache(
        logger=logger,
        connections=connections,
        safety_blocks=app_settings.blockhash_safety_blocks,
    )
    redis_queue: RedisForecastQueue | None = None
    if storage_settings.forecast_queue_source == QUEUE_SOURCE_REDIS:
        redis_queue = RedisForecastQueue(storage_settings, logger)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(sig: signal.Signals) -> None:
        log_event(
            logger,
            level="info",
            event="shutdown_signal_received",
            message="Shutdown signal received",
            signal=sig.name,
        )
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, request_shutdown, sig)

    await bootstrap_dependencies(
        logger=logger,
        stop_event=stop_event,
        app_settings=app_settings,
        storage_settings=storage_settings,
        connections=connections,
        redis_queue=redis_queue,
    )

    slot_stream: SlotStream | None = None
    slot_stream_task: asyncio.Task[None] | None = None
    ws_url = connections.primary.ws_url
    if app_settings.slot_stream_enabled and ws_url:
        slot_stream = SlotStream(logger=logger, ws_url=ws_url)
        slot_stream_task = asyncio.create_task(slot_stream.run(stop_event))

    log_event(
        logger,
        level="info",
        event="freshness_started",
        message="Freshness monitor started",
        primary=connections.primary.label,
        secondary=connections.secondary.label if connections.secondary else None,
        safety_blocks=blockhash_cache.safety_blocks,
        forecast_queue_source=storage_settings.forecast_queue_source,
        slot_stream_enabled=slot_stream is not None,
    )

    try:
        await run_freshness_loop(
            logger=logger,
            stop_event=stop_event,
            app_settings=app_settings,
            storage_settings=storage_settings,
            policy=policy,
            connections=connections,
            blockhash_cache=blockhash_cache,
            redis_queue=redis_queue,
        )
    finally:
        if slot_stream is not None:
            await guarded_call(
                slot_stream.close,
                logger=logger,
                event="slot_stream_close_failed",
                message="Failed to close slot stream",
            )
        if slot_stream_task is not None:
            slot_stream_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await slot_stream_task
        await connections.close()
        if redis_queue is not None:
            await guarded_call(
                redis_queue.close,
                logger=logger,
                event="redis_close_failed",
                message="Failed to close Redis",
            )

        log_event(logger, level="info", event="shutdown_completed", message="Shutdown completed")


if __name__ == "__main__":
    asyncio.run(main())
