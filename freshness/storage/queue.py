from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from redis import asyncio as redis
from redis.asyncio.client import Redis

from freshness.common import log_event
from freshness.forecast import Forecast

from .settings import QUEUE_SOURCE_REDIS, StorageSettings


def _records_from_payload(payload: Any, *, logger: logging.Logger, source: str) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        log_event(
            logger,
            level="warning",
            event="forecast_queue_invalid",
            message="Forecast queue is not a JSON array; treating it as empty",
            source=source,
            payload_type=type(payload).__name__,
        )
        return []

    records = [item for item in payload if isinstance(item, dict)]
    skipped = len(payload) - len(records)
    if skipped:
        log_event(
            logger,
            level="warning",
            event="forecast_queue_items_skipped",
            message="Skipped non-object forecast queue entries",
            source=source,
            skipped=skipped,
        )
    return records


def load_forecast_queue_file(path: str | Path, *, logger: logging.Logger) -> list[dict[str, Any]]:
    queue_path = Path(path)
    if not queue_path.exists():
        return []

    try:
        payload = json.loads(queue_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as error:
        log_event(
            logger,
            level="warning",
            event="forecast_queue_load_failed",
            message="Failed to load forecast queue; treating it as empty",
            path=str(queue_path),
            error=str(error),
        )
        return []

    return _records_from_payload(payload, logger=logger, source=str(queue_path))


class RedisForecastQueue:
    def __init__(self, settings: StorageSettings, logger: logging.Logger) -> None:
        self.settings = settings
        self._logger = logger
        self._redis: Redis | None = None

    async def connect(self) -> None:
        if self._redis is not None:
            return
        self._redis = redis.from_url(self.settings.redis_url, decode_responses=True)
        await self._redis.ping()
        log_event(
            self._logger,
            level="info",
            event="redis_connected",
            message="Connected to Redis",
        )

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _require_redis(self) -> Redis:
        if self._redis is None:
            raise RuntimeError("Redis client is not initialized.")
        return self._redis

    async def load(self) -> list[dict[str, Any]]:
        redis_client = self._require_redis()
        key = self.settings.redis_forecast_queue_key
        raw = await redis_client.get(key)
        if raw is None:
            return []

        try:
            payload = json.loads(raw)
        except ValueError as error:
            log_event(
                self._logger,
                level="warning",
                event="forecast_queue_load_failed",
                message="Failed to decode forecast queue from Redis; treating it as empty",
                key=key,
                error=str(error),
            )
            return []

        return _records_from_payload(payload, logger=self._logger, source=f"redis:{key}")


async def load_forecasts(
    settings: StorageSettings,
    *,
    logger: logging.Logger,
    redis_queue: RedisForecastQueue | None = None,
) -> list[Forecast]:
    if settings.forecast_queue_source == QUEUE_SOURCE_REDIS:
        if redis_queue is None:
            raise RuntimeError("FORECAST_QUEUE_SOURCE=redis requires a connected RedisForecastQueue.")
        records = await redis_queue.load()
    else:
        records = load_forecast_queue_file(settings.forecast_queue_path, logger=logger)

    return [Forecast.from_record(record) for record in records]
