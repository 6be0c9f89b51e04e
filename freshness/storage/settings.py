from __future__ import annotations

import os
from dataclasses import dataclass

QUEUE_SOURCE_FILE = "file"
QUEUE_SOURCE_REDIS = "redis"


def normalize_queue_source(value: str | None) -> str:
    source = (value or "").strip().lower()
    if source in {QUEUE_SOURCE_FILE, QUEUE_SOURCE_REDIS}:
        return source
    return QUEUE_SOURCE_FILE


@dataclass(slots=True)
class StorageSettings:
    forecast_queue_source: str
    forecast_queue_path: str
    redis_url: str
    redis_forecast_queue_key: str

    @classmethod
    def from_env(cls) -> "StorageSettings":
        return cls(
            forecast_queue_source=normalize_queue_source(os.getenv("FORECAST_QUEUE_SOURCE")),
            forecast_queue_path=os.getenv("FORECAST_QUEUE_PATH", "").strip()
            or os.path.join("data", "tx_queue.json"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            redis_forecast_queue_key=os.getenv("REDIS_FORECAST_QUEUE_KEY", "forecast:queue"),
        )
