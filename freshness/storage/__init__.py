from .queue import RedisForecastQueue, load_forecast_queue_file, load_forecasts
from .settings import QUEUE_SOURCE_FILE, QUEUE_SOURCE_REDIS, StorageSettings

__all__ = [
    "QUEUE_SOURCE_FILE",
    "QUEUE_SOURCE_REDIS",
    "RedisForecastQueue",
    "StorageSettings",
    "load_forecast_queue_file",
    "load_forecasts",
]
