from __future__ import annotations

import json
import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock

from freshness.storage import (
    QUEUE_SOURCE_FILE,
    QUEUE_SOURCE_REDIS,
    RedisForecastQueue,
    StorageSettings,
    load_forecast_queue_file,
    load_forecasts,
)


def _settings(*, source: str, path: str = "missing.json") -> StorageSettings:
    return StorageSettings(
        forecast_queue_source=source,
        forecast_queue_path=path,
        redis_url="redis://localhost:6379/0",
        redis_forecast_queue_key="forecast:queue",
    )


class ForecastQueueFileTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.logger = logging.getLogger("test.queue")
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, content: str) -> Path:
        path = self.tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    async def test_missing_file_is_empty_queue(self) -> None:
        records = load_forecast_queue_file(self.tmp_path / "nope.json", logger=self.logger)

        self.assertEqual(records, [])

    async def test_malformed_json_is_empty_queue(self) -> None:
        path = self._write("queue.json", "{not json")

        with self.assertLogs("test.queue", level="WARNING"):
            records = load_forecast_queue_file(path, logger=self.logger)

        self.assertEqual(records, [])

    async def test_non_array_payload_is_empty_queue(self) -> None:
        path = self._write("queue.json", json.dumps({"key": "obl-1"}))

        with self.assertLogs("test.queue", level="WARNING"):
            records = load_forecast_queue_file(path, logger=self.logger)

        self.assertEqual(records, [])

    async def test_non_object_entries_are_skipped(self) -> None:
        path = self._write("queue.json", json.dumps([{"key": "obl-1"}, 5, "x"]))

        with self.assertLogs("test.queue", level="WARNING"):
            records = load_forecast_queue_file(path, logger=self.logger)

        self.assertEqual(records, [{"key": "obl-1"}])

    async def test_load_forecasts_from_file(self) -> None:
        path = self._write(
            "queue.json",
            json.dumps(
                [
                    {"key": "obl-1", "ev": 10, "hazard": 0.5, "ttlStr": "5m", "forecastUpdatedAtMs": 1000},
                    {"obligationPubkey": "obl-2", "ev": "3.5", "ttlMin": 12, "createdAtMs": 2000},
                ]
            ),
        )

        forecasts = await load_forecasts(_settings(source=QUEUE_SOURCE_FILE, path=str(path)), logger=self.logger)

        self.assertEqual([forecast.key for forecast in forecasts], ["obl-1", "obl-2"])
        self.assertEqual(forecasts[0].ttl_str, "5m")
        self.assertEqual(forecasts[1].ev, 3.5)
        self.assertEqual(forecasts[1].ttl_min, 12.0)


class RedisForecastQueueTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.logger = logging.getLogger("test.queue.redis")
        self.settings = _settings(source=QUEUE_SOURCE_REDIS)

    async def test_loads_json_array_from_key(self) -> None:
        queue = RedisForecastQueue(self.settings, self.logger)
        queue._redis = AsyncMock()
        queue._redis.get.return_value = json.dumps([{"key": "obl-1", "ev": 4}])

        forecasts = await load_forecasts(self.settings, logger=self.logger, redis_queue=queue)

        queue._redis.get.assert_awaited_once_with("forecast:queue")
        self.assertEqual(len(forecasts), 1)
        self.assertEqual(forecasts[0].ev, 4.0)

    async def test_missing_key_is_empty_queue(self) -> None:
        queue = RedisForecastQueue(self.settings, self.logger)
        queue._redis = AsyncMock()
        queue._redis.get.return_value = None

        self.assertEqual(await queue.load(), [])

    async def test_undecodable_value_is_empty_queue(self) -> None:
        queue = RedisForecastQueue(self.settings, self.logger)
        queue._redis = AsyncMock()
        queue._redis.get.return_value = "[oops"

        with self.assertLogs("test.queue.redis", level="WARNING"):
            self.assertEqual(await queue.load(), [])

    async def test_requires_connection(self) -> None:
        queue = RedisForecastQueue(self.settings, self.logger)

        with self.assertRaises(RuntimeError):
            await queue.load()
        with self.assertRaises(RuntimeError):
            await load_forecasts(self.settings, logger=self.logger)

    async def test_close_releases_client(self) -> None:
        queue = RedisForecastQueue(self.settings, self.logger)
        client = AsyncMock()
        queue._redis = client

        await queue.close()

        client.aclose.assert_awaited_once()
        self.assertIsNone(queue._redis)


if __name__ == "__main__":
    unittest.main()
