from __future__ import annotations

import asyncio
import json
import logging
import unittest
from unittest.mock import AsyncMock, patch

from freshness.bot_runtime.logging import JsonFormatter
from freshness.common import guarded_call, log_event, mask_url, redact, retry_async, wait_with_stop


class RetryAsyncTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.logger = logging.getLogger("test.retry")

    async def test_returns_first_success(self) -> None:
        action = AsyncMock(side_effect=[ConnectionError("blip"), "ok"])

        with patch("freshness.common.async_utils.asyncio.sleep", new=AsyncMock()) as sleep:
            with self.assertLogs("test.retry", level="WARNING") as captured:
                result = await retry_async(action, logger=self.logger, event="fetch", backoff_seconds=0.5)

        self.assertEqual(result, "ok")
        self.assertEqual(action.await_count, 2)
        sleep.assert_awaited_once_with(0.5)
        self.assertEqual(captured.records[0].event, "fetch_retry")

    async def test_backoff_grows_and_last_error_is_raised(self) -> None:
        action = AsyncMock(side_effect=[TimeoutError("1"), TimeoutError("2"), TimeoutError("3")])

        with patch("freshness.common.async_utils.asyncio.sleep", new=AsyncMock()) as sleep:
            with self.assertLogs("test.retry", level="WARNING") as captured:
                with self.assertRaises(TimeoutError) as raised:
                    await retry_async(
                        action,
                        logger=self.logger,
                        event="fetch",
                        attempts=3,
                        backoff_seconds=0.1,
                        backoff_factor=2.0,
                    )

        self.assertEqual(str(raised.exception), "3")
        self.assertEqual([call.args[0] for call in sleep.await_args_list], [0.1, 0.2])
        self.assertEqual(captured.records[-1].event, "fetch_exhausted")

    async def test_cancellation_is_not_retried(self) -> None:
        action = AsyncMock(side_effect=asyncio.CancelledError())

        with self.assertRaises(asyncio.CancelledError):
            await retry_async(action, logger=self.logger, event="fetch")

        self.assertEqual(action.await_count, 1)


class GuardedCallTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.logger = logging.getLogger("test.guarded")

    async def test_returns_default_on_error(self) -> None:
        action = AsyncMock(side_effect=RuntimeError("boom"))

        with self.assertLogs("test.guarded", level="WARNING"):
            result = await guarded_call(
                action,
                logger=self.logger,
                event="thing_failed",
                message="Thing failed",
                default=-1,
            )

        self.assertEqual(result, -1)

    async def test_reraise(self) -> None:
        with self.assertLogs("test.guarded", level="WARNING"):
            with self.assertRaises(RuntimeError):
                await guarded_call(
                    AsyncMock(side_effect=RuntimeError("boom")),
                    logger=self.logger,
                    event="thing_failed",
                    message="Thing failed",
                    reraise=True,
                )

    async def test_sync_action(self) -> None:
        result = await guarded_call(lambda: 5, logger=self.logger, event="e", message="m")

        self.assertEqual(result, 5)

    async def test_wait_with_stop_returns_when_stopped(self) -> None:
        stop_event = asyncio.Event()
        stop_event.set()

        await asyncio.wait_for(wait_with_stop(stop_event, 30.0), timeout=1.0)


class LoggingTests(unittest.TestCase):
    def test_mask_url_strips_query(self) -> None:
        self.assertEqual(
            mask_url("https://mainnet.helius-rpc.com/?api-key=abc123"),
            "https://mainnet.helius-rpc.com/",
        )

    def test_redact_walks_nested_fields(self) -> None:
        fields = {
            "endpoints": [
                {"url": "https://a.example.com/rpc?api-key=secret", "latency_ms": 12.5},
                ("wss://b.example.com/?api_key=secret", None),
            ],
            "note": "api_key=secret",
        }

        redacted = redact(fields)

        self.assertEqual(redacted["endpoints"][0], {"url": "https://a.example.com/rpc", "latency_ms": 12.5})
        self.assertEqual(redacted["endpoints"][1], ("wss://b.example.com/", None))
        self.assertEqual(redacted["note"], "api_key=***")
        self.assertNotIn("secret", json.dumps(redacted))

    def test_mask_url_leaves_non_endpoint_text(self) -> None:
        self.assertEqual(mask_url("ftp://files.example.com/?k=v"), "ftp://files.example.com/?k=v")
        self.assertEqual(mask_url("https://rpc.example.com/?api-key=x)."), "https://rpc.example.com/).")

    def test_log_event_sanitizes_message_and_fields(self) -> None:
        logger = logging.getLogger("test.logging")

        with self.assertLogs("test.logging", level="INFO") as captured:
            log_event(
                logger,
                level="info",
                event="endpoint_selected",
                message="Using https://rpc.example.com/?api-key=secret",
                url="wss://rpc.example.com/?api-key=secret",
            )

        record = captured.records[0]
        self.assertNotIn("secret", record.getMessage())
        self.assertEqual(record.url, "wss://rpc.example.com/")
        self.assertEqual(record.event, "endpoint_selected")

    def test_json_formatter_handles_infinite_latency(self) -> None:
        record = logging.LogRecord("freshness", logging.INFO, __file__, 1, "tick", None, None)
        record.event = "freshness_tick"
        record.latencies = {"primary": float("inf"), "secondary": 12.5}

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["event"], "freshness_tick")
        self.assertEqual(payload["latencies"], {"primary": "inf", "secondary": 12.5})


if __name__ == "__main__":
    unittest.main()
