from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable

import aiohttp

from freshness.common import guarded_call, log_event, mask_url, wait_with_stop

SlotHandler = Callable[[int], Awaitable[None] | None]

SUBSCRIBE_REQUEST_ID = 1
UNSUBSCRIBE_REQUEST_ID = 2


def parse_slot_message(payload: Any) -> tuple[str, int | None]:
    if not isinstance(payload, dict):
        return "ignored", None

    if payload.get("id") == SUBSCRIBE_REQUEST_ID and isinstance(payload.get("result"), int):
        return "subscribed", payload["result"]

    if payload.get("method") == "slotNotification":
        params = payload.get("params")
        result = params.get("result") if isinstance(params, dict) else None
        slot = result.get("slot") if isinstance(result, dict) else None
        if isinstance(slot, int) and not isinstance(slot, bool):
            return "slot", slot

    return "ignored", None


class SlotStream:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        ws_url: str,
        on_slot: SlotHandler | None = None,
        reconnect_delay_seconds: float = 5.0,
        heartbeat_seconds: float = 30.0,
    ) -> None:
        self._logger = logger
        self._ws_url = ws_url
        self._on_slot = on_slot
        self._reconnect_delay_seconds = max(0.1, float(reconnect_delay_seconds))
        self._heartbeat_seconds = max(1.0, float(heartbeat_seconds))
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._subscription_id: int | None = None
        self._latest_slot: int | None = None

    @property
    def latest_slot(self) -> int | None:
        return self._latest_slot

    @property
    def subscription_id(self) -> int | None:
        return self._subscription_id

    async def handle_payload(self, payload: Any) -> None:
        kind, value = parse_slot_message(payload)
        if kind == "subscribed":
            self._subscription_id = value
            log_event(
                self._logger,
                level="debug",
                event="slot_subscription_confirmed",
                message="Slot subscription confirmed",
                subscription_id=value,
            )
            return
        if kind != "slot" or value is None:
            return

        if self._latest_slot is None or value > self._latest_slot:
            self._latest_slot = value
        if self._on_slot is not None:
            result = self._on_slot(value)
            if inspect.isawaitable(result):
                await result

    async def run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self._listen()
            except asyncio.CancelledError:
                raise
            except Exception as error:
                log_event(
                    self._logger,
                    level="warning",
                    event="slot_stream_error",
                    message="Slot stream disconnected",
                    url=mask_url(self._ws_url),
                    error=str(error),
                )
            await wait_with_stop(stop_event, self._reconnect_delay_seconds)

    async def _listen(self) -> None:
        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(self._ws_url, heartbeat=self._heartbeat_seconds) as ws:
                self._ws = ws
                self._subscription_id = None
                log_event(
                    self._logger,
                    level="debug",
                    event="slot_stream_connected",
                    message="Slot stream connected",
                    url=mask_url(self._ws_url),
                )
                await ws.send_json(
                    {
                        "jsonrpc": "2.0",
                        "id": SUBSCRIBE_REQUEST_ID,
                        "method": "slotSubscribe",
                        "params": [],
                    }
                )
                try:
                    async for message in ws:
                        if message.type == aiohttp.WSMsgType.TEXT:
                            try:
                                payload = json.loads(message.data)
                            except ValueError as error:
                                log_event(
                                    self._logger,
                                    level="warning",
                                    event="slot_stream_parse_failed",
                                    message="Failed to parse slot stream message",
                                    error=str(error),
                                )
                                continue
                            await self.handle_payload(payload)
                        elif message.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                            break
                finally:
                    self._ws = None

    async def close(self) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            return
        if self._subscription_id is not None:
            await guarded_call(
                lambda: ws.send_json(
                    {
                        "jsonrpc": "2.0",
                        "id": UNSUBSCRIBE_REQUEST_ID,
                        "method": "slotUnsubscribe",
                        "params": [self._subscription_id],
                    }
                ),
                logger=self._logger,
                event="slot_unsubscribe_failed",
                message="Failed to unsubscribe from slot stream",
            )
        await ws.close()
