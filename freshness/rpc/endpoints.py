from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass

from freshness.common import guarded_call, log_event, mask_url

from .client import RpcEndpointClient

PRIMARY = "primary"
SECONDARY = "secondary"


@dataclass(slots=True)
class Endpoint:
    name: str
    url: str
    client: RpcEndpointClient
    ws_url: str | None = None
    latency_ms: float = math.inf

    @property
    def label(self) -> str:
        return mask_url(self.url)

    @property
    def reachable(self) -> bool:
        return math.isfinite(self.latency_ms)


class ConnectionManager:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        primary: Endpoint,
        secondary: Endpoint | None = None,
    ) -> None:
        self._logger = logger
        self._primary = primary
        self._secondary = secondary
        self._probe_lock = asyncio.Lock()
        self._probe_generation = 0

    @classmethod
    def from_urls(
        cls,
        *,
        logger: logging.Logger,
        primary_url: str,
        secondary_url: str | None = None,
        primary_ws_url: str | None = None,
        secondary_ws_url: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> "ConnectionManager":
        if not (primary_url or "").strip():
            raise ValueError("A primary RPC URL is required.")

        primary = Endpoint(
            name=PRIMARY,
            url=primary_url.strip(),
            ws_url=(primary_ws_url or "").strip() or None,
            client=RpcEndpointClient(url=primary_url.strip(), timeout_seconds=timeout_seconds),
        )
        secondary: Endpoint | None = None
        if (secondary_url or "").strip():
            secondary = Endpoint(
                name=SECONDARY,
                url=secondary_url.strip(),
                ws_url=(secondary_ws_url or "").strip() or None,
                client=RpcEndpointClient(url=secondary_url.strip(), timeout_seconds=timeout_seconds),
            )
        return cls(logger=logger, primary=primary, secondary=secondary)

    @property
    def primary(self) -> Endpoint:
        return self._primary

    @property
    def secondary(self) -> Endpoint | None:
        return self._secondary

    def endpoints(self) -> list[Endpoint]:
        if self._secondary is None:
            return [self._primary]
        return [self._primary, self._secondary]

    def latencies(self) -> dict[str, float]:
        return {endpoint.name: endpoint.latency_ms for endpoint in self.endpoints()}

    async def connect(self) -> None:
        for endpoint in self.endpoints():
            await endpoint.client.connect()

    async def close(self) -> None:
        for endpoint in self.endpoints():
            await guarded_call(
                endpoint.client.close,
                logger=self._logger,
                event="endpoint_close_failed",
                message="Failed to close RPC endpoint client",
                endpoint=endpoint.name,
            )

    async def refresh_latencies(self) -> None:
        generation = self._probe_generation
        async with self._probe_lock:
            if self._probe_generation != generation:
                # Another caller finished a probe pass while this one was waiting.
                return
            for endpoint in self.endpoints():
                await self._probe(endpoint)
            self._probe_generation += 1

        log_event(
            self._logger,
            level="debug",
            event="endpoint_latencies_refreshed",
            message="RPC endpoint latencies refreshed",
            latencies=self.latencies(),
            selected=self.select().name,
        )

    async def _probe(self, endpoint: Endpoint) -> None:
        latency_ms = await guarded_call(
            endpoint.client.probe,
            logger=self._logger,
            event="endpoint_probe_failed",
            message=f"{endpoint.name} RPC endpoint probe failed",
            default=math.inf,
            endpoint=endpoint.name,
            url=endpoint.label,
        )
        if not isinstance(latency_ms, (int, float)) or math.isnan(latency_ms) or latency_ms < 0:
            latency_ms = math.inf
        endpoint.latency_ms = float(latency_ms)

    def select(self) -> Endpoint:
        if self._secondary is None:
            return self._primary
        if self._primary.latency_ms <= self._secondary.latency_ms:
            return self._primary
        return self._secondary

    def get_connection(self) -> RpcEndpointClient:
        return self.select().client
