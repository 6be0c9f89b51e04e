from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from freshness.common import log_event
from freshness.forecast import EvaluatedForecast
from freshness.rpc import BlockhashCache, ConnectionManager, Endpoint, ValidityToken
from freshness.transactions import (
    MAX_RAW_TX_BYTES,
    SerializedTransaction,
    TxSizeCheck,
    ensure_tx_fits,
    is_tx_too_large,
)


@dataclass(slots=True, frozen=True)
class SubmissionTicket:
    endpoint: Endpoint
    token: ValidityToken
    forecast: EvaluatedForecast

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint.name,
            "endpoint_latency_ms": self.endpoint.latency_ms,
            "blockhash": self.token.blockhash,
            "last_valid_block_height": self.token.last_valid_block_height,
            "forecast_key": self.forecast.key,
            "forecast_ev": self.forecast.ev,
        }


class FreshnessGate:
    def __init__(
        self,
        *,
        logger: logging.Logger,
        connections: ConnectionManager,
        blockhash_cache: BlockhashCache,
    ) -> None:
        self._logger = logger
        self._connections = connections
        self._blockhash_cache = blockhash_cache

    async def prepare(self, item: EvaluatedForecast) -> SubmissionTicket | None:
        if item.expired:
            log_event(
                self._logger,
                level="info",
                event="submission_skipped_expired_forecast",
                message="Forecast is expired; skipping submission",
                forecast_key=item.key,
                reason=item.reason,
                age_ms=item.age_ms,
            )
            return None

        endpoint, token = await self._blockhash_cache.get_fresh_with_endpoint()
        if endpoint is None:
            endpoint = self._connections.select()
        return SubmissionTicket(endpoint=endpoint, token=token, forecast=item)

    def check_size(self, tx: SerializedTransaction | bytes, **fields: Any) -> TxSizeCheck:
        check = is_tx_too_large(tx)
        if check.too_large:
            log_event(
                self._logger,
                level="warning",
                event="tx_size_exceeded",
                message="Transaction exceeds the maximum serialized size",
                tx_size_bytes=check.raw,
                max_tx_size_bytes=MAX_RAW_TX_BYTES,
                **fields,
            )
        return check

    def ensure_fits(self, tx: SerializedTransaction | bytes, **fields: Any) -> TxSizeCheck:
        self.check_size(tx, **fields)
        return ensure_tx_fits(tx)
