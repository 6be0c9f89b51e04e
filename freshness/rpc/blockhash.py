from __future__ import annotations

import asyncio
import logging

from solana.rpc.commitment import Commitment, Processed

from freshness.common import log_event

from .endpoints import ConnectionManager, Endpoint
from .types import DEFAULT_SAFETY_BLOCKS, LedgerReader, ValidityToken


class BlockhashCache:
    """Single-slot cache for the latest blockhash.

    Staleness is measured in block height because ``lastValidBlockHeight`` is a
    block height; slots advance faster and would refresh too late.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        reader: LedgerReader | None = None,
        connections: ConnectionManager | None = None,
        safety_blocks: int = DEFAULT_SAFETY_BLOCKS,
        commitment: Commitment = Processed,
    ) -> None:
        if (reader is None) == (connections is None):
            raise ValueError("BlockhashCache needs exactly one of reader or connections.")
        if isinstance(safety_blocks, bool) or not isinstance(safety_blocks, int):
            raise ValueError(f"safety_blocks must be an integer, got {safety_blocks!r}.")
        if safety_blocks < 0:
            raise ValueError(f"safety_blocks must be non-negative, got {safety_blocks}.")

        self._logger = logger
        self._reader = reader
        self._connections = connections
        self._safety_blocks = int(safety_blocks)
        self._commitment = commitment
        self._cached: ValidityToken | None = None
        self._lock = asyncio.Lock()

    @property
    def safety_blocks(self) -> int:
        return self._safety_blocks

    @property
    def cached(self) -> ValidityToken | None:
        return self._cached

    def invalidate(self) -> None:
        self._cached = None

    def _active_reader(self) -> tuple[LedgerReader, Endpoint | None]:
        if self._connections is not None:
            endpoint = self._connections.select()
            return endpoint.client, endpoint
        assert self._reader is not None
        return self._reader, None

    async def get_fresh(self) -> ValidityToken:
        _, token = await self.get_fresh_with_endpoint()
        return token

    async def get_fresh_with_endpoint(self) -> tuple[Endpoint | None, ValidityToken]:
        """Return the token together with the endpoint both reads went to.

        The endpoint is ``None`` when the cache is bound to a fixed reader.
        """
        async with self._lock:
            reader, endpoint = self._active_reader()
            endpoint_name = endpoint.name if endpoint is not None else None
            block_height = await reader.current_height(self._commitment)

            cached = self._cached
            if cached is not None and cached.is_usable_at(block_height):
                log_event(
                    self._logger,
                    level="debug",
                    event="blockhash_cache_hit",
                    message="Using cached blockhash",
                    block_height=block_height,
                    last_valid_block_height=cached.last_valid_block_height,
                    safety_blocks=self._safety_blocks,
                    endpoint=endpoint_name,
                )
                return endpoint, cached

            blockhash, last_valid_block_height = await reader.fetch_latest_blockhash(self._commitment)
            token = ValidityToken(
                blockhash=blockhash,
                last_valid_block_height=last_valid_block_height,
                safety_blocks=self._safety_blocks,
            )
            self._cached = token

            log_event(
                self._logger,
                level="debug",
                event="blockhash_refreshed",
                message="Refreshed blockhash",
                block_height=block_height,
                last_valid_block_height=last_valid_block_height,
                safety_blocks=self._safety_blocks,
                endpoint=endpoint_name,
            )
            return endpoint, token
