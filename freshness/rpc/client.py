from __future__ import annotations

import time

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed, Processed
from solders.pubkey import Pubkey


class RpcEndpointClient:
    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 10.0,
        client: AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = max(0.1, float(timeout_seconds))
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    async def connect(self) -> None:
        if self._client is None:
            self._client = AsyncClient(
                self._url,
                commitment=Confirmed,
                timeout=self._timeout_seconds,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _require_client(self) -> AsyncClient:
        if self._client is None:
            await self.connect()
        if self._client is None:
            raise RuntimeError(f"RPC client is not initialized for {self._url}.")
        return self._client

    async def get_slot(self, commitment: Commitment = Processed) -> int:
        client = await self._require_client()
        response = await client.get_slot(commitment=commitment)
        slot = getattr(response, "value", None)
        if not isinstance(slot, int) or isinstance(slot, bool):
            raise RuntimeError(f"Unexpected getSlot response: {response}")
        return slot

    async def probe(self) -> float:
        started = time.perf_counter()
        await self.get_slot(Processed)
        return (time.perf_counter() - started) * 1000.0

    async def current_height(self, commitment: Commitment = Processed) -> int:
        client = await self._require_client()
        response = await client.get_block_height(commitment=commitment)
        height = getattr(response, "value", None)
        if not isinstance(height, int) or isinstance(height, bool):
            raise RuntimeError(f"Unexpected getBlockHeight response: {response}")
        return height

    async def fetch_latest_blockhash(self, commitment: Commitment = Processed) -> tuple[str, int]:
        client = await self._require_client()
        response = await client.get_latest_blockhash(commitment=commitment)
        value = getattr(response, "value", None)
        if value is None:
            raise RuntimeError(f"Unexpected getLatestBlockhash response: {response}")

        blockhash = str(getattr(value, "blockhash", "") or "").strip()
        if not blockhash:
            raise RuntimeError(f"Missing blockhash in RPC response: {response}")

        last_valid_block_height = getattr(value, "last_valid_block_height", None)
        if not isinstance(last_valid_block_height, int) or last_valid_block_height < 0:
            raise RuntimeError(f"Missing lastValidBlockHeight in RPC response: {response}")

        return blockhash, last_valid_block_height

    async def fetch_account_owner(
        self,
        pubkey: Pubkey,
        commitment: Commitment = Processed,
    ) -> Pubkey | None:
        client = await self._require_client()
        response = await client.get_account_info(pubkey, commitment=commitment)
        account = getattr(response, "value", None)
        if account is None:
            return None
        return account.owner
