from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol

from solana.rpc.commitment import Commitment
from solders.pubkey import Pubkey

DEFAULT_SAFETY_BLOCKS = 30


@dataclass(slots=True, frozen=True)
class ValidityToken:
    blockhash: str
    last_valid_block_height: int
    safety_blocks: int

    @property
    def usable_until_height(self) -> int:
        return self.last_valid_block_height - self.safety_blocks

    def is_usable_at(self, block_height: int) -> bool:
        return block_height < self.usable_until_height

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LedgerReader(Protocol):
    async def current_height(self, commitment: Commitment = ...) -> int:
        ...

    async def fetch_latest_blockhash(self, commitment: Commitment = ...) -> tuple[str, int]:
        ...


class AccountOwnerReader(Protocol):
    async def fetch_account_owner(
        self,
        pubkey: Pubkey,
        commitment: Commitment = ...,
    ) -> Pubkey | None:
        ...
