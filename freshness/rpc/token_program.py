from __future__ import annotations

import logging

from solana.rpc.commitment import Processed
from solders.pubkey import Pubkey

from freshness.common import log_event

from .types import AccountOwnerReader

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")


class MintAccountNotFoundError(RuntimeError):
    def __init__(self, mint: str) -> None:
        super().__init__(f"Mint account not found: {mint}")
        self.mint = mint


class TokenProgramCache:
    # Unbounded: one entry per distinct mint, and the mint set is small.
    def __init__(self, *, reader: AccountOwnerReader, logger: logging.Logger) -> None:
        self._reader = reader
        self._logger = logger
        self._owners: dict[str, Pubkey] = {}

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, mint: object) -> bool:
        return str(mint) in self._owners

    def clear(self) -> None:
        self._owners.clear()

    async def resolve(self, mint: Pubkey | str) -> Pubkey:
        key = str(mint)
        cached = self._owners.get(key)
        if cached is not None:
            return cached

        mint_pubkey = mint if isinstance(mint, Pubkey) else Pubkey.from_string(key)
        owner = await self._reader.fetch_account_owner(mint_pubkey, Processed)
        if owner is None:
            raise MintAccountNotFoundError(key)

        self._owners[key] = owner
        if owner not in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID):
            log_event(
                self._logger,
                level="warning",
                event="token_program_unrecognized",
                message="Mint is owned by an unrecognized program",
                mint=key,
                owner=str(owner),
            )
        return owner
