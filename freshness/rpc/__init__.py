from .blockhash import BlockhashCache
from .client import RpcEndpointClient
from .endpoints import PRIMARY, SECONDARY, ConnectionManager, Endpoint
from .slot_stream import SlotStream, parse_slot_message
from .token_program import (
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    MintAccountNotFoundError,
    TokenProgramCache,
)
from .types import DEFAULT_SAFETY_BLOCKS, AccountOwnerReader, LedgerReader, ValidityToken

__all__ = [
    "AccountOwnerReader",
    "BlockhashCache",
    "ConnectionManager",
    "DEFAULT_SAFETY_BLOCKS",
    "Endpoint",
    "LedgerReader",
    "MintAccountNotFoundError",
    "PRIMARY",
    "RpcEndpointClient",
    "SECONDARY",
    "SlotStream",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "TokenProgramCache",
    "ValidityToken",
    "parse_slot_message",
]
