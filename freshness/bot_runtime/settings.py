from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from freshness.common import to_bool, to_float, to_int
from freshness.rpc import DEFAULT_SAFETY_BLOCKS


def parse_safety_blocks(value: Any, default: int = DEFAULT_SAFETY_BLOCKS) -> int:
    # Zero only when spelled out; unset or garbage keeps the safe default.
    if value is None or str(value).strip() == "":
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    if parsed < 0:
        raise ValueError(f"BLOCKHASH_SAFETY_BLOCKS must be non-negative, got {parsed}.")
    return parsed


@dataclass(slots=True)
class AppSettings:
    rpc_primary: str
    rpc_secondary: str
    rpc_primary_ws: str
    rpc_secondary_ws: str
    rpc_timeout_seconds: float
    probe_interval_seconds: float
    audit_interval_seconds: float
    audit_row_limit: int
    error_backoff_seconds: float
    blockhash_safety_blocks: int
    blockhash_retry_attempts: int
    blockhash_retry_backoff_seconds: float
    slot_stream_enabled: bool

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            rpc_primary=os.getenv("RPC_PRIMARY", "").strip(),
            rpc_secondary=os.getenv("RPC_SECONDARY", "").strip(),
            rpc_primary_ws=os.getenv("RPC_PRIMARY_WS", "").strip(),
            rpc_secondary_ws=os.getenv("RPC_SECONDARY_WS", "").strip(),
            rpc_timeout_seconds=max(0.5, to_float(os.getenv("RPC_TIMEOUT_SECONDS"), 10.0)),
            probe_interval_seconds=max(0.5, to_float(os.getenv("PROBE_INTERVAL_SECONDS"), 10.0)),
            audit_interval_seconds=max(1.0, to_float(os.getenv("AUDIT_INTERVAL_SECONDS"), 30.0)),
            audit_row_limit=max(0, to_int(os.getenv("AUDIT_ROW_LIMIT"), 10)),
            error_backoff_seconds=max(0.2, to_float(os.getenv("ERROR_BACKOFF_SECONDS"), 2.0)),
            blockhash_safety_blocks=parse_safety_blocks(os.getenv("BLOCKHASH_SAFETY_BLOCKS")),
            blockhash_retry_attempts=max(1, to_int(os.getenv("BLOCKHASH_RETRY_ATTEMPTS"), 3)),
            blockhash_retry_backoff_seconds=max(
                0.0,
                to_float(os.getenv("BLOCKHASH_RETRY_BACKOFF_SECONDS"), 0.2),
            ),
            slot_stream_enabled=to_bool(os.getenv("SLOT_STREAM_ENABLED"), False),
        )
