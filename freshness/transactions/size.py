from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol

MAX_RAW_TX_BYTES = 1232


class SerializedTransaction(Protocol):
    def __bytes__(self) -> bytes:
        ...


@dataclass(slots=True, frozen=True)
class TxSizeCheck:
    raw: int
    too_large: bool
    max_bytes: int = MAX_RAW_TX_BYTES

    @property
    def headroom(self) -> int:
        return self.max_bytes - self.raw

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TransactionTooLargeError(RuntimeError):
    def __init__(self, check: TxSizeCheck) -> None:
        super().__init__(
            f"Serialized transaction is {check.raw} bytes; the limit is {check.max_bytes} bytes."
        )
        self.check = check


def get_raw_tx_bytes(tx: SerializedTransaction | bytes) -> int:
    return len(bytes(tx))


def is_tx_too_large(tx: SerializedTransaction | bytes) -> TxSizeCheck:
    raw = get_raw_tx_bytes(tx)
    return TxSizeCheck(raw=raw, too_large=raw > MAX_RAW_TX_BYTES)


def ensure_tx_fits(tx: SerializedTransaction | bytes) -> TxSizeCheck:
    check = is_tx_too_large(tx)
    if check.too_large:
        raise TransactionTooLargeError(check)
    return check
