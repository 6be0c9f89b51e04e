from .size import (
    MAX_RAW_TX_BYTES,
    SerializedTransaction,
    TransactionTooLargeError,
    TxSizeCheck,
    ensure_tx_fits,
    get_raw_tx_bytes,
    is_tx_too_large,
)

__all__ = [
    "MAX_RAW_TX_BYTES",
    "SerializedTransaction",
    "TransactionTooLargeError",
    "TxSizeCheck",
    "ensure_tx_fits",
    "get_raw_tx_bytes",
    "is_tx_too_large",
]
