from .async_utils import guarded_call, retry_async, wait_with_stop
from .coerce import to_bool, to_float, to_int
from .logging import log_event, mask_url, redact

__all__ = [
    "guarded_call",
    "log_event",
    "mask_url",
    "redact",
    "retry_async",
    "to_bool",
    "to_float",
    "to_int",
    "wait_with_stop",
]
