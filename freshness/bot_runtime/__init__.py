from .logging import setup_logger
from .loop import bootstrap_dependencies, run_forecast_audit, run_freshness_loop, warm_blockhash
from .settings import AppSettings, parse_safety_blocks

__all__ = [
    "AppSettings",
    "bootstrap_dependencies",
    "parse_safety_blocks",
    "run_forecast_audit",
    "run_freshness_loop",
    "setup_logger",
    "warm_blockhash",
]
