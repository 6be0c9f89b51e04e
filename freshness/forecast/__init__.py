from .evaluator import (
    EV_DROP_EPSILON,
    ev_drop_fraction,
    evaluate_forecast,
    evaluate_forecasts,
    filter_active_forecasts,
    get_expired_forecasts,
    needs_recompute,
    partition_forecasts,
)
from .report import build_audit_summary, format_audit_report
from .ttl import TTL_UNKNOWN_MINUTES, parse_ttl_minutes, resolve_ttl_minutes, try_parse_ttl_minutes
from .types import (
    EXPIRY_REASONS,
    REASON_EV_DROPPED,
    REASON_EV_FLOOR,
    REASON_STALE_AGE,
    REASON_TTL_EXPIRED,
    EvaluatedForecast,
    Forecast,
    ForecastPolicy,
    now_epoch_ms,
)

__all__ = [
    "EV_DROP_EPSILON",
    "EXPIRY_REASONS",
    "EvaluatedForecast",
    "Forecast",
    "ForecastPolicy",
    "REASON_EV_DROPPED",
    "REASON_EV_FLOOR",
    "REASON_STALE_AGE",
    "REASON_TTL_EXPIRED",
    "TTL_UNKNOWN_MINUTES",
    "build_audit_summary",
    "ev_drop_fraction",
    "evaluate_forecast",
    "evaluate_forecasts",
    "filter_active_forecasts",
    "format_audit_report",
    "get_expired_forecasts",
    "needs_recompute",
    "now_epoch_ms",
    "parse_ttl_minutes",
    "partition_forecasts",
    "resolve_ttl_minutes",
    "try_parse_ttl_minutes",
]
