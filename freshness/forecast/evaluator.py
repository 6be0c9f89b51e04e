from __future__ import annotations

import math
from typing import Iterable, Mapping

from .ttl import resolve_ttl_minutes
from .types import (
    REASON_EV_DROPPED,
    REASON_EV_FLOOR,
    REASON_STALE_AGE,
    REASON_TTL_EXPIRED,
    EvaluatedForecast,
    Forecast,
    ForecastPolicy,
    now_epoch_ms,
)

EV_DROP_EPSILON = 1e-9


def ev_drop_fraction(previous_ev: float, ev: float) -> float:
    return (previous_ev - ev) / max(abs(previous_ev), EV_DROP_EPSILON)


def _resolve_previous_ev(
    forecast: Forecast,
    previous_ev_by_key: Mapping[str, float] | None,
) -> float | None:
    candidate = forecast.previous_ev
    if previous_ev_by_key is not None and forecast.key in previous_ev_by_key:
        candidate = previous_ev_by_key[forecast.key]
    if candidate is None:
        return None
    try:
        value = float(candidate)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def evaluate_forecast(
    forecast: Forecast,
    policy: ForecastPolicy,
    *,
    now_ms: int,
    previous_ev: float | None = None,
) -> EvaluatedForecast:
    age_ms = now_ms - forecast.updated_at_ms
    ttl_min = resolve_ttl_minutes(forecast, now_ms=now_ms)

    # First matching rule wins.
    reason: str | None = None
    if age_ms > policy.max_age_ms:
        reason = REASON_STALE_AGE
    elif ttl_min <= policy.ttl_expired_margin_min:
        reason = REASON_TTL_EXPIRED
    elif previous_ev is not None and ev_drop_fraction(previous_ev, forecast.ev) >= policy.ev_drop_pct:
        reason = REASON_EV_DROPPED
    elif forecast.ev <= policy.min_ev:
        reason = REASON_EV_FLOOR

    return EvaluatedForecast(
        forecast=forecast,
        ttl_min=ttl_min,
        age_ms=age_ms,
        expired=reason is not None,
        reason=reason,
        previous_ev=previous_ev,
    )


def evaluate_forecasts(
    forecasts: Iterable[Forecast],
    policy: ForecastPolicy,
    *,
    now_ms: int | None = None,
    previous_ev_by_key: Mapping[str, float] | None = None,
) -> list[EvaluatedForecast]:
    reference_ms = now_epoch_ms() if now_ms is None else now_ms
    return [
        evaluate_forecast(
            forecast,
            policy,
            now_ms=reference_ms,
            previous_ev=_resolve_previous_ev(forecast, previous_ev_by_key),
        )
        for forecast in forecasts
    ]


def get_expired_forecasts(items: Iterable[EvaluatedForecast]) -> list[EvaluatedForecast]:
    return [item for item in items if item.expired]


def filter_active_forecasts(items: Iterable[EvaluatedForecast]) -> list[EvaluatedForecast]:
    return [item for item in items if not item.expired]


def partition_forecasts(
    items: Iterable[EvaluatedForecast],
) -> tuple[list[EvaluatedForecast], list[EvaluatedForecast]]:
    active: list[EvaluatedForecast] = []
    expired: list[EvaluatedForecast] = []
    for item in items:
        (expired if item.expired else active).append(item)
    return active, expired


def needs_recompute(item: EvaluatedForecast, *, policy: ForecastPolicy) -> bool:
    if not item.expired:
        return False
    # Time-based expiry is never throttled; only EV triggers wait out the interval.
    if item.reason in (REASON_STALE_AGE, REASON_TTL_EXPIRED):
        return True
    return item.age_ms >= policy.min_refresh_interval_ms
