from __future__ import annotations

import math
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from freshness.common import to_float, to_int

REASON_STALE_AGE = "stale_age"
REASON_TTL_EXPIRED = "ttl_expired"
REASON_EV_DROPPED = "ev_dropped"
REASON_EV_FLOOR = "ev_floor"

EXPIRY_REASONS = (
    REASON_STALE_AGE,
    REASON_TTL_EXPIRED,
    REASON_EV_DROPPED,
    REASON_EV_FLOOR,
)


def now_epoch_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _finite_or_none(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    parsed = to_float(value, math.nan)
    if not math.isfinite(parsed):
        return None
    return parsed


def _first_present(record: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = record.get(name)
        if value is not None and value != "":
            return value
    return None


@dataclass(slots=True, frozen=True)
class ForecastPolicy:
    max_age_ms: int
    min_refresh_interval_ms: int
    ttl_expired_margin_min: float
    ev_drop_pct: float
    min_ev: float

    def __post_init__(self) -> None:
        if self.max_age_ms < 0:
            raise ValueError(f"max_age_ms must be non-negative, got {self.max_age_ms}.")
        if self.min_refresh_interval_ms < 0:
            raise ValueError(
                f"min_refresh_interval_ms must be non-negative, got {self.min_refresh_interval_ms}."
            )
        if self.ttl_expired_margin_min < 0:
            raise ValueError(
                f"ttl_expired_margin_min must be non-negative, got {self.ttl_expired_margin_min}."
            )
        if self.ev_drop_pct < 0:
            raise ValueError(f"ev_drop_pct must be non-negative, got {self.ev_drop_pct}.")

    @classmethod
    def from_env(cls) -> "ForecastPolicy":
        return cls(
            max_age_ms=max(0, to_int(os.getenv("FORECAST_MAX_AGE_MS"), 300_000)),
            min_refresh_interval_ms=max(0, to_int(os.getenv("SCHED_MIN_REFRESH_INTERVAL_MS"), 60_000)),
            ttl_expired_margin_min=max(0.0, to_float(os.getenv("SCHED_TTL_EXPIRED_MARGIN_MIN"), 2.0)),
            ev_drop_pct=max(0.0, to_float(os.getenv("SCHED_EV_DROP_PCT"), 0.15)),
            min_ev=to_float(os.getenv("SCHED_MIN_EV"), 0.0),
        )


@dataclass(slots=True, frozen=True)
class Forecast:
    key: str
    ev: float
    hazard: float
    updated_at_ms: int
    ttl_str: str | None = None
    ttl_min: float | None = None
    previous_ev: float | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Forecast":
        key = _first_present(record, "key", "obligationPubkey")
        ttl_raw = _first_present(record, "ttl", "ttlStr")
        updated_raw = _first_present(record, "forecastUpdatedAtMs", "updatedAtMs", "createdAtMs")

        return cls(
            key=str(key) if key is not None else "unknown",
            ev=_finite_or_none(record.get("ev")) or 0.0,
            hazard=_finite_or_none(record.get("hazard")) or 0.0,
            updated_at_ms=to_int(updated_raw, 0),
            ttl_str=str(ttl_raw) if ttl_raw is not None else None,
            ttl_min=_finite_or_none(record.get("ttlMin")),
            previous_ev=_finite_or_none(_first_present(record, "previousEv", "prevEv")),
        )


@dataclass(slots=True, frozen=True)
class EvaluatedForecast:
    forecast: Forecast
    ttl_min: float
    age_ms: int
    expired: bool
    reason: str | None
    previous_ev: float | None

    @property
    def key(self) -> str:
        return self.forecast.key

    @property
    def ev(self) -> float:
        return self.forecast.ev

    def to_row(self) -> dict[str, Any]:
        return {
            "key": self.forecast.key,
            "ev": self.forecast.ev,
            "hazard": self.forecast.hazard,
            "ttl_min": self.ttl_min,
            "age_ms": self.age_ms,
            "expired": self.expired,
            "reason": self.reason,
            "previous_ev": self.previous_ev,
        }
