from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

from .types import Forecast, now_epoch_ms

# Anything that cannot be read as a TTL is treated as already expired.
TTL_UNKNOWN_MINUTES = 0.0

_EXPIRED_WORDS = {"now", "expired"}

_UNIT_MINUTES = {
    "d": 1440.0,
    "day": 1440.0,
    "days": 1440.0,
    "h": 60.0,
    "hr": 60.0,
    "hrs": 60.0,
    "hour": 60.0,
    "hours": 60.0,
    "m": 1.0,
    "min": 1.0,
    "mins": 1.0,
    "minute": 1.0,
    "minutes": 1.0,
    "s": 1.0 / 60.0,
    "sec": 1.0 / 60.0,
    "secs": 1.0 / 60.0,
    "second": 1.0 / 60.0,
    "seconds": 1.0 / 60.0,
}

_DURATION_RE = re.compile(r"(?:\d+(?:\.\d+)?\s*[a-z]+\s*)+")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")


def _parse_duration(text: str) -> float | None:
    if not _DURATION_RE.fullmatch(text):
        return None

    total = 0.0
    for amount, unit in _DURATION_PART_RE.findall(text):
        factor = _UNIT_MINUTES.get(unit)
        if factor is None:
            return None
        total += float(amount) * factor
    return total


def _parse_absolute(text: str, now_ms: int) -> float | None:
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        moment = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment.timestamp() * 1000.0 - now_ms) / 60_000.0


def try_parse_ttl_minutes(raw: Any, *, now_ms: int | None = None) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return None
        return max(0.0, value) if math.isfinite(value) else None

    if not isinstance(raw, str):
        return None

    text = raw.strip().lower()
    if not text:
        return None
    if text in _EXPIRED_WORDS:
        return 0.0

    relative = text
    if text.startswith("in "):
        relative = text[3:].strip()
    elif text.startswith("+"):
        relative = text[1:].strip()
    is_relative = relative != text

    try:
        numeric = float(relative)
    except ValueError:
        numeric = None
    if numeric is not None:
        return max(0.0, numeric) if math.isfinite(numeric) else None

    duration = _parse_duration(relative)
    if duration is not None:
        return max(0.0, duration)

    if not is_relative and any(char.isdigit() for char in text) and "-" in text:
        reference_ms = now_epoch_ms() if now_ms is None else now_ms
        absolute = _parse_absolute(raw.strip(), reference_ms)
        if absolute is not None:
            return max(0.0, absolute)

    return None


def parse_ttl_minutes(raw: Any, *, now_ms: int | None = None) -> float:
    parsed = try_parse_ttl_minutes(raw, now_ms=now_ms)
    return TTL_UNKNOWN_MINUTES if parsed is None else parsed


def resolve_ttl_minutes(forecast: Forecast, *, now_ms: int | None = None) -> float:
    if forecast.ttl_min is not None and math.isfinite(forecast.ttl_min):
        return max(0.0, forecast.ttl_min)
    return parse_ttl_minutes(forecast.ttl_str, now_ms=now_ms)
