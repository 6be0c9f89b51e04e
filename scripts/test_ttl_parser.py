from __future__ import annotations

import math
import unittest
from datetime import datetime, timezone

from freshness.forecast import (
    TTL_UNKNOWN_MINUTES,
    Forecast,
    parse_ttl_minutes,
    resolve_ttl_minutes,
    try_parse_ttl_minutes,
)

NOW_MS = int(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)


class ParseTtlMinutesTests(unittest.TestCase):
    def test_plain_numbers_are_minutes(self) -> None:
        self.assertEqual(parse_ttl_minutes(5), 5.0)
        self.assertEqual(parse_ttl_minutes(2.5), 2.5)
        self.assertEqual(parse_ttl_minutes("12"), 12.0)
        self.assertEqual(parse_ttl_minutes(" 7.25 "), 7.25)

    def test_unit_suffixes(self) -> None:
        self.assertEqual(parse_ttl_minutes("15m"), 15.0)
        self.assertEqual(parse_ttl_minutes("2h"), 120.0)
        self.assertEqual(parse_ttl_minutes("1d"), 1440.0)
        self.assertAlmostEqual(parse_ttl_minutes("90s"), 1.5)
        self.assertEqual(parse_ttl_minutes("1h30m"), 90.0)
        self.assertEqual(parse_ttl_minutes("1h 30m"), 90.0)
        self.assertEqual(parse_ttl_minutes("10 minutes"), 10.0)
        self.assertEqual(parse_ttl_minutes("3 Hours"), 180.0)

    def test_relative_prefixes(self) -> None:
        self.assertEqual(parse_ttl_minutes("in 5m"), 5.0)
        self.assertAlmostEqual(parse_ttl_minutes("+45s"), 0.75)
        self.assertEqual(parse_ttl_minutes("in 2"), 2.0)

    def test_expired_words(self) -> None:
        self.assertEqual(parse_ttl_minutes("now"), 0.0)
        self.assertEqual(parse_ttl_minutes("EXPIRED"), 0.0)

    def test_absolute_timestamps_are_relative_to_now(self) -> None:
        self.assertEqual(parse_ttl_minutes("2026-01-01T12:30:00Z", now_ms=NOW_MS), 30.0)
        self.assertEqual(parse_ttl_minutes("2026-01-01T13:00:00+00:00", now_ms=NOW_MS), 60.0)
        self.assertEqual(parse_ttl_minutes("2026-01-01T12:10:00", now_ms=NOW_MS), 10.0)

    def test_past_values_clamp_to_zero(self) -> None:
        self.assertEqual(parse_ttl_minutes(-3), 0.0)
        self.assertEqual(parse_ttl_minutes("-10"), 0.0)
        self.assertEqual(parse_ttl_minutes("2026-01-01T11:00:00Z", now_ms=NOW_MS), 0.0)

    def test_unparsable_values_map_to_sentinel(self) -> None:
        for raw in (None, "", "   ", "soon", "5 fortnights", "in tomorrow", True, object(), math.nan, math.inf, 10**400):
            with self.subTest(raw=raw):
                self.assertIsNone(try_parse_ttl_minutes(raw))
                self.assertEqual(parse_ttl_minutes(raw), TTL_UNKNOWN_MINUTES)

    def test_sentinel_is_expired(self) -> None:
        self.assertEqual(TTL_UNKNOWN_MINUTES, 0.0)


class ResolveTtlMinutesTests(unittest.TestCase):
    def _forecast(self, *, ttl_str: str | None, ttl_min: float | None) -> Forecast:
        return Forecast(
            key="obl-1",
            ev=1.0,
            hazard=0.1,
            updated_at_ms=NOW_MS,
            ttl_str=ttl_str,
            ttl_min=ttl_min,
        )

    def test_numeric_field_takes_precedence_over_string(self) -> None:
        forecast = self._forecast(ttl_str="20m", ttl_min=3.0)

        self.assertEqual(resolve_ttl_minutes(forecast, now_ms=NOW_MS), 3.0)

    def test_string_parsed_when_numeric_missing(self) -> None:
        forecast = self._forecast(ttl_str="1h15m", ttl_min=None)

        self.assertEqual(resolve_ttl_minutes(forecast, now_ms=NOW_MS), 75.0)

    def test_non_finite_numeric_falls_back_to_string(self) -> None:
        forecast = self._forecast(ttl_str="8m", ttl_min=math.inf)

        self.assertEqual(resolve_ttl_minutes(forecast, now_ms=NOW_MS), 8.0)

    def test_numeric_field_is_clamped(self) -> None:
        forecast = self._forecast(ttl_str=None, ttl_min=-4.0)

        self.assertEqual(resolve_ttl_minutes(forecast, now_ms=NOW_MS), 0.0)

    def test_nothing_usable_yields_sentinel(self) -> None:
        forecast = self._forecast(ttl_str="??", ttl_min=None)

        self.assertEqual(resolve_ttl_minutes(forecast, now_ms=NOW_MS), TTL_UNKNOWN_MINUTES)


if __name__ == "__main__":
    unittest.main()
