from __future__ import annotations

import math
from collections import Counter
from typing import Any, Sequence

from .evaluator import partition_forecasts
from .types import EvaluatedForecast


def _row(item: EvaluatedForecast) -> dict[str, Any]:
    return {
        "key": item.key,
        "ev": item.forecast.ev,
        "hazard": item.forecast.hazard,
        "ttl_min": item.ttl_min,
        "age_ms": item.age_ms,
        "reason": item.reason,
        "previous_ev": item.previous_ev,
    }


def build_audit_summary(
    evaluated: Sequence[EvaluatedForecast],
    *,
    limit: int = 10,
) -> dict[str, Any]:
    active, expired = partition_forecasts(evaluated)
    reason_counts = Counter(item.reason for item in expired if item.reason)
    row_limit = max(0, int(limit))
    return {
        "total": len(evaluated),
        "active": len(active),
        "expired": len(expired),
        "reason_counts": dict(reason_counts.most_common()),
        "active_rows": [_row(item) for item in active[:row_limit]],
        "expired_rows": [_row(item) for item in expired[:row_limit]],
    }


def _format_number(value: Any, digits: int) -> str:
    if value is None:
        return "-"
    number = float(value)
    if not math.isfinite(number):
        return "inf" if number > 0 else "-inf"
    return f"{number:.{digits}f}"


def _format_rows(rows: list[dict[str, Any]], *, with_reason: bool) -> list[str]:
    lines: list[str] = []
    for row in rows:
        line = (
            f"  {row['key']}: ev={_format_number(row['ev'], 2)}"
            f" hazard={_format_number(row['hazard'], 3)}"
            f" ttl_min={_format_number(row['ttl_min'], 2)}"
            f" age_ms={row['age_ms']}"
        )
        if with_reason:
            line += f" reason={row['reason']} prev_ev={_format_number(row['previous_ev'], 2)}"
        lines.append(line)
    return lines


def format_audit_report(summary: dict[str, Any]) -> str:
    lines = [
        "[summary]",
        f"  total={summary['total']} active={summary['active']} expired={summary['expired']}",
        "",
        "[active]",
    ]
    active_rows = _format_rows(summary["active_rows"], with_reason=False)
    lines.extend(active_rows or ["  (none)"])
    lines.extend(["", "[expired]"])
    expired_rows = _format_rows(summary["expired_rows"], with_reason=True)
    lines.extend(expired_rows or ["  (none)"])

    lines.extend(["", "[reason_counts]"])
    if summary["reason_counts"]:
        for reason, count in summary["reason_counts"].items():
            lines.append(f"  {reason}: {count}")
    else:
        lines.append("  (none)")

    if summary["expired"]:
        lines.extend(
            [
                "",
                "[recommendations]",
                f"  refresh {summary['expired']} of {summary['total']} forecasts",
            ]
        )
    return "\n".join(lines)
