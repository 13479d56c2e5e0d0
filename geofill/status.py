"""Health summary of a filled price grid.

Distinguishes a healthy grid (every cell priced) from a degraded one
(still-missing cells present) and an unhealthy one (no rows at all), and
reports the latest period per ``dataset::fuel::sector``.

Copyright (c) 2024 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping

from geofill.fallback import FilledRow


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class FillStatus:
    status: HealthStatus
    rows_filled: int
    direct_rows: int
    fallback_rows: int
    null_price_rows: int
    latest_period_by_fuel_key: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not HealthStatus.UNHEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "status": self.status.value,
            "counts": {
                "rows_filled": self.rows_filled,
                "direct_rows": self.direct_rows,
                "fallback_rows": self.fallback_rows,
                "null_price_rows": self.null_price_rows,
            },
            "latest_period_by_fuel_key": dict(sorted(self.latest_period_by_fuel_key.items())),
        }


def latest_period_by_fuel_key(rows: Iterable[FilledRow]) -> Dict[str, str]:
    """Map ``dataset::fuel::sector`` to its greatest period; rows lacking any part are ignored."""
    best: Dict[str, str] = {}
    for r in rows:
        if not (r.dataset and r.fuel and r.sector and r.period):
            continue
        key = f"{r.dataset}::{r.fuel}::{r.sector}"
        if key not in best or r.period > best[key]:
            best[key] = r.period
    return best


def summarize_fill(rows: Iterable[FilledRow]) -> FillStatus:
    rows = list(rows)
    direct = sum(1 for r in rows if not r.is_fallback)
    null_price = sum(1 for r in rows if r.price is None)

    if not rows:
        status = HealthStatus.UNHEALTHY
    elif null_price:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    return FillStatus(
        status=status,
        rows_filled=len(rows),
        direct_rows=direct,
        fallback_rows=len(rows) - direct,
        null_price_rows=null_price,
        latest_period_by_fuel_key=latest_period_by_fuel_key(rows),
    )
