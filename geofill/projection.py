"""Compact price matrix of a filled grid.

Projects filled rows onto ``values[fuel_key][geo_code]`` where
``fuel_key`` is ``dataset::fuel``. Each fuel key keeps only its latest
period, and every ``(fuel_key, geo_code)`` pair gets a cell: gaps become a
null-priced cell flagged as fallback with no donor.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from geofill.fallback import FilledRow

FUEL_KEY_SEPARATOR = "::"


def fuel_key(dataset: str, fuel: str) -> str:
    return f"{dataset}{FUEL_KEY_SEPARATOR}{fuel}"


@dataclass(frozen=True)
class MatrixCell:
    price: Optional[float]
    units: Optional[str]
    period: Optional[str]
    is_fallback: bool
    fallback_from_geo_code: Optional[str]

    @classmethod
    def gap(cls, period: Optional[str]) -> "MatrixCell":
        return cls(price=None, units=None, period=period, is_fallback=True, fallback_from_geo_code=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "units": self.units,
            "period": self.period,
            "is_fallback": self.is_fallback,
            "fallback_from_geo_code": self.fallback_from_geo_code,
        }


@dataclass(frozen=True)
class PriceMatrix:
    geos: Tuple[Tuple[str, str], ...]
    fuels: Tuple[Tuple[str, str, str], ...]
    values: Mapping[str, Mapping[str, MatrixCell]]

    def cell(self, key: str, geo_code: str) -> MatrixCell:
        return self.values[key][geo_code]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "geos": [{"geo_code": g, "geo_display_name": name} for g, name in self.geos],
            "fuels": [{"fuel_key": k, "dataset": d, "fuel": f} for k, d, f in self.fuels],
            "values": {
                k: {g: c.to_dict() for g, c in sorted(cells.items())}
                for k, cells in self.values.items()
            },
        }


def latest_period_by_fuel(rows: Iterable[FilledRow]) -> Dict[str, str]:
    """Greatest period per ``dataset::fuel``; rows missing dataset, fuel or period are ignored."""
    best: Dict[str, str] = {}
    for r in rows:
        if not (r.dataset and r.fuel and r.period):
            continue
        key = fuel_key(r.dataset, r.fuel)
        if key not in best or r.period > best[key]:
            best[key] = r.period
    return best


def build_price_matrix(
    rows: Iterable[FilledRow],
    geo_codes: Iterable[str],
    display_names: Optional[Mapping[str, str]] = None,
) -> PriceMatrix:
    """Project filled rows onto a complete fuel-key by geo-code matrix."""
    rows = list(rows)
    names = display_names or {}
    codes = sorted(set(geo_codes))
    latest = latest_period_by_fuel(rows)
    keys = sorted(latest)

    values: Dict[str, Dict[str, MatrixCell]] = {k: {} for k in keys}
    for r in rows:
        if not (r.dataset and r.fuel and r.geo_code):
            continue
        key = fuel_key(r.dataset, r.fuel)
        if r.period != latest.get(key):
            continue
        values[key][r.geo_code] = MatrixCell(
            price=r.price,
            units=r.price_units,
            period=r.period,
            is_fallback=r.is_fallback,
            fallback_from_geo_code=r.fallback_from_geo_code,
        )

    for key in keys:
        for geo in codes:
            if geo not in values[key]:
                values[key][geo] = MatrixCell.gap(latest[key])

    fuels: List[Tuple[str, str, str]] = []
    for key in keys:
        dataset, _, fuel = key.partition(FUEL_KEY_SEPARATOR)
        fuels.append((key, dataset, fuel))

    return PriceMatrix(
        geos=tuple((g, names.get(g, g)) for g in codes),
        fuels=tuple(fuels),
        values=MappingProxyType({k: MappingProxyType(v) for k, v in values.items()}),
    )
