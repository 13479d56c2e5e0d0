"""Observed price rows and their normalization.

An ``Observation`` is one already-fetched price row: dataset, fuel, sector,
geo code, period, price (or None), units and source provenance. Upstream
rows are partial by nature, so anything without a fuel, period or geo code
is dropped rather than treated as an error.

Period strings are ``YYYY-MM-DD`` or ``YYYY-MM`` and compare lexicographically.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

FUEL_NAME_BY_PRODUCT: Mapping[str, str] = {
    "EPD2F": "Heating Oil",
    "EPLLPA": "Propane",
    "EPG0": "Natural Gas",
    "EPD2DXL0": "Diesel",
    "EPMR": "Gasoline",
}

HEATING_FUELS_DATASET = "heating_fuels_latest"
TRANSPORTATION_FUELS_DATASET = "transportation_fuels_latest"

R = TypeVar("R")


class MappingGapError(LookupError):
    """A source row names a raw area that the validated mapping does not know."""

    def __init__(self, duoarea: str):
        self.duoarea = duoarea
        super().__init__(f"INTERNAL_MAPPING_GAP: duoarea {duoarea} missing in duoarea_to_geo_code")


def to_number_or_null(value: Any) -> Optional[float]:
    """Coerce an upstream value to a finite float, or None.

    Accepts ints, floats and numeric strings. Empty strings, ``"null"``,
    booleans, NaN and infinities become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or text.lower() == "null":
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


@dataclass(frozen=True)
class Observation:
    fuel: str
    period: str
    geo_code: str
    price: Optional[float] = None
    price_units: Optional[str] = None
    dataset: str = ""
    sector: Optional[str] = None
    source_route: Optional[str] = None
    source_series: Optional[str] = None

    @property
    def has_price(self) -> bool:
        return self.price is not None

    @property
    def index_key(self) -> Tuple[str, str, str]:
        return (self.fuel, self.period, self.geo_code)

    @classmethod
    def from_row(cls, row: Any) -> Optional["Observation"]:
        """Build an observation from a row dict; None when fuel/period/geo is missing."""
        if isinstance(row, Observation):
            row = row.to_dict()
        if not isinstance(row, Mapping):
            return None
        fuel = _text(row.get("fuel"))
        period = _text(row.get("period"))
        geo_code = _text(row.get("geo_code"))
        if not fuel or not period or not geo_code:
            return None
        return cls(
            fuel=fuel,
            period=period,
            geo_code=geo_code,
            price=to_number_or_null(row.get("price")),
            price_units=_optional_text(row.get("price_units")),
            dataset=_text(row.get("dataset")),
            sector=_optional_text(row.get("sector")),
            source_route=_optional_text(row.get("source_route")),
            source_series=_optional_text(row.get("source_series")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataset": self.dataset,
            "fuel": self.fuel,
            "sector": self.sector,
            "geo_code": self.geo_code,
            "period": self.period,
            "price": self.price,
            "price_units": self.price_units,
            "source_route": self.source_route,
            "source_series": self.source_series,
        }


def coerce_observations(rows: Iterable[Any]) -> Tuple[List[Observation], int]:
    """Convert rows to observations, returning ``(observations, skipped_count)``."""
    out: List[Observation] = []
    skipped = 0
    for row in rows:
        obs = Observation.from_row(row)
        if obs is None:
            skipped += 1
            logger.debug("skipping row without fuel/period/geo_code: %r", row)
            continue
        out.append(obs)
    return out, skipped


def prefer(current: Optional[Observation], candidate: Observation) -> Observation:
    """Insert-or-prefer rule: keep the first row unless it lacks a price and the candidate has one."""
    if current is None:
        return candidate
    if not current.has_price and candidate.has_price:
        return candidate
    return current


def reduce_by_key(
    observations: Iterable[Observation],
    key: Callable[[Observation], Hashable],
) -> Dict[Hashable, Observation]:
    """Single-pass insert-or-prefer reduction; keys keep first-seen order."""
    best: Dict[Hashable, Observation] = {}
    for obs in observations:
        k = key(obs)
        best[k] = prefer(best.get(k), obs)
    return best


def dedupe_rows(observations: Iterable[Observation]) -> List[Observation]:
    """Deduplicate by ``(geo_code, fuel, period)`` with the insert-or-prefer rule."""
    return list(reduce_by_key(observations, lambda o: (o.geo_code, o.fuel, o.period)).values())


def pick_latest_period(observations: Iterable[Observation], *, require_price: bool = False) -> Optional[str]:
    """Return the greatest period, optionally among rows that carry a price."""
    best: Optional[str] = None
    for obs in observations:
        if require_price and not obs.has_price:
            continue
        if best is None or obs.period > best:
            best = obs.period
    return best


def latest_only(observations: Iterable[Observation], *, require_price: bool = False) -> List[Observation]:
    """Keep only the rows of the latest period."""
    rows = list(observations)
    latest = pick_latest_period(rows, require_price=require_price)
    return [o for o in rows if o.period == latest]


def sort_rows(rows: Iterable[R]) -> List[R]:
    """Order by ``(dataset, fuel, geo_code)`` ascending, then period descending."""
    by_period = sorted(rows, key=lambda r: r.period, reverse=True)
    return sorted(by_period, key=lambda r: (r.dataset, r.fuel, r.geo_code))


def normalize_source_rows(
    rows: Iterable[Mapping[str, Any]],
    duoarea_to_geo_code: Mapping[str, str],
    *,
    source_route: str,
    dataset: str = "",
    sector: Optional[str] = "Residential",
    product: Optional[str] = None,
    default_units: Optional[str] = None,
    fuel_names: Mapping[str, str] = FUEL_NAME_BY_PRODUCT,
) -> Iterator[Observation]:
    """Map raw-area source rows onto geo codes.

    Each row carries ``period``, ``duoarea``, ``product``, ``units``,
    ``value`` and ``series``. ``product`` overrides the row's own product
    (natural gas rows are all reported under one product code).
    Raises ``MappingGapError`` for a raw area missing from the mapping.
    """
    for r in rows:
        duoarea = _text(r.get("duoarea"))
        geo_code = duoarea_to_geo_code.get(duoarea)
        if not geo_code:
            raise MappingGapError(duoarea)
        code = product or _text(r.get("product"))
        yield Observation(
            fuel=fuel_names.get(code, code),
            period=_text(r.get("period")),
            geo_code=geo_code,
            price=to_number_or_null(r.get("value")),
            price_units=_optional_text(r.get("units")) or default_units,
            dataset=dataset,
            sector=sector,
            source_route=source_route,
            source_series=_optional_text(r.get("series")),
        )


def combine_datasets(datasets: Mapping[str, Iterable[Observation]]) -> List[Observation]:
    """Tag each dataset's rows with the dataset name and merge them in output order."""
    combined: List[Observation] = []
    for name in sorted(datasets):
        combined.extend(dataclasses.replace(o, dataset=name) for o in datasets[name])
    return sort_rows(combined)
