"""Fallback resolution engine.

Given sparse observations and validated fallback chains, produce one row per
``(combo, geo)`` for every combo ``(dataset, fuel, period)`` seen in the input
and every geo code of the universe:

    direct hit     the target geo has a priced observation
    fallback hit   the nearest chain member with a price donates its value
    still missing  no chain member has a price; the row is emitted with
                   ``price=None`` and ``is_fallback=True``

Chains are walked in authored order (nearest first, root last); that order is
the tie-break. Missing data never raises. Output is sorted by
``(dataset, fuel, geo_code, period DESC)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from geofill.errors import ChainShapeError
from geofill.locks import FALLBACK_MAP_DOC
from geofill.observations import Observation, coerce_observations, reduce_by_key, sort_rows
from geofill.universe import GeographyUniverse

logger = logging.getLogger(__name__)

IndexKey = Tuple[str, str, str]


@dataclass(frozen=True)
class Combo:
    """A distinct ``(dataset, fuel, period)`` with one representative's metadata."""

    dataset: str
    fuel: str
    period: str
    sector: Optional[str] = None
    price_units: Optional[str] = None


@dataclass(frozen=True)
class FilledRow:
    dataset: str
    fuel: str
    sector: Optional[str]
    geo_code: str
    geo_display_name: str
    period: str
    price: Optional[float]
    price_units: Optional[str]
    source_route: Optional[str]
    source_series: Optional[str]
    is_fallback: bool
    fallback_from_geo_code: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataset": self.dataset,
            "fuel": self.fuel,
            "sector": self.sector,
            "geo_code": self.geo_code,
            "geo_display_name": self.geo_display_name,
            "period": self.period,
            "price": self.price,
            "price_units": self.price_units,
            "source_route": self.source_route,
            "source_series": self.source_series,
            "is_fallback": self.is_fallback,
            "fallback_from_geo_code": self.fallback_from_geo_code,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "FilledRow":
        return cls(
            dataset=str(d.get("dataset") or ""),
            fuel=str(d.get("fuel") or ""),
            sector=d.get("sector"),
            geo_code=str(d.get("geo_code") or ""),
            geo_display_name=str(d.get("geo_display_name") or d.get("geo_code") or ""),
            period=str(d.get("period") or ""),
            price=d.get("price"),
            price_units=d.get("price_units"),
            source_route=d.get("source_route"),
            source_series=d.get("source_series"),
            is_fallback=d.get("is_fallback") is True,
            fallback_from_geo_code=d.get("fallback_from_geo_code"),
        )


@dataclass(frozen=True)
class ResolutionCounts:
    input_rows: int = 0
    skipped_rows: int = 0
    combos: int = 0
    geos: int = 0
    direct_hits: int = 0
    fallback_hits: int = 0
    still_missing: int = 0
    output_rows_filled: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "input_rows": self.input_rows,
            "skipped_rows": self.skipped_rows,
            "combos": self.combos,
            "geos": self.geos,
            "direct_hits": self.direct_hits,
            "fallback_hits": self.fallback_hits,
            "still_missing": self.still_missing,
            "output_rows_filled": self.output_rows_filled,
        }


@dataclass(frozen=True)
class ResolutionResult:
    rows: Tuple[FilledRow, ...]
    counts: ResolutionCounts = field(default_factory=ResolutionCounts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": self.counts.to_dict(),
            "rows_filled": [r.to_dict() for r in self.rows],
        }


def build_index(observations: Iterable[Observation]) -> Mapping[IndexKey, Observation]:
    """``(fuel, period, geo) -> best observation``: priced beats unpriced, else first seen."""
    return MappingProxyType(reduce_by_key(observations, lambda o: o.index_key))


def discover_combos(observations: Iterable[Observation]) -> List[Combo]:
    """Distinct combos in first-seen order; rows without a dataset define none."""
    combos: Dict[Tuple[str, str, str], Combo] = {}
    for obs in observations:
        if not obs.dataset:
            continue
        key = (obs.dataset, obs.fuel, obs.period)
        if key not in combos:
            combos[key] = Combo(obs.dataset, obs.fuel, obs.period, obs.sector, obs.price_units)
    return list(combos.values())


class FallbackResolver:
    """Fill a complete price grid over a geography universe.

    ``chains`` must have passed chain validation; a universe member without a
    chain is reported as a ``ChainShapeError``.
    """

    def __init__(
        self,
        universe: GeographyUniverse,
        chains: Mapping[str, Sequence[str]],
        display_names: Optional[Mapping[str, str]] = None,
    ):
        missing = sorted(g for g in universe if g not in chains)
        if missing:
            raise ChainShapeError(FALLBACK_MAP_DOC, missing[0], (), "no fallback chain for geo code")
        self.geo_codes: Tuple[str, ...] = tuple(sorted(universe))
        self.chains: Mapping[str, Tuple[str, ...]] = MappingProxyType({g: tuple(chains[g]) for g in self.geo_codes})
        self.display_names: Mapping[str, str] = MappingProxyType(dict(display_names or {}))

    @classmethod
    def from_bundle(cls, bundle: Any) -> "FallbackResolver":
        """Build from a validated ``GeoConfigBundle``."""
        return cls(
            bundle.universe,
            bundle.chains,
            bundle.display_names.geo_display_names,
        )

    def _display_name(self, geo_code: str) -> str:
        return self.display_names.get(geo_code, geo_code)

    def _donor(self, index: Mapping[IndexKey, Observation], combo: Combo, target: str) -> Tuple[Optional[Observation], Optional[str]]:
        for candidate in self.chains[target]:
            obs = index.get((combo.fuel, combo.period, candidate))
            if obs is not None and obs.has_price:
                return obs, candidate
        return None, None

    def _row(self, combo: Combo, target: str, obs: Observation, *, donor: Optional[str]) -> FilledRow:
        return FilledRow(
            dataset=combo.dataset,
            fuel=combo.fuel,
            sector=obs.sector,
            geo_code=target,
            geo_display_name=self._display_name(target),
            period=combo.period,
            price=obs.price,
            price_units=obs.price_units,
            source_route=obs.source_route,
            source_series=obs.source_series,
            is_fallback=donor is not None,
            fallback_from_geo_code=donor,
        )

    def _missing_row(self, combo: Combo, target: str) -> FilledRow:
        return FilledRow(
            dataset=combo.dataset,
            fuel=combo.fuel,
            sector=combo.sector,
            geo_code=target,
            geo_display_name=self._display_name(target),
            period=combo.period,
            price=None,
            price_units=combo.price_units,
            source_route=None,
            source_series=None,
            is_fallback=True,
            fallback_from_geo_code=None,
        )

    def resolve(self, rows: Iterable[Any]) -> ResolutionResult:
        """Fill every ``(combo, geo)`` cell from observations or raw row dicts."""
        rows = list(rows)
        observations, skipped = coerce_observations(rows)
        index = build_index(observations)
        combos = discover_combos(observations)

        filled: List[FilledRow] = []
        direct = fallback = missing = 0
        for combo in combos:
            for target in self.geo_codes:
                own = index.get((combo.fuel, combo.period, target))
                if own is not None and own.has_price:
                    direct += 1
                    filled.append(self._row(combo, target, own, donor=None))
                    continue

                donor_obs, donor = self._donor(index, combo, target)
                if donor_obs is not None:
                    fallback += 1
                    filled.append(self._row(combo, target, donor_obs, donor=donor))
                else:
                    missing += 1
                    filled.append(self._missing_row(combo, target))

        counts = ResolutionCounts(
            input_rows=len(rows),
            skipped_rows=skipped,
            combos=len(combos),
            geos=len(self.geo_codes),
            direct_hits=direct,
            fallback_hits=fallback,
            still_missing=missing,
            output_rows_filled=len(filled),
        )
        logger.info(
            "filled %d rows (%d combos x %d geos): direct=%d fallback=%d missing=%d",
            counts.output_rows_filled,
            counts.combos,
            counts.geos,
            direct,
            fallback,
            missing,
        )
        return ResolutionResult(rows=tuple(sort_rows(filled)), counts=counts)


def resolve_with_fallback(
    universe: GeographyUniverse,
    chains: Mapping[str, Sequence[str]],
    rows: Iterable[Any],
    display_names: Optional[Mapping[str, str]] = None,
) -> ResolutionResult:
    """Convenience wrapper around ``FallbackResolver(...).resolve(rows)``."""
    return FallbackResolver(universe, chains, display_names).resolve(rows)
