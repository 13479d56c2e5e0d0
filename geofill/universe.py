"""Canonical geography universe.

The universe is the single set of geo codes that every geo-indexed document
must cover exactly. It is derived once per validation run from the raw area
mapping: the root code plus every mapped geo code (states, DC, PADD regions
and sub-regions as they appear in the mapping).
"""

from __future__ import annotations

from typing import FrozenSet, Mapping

from geofill.context import DEFAULT_CONTEXT, ResolutionContext

GeographyUniverse = FrozenSet[str]


def derive_geo_universe(
    duoarea_to_geo_code: Mapping[str, str],
    context: ResolutionContext = DEFAULT_CONTEXT,
) -> GeographyUniverse:
    """Return ``{root} ∪ values(mapping)``."""
    universe = {context.root_geo_code}
    universe.update(duoarea_to_geo_code.values())
    return frozenset(universe)
