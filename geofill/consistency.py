"""Cross-document consistency checks.

Two invariants tie the reference documents together:

1. The union of the accept-lists equals the key set of the raw area mapping.
   An accepted raw area without a mapping is a ``missing_mapping``; a mapping
   key used by no accept-list is an ``orphaned_mapping``. The second guard
   prevents the mapping layer from growing without the accept-lists.
2. The display-name and fallback-map documents are keyed by exactly the
   derived geography universe.

Failures carry the offending identifiers, never a bare "mismatch".
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Iterable

from geofill.documents import AcceptListsDocument, DisplayNamesDocument, FallbackMapDocument
from geofill.errors import CoverageError
from geofill.locks import DISPLAY_NAMES_FIELD, FALLBACK_FIELD, MAPPING_FIELD
from geofill.universe import GeographyUniverse

logger = logging.getLogger(__name__)

MISSING_MAPPING = "missing_mapping"
ORPHANED_MAPPING = "orphaned_mapping"
UNIVERSE_COVERAGE = "universe"


def check_mapping_coverage(accept: AcceptListsDocument) -> None:
    """Require ``union(accept-lists) == keys(duoarea_to_geo_code)``."""
    accepted = accept.accepted_duoareas
    mapped = set(accept.duoarea_to_geo_code)

    missing = accepted - mapped
    if missing:
        logger.warning("%s: accepted duoareas without mapping: %s", accept.kind, sorted(missing))
        raise CoverageError(accept.kind, MAPPING_FIELD, coverage=MISSING_MAPPING, missing=missing)

    orphaned = mapped - accepted
    if orphaned:
        logger.warning("%s: mapping keys in no accept-list: %s", accept.kind, sorted(orphaned))
        raise CoverageError(accept.kind, MAPPING_FIELD, coverage=ORPHANED_MAPPING, extra=orphaned)


def check_universe_keys(
    document_kind: str,
    field: str,
    keys: Iterable[str],
    universe: AbstractSet[str],
) -> None:
    """Require a geo-indexed key set to equal the universe exactly."""
    key_set = set(keys)
    missing = set(universe) - key_set
    extra = key_set - set(universe)
    if missing or extra:
        logger.warning("%s.%s does not cover the geo universe", document_kind, field)
        raise CoverageError(document_kind, field, coverage=UNIVERSE_COVERAGE, missing=missing, extra=extra)


def check_display_names_coverage(names: DisplayNamesDocument, universe: GeographyUniverse) -> None:
    check_universe_keys(names.kind, DISPLAY_NAMES_FIELD, names.geo_display_names.keys(), universe)


def check_fallback_coverage(fallback: FallbackMapDocument, universe: GeographyUniverse) -> None:
    check_universe_keys(fallback.kind, FALLBACK_FIELD, fallback.fallback_chain_by_geo_code.keys(), universe)


def check_cross_document_consistency(
    accept: AcceptListsDocument,
    names: DisplayNamesDocument,
    fallback: FallbackMapDocument,
    universe: GeographyUniverse,
) -> None:
    check_mapping_coverage(accept)
    check_display_names_coverage(names, universe)
    check_fallback_coverage(fallback, universe)
