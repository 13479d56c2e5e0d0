"""Validation of the three geo reference documents as one bundle.

Order of checks:

1. each document standalone (shape, types, uniqueness, drift lock)
2. geography universe derived from the accept-lists mapping
3. accept-lists vs mapping coverage, display names and fallback map vs universe
4. fallback chain shapes

The accept-lists document is validated first because it yields the universe
used by every later check. The result carries the typed documents, the
universe and the recomputed counts/hashes for audit output.
"""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from geofill.chains import validate_chains
from geofill.consistency import check_cross_document_consistency
from geofill.context import DEFAULT_CONTEXT, ResolutionContext
from geofill.core import load_json
from geofill.documents import (
    AcceptListsDocument,
    DisplayNamesDocument,
    FallbackMapDocument,
    parse_accept_lists,
    parse_display_names,
    parse_fallback_map,
)
from geofill.errors import GeoConfigError, ValidationResult
from geofill.locks import ACCEPT_LISTS_DOC, DISPLAY_NAMES_DOC, FALLBACK_MAP_DOC
from geofill.universe import GeographyUniverse, derive_geo_universe

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAMES: Mapping[str, str] = {
    ACCEPT_LISTS_DOC: "geo_accept_lists_v1.json",
    DISPLAY_NAMES_DOC: "geo_display_names_v1.json",
    FALLBACK_MAP_DOC: "geo_fallback_map_v1.json",
}


@dataclass(frozen=True)
class GeoConfigBundle:
    """Validated reference documents plus the derived universe."""

    accept_lists: AcceptListsDocument
    display_names: DisplayNamesDocument
    fallback_map: FallbackMapDocument
    universe: GeographyUniverse
    context: ResolutionContext = DEFAULT_CONTEXT

    @property
    def chains(self) -> Mapping[str, Tuple[str, ...]]:
        return self.fallback_map.fallback_chain_by_geo_code

    def report(self) -> Dict[str, Any]:
        """Recomputed counts and hashes per document, for audit output."""
        out: Dict[str, Any] = {}
        for doc in (self.accept_lists, self.display_names, self.fallback_map):
            out[doc.kind] = {
                "actual_counts": {k: v.count for k, v in doc.locks.items()},
                "actual_hashes": {k: v.digest for k, v in doc.locks.items()},
            }
        out["geo_universe"] = sorted(self.universe)
        return out


def check_geo_configs(
    accept_doc: Any,
    names_doc: Any,
    fallback_doc: Any,
    context: ResolutionContext = DEFAULT_CONTEXT,
) -> GeoConfigBundle:
    """Validate all three documents, raising the first ``GeoConfigError``."""
    accept = parse_accept_lists(accept_doc)
    names = parse_display_names(names_doc)
    fallback = parse_fallback_map(fallback_doc)

    universe = derive_geo_universe(accept.duoarea_to_geo_code, context)
    check_cross_document_consistency(accept, names, fallback, universe)
    validate_chains(fallback.fallback_chain_by_geo_code, universe, context)

    logger.info("geo configs valid: %d geo codes in universe", len(universe))
    return GeoConfigBundle(
        accept_lists=accept,
        display_names=names,
        fallback_map=fallback,
        universe=universe,
        context=context,
    )


def validate_geo_configs(
    accept_doc: Any,
    names_doc: Any,
    fallback_doc: Any,
    context: ResolutionContext = DEFAULT_CONTEXT,
) -> ValidationResult[GeoConfigBundle]:
    """Validate all three documents; failures are returned, not raised."""
    try:
        return ValidationResult.success(check_geo_configs(accept_doc, names_doc, fallback_doc, context))
    except GeoConfigError as err:
        logger.error(
            "geo config validation failed: %s",
            err,
            extra={"document": err.document, "field_name": err.field, "error_kind": err.kind},
        )
        return ValidationResult.failure(err)


def load_geo_config_documents(
    config_dir: pathlib.Path,
    file_names: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Read the three raw JSON documents from a directory, keyed by document kind."""
    names = dict(DEFAULT_FILE_NAMES)
    names.update(file_names or {})
    config_dir = pathlib.Path(config_dir)
    return {kind: load_json(config_dir / names[kind]) for kind in DEFAULT_FILE_NAMES}


def load_geo_configs(
    config_dir: pathlib.Path,
    context: ResolutionContext = DEFAULT_CONTEXT,
    file_names: Optional[Mapping[str, str]] = None,
) -> ValidationResult[GeoConfigBundle]:
    """Load the three documents from ``config_dir`` and validate them."""
    docs = load_geo_config_documents(config_dir, file_names)
    return validate_geo_configs(
        docs[ACCEPT_LISTS_DOC],
        docs[DISPLAY_NAMES_DOC],
        docs[FALLBACK_MAP_DOC],
        context,
    )
