"""Typed geo reference documents.

Each raw JSON document is validated standalone (shape, types, uniqueness,
drift lock) and converted into an immutable dataclass. Algorithmic code only
ever sees these dataclasses, never the raw JSON.

    geo_accept_lists_v1    accept-lists per source + raw area -> geo mapping
    geo_display_names_v1   geo code -> display label
    geo_fallback_map_v1    geo code -> ordered fallback chain
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Tuple

from geofill.errors import SchemaShapeError
from geofill.locks import (
    ACCEPT_LIST_FIELDS,
    ACCEPT_LISTS_DOC,
    DISPLAY_NAMES_DOC,
    DISPLAY_NAMES_FIELD,
    FALLBACK_FIELD,
    FALLBACK_MAP_DOC,
    MAPPING_FIELD,
    FieldLock,
    verify_document_locks,
)
from geofill.schema import check_document_schema

logger = logging.getLogger(__name__)


def _frozen_map(d: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(d))


@dataclass(frozen=True)
class AcceptListsDocument:
    description: str
    accepted_duoarea_petroleum_gnd: Tuple[str, ...]
    accepted_duoarea_petroleum_wfr: Tuple[str, ...]
    accepted_duoarea_natural_gas: Tuple[str, ...]
    duoarea_to_geo_code: Mapping[str, str]
    notes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    locks: Mapping[str, FieldLock] = field(default_factory=lambda: MappingProxyType({}))
    schema_version: int = 1

    kind = ACCEPT_LISTS_DOC

    @property
    def accept_lists(self) -> Dict[str, Tuple[str, ...]]:
        return {name: getattr(self, name) for name in ACCEPT_LIST_FIELDS}

    @property
    def accepted_duoareas(self) -> FrozenSet[str]:
        """Union of all accept-lists."""
        out = set()
        for values in self.accept_lists.values():
            out.update(values)
        return frozenset(out)


@dataclass(frozen=True)
class DisplayNamesDocument:
    description: str
    geo_display_names: Mapping[str, str]
    locks: Mapping[str, FieldLock] = field(default_factory=lambda: MappingProxyType({}))
    schema_version: int = 1

    kind = DISPLAY_NAMES_DOC

    def display_name(self, geo_code: str) -> str:
        return self.geo_display_names.get(geo_code, geo_code)


@dataclass(frozen=True)
class FallbackMapDocument:
    description: str
    fallback_chain_by_geo_code: Mapping[str, Tuple[str, ...]]
    locks: Mapping[str, FieldLock] = field(default_factory=lambda: MappingProxyType({}))
    schema_version: int = 1

    kind = FALLBACK_MAP_DOC


def _check_standalone(document_kind: str, doc: Any) -> Dict[str, FieldLock]:
    if not isinstance(doc, dict):
        raise SchemaShapeError(document_kind, "", "expected a JSON object")
    check_document_schema(doc, document_kind)
    return verify_document_locks(document_kind, doc)


def parse_accept_lists(doc: Any) -> AcceptListsDocument:
    """Validate a raw ``geo_accept_lists_v1`` document and return its typed form."""
    locks = _check_standalone(ACCEPT_LISTS_DOC, doc)
    parsed = AcceptListsDocument(
        description=doc["description"],
        accepted_duoarea_petroleum_gnd=tuple(doc["accepted_duoarea_petroleum_gnd"]),
        accepted_duoarea_petroleum_wfr=tuple(doc["accepted_duoarea_petroleum_wfr"]),
        accepted_duoarea_natural_gas=tuple(doc["accepted_duoarea_natural_gas"]),
        duoarea_to_geo_code=_frozen_map(doc[MAPPING_FIELD]),
        notes=_frozen_map(doc["notes"]),
        locks=_frozen_map(locks),
        schema_version=doc["schema_version"],
    )
    logger.info(
        "%s ok: %d mapped duoareas, hash=%s",
        ACCEPT_LISTS_DOC,
        len(parsed.duoarea_to_geo_code),
        locks[MAPPING_FIELD].digest[:12],
    )
    return parsed


def parse_display_names(doc: Any) -> DisplayNamesDocument:
    """Validate a raw ``geo_display_names_v1`` document and return its typed form."""
    locks = _check_standalone(DISPLAY_NAMES_DOC, doc)
    parsed = DisplayNamesDocument(
        description=doc["description"],
        geo_display_names=_frozen_map(doc[DISPLAY_NAMES_FIELD]),
        locks=_frozen_map(locks),
        schema_version=doc["schema_version"],
    )
    logger.info("%s ok: %d names", DISPLAY_NAMES_DOC, len(parsed.geo_display_names))
    return parsed


def parse_fallback_map(doc: Any) -> FallbackMapDocument:
    """Validate a raw ``geo_fallback_map_v1`` document and return its typed form.

    Chain shape is checked later against the geography universe.
    """
    locks = _check_standalone(FALLBACK_MAP_DOC, doc)
    chains = {geo: tuple(chain) for geo, chain in doc[FALLBACK_FIELD].items()}
    parsed = FallbackMapDocument(
        description=doc["description"],
        fallback_chain_by_geo_code=_frozen_map(chains),
        locks=_frozen_map(locks),
        schema_version=doc["schema_version"],
    )
    logger.info("%s ok: %d chains", FALLBACK_MAP_DOC, len(chains))
    return parsed
