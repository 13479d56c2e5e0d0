"""Embedded drift locks for geo reference documents.

Each reference document carries three companion blocks describing its own
locked fields:

    expected_counts               element / row count per field
    expected_sorted_first_items   first N canonical lines per field
    expected_set_hashes           sha256 of the canonical serialization

The lock is an audit trail, not business logic: a hand-edit that changes a
locked field without refreshing the blocks fails validation with a
``DriftError``. ``build_expected_lock`` / ``refresh_document_locks`` are the
supported way to regenerate the blocks after an intentional edit.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from geofill.core import (
    chain_map_lines,
    first_n_sorted_lines,
    hash_chain_map,
    hash_set,
    hash_string_map,
    set_lines,
    string_map_lines,
)
from geofill.errors import DriftError

logger = logging.getLogger(__name__)

LOCK_BLOCKS = ("expected_counts", "expected_sorted_first_items", "expected_set_hashes")

ACCEPT_LISTS_DOC = "geo_accept_lists_v1"
DISPLAY_NAMES_DOC = "geo_display_names_v1"
FALLBACK_MAP_DOC = "geo_fallback_map_v1"

ACCEPT_LIST_FIELDS = (
    "accepted_duoarea_petroleum_gnd",
    "accepted_duoarea_petroleum_wfr",
    "accepted_duoarea_natural_gas",
)
MAPPING_FIELD = "duoarea_to_geo_code"
DISPLAY_NAMES_FIELD = "geo_display_names"
FALLBACK_FIELD = "fallback_chain_by_geo_code"


@dataclass(frozen=True)
class FieldCodec:
    """How a locked field is canonicalized: its sorted lines and its digest."""

    lines: Callable[[Any], List[str]]
    digest: Callable[[Any], str]


SET_CODEC = FieldCodec(lines=set_lines, digest=hash_set)
STRING_MAP_CODEC = FieldCodec(lines=string_map_lines, digest=hash_string_map)
CHAIN_MAP_CODEC = FieldCodec(lines=chain_map_lines, digest=hash_chain_map)

LOCKED_FIELDS: Dict[str, Tuple[Tuple[str, FieldCodec], ...]] = {
    ACCEPT_LISTS_DOC: tuple((f, SET_CODEC) for f in ACCEPT_LIST_FIELDS) + ((MAPPING_FIELD, STRING_MAP_CODEC),),
    DISPLAY_NAMES_DOC: ((DISPLAY_NAMES_FIELD, STRING_MAP_CODEC),),
    FALLBACK_MAP_DOC: ((FALLBACK_FIELD, CHAIN_MAP_CODEC),),
}


@dataclass(frozen=True)
class FieldLock:
    """Recomputed lock values for one field."""

    count: int
    sorted_lines: Tuple[str, ...]
    digest: str


def locked_fields(document_kind: str) -> Tuple[str, ...]:
    try:
        return tuple(name for name, _ in LOCKED_FIELDS[document_kind])
    except KeyError:
        raise ValueError(f"unknown document kind: {document_kind}") from None


def compute_field_lock(value: Any, codec: FieldCodec) -> FieldLock:
    # Counts are raw lengths: list entries (uniqueness already enforced) or map keys.
    return FieldLock(
        count=len(value),
        sorted_lines=tuple(codec.lines(value)),
        digest=codec.digest(value),
    )


def compute_document_locks(document_kind: str, doc: Mapping[str, Any]) -> Dict[str, FieldLock]:
    """Recompute the lock of every locked field of a document."""
    if document_kind not in LOCKED_FIELDS:
        raise ValueError(f"unknown document kind: {document_kind}")
    return {name: compute_field_lock(doc[name], codec) for name, codec in LOCKED_FIELDS[document_kind]}


def build_expected_lock(
    document_kind: str,
    doc: Mapping[str, Any],
    *,
    sample_size: int,
) -> Dict[str, Dict[str, Any]]:
    """Build the three ``expected_*`` blocks for a document's current data."""
    actual = compute_document_locks(document_kind, doc)
    return {
        "expected_counts": {k: v.count for k, v in actual.items()},
        "expected_sorted_first_items": {k: first_n_sorted_lines(v.sorted_lines, sample_size) for k, v in actual.items()},
        "expected_set_hashes": {k: v.digest for k, v in actual.items()},
    }


def refresh_document_locks(document_kind: str, doc: Mapping[str, Any], *, sample_size: int) -> Dict[str, Any]:
    """Return a copy of ``doc`` whose lock blocks match its data."""
    out = copy.deepcopy(dict(doc))
    out.update(build_expected_lock(document_kind, doc, sample_size=sample_size))
    return out


def verify_document_locks(document_kind: str, doc: Mapping[str, Any]) -> Dict[str, FieldLock]:
    """Compare the embedded lock blocks with recomputed values.

    Expects a document that already passed schema validation. Raises
    ``DriftError`` on the first mismatch; returns the recomputed locks.
    """
    actual = compute_document_locks(document_kind, doc)
    for name in locked_fields(document_kind):
        lock = actual[name]

        expected_count = doc["expected_counts"][name]
        if expected_count != lock.count:
            logger.warning("%s: count drift on %s", document_kind, name)
            raise DriftError(document_kind, name, "expected_counts", expected_count, lock.count)

        expected_first: Sequence[str] = doc["expected_sorted_first_items"][name]
        actual_first = list(lock.sorted_lines[: len(expected_first)])
        if list(expected_first) != actual_first:
            logger.warning("%s: sorted-lines drift on %s", document_kind, name)
            raise DriftError(
                document_kind, name, "expected_sorted_first_items", list(expected_first), actual_first
            )

        expected_hash = doc["expected_set_hashes"][name]
        if expected_hash != lock.digest:
            logger.warning("%s: hash drift on %s", document_kind, name)
            raise DriftError(document_kind, name, "expected_set_hashes", expected_hash, lock.digest)
    return actual
