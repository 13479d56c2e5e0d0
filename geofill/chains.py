"""Fallback chain shape validation.

A chain is an explicit, authored list (nearest donor first), so no graph
traversal or cycle detection is involved. Per owner ``g``:

- the chain is non-empty and starts with ``g``
- every element belongs to the geography universe
- the chain ends with the root code
- the root's own chain is exactly ``[root]``
- the chain is no longer than the universe itself
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from geofill.context import DEFAULT_CONTEXT, ResolutionContext
from geofill.errors import ChainShapeError
from geofill.locks import FALLBACK_MAP_DOC
from geofill.universe import GeographyUniverse

logger = logging.getLogger(__name__)


def validate_chain(
    owner: str,
    chain: Sequence[str],
    universe: GeographyUniverse,
    context: ResolutionContext = DEFAULT_CONTEXT,
    *,
    document_kind: str = FALLBACK_MAP_DOC,
) -> None:
    root = context.root_geo_code

    def fail(message: str) -> None:
        logger.warning("%s chain for %s rejected: %s", document_kind, owner, message)
        raise ChainShapeError(document_kind, owner, chain, message)

    if len(chain) == 0:
        fail("chain must have at least 1 item")
    if len(chain) > len(universe):
        fail(f"chain length {len(chain)} exceeds geo universe size {len(universe)}")
    if chain[0] != owner:
        fail(f"chain must start with itself ({owner}), got {chain[0]}")

    unknown = [g for g in chain if g not in universe]
    if unknown:
        fail(f"unknown geography in chain: {', '.join(unknown)}")

    if owner == root:
        if list(chain) != [root]:
            fail(f"{root} chain must be exactly [{root}]")
        return

    if chain[-1] != root:
        fail(f"chain must end with {root}")


def validate_chains(
    chains: Mapping[str, Sequence[str]],
    universe: GeographyUniverse,
    context: ResolutionContext = DEFAULT_CONTEXT,
) -> None:
    """Validate every chain of a fallback map (sorted owner order)."""
    for owner in sorted(chains):
        validate_chain(owner, chains[owner], universe, context)
    if context.root_geo_code not in chains:
        raise ChainShapeError(
            FALLBACK_MAP_DOC,
            context.root_geo_code,
            (),
            f"{context.root_geo_code} chain must be exactly [{context.root_geo_code}]",
        )
