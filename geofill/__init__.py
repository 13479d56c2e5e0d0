"""geofill: geo fallback reference documents and price-grid filling.

Architecture:
    geofill/
    ├── __init__.py       # Package entry, version, public API
    ├── core.py           # Primitives: sha256, canonical lines, JSON/YAML
    ├── schemas/          # JSON Schemas of the three reference documents
    ├── schema.py         # JSON Schema validation + error classification
    ├── errors.py         # GeoConfigError taxonomy, ValidationResult
    ├── context.py        # ResolutionContext (root geo, lock sample size)
    ├── locks.py          # Embedded drift locks: build, refresh, verify
    ├── documents.py      # Typed documents, standalone validation
    ├── universe.py       # Geography universe derivation
    ├── consistency.py    # Cross-document coverage checks
    ├── chains.py         # Fallback chain shape validation
    ├── validators.py     # Bundle validation and directory loading
    ├── observations.py   # Observed price rows and normalization
    ├── fallback.py       # Fallback resolution engine
    ├── status.py         # Health summary of a filled grid
    ├── projection.py     # Compact price matrix of a filled grid
    ├── config.py         # CLI configuration (YAML + GEOFILL_* env)
    ├── observability.py  # Logging setup (text or JSON lines)
    └── cli.py            # Command-line interface

Validation never repairs data: the first violation is raised (or returned
in a ``ValidationResult``) and the run stops.
"""

__version__ = "0.1.0"

from geofill.context import DEFAULT_CONTEXT, ResolutionContext
from geofill.core import (
    canonical_chain_map,
    canonical_set,
    canonical_string_map,
    hash_chain_map,
    hash_set,
    hash_string_map,
)

from geofill.errors import (
    ChainShapeError,
    CoverageError,
    DriftError,
    DuplicateEntryError,
    FieldTypeError,
    GeoConfigError,
    SchemaShapeError,
    ValidationResult,
)

from geofill.universe import GeographyUniverse, derive_geo_universe

from geofill.validators import (
    GeoConfigBundle,
    check_geo_configs,
    load_geo_configs,
    validate_geo_configs,
)

from geofill.observations import Observation

from geofill.fallback import (
    FallbackResolver,
    FilledRow,
    ResolutionResult,
    resolve_with_fallback,
)

from geofill.projection import PriceMatrix, build_price_matrix

__all__ = [
    "__version__",
    "DEFAULT_CONTEXT",
    "ResolutionContext",
    "canonical_chain_map",
    "canonical_set",
    "canonical_string_map",
    "hash_chain_map",
    "hash_set",
    "hash_string_map",
    "ChainShapeError",
    "CoverageError",
    "DriftError",
    "DuplicateEntryError",
    "FieldTypeError",
    "GeoConfigError",
    "SchemaShapeError",
    "ValidationResult",
    "GeographyUniverse",
    "derive_geo_universe",
    "GeoConfigBundle",
    "check_geo_configs",
    "load_geo_configs",
    "validate_geo_configs",
    "Observation",
    "FallbackResolver",
    "FilledRow",
    "ResolutionResult",
    "resolve_with_fallback",
    "PriceMatrix",
    "build_price_matrix",
]
