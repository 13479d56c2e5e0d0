"""Error taxonomy and validation result for geo configuration documents.

Every validation failure is a ``GeoConfigError`` subclass naming the
document and field it concerns. The kinds form a closed set:

    SchemaShapeError     wrong, missing or extra fields
    FieldTypeError       wrong primitive type or value domain
    DuplicateEntryError  repeated entry in an accept-list
    DriftError           recomputed lock value disagrees with the embedded one
    CoverageError        key sets of two documents disagree
    ChainShapeError      malformed fallback chain

Validators raise on the first violation. ``validate_geo_configs`` turns the
raised error into a ``ValidationResult`` so callers can branch on the kind
without catching generic exceptions.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

ERROR_PREFIX = "CONFIG_VALIDATION_FAILED"


class GeoConfigError(Exception):
    """Base exception for geo configuration validation failures."""

    kind = "config"

    def __init__(self, document: str, field: str, message: str):
        self.document = document
        self.field = field
        self.message = message
        location = f"{document}.{field}" if field else document
        super().__init__(f"{ERROR_PREFIX}: {location}: {message}")

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "document": self.document,
            "field": self.field,
            "message": self.message,
        }


class SchemaShapeError(GeoConfigError):
    """Top-level or lock-block fields differ from the expected set."""

    kind = "schema_shape"


class FieldTypeError(GeoConfigError):
    """A scalar, list item or map value has the wrong type or domain."""

    kind = "type"


class DuplicateEntryError(GeoConfigError):
    kind = "duplicate_entry"

    def __init__(self, document: str, field: str, duplicates: Sequence[str]):
        self.duplicates: Tuple[str, ...] = tuple(sorted(set(duplicates)))
        super().__init__(
            document,
            field,
            f"duplicate items not allowed: {', '.join(self.duplicates)}",
        )

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["duplicates"] = list(self.duplicates)
        return out


class DriftError(GeoConfigError):
    """An embedded lock value no longer matches the document's own data."""

    kind = "drift"

    def __init__(self, document: str, field: str, lock: str, expected: Any, actual: Any):
        self.lock = lock
        self.expected = expected
        self.actual = actual
        super().__init__(
            document,
            field,
            f"drift detected in {lock}.{field}: expected={expected!r}, actual={actual!r}",
        )

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"lock": self.lock, "expected": self.expected, "actual": self.actual})
        return out


class CoverageError(GeoConfigError):
    """Two key sets that must be equal are not.

    ``coverage`` distinguishes ``missing_mapping`` / ``orphaned_mapping``
    (accept-lists vs mapping) from ``universe`` (geo-indexed documents).
    """

    kind = "coverage"

    def __init__(
        self,
        document: str,
        field: str,
        *,
        coverage: str,
        missing: Sequence[str] = (),
        extra: Sequence[str] = (),
    ):
        self.coverage = coverage
        self.missing: Tuple[str, ...] = tuple(sorted(missing))
        self.extra: Tuple[str, ...] = tuple(sorted(extra))
        parts = []
        if self.missing:
            parts.append(f"missing=[{', '.join(self.missing)}]")
        if self.extra:
            parts.append(f"extra=[{', '.join(self.extra)}]")
        super().__init__(document, field, f"{coverage}: {' '.join(parts)}")

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"coverage": self.coverage, "missing": list(self.missing), "extra": list(self.extra)})
        return out


class ChainShapeError(GeoConfigError):
    kind = "chain_shape"

    def __init__(self, document: str, owner: str, chain: Sequence[Any], message: str):
        self.owner = owner
        self.chain = tuple(chain)
        super().__init__(document, f"fallback_chain_by_geo_code[{owner}]", message)

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"owner": self.owner, "chain": list(self.chain)})
        return out


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Outcome of a validation run: either a value or a ``GeoConfigError``."""

    value: Optional[T] = None
    error: Optional[GeoConfigError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or re-raise the validation error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "ValidationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: GeoConfigError) -> "ValidationResult[T]":
        return cls(error=error)
