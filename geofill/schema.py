"""JSON Schema validation infrastructure for the geo reference documents.

Provides:
- A registry of the bundled schemas so ``$ref`` into geo-common resolves offline
- Cached validators per document kind
- Classification of ``jsonschema`` errors into the geofill error kinds

Shape errors are reported before type errors, and type errors before
duplicate errors, regardless of the order ``jsonschema`` yields them.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from geofill.core import SCHEMAS_DIR, load_json
from geofill.errors import (
    DuplicateEntryError,
    FieldTypeError,
    GeoConfigError,
    SchemaShapeError,
)

SHAPE_VALIDATORS = {"required", "additionalProperties"}

_PRIORITY_SHAPE = 0
_PRIORITY_TYPE = 1
_PRIORITY_DUPLICATE = 2


@lru_cache(maxsize=1)
def _schema_registry(schemas_dir: Path = SCHEMAS_DIR) -> Registry:
    """Build an in-memory registry of the bundled schemas keyed by $id."""
    resources = []
    for schema_path in sorted(schemas_dir.glob("*.schema.json")):
        schema = load_json(schema_path)
        schema_id = schema.get("$id")
        if not isinstance(schema_id, str) or not schema_id:
            raise ValueError(f"schema without $id: {schema_path}")
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(document_kind: str, schemas_dir: Path = SCHEMAS_DIR) -> Draft202012Validator:
    """Create a validator for a document kind (e.g. ``geo_display_names_v1``)."""
    schema_path = schemas_dir / f"{document_kind}.schema.json"
    if not schema_path.exists():
        raise ValueError(f"unknown document kind: {document_kind}")
    schema = load_json(schema_path)
    return Draft202012Validator(schema, registry=_schema_registry(schemas_dir))


def validate_against_schema(obj: Any, document_kind: str) -> List[str]:
    """Return all validation error messages (empty if valid)."""
    validator = schema_validator(document_kind)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=str)
    ]


def _field_path(error: ValidationError) -> str:
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        elif parts:
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "".join(parts)


def _priority(error: ValidationError) -> int:
    if error.validator in SHAPE_VALIDATORS:
        return _PRIORITY_SHAPE
    if error.validator == "type" and not error.absolute_path:
        return _PRIORITY_SHAPE
    if error.validator == "uniqueItems":
        return _PRIORITY_DUPLICATE
    return _PRIORITY_TYPE


def _key_diff(error: ValidationError) -> Tuple[List[str], List[str]]:
    instance = error.instance if isinstance(error.instance, dict) else {}
    schema = error.schema if isinstance(error.schema, dict) else {}
    allowed = set(schema.get("properties") or {})
    required = set(schema.get("required") or [])
    keys = set(instance)
    return sorted(required - keys), sorted(keys - allowed)


def _duplicates(items: Any) -> List[str]:
    seen = set()
    dups = []
    for item in items if isinstance(items, list) else []:
        if item in seen:
            dups.append(item)
        seen.add(item)
    return dups


def classify_error(error: ValidationError, document_kind: str) -> GeoConfigError:
    """Translate one ``jsonschema`` error into a geofill error kind."""
    field = _field_path(error)
    priority = _priority(error)
    if priority == _PRIORITY_SHAPE:
        if error.validator == "type":
            return SchemaShapeError(document_kind, field, "expected a JSON object")
        missing, extra = _key_diff(error)
        return SchemaShapeError(
            document_kind,
            field,
            f"keys mismatch. missing=[{','.join(missing)}], extra=[{','.join(extra)}]",
        )
    if priority == _PRIORITY_DUPLICATE:
        return DuplicateEntryError(document_kind, field, _duplicates(error.instance))
    return FieldTypeError(document_kind, field, error.message)


def first_schema_error(obj: Any, document_kind: str) -> Optional[GeoConfigError]:
    """Return the highest-priority classified error, or None if the document conforms."""
    validator = schema_validator(document_kind)
    errors = sorted(
        validator.iter_errors(obj),
        key=lambda e: (_priority(e), [str(p) for p in e.absolute_path], e.validator, e.message),
    )
    if not errors:
        return None
    return classify_error(errors[0], document_kind)


def check_document_schema(obj: Any, document_kind: str) -> None:
    """Raise the first shape, type or duplicate error for a document."""
    err = first_schema_error(obj, document_kind)
    if err is not None:
        raise err

