"""Core primitives for geofill.

This module provides the foundational utilities used throughout the package:
- Cryptographic hashing (SHA-256)
- Canonical line serialization of sets, string maps and chain maps
- JSON/YAML loading with consistent encoding

Canonical form:
- set of strings:      sorted strings joined by "\\n"
- string map:          "KEY=VALUE" lines, sorted by full line, joined by "\\n"
- chain map:           "KEY=V1>V2>...>VN" lines, sorted the same way

The digest of a canonical form is independent of key or insertion order, so
it can be embedded in a reference document to lock its semantic content.
"""

from __future__ import annotations

import hashlib
import json
import pathlib
from typing import Any, Iterable, List, Mapping, Sequence

import yaml

# Package root, computed once at module load
PACKAGE_ROOT = pathlib.Path(__file__).resolve().parent
SCHEMAS_DIR = PACKAGE_ROOT / "schemas"

CHAIN_SEPARATOR = ">"


def sha256_bytes(data: bytes) -> str:
    """Compute SHA-256 hash of bytes, returning lowercase hex string."""
    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """Compute SHA-256 hash of the UTF-8 encoding of text."""
    return sha256_bytes(text.encode("utf-8"))


def load_yaml(path: pathlib.Path) -> Any:
    """Load YAML file with UTF-8 encoding."""
    return yaml.safe_load(pathlib.Path(path).read_text(encoding="utf-8"))


def load_json(path: pathlib.Path) -> Any:
    """Load JSON file with UTF-8 encoding."""
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))


def write_json(path: pathlib.Path, obj: Any) -> None:
    """Write deterministic, human-readable JSON with a trailing newline."""
    text = json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)
    pathlib.Path(path).write_text(text + "\n", encoding="utf-8")


# ---------------------------------------------------------------------------
# Canonical lines
# ---------------------------------------------------------------------------

def set_lines(values: Iterable[str]) -> List[str]:
    """Sorted lines for a set of strings (duplicates collapse)."""
    return sorted(set(values))


def string_map_lines(mapping: Mapping[str, str]) -> List[str]:
    """Sorted ``KEY=VALUE`` lines for a string-to-string map."""
    return sorted(f"{k}={v}" for k, v in mapping.items())


def chain_map_lines(mapping: Mapping[str, Sequence[str]]) -> List[str]:
    """Sorted ``KEY=V1>V2>...`` lines for a string-to-ordered-list map."""
    return sorted(f"{k}={CHAIN_SEPARATOR.join(chain)}" for k, chain in mapping.items())


def first_n_sorted_lines(lines: Sequence[str], n: int) -> List[str]:
    """Return the first n canonical lines (the audit sample locked in documents)."""
    if n < 0:
        raise ValueError("n must be non-negative")
    return list(lines[:n])


# ---------------------------------------------------------------------------
# Canonical serialization + hashing
# ---------------------------------------------------------------------------

def canonical_set(values: Iterable[str]) -> str:
    return "\n".join(set_lines(values))


def canonical_string_map(mapping: Mapping[str, str]) -> str:
    return "\n".join(string_map_lines(mapping))


def canonical_chain_map(mapping: Mapping[str, Sequence[str]]) -> str:
    return "\n".join(chain_map_lines(mapping))


def hash_set(values: Iterable[str]) -> str:
    """SHA-256 of the canonical set serialization."""
    return sha256_text(canonical_set(values))


def hash_string_map(mapping: Mapping[str, str]) -> str:
    """SHA-256 of the canonical string-map serialization."""
    return sha256_text(canonical_string_map(mapping))


def hash_chain_map(mapping: Mapping[str, Sequence[str]]) -> str:
    """SHA-256 of the canonical chain-map serialization."""
    return sha256_text(canonical_chain_map(mapping))
