"""Explicit resolution context passed into every validation and fill call."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ROOT_GEO_CODE = "US"
DEFAULT_LOCK_SAMPLE_SIZE = 10


@dataclass(frozen=True)
class ResolutionContext:
    """Immutable settings shared by the validator and the fallback engine.

    root_geo_code: top of the fallback hierarchy; every chain ends here.
    lock_sample_size: number of canonical lines recorded in
        ``expected_sorted_first_items`` when locks are (re)built.
    """

    root_geo_code: str = DEFAULT_ROOT_GEO_CODE
    lock_sample_size: int = DEFAULT_LOCK_SAMPLE_SIZE

    def __post_init__(self) -> None:
        if not isinstance(self.root_geo_code, str) or not self.root_geo_code:
            raise ValueError("root_geo_code must be a non-empty string")
        if not isinstance(self.lock_sample_size, int) or self.lock_sample_size < 0:
            raise ValueError("lock_sample_size must be a non-negative integer")


DEFAULT_CONTEXT = ResolutionContext()
