import copy
import json
import logging
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import geofill`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from geofill.locks import (  # noqa: E402
    ACCEPT_LISTS_DOC,
    DISPLAY_NAMES_DOC,
    FALLBACK_MAP_DOC,
    refresh_document_locks,
)


# Five raw areas mapped onto a small hierarchy: US > R10/R20 > AL/AK.
_ACCEPT_LISTS = {
    "schema_version": 1,
    "description": "test accept-lists",
    "accepted_duoarea_petroleum_gnd": ["NUS", "R10", "R20"],
    "accepted_duoarea_petroleum_wfr": ["SAK", "SAL"],
    "accepted_duoarea_natural_gas": ["R20", "SAK"],
    "duoarea_to_geo_code": {
        "NUS": "US",
        "R10": "R10",
        "R20": "R20",
        "SAK": "AK",
        "SAL": "AL",
    },
    "notes": {"source": "fixture"},
}

_DISPLAY_NAMES = {
    "schema_version": 1,
    "description": "test display names",
    "geo_display_names": {
        "US": "United States",
        "R10": "New England",
        "R20": "Midwest",
        "AK": "Alaska",
        "AL": "Alabama",
    },
}

_FALLBACK_MAP = {
    "schema_version": 1,
    "description": "test fallback chains",
    "fallback_chain_by_geo_code": {
        "US": ["US"],
        "R10": ["R10", "US"],
        "R20": ["R20", "US"],
        "AK": ["AK", "R20", "US"],
        "AL": ["AL", "R10", "US"],
    },
}


def relock_doc(kind, doc, sample_size=10):
    """Return ``doc`` with lock blocks that match its current data."""
    return refresh_document_locks(kind, doc, sample_size=sample_size)


@pytest.fixture
def relock():
    return relock_doc


@pytest.fixture
def accept_doc():
    return relock_doc(ACCEPT_LISTS_DOC, copy.deepcopy(_ACCEPT_LISTS))


@pytest.fixture
def names_doc():
    return relock_doc(DISPLAY_NAMES_DOC, copy.deepcopy(_DISPLAY_NAMES))


@pytest.fixture
def fallback_doc():
    return relock_doc(FALLBACK_MAP_DOC, copy.deepcopy(_FALLBACK_MAP))


@pytest.fixture
def universe():
    return frozenset({"US", "R10", "R20", "AK", "AL"})


@pytest.fixture
def chains():
    return {k: list(v) for k, v in _FALLBACK_MAP["fallback_chain_by_geo_code"].items()}


@pytest.fixture
def config_dir(tmp_path, accept_doc, names_doc, fallback_doc):
    """A directory holding the three lock-consistent documents."""
    d = tmp_path / "public"
    d.mkdir()
    for kind, doc in (
        (ACCEPT_LISTS_DOC, accept_doc),
        (DISPLAY_NAMES_DOC, names_doc),
        (FALLBACK_MAP_DOC, fallback_doc),
    ):
        (d / f"{kind}.json").write_text(json.dumps(doc, indent=2), encoding="utf-8")
    return d


@pytest.fixture(autouse=True)
def _reset_geofill_logger():
    # CLI tests install handlers on the package logger; keep tests isolated.
    yield
    logger = logging.getLogger("geofill")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
