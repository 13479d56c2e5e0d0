"""Fallback chain shape validation."""

import pytest

from geofill.chains import validate_chain, validate_chains
from geofill.context import ResolutionContext
from geofill.errors import ChainShapeError
from geofill.fallback import resolve_with_fallback
from geofill.locks import FALLBACK_MAP_DOC
from geofill.validators import check_geo_configs


class TestValidateChain:
    """Per-owner chain rules."""

    def test_valid_chains(self, chains, universe):
        """The fixture chains are all well formed."""
        validate_chains(chains, universe)

    def test_empty_chain(self, universe):
        """An empty chain is rejected with a size message."""
        with pytest.raises(ChainShapeError) as exc:
            validate_chain("AK", [], universe)
        assert exc.value.field == "fallback_chain_by_geo_code[AK]"
        assert "at least 1" in str(exc.value)

    def test_must_start_with_owner(self, universe):
        """The first element must be the owner."""
        with pytest.raises(ChainShapeError) as exc:
            validate_chain("AK", ["R20", "US"], universe)
        assert "start with itself" in str(exc.value)

    def test_unknown_member(self, universe):
        """Members outside the universe are rejected."""
        with pytest.raises(ChainShapeError) as exc:
            validate_chain("AK", ["AK", "PADD5", "US"], universe)
        assert "PADD5" in str(exc.value)

    def test_must_end_with_root(self, universe):
        """The last element must be the root."""
        with pytest.raises(ChainShapeError) as exc:
            validate_chain("AK", ["AK", "R20"], universe)
        assert "end with US" in str(exc.value)

    def test_root_chain_must_be_exactly_root(self, universe):
        """The root's own chain is exactly [root]."""
        with pytest.raises(ChainShapeError):
            validate_chain("US", ["US", "R10"], universe)

    def test_root_allowed_mid_chain(self, universe):
        """Root may appear before the end as long as the chain ends with it."""
        validate_chain("AK", ["AK", "US", "R20", "US"], universe)

    def test_longer_than_universe(self):
        """A chain longer than the universe is rejected."""
        universe = frozenset({"US", "AK"})
        with pytest.raises(ChainShapeError) as exc:
            validate_chain("AK", ["AK", "AK", "US"], universe)
        assert "exceeds" in str(exc.value)

    def test_direct_to_root_is_valid(self, universe):
        """An owner may fall back straight to the root."""
        validate_chain("AL", ["AL", "US"], universe)

    def test_custom_root(self):
        """The root geo code comes from the resolution context."""
        ctx = ResolutionContext(root_geo_code="CA")
        universe = frozenset({"CA", "ON"})
        validate_chain("ON", ["ON", "CA"], universe, ctx)
        validate_chain("CA", ["CA"], universe, ctx)
        with pytest.raises(ChainShapeError):
            validate_chain("ON", ["ON"], universe, ctx)

    def test_error_carries_owner_and_chain(self, universe):
        """The error payload names the owner and the offending chain."""
        with pytest.raises(ChainShapeError) as exc:
            validate_chain("AK", ["AK", "R20"], universe)
        d = exc.value.to_dict()
        assert d["kind"] == "chain_shape"
        assert d["owner"] == "AK"
        assert d["chain"] == ["AK", "R20"]
        assert exc.value.document == FALLBACK_MAP_DOC


class TestValidateChains:
    """Whole-map chain validation."""

    def test_missing_root_chain(self):
        """A map without a chain for the root is rejected."""
        universe = frozenset({"US", "AK"})
        with pytest.raises(ChainShapeError) as exc:
            validate_chains({"AK": ["AK", "US"]}, universe)
        assert exc.value.owner == "US"

    def test_first_sorted_owner_reported(self, chains, universe):
        """With several bad chains the first owner in sorted order is reported."""
        chains["R20"] = ["R20"]
        chains["AK"] = ["AK"]
        with pytest.raises(ChainShapeError) as exc:
            validate_chains(chains, universe)
        assert exc.value.owner == "AK"

    def test_bundle_rejects_bad_chain(self, accept_doc, names_doc, fallback_doc, relock):
        """Bundle validation surfaces chain errors."""
        fallback_doc["fallback_chain_by_geo_code"]["AK"] = ["R20", "AK", "US"]
        fallback_doc = relock(FALLBACK_MAP_DOC, fallback_doc)
        with pytest.raises(ChainShapeError) as exc:
            check_geo_configs(accept_doc, names_doc, fallback_doc)
        assert exc.value.owner == "AK"

    def test_bundle_rejects_empty_chain(self, accept_doc, names_doc, fallback_doc, relock):
        """An empty chain in the document fails the bundle."""
        fallback_doc["fallback_chain_by_geo_code"]["AL"] = []
        fallback_doc = relock(FALLBACK_MAP_DOC, fallback_doc)
        with pytest.raises(ChainShapeError) as exc:
            check_geo_configs(accept_doc, names_doc, fallback_doc)
        assert exc.value.owner == "AL"

    def test_bundle_accepts_root_mid_chain(self, accept_doc, names_doc, fallback_doc, relock):
        """A document chain that visits the root before its end is valid."""
        fallback_doc["fallback_chain_by_geo_code"]["AK"] = ["AK", "US", "R20", "US"]
        fallback_doc = relock(FALLBACK_MAP_DOC, fallback_doc)
        bundle = check_geo_configs(accept_doc, names_doc, fallback_doc)
        assert bundle.chains["AK"] == ("AK", "US", "R20", "US")

    def test_walk_continues_past_unpriced_root(self, universe, chains):
        """Resolution walks past an unpriced root to a later member."""
        chains["AK"] = ["AK", "US", "R20", "US"]
        rows = [
            {"dataset": "d", "fuel": "Propane", "period": "2024-01", "geo_code": "US", "price": None},
            {"dataset": "d", "fuel": "Propane", "period": "2024-01", "geo_code": "R20", "price": 2.5},
        ]
        result = resolve_with_fallback(universe, chains, rows)
        ak = next(r for r in result.rows if r.geo_code == "AK")
        assert ak.price == 2.5
        assert ak.fallback_from_geo_code == "R20"
