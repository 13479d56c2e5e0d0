"""Tests for canonical serialization and hashing in geofill.core."""

import hashlib

import pytest

from geofill.core import (
    canonical_chain_map,
    canonical_set,
    canonical_string_map,
    chain_map_lines,
    first_n_sorted_lines,
    hash_chain_map,
    hash_set,
    hash_string_map,
    load_json,
    sha256_text,
    string_map_lines,
    write_json,
)


def _sha(text):
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TestCanonicalSet:
    """Set canonicalization."""

    def test_single_item_known_vector(self):
        """A single item hashes to its known digest."""
        assert hash_set({"abc"}) == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_sorted_and_newline_joined(self):
        """Items are sorted and joined by newlines."""
        assert canonical_set(["R20", "AK", "US"]) == "AK\nR20\nUS"
        assert hash_set(["R20", "AK", "US"]) == _sha("AK\nR20\nUS")

    def test_order_independent(self):
        """Input order does not change the hash."""
        assert hash_set(["b", "a", "c"]) == hash_set(["c", "b", "a"])

    def test_empty_set_hashes_empty_string(self):
        """The empty set hashes like the empty string."""
        assert canonical_set([]) == ""
        assert hash_set([]) == _sha("")

    def test_no_trailing_newline(self):
        """The canonical text has no trailing newline."""
        assert not canonical_set(["a", "b"]).endswith("\n")


class TestCanonicalStringMap:
    """String map canonicalization."""

    def test_lines_sorted_by_full_line(self):
        """Lines are sorted by the whole key=value line."""
        mapping = {"SAK": "AK", "NUS": "US", "R10": "R10"}
        assert string_map_lines(mapping) == ["NUS=US", "R10=R10", "SAK=AK"]
        assert canonical_string_map(mapping) == "NUS=US\nR10=R10\nSAK=AK"

    def test_insertion_order_does_not_matter(self):
        """Dict insertion order does not change the hash."""
        a = {"x": "1", "y": "2"}
        b = {"y": "2", "x": "1"}
        assert hash_string_map(a) == hash_string_map(b)

    def test_value_change_changes_hash(self):
        """Changing one value changes the hash."""
        assert hash_string_map({"SAK": "AK"}) != hash_string_map({"SAK": "AL"})

    def test_hash_matches_hashlib(self):
        """The hash is sha256 of the canonical text."""
        assert hash_string_map({"US": "United States"}) == _sha("US=United States")


class TestCanonicalChainMap:
    """Chain map canonicalization."""

    def test_chain_order_is_preserved_within_line(self):
        """Chain members keep their order inside a line."""
        chains = {"AK": ["AK", "R20", "US"], "US": ["US"]}
        assert chain_map_lines(chains) == ["AK=AK>R20>US", "US=US"]
        assert canonical_chain_map(chains) == "AK=AK>R20>US\nUS=US"

    def test_reordered_chain_changes_hash(self):
        """Reordering a chain changes the hash."""
        assert hash_chain_map({"AK": ["AK", "R20", "US"]}) != hash_chain_map({"AK": ["AK", "US", "R20"]})

    def test_key_order_does_not_matter(self):
        """Key insertion order does not change the hash."""
        a = {"US": ["US"], "AK": ["AK", "US"]}
        b = {"AK": ["AK", "US"], "US": ["US"]}
        assert hash_chain_map(a) == hash_chain_map(b)


class TestFirstNSortedLines:
    """First-N sample of sorted lines."""

    def test_prefix(self):
        """The sample is a prefix of the sorted lines."""
        assert first_n_sorted_lines(["a", "b", "c"], 2) == ["a", "b"]

    def test_n_larger_than_lines(self):
        """A large N returns every line."""
        assert first_n_sorted_lines(["a"], 10) == ["a"]

    def test_zero(self):
        """N of zero returns nothing."""
        assert first_n_sorted_lines(["a", "b"], 0) == []

    def test_negative_rejected(self):
        """A negative N is rejected."""
        with pytest.raises(ValueError):
            first_n_sorted_lines(["a"], -1)


class TestJsonFiles:
    """JSON output helpers."""

    def test_write_json_is_sorted_with_trailing_newline(self, tmp_path):
        """Written JSON has sorted keys and a trailing newline."""
        p = tmp_path / "out.json"
        write_json(p, {"b": 1.5, "a": None})
        text = p.read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert text.index('"a"') < text.index('"b"')
        assert load_json(p) == {"a": None, "b": 1.5}

    def test_sha256_text_utf8(self):
        """Text is hashed as UTF-8."""
        assert sha256_text("é") == hashlib.sha256("é".encode("utf-8")).hexdigest()
