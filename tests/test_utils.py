"""Tests for hashing and normalisation helpers."""

import pytest
from trackflags.utils import (
    context_value_to_string,
    fnv1a_64,
    keys_match,
    lowercase_keys_and_values,
    lowercase_leaf_values,
    normalized_hash,
    prepare_common_query_params,
)


def assert_valid_bucket(value):
    assert isinstance(value, float)
    assert 0.0 <= value < 1.0


class TestFnv1a:
    """Tests for the FNV-1a accumulator."""

    def test_empty_input_is_offset_basis(self):
        """Hashing nothing returns the offset basis."""
        assert fnv1a_64(b"") == 0xCBF29CE484222325

    def test_single_byte(self):
        """Known FNV-1a 64 value for "a"."""
        assert fnv1a_64(b"a") == 0xAF63DC4C8601EC8C

    def test_stays_within_64_bits(self):
        """Result never exceeds 64 bits."""
        assert fnv1a_64(b"x" * 1000) < 2**64


class TestNormalizedHash:
    """Tests for normalized_hash."""

    def test_known_vectors(self):
        """Reference vectors shared with the server."""
        assert normalized_hash("abc", "variant") == 0.72
        assert normalized_hash("def", "variant") == 0.21

    def test_consistent_results(self):
        """Same input always produces the same bucket."""
        first = normalized_hash("test_key", "salt")
        for _ in range(10):
            assert normalized_hash("test_key", "salt") == first

    def test_range(self):
        """Buckets are always in [0, 1)."""
        for i in range(500):
            assert_valid_bucket(normalized_hash(f"user-{i}", "salt"))

    def test_different_salts(self):
        """Changing the salt changes the bucket."""
        hash1 = normalized_hash("same_key", "salt1")
        hash2 = normalized_hash("same_key", "salt2")
        hash3 = normalized_hash("same_key", "different_salt")

        assert hash1 != hash2
        assert hash1 != hash3
        assert hash2 != hash3

    def test_salt_decorrelates_across_keys(self):
        """Nearly every key moves bucket when the salt changes."""
        keys = [f"user-{i}" for i in range(200)]
        moved = sum(
            1 for key in keys
            if normalized_hash(key, "flag-a") != normalized_hash(key, "flag-b")
        )
        assert moved >= 180

    def test_different_order(self):
        """Character order matters."""
        hash1 = normalized_hash("abc", "salt")
        hash2 = normalized_hash("bac", "salt")
        hash3 = normalized_hash("cba", "salt")

        assert hash1 != hash2
        assert hash1 != hash3
        assert hash2 != hash3

    @pytest.mark.parametrize("key,salt", [("", "salt"), ("key", ""), ("", "")])
    def test_empty_strings(self, key, salt):
        """Empty keys and salts still produce valid buckets."""
        assert_valid_bucket(normalized_hash(key, salt))

    def test_empty_strings_in_different_positions(self):
        """An empty key and an empty salt are not interchangeable."""
        assert normalized_hash("", "salt") != normalized_hash("key", "")

    @pytest.mark.parametrize(
        "key", ["\U0001F389", "beyoncé", "key@#$%^&*()", "key with spaces"]
    )
    def test_special_characters(self, key):
        """Non-ASCII input is hashed as UTF-8."""
        assert_valid_bucket(normalized_hash(key, "salt"))


class TestContextValueToString:
    """Tests for the text form of context values."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("User-1", "User-1"),
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (1.5, "1.5"),
            (None, ""),
        ],
    )
    def test_json_text(self, value, expected):
        assert context_value_to_string(value) == expected


class TestQueryParams:
    """Tests for common query parameters."""

    def test_common_params(self):
        params = prepare_common_query_params("tok", "1.2.3")
        assert params == {"mp_lib": "python", "$lib_version": "1.2.3", "token": "tok"}


class TestCaseNormalisation:
    """Tests for the lowercase helpers."""

    def test_keys_and_values(self):
        """Keys and nested string values are lowercased."""
        data = {"Plan": "PREMIUM", "Tags": ["A", "b"], "Nested": {"Key": "Val"}, "n": 3}
        assert lowercase_keys_and_values(data) == {
            "plan": "premium",
            "tags": ["a", "b"],
            "nested": {"key": "val"},
            "n": 3,
        }

    def test_leaf_values_keep_keys(self):
        """Operator names survive; literals are lowercased."""
        rule = {"==": [{"var": "Plan"}, "PREMIUM"]}
        assert lowercase_leaf_values(rule) == {"==": [{"var": "plan"}, "premium"]}

    def test_keys_match(self):
        assert keys_match("Treatment", "treatment")
        assert not keys_match("control", "treatment")
