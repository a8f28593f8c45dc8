"""
Unit tests for cache key generation

Keys must depend only on filter content: field order, list order,
duplicates, casing and surrounding whitespace never change the key.
"""

from product_services.cache.keys import (
    EMPTY_TOKEN,
    CacheKeys,
    filter_cache_key,
)
from product_services.models.filters import FilterCriteria


class TestFilterCacheKey:
    """Canonical key rendering"""

    def test_empty_criteria_renders_every_field_as_sentinel(self):
        key = filter_cache_key(FilterCriteria(), "ns")
        parts = key.split(":")

        assert parts[:2] == ["ns", "v1"]
        assert parts[2:] == [EMPTY_TOKEN] * len(FilterCriteria.model_fields)

    def test_none_criteria_same_as_empty(self):
        assert filter_cache_key(None, "ns") == filter_cache_key(FilterCriteria(), "ns")

    def test_list_order_and_duplicates_ignored(self):
        a = FilterCriteria(client=[3, 1, 3], segment=["NA", "EMEA"])
        b = FilterCriteria(client=[1, 3], segment=["EMEA", "NA", "NA"])

        assert filter_cache_key(a, "ns") == filter_cache_key(b, "ns")

    def test_case_and_whitespace_ignored(self):
        a = FilterCriteria(client_name="  Acme ", region=["us"])
        b = FilterCriteria(client_name="ACME", region=["US"])

        assert filter_cache_key(a, "ns") == filter_cache_key(b, "ns")

    def test_different_filters_differ(self):
        a = FilterCriteria(client_name="acme")
        b = FilterCriteria(customer_name="acme")

        assert filter_cache_key(a, "ns") != filter_cache_key(b, "ns")

    def test_delimiters_inside_values_are_encoded(self):
        # A value containing ":" or "," must not be confused with two fields/values
        a = FilterCriteria(segment=["a,b"])
        b = FilterCriteria(segment=["a", "b"])
        key = filter_cache_key(FilterCriteria(client_name="x:y*"), "ns")

        assert filter_cache_key(a, "ns") != filter_cache_key(b, "ns")
        assert "x%3Ay%2A" in key
        assert len(key.split(":")) == 2 + len(FilterCriteria.model_fields)

    def test_blank_values_treated_as_absent(self):
        a = FilterCriteria(client_name="   ", segment=["", " "])

        assert filter_cache_key(a, "ns") == filter_cache_key(FilterCriteria(), "ns")

    def test_populated_field_lands_in_its_position(self):
        key = filter_cache_key(FilterCriteria(client=[1001, 1002], segment=["NA"]), "ns")

        assert key.startswith("ns:v1:1001,1002:na:*:*:")


class TestCacheKeys:
    """Namespaced helpers"""

    def test_product_services_key_uses_configured_namespace(self):
        key = CacheKeys.product_services(FilterCriteria())
        assert key.startswith("product_services:v1:")

    def test_complete_dataset_key(self):
        assert CacheKeys.complete_dataset() == "product_services:v1:complete_dataset"

    def test_namespace_pattern_covers_every_key(self):
        pattern = CacheKeys.namespace_pattern()

        assert pattern == "product_services:*"
        assert CacheKeys.complete_dataset().startswith(pattern[:-1])

    def test_folding_matches_sql_lower(self):
        # LOWER() keeps "ß" and "ss" apart, so the keys must too
        a = FilterCriteria(client_name="Straße")
        b = FilterCriteria(client_name="STRASSE")

        assert filter_cache_key(a, "ns") != filter_cache_key(b, "ns")
