"""
Cache key definitions.

Pattern: {namespace}:{version}:{field}:{field}:...

Filter keys render every FilterCriteria field in declaration order:
    product_services:v1:1001,1002:na:*:*:acme:*:*:*:*:*

- "*" marks an absent/empty field
- list values are de-duplicated, sorted and joined by ","
- strings are stripped and lower-cased with str.lower(), the same folding
  the SQL parameters and the in-process matcher use
- every value is percent-encoded, so ":", "," and "*" inside a value
  can never be mistaken for a delimiter or the sentinel
"""
from urllib.parse import quote

from product_services.config.settings import settings
from product_services.models.filters import FilterCriteria

KEY_VERSION = "v1"
EMPTY_TOKEN = "*"
FIELD_DELIMITER = ":"
VALUE_DELIMITER = ","


def _encode(value) -> str:
    if isinstance(value, str):
        value = value.strip().lower()
    return quote(str(value), safe="")


def _render_field(value) -> str:
    if value is None:
        return EMPTY_TOKEN
    if isinstance(value, (list, tuple, set)):
        encoded = sorted({_encode(v) for v in value})
        return VALUE_DELIMITER.join(encoded) if encoded else EMPTY_TOKEN
    encoded = _encode(value)
    return encoded or EMPTY_TOKEN


def filter_cache_key(criteria: FilterCriteria | None, namespace: str) -> str:
    """Deterministic cache key for a filter, independent of object identity."""
    criteria = criteria or FilterCriteria()
    parts = [namespace, KEY_VERSION]
    for name in type(criteria).model_fields:
        parts.append(_render_field(getattr(criteria, name)))
    return FIELD_DELIMITER.join(parts)


class CacheKeys:
    """Centralized cache key definitions."""

    @staticmethod
    def product_services(criteria: FilterCriteria | None) -> str:
        """Filtered product services rows"""
        return filter_cache_key(criteria, settings.cache_namespace)

    @staticmethod
    def complete_dataset() -> str:
        """Unfiltered product services rows (full-dataset strategy)"""
        return f"{settings.cache_namespace}:{KEY_VERSION}:complete_dataset"

    @staticmethod
    def namespace_pattern() -> str:
        """Glob matching every key this service writes"""
        return f"{settings.cache_namespace}:*"
