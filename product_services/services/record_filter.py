"""
In-process filtering for the full-dataset cache strategy.

The complete product services dataset is cached once; each request is then
answered by matching FilterCriteria against the cached rows here instead of
issuing a filtered query.

Matching rules (all case-insensitive):
- name fields (client/customer/parent name): substring
- coded ids (parent/client/customer id): exact
- segment/region/country: set membership
- client: record's ultimate parent id among the requested ids
"""
import time
from typing import Callable, Optional

from product_services.models.filters import FilterCriteria
from product_services.models.records import FlatRecord
from product_services.utils.logger import get_logger

logger = get_logger(__name__)

Predicate = Callable[[FlatRecord], bool]

# FilterCriteria field -> FlatRecord attribute
NAME_MATCHES = {
    "client_name": "client_name",
    "customer_name": "customer_name",
    "parent_name": "parent_name",
}
ID_MATCHES = {
    "parent_id": "parent_id",
    "client_id": "client_id",
    "customer_id": "customer_id",
}
MEMBERSHIP_MATCHES = {
    "segment": "segment",
    "region": "region",
    "country": "country",
}


def _fold(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def _substring(attr: str, needle: str) -> Predicate:
    needle = _fold(needle)

    def match(record: FlatRecord) -> bool:
        value = getattr(record, attr)
        return value is not None and needle in value.lower()

    return match


def _exact(attr: str, expected: str) -> Predicate:
    expected = _fold(expected)

    def match(record: FlatRecord) -> bool:
        return _fold(getattr(record, attr)) == expected

    return match


def _member(attr: str, allowed: set[str]) -> Predicate:
    def match(record: FlatRecord) -> bool:
        return _fold(getattr(record, attr)) in allowed

    return match


def build_predicates(criteria: Optional[FilterCriteria]) -> list[Predicate]:
    """One predicate per populated criterion; empty criteria -> []"""
    if criteria is None:
        return []

    predicates: list[Predicate] = []

    if criteria.client:
        parent_ids = {str(client) for client in criteria.client}
        predicates.append(lambda record: record.parent_id.strip() in parent_ids)

    for field_name, attr in MEMBERSHIP_MATCHES.items():
        values = getattr(criteria, field_name)
        if values:
            predicates.append(_member(attr, {_fold(v) for v in values}))

    for field_name, attr in NAME_MATCHES.items():
        value = getattr(criteria, field_name)
        if value:
            predicates.append(_substring(attr, value))

    for field_name, attr in ID_MATCHES.items():
        value = getattr(criteria, field_name)
        if value:
            predicates.append(_exact(attr, value))

    return predicates


def build_predicate(criteria: Optional[FilterCriteria]) -> Predicate:
    """AND of every populated criterion; always true for empty criteria"""
    predicates = build_predicates(criteria)
    if not predicates:
        return lambda record: True
    return lambda record: all(predicate(record) for predicate in predicates)


def filter_records(
    records: list[FlatRecord],
    criteria: Optional[FilterCriteria],
) -> list[FlatRecord]:
    """Return the records matching every populated criterion."""
    if not records:
        return []

    if criteria is None or criteria.is_empty():
        return list(records)

    start = time.perf_counter()
    predicate = build_predicate(criteria)
    matched = [record for record in records if predicate(record)]

    logger.debug(
        f"Filtered {len(matched)} records from {len(records)} "
        f"in {(time.perf_counter() - start) * 1000:.1f}ms"
    )
    return matched
