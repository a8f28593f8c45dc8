import time

from product_services.models.records import (
    ClientNode,
    CustomerNode,
    FlatRecord,
    ParentNode,
)
from product_services.utils.logger import get_logger

logger = get_logger(__name__)


def _group_by(records: list[FlatRecord], attr: str) -> dict[str, list[FlatRecord]]:
    """Partition records by attribute value, keeping first-seen order"""
    groups: dict[str, list[FlatRecord]] = {}
    for record in records:
        groups.setdefault(getattr(record, attr), []).append(record)
    return groups


class HierarchyBuilder:
    """
    Turns flat product services rows into a parent -> client -> customer tree.

    Rows are grouped by parent id, then client id, then customer id. The first
    row of each group supplies that node's name and counts. Clients and
    customers always take segment and region from their parent's first row,
    not from their own row.

    A parent id that is not numeric drops that whole parent (logged); the
    rest of the tree is still returned.
    """

    def build(self, records: list[FlatRecord]) -> list[ParentNode]:
        if not records:
            return []

        start = time.perf_counter()
        logger.info(f"Starting hierarchy build for {len(records)} items.")

        result = []
        skipped = 0
        for parent_key, parent_records in _group_by(records, "parent_id").items():
            try:
                parent_id = int(parent_key)
            except (TypeError, ValueError):
                logger.warning(f"Invalid parent_id format: {parent_key!r}. Skipping parent hierarchy.")
                skipped += 1
                continue

            result.append(self._build_parent(parent_id, parent_records))

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Hierarchy build completed in {elapsed_ms:.1f} ms. "
            f"Result size: {len(result)} (skipped {skipped})"
        )
        return result

    def _build_parent(self, parent_id: int, records: list[FlatRecord]) -> ParentNode:
        representative = records[0]

        clients = [
            self._build_client(client_id, parent_id, client_records, representative)
            for client_id, client_records in _group_by(records, "client_id").items()
        ]

        return ParentNode(
            id=parent_id,
            name=representative.parent_name,
            segment=representative.segment,
            region=representative.region,
            counts=representative.parent_counts,
            sub_rows=clients,
        )

    def _build_client(
        self,
        client_id: str,
        parent_id: int,
        records: list[FlatRecord],
        parent: FlatRecord,
    ) -> ClientNode:
        representative = records[0]

        customers = [
            CustomerNode(
                id=customer_id,
                parent_id=client_id,
                name=customer_records[0].customer_name,
                segment=parent.segment,
                region=parent.region,
                counts=customer_records[0].customer_counts,
            )
            for customer_id, customer_records in _group_by(records, "customer_id").items()
        ]

        return ClientNode(
            id=client_id,
            parent_id=parent_id,
            name=representative.client_name,
            segment=parent.segment,
            region=parent.region,
            counts=representative.client_counts,
            sub_rows=customers,
        )
