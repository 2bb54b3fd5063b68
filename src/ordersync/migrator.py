"""
StoreCopyMigrator - reference forward migrator.

Initial mass migration is owned by an external bulk migrator; the engine
only needs its ``migrate(ids)`` contract to forward-copy individual records
during reconciliation. StoreCopyMigrator fulfils that contract by copying
whole legacy records into the structured store, which is enough for tests
and for deployments where both stores speak OrderRecord.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ordersync.observability import ATTR_ORDER_COUNT, Tracer, create_tracer
from ordersync.stores.interface import OrderStore

logger = logging.getLogger(__name__)


class StoreCopyMigrator:
    """
    Copies full legacy records into the structured store.

    Ids without a legacy record (or with only a placeholder) are skipped.
    The copied record keeps the legacy timestamp, so both sides compare
    equal afterwards and the id leaves the stale-timestamp class.

    Example:
        >>> migrator = StoreCopyMigrator(legacy_store, structured_store)
        >>> await migrator.migrate([7, 8, 9])
    """

    def __init__(
        self,
        legacy_store: OrderStore,
        structured_store: OrderStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._legacy = legacy_store
        self._structured = structured_store

    async def migrate(self, order_ids: Sequence[int]) -> list[int]:
        """
        Copy the given orders from the legacy to the structured store.

        Args:
            order_ids: Ids to copy, processed in the given order.

        Returns:
            Ids that had a legacy record and were copied
        """
        with self._tracer.span(
            "ordersync.migrator.migrate",
            {ATTR_ORDER_COUNT: len(order_ids)},
        ):
            copied: list[int] = []
            for order_id in order_ids:
                record = await self._legacy.read(order_id)
                if record is None:
                    logger.debug("Order %s has no legacy record, nothing to migrate", order_id)
                    continue
                await self._structured.write(record)
                copied.append(order_id)

            logger.debug(
                "Migrated %d of %d order(s) to the structured store",
                len(copied),
                len(order_ids),
            )
            return copied


__all__ = ["StoreCopyMigrator"]
