"""
Write-path events.

Write paths publish these events on an OrderEventBus after a change has
been persisted; the synchronizer subscribes to mirror writes and record
deletions instead of being wired into framework hooks.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from ordersync.models import Store


class OrderEvent(BaseModel):
    """
    Base class for write-path events.

    Attributes:
        event_id: Unique identifier for this event instance
        occurred_at: When the change happened (UTC)
        order_id: The order that changed
    """

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    order_id: int = Field(..., gt=0)

    @property
    def event_type(self) -> str:
        return type(self).__name__


class OrderUpdated(OrderEvent):
    """An order was created or updated in ``store``."""

    store: Store = Store.LEGACY


class OrderDeleted(OrderEvent):
    """
    An order was deleted from ``store``.

    Attributes:
        store: Store the order was deleted from
        order_type: Subtype (content type) of the deleted row
    """

    store: Store
    order_type: str


__all__ = ["OrderEvent", "OrderUpdated", "OrderDeleted"]
