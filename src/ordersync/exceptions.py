"""Library exceptions for the ordersync package."""

from __future__ import annotations

from typing import Any


class OrderSyncError(Exception):
    """Base exception for ordersync library."""

    pass


class SyncConfigurationError(OrderSyncError):
    """
    Raised when the engine is asked to do something its configuration forbids.

    Covers non-positive limits, unknown divergence classes, and pending-set
    queries issued before any order subtype was registered.
    """

    pass


class InvalidDivergenceClassError(SyncConfigurationError):
    """Raised when a pending-set query names an unknown divergence class."""

    def __init__(self, divergence_class: Any) -> None:
        self.divergence_class = divergence_class
        super().__init__(
            f"Invalid divergence class {divergence_class!r}, "
            "must be a member of DivergenceClass"
        )


__all__ = [
    "OrderSyncError",
    "SyncConfigurationError",
    "InvalidDivergenceClassError",
]
