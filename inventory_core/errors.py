"""
Error taxonomy for the stock/balance core.

Everything derives from DomainError so the UI layer can catch one type and
show str(e) to the user (toast/message box).
"""
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


class ValidationError(DomainError):
    """Rejected input or state conflict; raised before anything is written."""
    pass


class InsufficientAvailableQuantity(DomainError):
    """A reservation asked for more than a delivery note line has left."""

    def __init__(self, key: Any, requested: float, available: float):
        self.key = key
        self.requested = float(requested)
        self.available = float(available)
        super().__init__(
            f"Requested {self.requested:g} but only {self.available:g} available "
            f"for product {key.product_id} ({key.unit}) on delivery note {key.delivery_note_id}."
        )


class PersistenceError(DomainError):
    """The store failed inside a unit of work; the whole operation was rolled back."""
    pass


__all__ = [
    "DomainError",
    "ValidationError",
    "InsufficientAvailableQuantity",
    "PersistenceError",
]
