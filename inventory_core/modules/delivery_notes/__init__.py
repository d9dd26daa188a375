# modules/delivery_notes/__init__.py

from .notes import DeliveryNoteManager
from .reservation_ledger import ReservationLedger

__all__ = [
    "DeliveryNoteManager",
    "ReservationLedger",
]
