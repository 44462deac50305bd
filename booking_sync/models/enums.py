"""String enums for the status columns stored on ledger and sync rows."""

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    PAYMENT_FAILED = "payment_failed"
    CART_ABANDONED = "cart_abandoned"


# Statuses that hold inventory
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class InventoryMode(str, Enum):
    SINGLE_UNIT = "single_unit"
    MULTI_UNIT = "multi_unit"


class SyncStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    PARTIAL = "partial"
    WARNING = "warning"
    FAILED = "failed"


class SyncType(str, Enum):
    BOOKINGS = "bookings"
    AVAILABILITY = "availability"
    FULL = "full"


class SyncDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
