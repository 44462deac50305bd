"""
Interval-overlap conflict detection shared by availability and sync.

All stays are half-open intervals [check_in, check_out): a guest checking out
on the day another checks in does not collide with them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from booking_sync.models.enums import BookingStatus
from booking_sync.records import BookingRecord

CONFLICT_MARKER = "[CONFLICT]"


@dataclass(frozen=True)
class Candidate:
    """A reservation about to enter the ledger."""

    room_id: UUID
    check_in: date
    check_out: date
    external_id: Optional[str] = None


@dataclass(frozen=True)
class ConflictWarning:
    """
    Advisory that an ingested reservation overlaps existing bookings.

    Not an error: the reservation is still created (as ``pending``) so a human
    can resolve the double booking.
    """

    room_id: UUID
    external_id: Optional[str]
    guest_name: str
    check_in: date
    check_out: date
    conflicting_booking_ids: tuple[UUID, ...]
    description: str


def intervals_overlap(a_in: date, a_out: date, b_in: date, b_out: date) -> bool:
    """True iff [a_in, a_out) and [b_in, b_out) share at least one night."""
    return a_in < b_out and b_in < a_out


def find_conflicts(
    candidate: Candidate, existing: Iterable[BookingRecord]
) -> list[BookingRecord]:
    """
    Return the existing bookings that collide with a candidate reservation.

    Bookings on other rooms, cancelled bookings and bookings carrying the
    candidate's own external_id (a refresh of the same event) never count.
    The result is sorted by (check_in, check_out, id) so it does not depend on
    the order ``existing`` is scanned in.

    Args:
        candidate (Candidate): Reservation being checked.
        existing (Iterable[BookingRecord]): Bookings to compare against.

    Returns:
        list[BookingRecord]: Overlapping bookings.
    """
    conflicts = [
        b
        for b in existing
        if b.room_id == candidate.room_id
        and b.status != BookingStatus.CANCELLED.value
        and not (candidate.external_id is not None and b.external_id == candidate.external_id)
        and intervals_overlap(candidate.check_in, candidate.check_out, b.check_in, b.check_out)
    ]
    return sorted(conflicts, key=lambda b: (b.check_in, b.check_out, str(b.id)))


def describe_conflict(
    guest_name: str, check_in: date, check_out: date, conflicts: list[BookingRecord]
) -> str:
    """Human-readable summary of one conflict, used in sync results and logs."""
    others = ", ".join(
        f"{b.guest_name} ({b.source}, {b.check_in.isoformat()} to {b.check_out.isoformat()})"
        for b in conflicts
    )
    return (
        f"Booking for {guest_name} ({check_in.isoformat()} to {check_out.isoformat()}) "
        f"overlaps {len(conflicts)} existing booking(s): {others}"
    )


def annotate_notes(notes: Optional[str], conflicts: list[BookingRecord]) -> str:
    """
    Append the machine-readable conflict annotation to a booking's notes.

    The annotation is a single line starting with ``[CONFLICT]`` followed by
    the ids of the overlapping bookings.
    """
    ids = ",".join(str(b.id) for b in conflicts)
    annotation = f"{CONFLICT_MARKER} overlaps booking(s) {ids}"
    return f"{notes}\n{annotation}" if notes else annotation


def has_conflict_annotation(notes: Optional[str]) -> bool:
    return bool(notes) and CONFLICT_MARKER in (notes or "")
