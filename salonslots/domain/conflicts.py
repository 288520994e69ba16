"""
Conflict detection between candidate slots and existing bookings.
"""

from typing import Dict, Iterable, List

from .models import ExistingBooking, SlotCandidate, TimeRange


def index_busy_ranges(bookings: Iterable[ExistingBooking]) -> Dict[str, List[TimeRange]]:
    """
    Group the busy ranges of active bookings by provider, sorted by start.

    Inactive bookings (cancelled, completed, ...) never block a slot.
    """
    busy: Dict[str, List[TimeRange]] = {}

    for booking in bookings:
        if not booking.is_active:
            continue
        busy.setdefault(booking.provider_id, []).append(booking.time_range())

    for ranges in busy.values():
        ranges.sort(key=lambda r: r.start)

    return busy


def has_conflict(candidate: SlotCandidate, busy_ranges: List[TimeRange]) -> bool:
    """
    Check a candidate against one provider's sorted busy ranges.

    Ranges that merely touch the candidate's boundaries are not conflicts.
    """
    slot = candidate.time_range()

    for busy in busy_ranges:
        if busy.start >= slot.end:
            break
        if slot.overlaps(busy):
            return True

    return False


def remove_conflicts(
    candidates: Iterable[SlotCandidate],
    bookings: Iterable[ExistingBooking],
) -> List[SlotCandidate]:
    """Keep the candidates that overlap no active booking of their provider."""
    busy = index_busy_ranges(bookings)

    return [
        candidate for candidate in candidates
        if not has_conflict(candidate, busy.get(candidate.provider_id, []))
    ]
