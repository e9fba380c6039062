import logging
from typing import Dict, List, Optional, Set, Tuple
from uuid import uuid4

from app.errors import MarketplaceConflictError, MarketplacePermissionError, MarketplaceValidationError
from app.models import Booking, User
from app.services.record_store import BOOKINGS, RecordStore, record_store

logger = logging.getLogger(__name__)

DEFAULT_SERVICE = "Dog Walk"

BOOKING_STATUSES = {"Pending", "Accepted", "Declined", "Completed"}
BOOKING_TERMINAL_STATUSES = {"Declined", "Completed"}

ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    "Pending": {"Accepted", "Declined"},
    "Accepted": {"Completed"},
}


def booking_sort_key(booking: Booking) -> Tuple[str, str]:
    """Chronological order for bookings: date, then time, both as strings."""
    return booking.date, booking.time


class BookingEngine:
    def __init__(self, store: RecordStore):
        self._store = store

    def list_bookings(self) -> List[Booking]:
        bookings, _ = self._store.read_models(BOOKINGS, Booking)
        return bookings

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return next((b for b in self.list_bookings() if b.id == booking_id), None)

    def create_booking(self, owner: User, service: str, date: str, time: str) -> Booking:
        if owner.role != "owner":
            raise MarketplacePermissionError("Only owners can create bookings")
        date = (date or "").strip()
        time = (time or "").strip()
        if not date or not time:
            raise MarketplaceValidationError("Please select a date and time for your booking")

        bookings, version, malformed = self._store.read_collection(BOOKINGS, Booking)
        booking = Booking(
            id=f"b_{uuid4().hex[:10]}",
            owner_id=owner.id,
            owner_name=owner.name or "",
            walker_id=None,
            walker_name="",
            service=(service or "").strip() or DEFAULT_SERVICE,
            date=date,
            time=time,
            status="Pending",
        )
        bookings.append(booking)
        self._store.write_models(BOOKINGS, bookings, expected_version=version, preserved=malformed)
        logger.info("Booking %s created by owner %s for %s %s", booking.id, owner.id, date, time)
        return booking

    def transition_booking(self, booking_id: str, new_status: str, acting_walker: User) -> Optional[Booking]:
        """Moves a booking to ``new_status`` on behalf of a walker.

        Returns None when the booking no longer exists. Accepting is a
        compare-and-set against the Pending state and the stored collection
        version, so of two walkers racing for one booking only the first
        write lands; the loser gets ``MarketplaceConflictError``.
        """
        if acting_walker.role != "walker":
            raise MarketplacePermissionError("Only walkers can update booking status")
        if new_status not in BOOKING_STATUSES:
            raise MarketplaceValidationError("Invalid status. Allowed: Accepted, Declined, Completed")

        bookings, version, malformed = self._store.read_collection(BOOKINGS, Booking)
        idx = next((i for i, b in enumerate(bookings) if b.id == booking_id), None)
        if idx is None:
            logger.info("Ignoring transition for missing booking %s", booking_id)
            return None

        current = bookings[idx]
        if current.status in BOOKING_TERMINAL_STATUSES:
            raise MarketplaceConflictError("Booking is already closed")
        if new_status not in ALLOWED_TRANSITIONS.get(current.status, set()):
            if current.status == "Accepted" and new_status == "Accepted":
                raise MarketplaceConflictError("Booking has already been accepted")
            raise MarketplaceConflictError(f"Invalid status transition: {current.status} -> {new_status}")
        if current.status == "Accepted" and current.walker_id != acting_walker.id:
            raise MarketplacePermissionError("Only the assigned walker can update this booking")

        update: Dict[str, object] = {"status": new_status}
        if new_status == "Accepted":
            update["walker_id"] = acting_walker.id
            update["walker_name"] = acting_walker.name or ""
        updated = current.model_copy(update=update)
        bookings[idx] = updated
        self._store.write_models(BOOKINGS, bookings, expected_version=version, preserved=malformed)
        logger.info(
            "Booking %s: %s -> %s by walker %s", booking_id, current.status, new_status, acting_walker.id
        )
        return updated


booking_engine = BookingEngine(store=record_store)
