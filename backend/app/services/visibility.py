"""Role-scoped read projections over users, bookings and reports.

Every function here is pure: it takes the current collections and returns a
filtered list in stored order. Nothing is cached, so any dashboard that calls
these after a write sees the write.
"""

from typing import Iterable, List, Optional

from app.models import Booking, PublicUser, Report, User, WalkerBookingsView

ALL_FILTER = "all"
WALKER_VISIBLE_OWN_STATUSES = {"Accepted", "Completed"}


def to_public(user: User) -> PublicUser:
    return PublicUser.model_validate(user.model_dump(exclude={"password"}))


def walkers_for_owner(users: Iterable[User], max_distance_km: Optional[float] = None) -> List[User]:
    def visible(user: User) -> bool:
        if user.role != "walker" or user.active is False:
            return False
        # None and 0 both mean "any distance".
        if not max_distance_km:
            return True
        if user.distance_km is None:
            return False
        return user.distance_km <= max_distance_km

    return [u for u in users if visible(u)]


def bookings_for_owner(bookings: Iterable[Booking], owner_id: str) -> List[Booking]:
    return [b for b in bookings if b.owner_id == owner_id]


def reports_for_owner(reports: Iterable[Report], owner_id: str) -> List[Report]:
    return [r for r in reports if r.owner_id == owner_id]


def pending_bookings(bookings: Iterable[Booking]) -> List[Booking]:
    return [b for b in bookings if b.status == "Pending"]


def bookings_for_walker(bookings: Iterable[Booking], walker_id: str) -> WalkerBookingsView:
    rows = list(bookings)
    return WalkerBookingsView(
        pending=pending_bookings(rows),
        mine=[b for b in rows if b.walker_id == walker_id and b.status in WALKER_VISIBLE_OWN_STATUSES],
    )


def users_for_admin(users: Iterable[User], role: Optional[str] = ALL_FILTER) -> List[User]:
    if not role or role == ALL_FILTER:
        return list(users)
    return [u for u in users if u.role == role]


def bookings_for_admin(bookings: Iterable[Booking], status: Optional[str] = ALL_FILTER) -> List[Booking]:
    if not status or status == ALL_FILTER:
        return list(bookings)
    return [b for b in bookings if b.status == status]
