from typing import Optional

from app.models import AdminDashboard, OwnerDashboard, User, WalkerDashboard
from app.services import visibility
from app.services.booking_engine import BookingEngine, booking_engine
from app.services.identity import IdentityService, identity_service
from app.services.live_location import LiveLocationFeed, live_location_feed
from app.services.report_service import ReportService, report_service


class DashboardBuilder:
    """Assembles the three dashboards from fresh reads of the shared store."""

    def __init__(
        self,
        identity: IdentityService,
        bookings: BookingEngine,
        reports: ReportService,
        live_location: LiveLocationFeed,
    ):
        self._identity = identity
        self._bookings = bookings
        self._reports = reports
        self._live_location = live_location

    def owner(self, owner: User, max_distance_km: Optional[float] = None) -> OwnerDashboard:
        users, _ = self._identity.load_users()
        fresh = next((u for u in users if u.id == owner.id), owner)
        return OwnerDashboard(
            user=visibility.to_public(fresh),
            pets=list(fresh.pets),
            bookings=visibility.bookings_for_owner(self._bookings.list_bookings(), owner.id),
            walkers=[visibility.to_public(u) for u in visibility.walkers_for_owner(users, max_distance_km)],
            reports=visibility.reports_for_owner(self._reports.list_reports(), owner.id),
            live_location=self._live_location.current(),
        )

    def walker(self, walker: User) -> WalkerDashboard:
        fresh = self._identity.get_user(walker.id) or walker
        view = visibility.bookings_for_walker(self._bookings.list_bookings(), walker.id)
        return WalkerDashboard(
            user=visibility.to_public(fresh),
            pending=view.pending,
            mine=view.mine,
            live_location=self._live_location.current(),
        )

    def admin(self, role: str = visibility.ALL_FILTER, status: str = visibility.ALL_FILTER) -> AdminDashboard:
        users, _ = self._identity.load_users()
        return AdminDashboard(
            users=[visibility.to_public(u) for u in visibility.users_for_admin(users, role)],
            bookings=visibility.bookings_for_admin(self._bookings.list_bookings(), status),
        )


dashboard_builder = DashboardBuilder(
    identity=identity_service,
    bookings=booking_engine,
    reports=report_service,
    live_location=live_location_feed,
)
