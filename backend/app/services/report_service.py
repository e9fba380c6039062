import logging
from typing import List, Optional
from uuid import uuid4

from app.errors import MarketplacePermissionError, MarketplaceValidationError, NoEligibleBookingError
from app.models import Booking, LatestWalkReport, Report, User
from app.services.booking_engine import booking_sort_key
from app.services.record_store import BOOKINGS, LATEST_WALK_REPORT, REPORTS, RecordStore, record_store

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, store: RecordStore):
        self._store = store

    def list_reports(self) -> List[Report]:
        reports, _ = self._store.read_models(REPORTS, Report)
        return reports

    def latest_accepted_booking(self, walker: User) -> Booking:
        bookings, _ = self._store.read_models(BOOKINGS, Booking)
        eligible = [b for b in bookings if b.walker_id == walker.id and b.status == "Accepted"]
        if not eligible:
            raise NoEligibleBookingError("There is no accepted booking to attach this report to")
        # Stable sort: among equal (date, time) the most recently stored wins.
        return sorted(eligible, key=booking_sort_key)[-1]

    def latest_walk_report(self) -> Optional[LatestWalkReport]:
        """The most recently submitted report text, whoever filed it."""
        return self._store.read_model(LATEST_WALK_REPORT, LatestWalkReport)

    def submit_report(self, walker: User, text: str) -> Report:
        if walker.role != "walker":
            raise MarketplacePermissionError("Only walkers can submit walk reports")
        text = (text or "").strip()
        if not text:
            raise MarketplaceValidationError("Please write a short report before submitting")

        booking = self.latest_accepted_booking(walker)
        reports, version, malformed = self._store.read_collection(REPORTS, Report)
        report = Report(
            id=f"r_{uuid4().hex[:10]}",
            booking_id=booking.id,
            owner_id=booking.owner_id,
            walker_id=walker.id,
            walker_name=walker.name or "",
            date=booking.date,
            time=booking.time,
            text=text,
        )
        reports.append(report)
        self._store.write_models(REPORTS, reports, expected_version=version, preserved=malformed)
        latest = LatestWalkReport(text=text, booking_id=booking.id, owner_id=booking.owner_id, walker_id=walker.id)
        self._store.write_model(LATEST_WALK_REPORT, latest)
        logger.info("Report %s filed by walker %s for booking %s", report.id, walker.id, booking.id)
        return report


report_service = ReportService(store=record_store)
