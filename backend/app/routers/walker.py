from typing import Optional

from fastapi import APIRouter, Depends

from app.auth import raise_marketplace_http_error, require_walker
from app.errors import MarketplaceError
from app.models import (
    Booking,
    LiveLocation,
    PublicUser,
    Report,
    ReportCreateRequest,
    User,
    WalkerBookingsView,
    WalkerDashboard,
    WalkerProfileRequest,
)
from app.services import visibility
from app.services.booking_engine import booking_engine
from app.services.dashboards import dashboard_builder
from app.services.identity import identity_service
from app.services.live_location import live_location_feed
from app.services.report_service import report_service

router = APIRouter(prefix="/walker", tags=["walker"])


def _transition(booking_id: str, new_status: str, walker: User) -> Optional[Booking]:
    try:
        return booking_engine.transition_booking(booking_id, new_status, walker)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)


@router.get("/dashboard", response_model=WalkerDashboard)
def dashboard(walker: User = Depends(require_walker)):
    return dashboard_builder.walker(walker)


@router.post("/profile", response_model=PublicUser)
def save_profile(request: WalkerProfileRequest, walker: User = Depends(require_walker)):
    try:
        updated = identity_service.save_walker_profile(
            walker,
            name=request.name,
            availability=request.availability,
            bio=request.bio,
        )
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)
    return visibility.to_public(updated)


@router.get("/bookings", response_model=WalkerBookingsView)
def list_bookings(walker: User = Depends(require_walker)):
    return visibility.bookings_for_walker(booking_engine.list_bookings(), walker.id)


@router.post("/bookings/{booking_id}/accept", response_model=Optional[Booking])
def accept_booking(booking_id: str, walker: User = Depends(require_walker)):
    return _transition(booking_id, "Accepted", walker)


@router.post("/bookings/{booking_id}/decline", response_model=Optional[Booking])
def decline_booking(booking_id: str, walker: User = Depends(require_walker)):
    return _transition(booking_id, "Declined", walker)


@router.post("/bookings/{booking_id}/complete", response_model=Optional[Booking])
def complete_booking(booking_id: str, walker: User = Depends(require_walker)):
    return _transition(booking_id, "Completed", walker)


@router.post("/reports", response_model=Report)
def submit_report(request: ReportCreateRequest, walker: User = Depends(require_walker)):
    try:
        return report_service.submit_report(walker, request.text)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)


@router.post("/live-location/start", response_model=LiveLocation)
def start_live_location(walker: User = Depends(require_walker)):
    try:
        return live_location_feed.start_sharing(walker)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)


@router.post("/live-location/stop", response_model=dict)
def stop_live_location(walker: User = Depends(require_walker)):
    live_location_feed.stop_sharing()
    return {"status": "stopped"}
