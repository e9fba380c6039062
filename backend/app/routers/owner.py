from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.auth import raise_marketplace_http_error, require_owner
from app.errors import MarketplaceError
from app.models import (
    Booking,
    BookingCreateRequest,
    LatestWalkReport,
    LiveLocation,
    OwnerDashboard,
    OwnerProfileRequest,
    Pet,
    PetCreateRequest,
    PublicUser,
    Report,
    User,
)
from app.services import visibility
from app.services.booking_engine import booking_engine
from app.services.dashboards import dashboard_builder
from app.services.identity import identity_service
from app.services.live_location import live_location_feed
from app.services.report_service import report_service

router = APIRouter(prefix="/owner", tags=["owner"])


@router.get("/dashboard", response_model=OwnerDashboard)
def dashboard(
    max_distance_km: Optional[float] = Query(default=None, ge=0),
    owner: User = Depends(require_owner),
):
    return dashboard_builder.owner(owner, max_distance_km=max_distance_km)


@router.post("/profile", response_model=PublicUser)
def save_profile(request: OwnerProfileRequest, owner: User = Depends(require_owner)):
    try:
        updated = identity_service.save_owner_profile(owner, name=request.name, phone=request.phone)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)
    return visibility.to_public(updated)


@router.post("/pets", response_model=Pet)
def add_pet(request: PetCreateRequest, owner: User = Depends(require_owner)):
    try:
        return identity_service.add_pet(owner, name=request.name, pet_type=request.type, notes=request.notes)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)


@router.get("/walkers", response_model=list[PublicUser])
def list_walkers(
    max_distance_km: Optional[float] = Query(default=None, ge=0),
    owner: User = Depends(require_owner),
):
    users, _ = identity_service.load_users()
    return [visibility.to_public(u) for u in visibility.walkers_for_owner(users, max_distance_km)]


@router.get("/bookings", response_model=list[Booking])
def list_bookings(owner: User = Depends(require_owner)):
    return visibility.bookings_for_owner(booking_engine.list_bookings(), owner.id)


@router.post("/bookings", response_model=Booking)
def create_booking(request: BookingCreateRequest, owner: User = Depends(require_owner)):
    try:
        return booking_engine.create_booking(owner, service=request.service, date=request.date, time=request.time)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)


@router.get("/reports", response_model=list[Report])
def list_reports(owner: User = Depends(require_owner)):
    return visibility.reports_for_owner(report_service.list_reports(), owner.id)


@router.get("/reports/latest", response_model=Optional[LatestWalkReport])
def latest_report(owner: User = Depends(require_owner)):
    latest = report_service.latest_walk_report()
    if latest is None or latest.owner_id != owner.id:
        return None
    return latest


@router.get("/live-location", response_model=Optional[LiveLocation])
def live_location(owner: User = Depends(require_owner)):
    return live_location_feed.current()
