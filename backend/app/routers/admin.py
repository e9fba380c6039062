from typing import Literal

from fastapi import APIRouter, Depends, Query

from app.auth import raise_marketplace_http_error, require_admin
from app.errors import MarketplaceError
from app.models import AdminDashboard, Booking, PublicUser, User, UserActiveRequest
from app.services import visibility
from app.services.booking_engine import booking_engine
from app.services.dashboards import dashboard_builder
from app.services.identity import identity_service

router = APIRouter(prefix="/admin", tags=["admin"])

RoleFilter = Literal["all", "owner", "walker", "admin"]
StatusFilter = Literal["all", "Pending", "Accepted", "Declined", "Completed"]


@router.get("/dashboard", response_model=AdminDashboard)
def dashboard(
    role: RoleFilter = Query(default="all"),
    status: StatusFilter = Query(default="all"),
    admin: User = Depends(require_admin),
):
    return dashboard_builder.admin(role=role, status=status)


@router.get("/users", response_model=list[PublicUser])
def list_users(role: RoleFilter = Query(default="all"), admin: User = Depends(require_admin)):
    users, _ = identity_service.load_users()
    return [visibility.to_public(u) for u in visibility.users_for_admin(users, role)]


@router.get("/bookings", response_model=list[Booking])
def list_bookings(status: StatusFilter = Query(default="all"), admin: User = Depends(require_admin)):
    return visibility.bookings_for_admin(booking_engine.list_bookings(), status)


@router.post("/users/{user_id}/active", response_model=PublicUser)
def set_user_active(user_id: str, request: UserActiveRequest, admin: User = Depends(require_admin)):
    try:
        updated = identity_service.set_user_active(admin, user_id, request.active)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)
    return visibility.to_public(updated)
