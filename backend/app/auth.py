from typing import Callable, NoReturn, Optional

from fastapi import HTTPException, status

from app.errors import (
    MarketplaceAuthError,
    MarketplaceConflictError,
    MarketplaceError,
    MarketplaceNotFoundError,
    MarketplacePermissionError,
    MarketplaceSessionError,
    NoEligibleBookingError,
)
from app.models import User
from app.services.identity import LOGIN_PAGE, identity_service

REDIRECT_HEADER = "X-Redirect-To"


def raise_marketplace_http_error(exc: MarketplaceError) -> NoReturn:
    if isinstance(exc, MarketplaceAuthError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if isinstance(exc, MarketplaceSessionError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc), headers={REDIRECT_HEADER: LOGIN_PAGE}
        )
    if isinstance(exc, MarketplacePermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, MarketplaceNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (MarketplaceConflictError, NoEligibleBookingError)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def role_guard(expected_role: Optional[str] = None) -> Callable[[], User]:
    """Builds a dependency that resolves the session user or redirects to login."""

    def dependency() -> User:
        decision = identity_service.require_role(expected_role)
        if decision.user is not None:
            return decision.user
        if decision.failure != "permission":
            raise_marketplace_http_error(MarketplaceSessionError(decision.reason or "Please log in"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=decision.reason,
            headers={REDIRECT_HEADER: decision.redirect_to or LOGIN_PAGE},
        )

    return dependency


require_session_user = role_guard()
require_owner = role_guard("owner")
require_walker = role_guard("walker")
require_admin = role_guard("admin")
