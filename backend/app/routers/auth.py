from fastapi import APIRouter, Depends

from app.auth import raise_marketplace_http_error, require_session_user
from app.errors import MarketplaceError
from app.models import LoginRequest, LoginResponse, PublicUser, RegisterRequest, User
from app.services.identity import ROLE_DESTINATIONS, identity_service
from app.services.visibility import to_public

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=LoginResponse)
def register(payload: RegisterRequest):
    try:
        user = identity_service.register(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
        )
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)
    return LoginResponse(user=to_public(user), redirect_to=ROLE_DESTINATIONS[user.role])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest):
    try:
        result = identity_service.login(email=payload.email, password=payload.password, role=payload.role)
    except MarketplaceError as exc:
        raise_marketplace_http_error(exc)
    return LoginResponse(user=to_public(result.user), redirect_to=result.redirect_to)


@router.post("/logout", response_model=dict)
def logout():
    identity_service.logout()
    return {"status": "ok"}


@router.get("/me", response_model=PublicUser)
def me(user: User = Depends(require_session_user)):
    return to_public(user)
