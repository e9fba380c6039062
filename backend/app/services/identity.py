import logging
import os
import random
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
from uuid import uuid4

from app.errors import (
    MarketplaceAuthError,
    MarketplaceNotFoundError,
    MarketplacePermissionError,
    MarketplaceSessionError,
    MarketplaceValidationError,
)
from app.models import Pet, User
from app.services.profile_mirror import ProfileMirror, profile_mirror
from app.services.record_store import USERS, RecordStore, record_store
from app.services.session import SessionContext

logger = logging.getLogger(__name__)

ADMIN_ID = "admin-1"
ADMIN_EMAIL = os.getenv("FURAMORA_ADMIN_EMAIL", "admin@furamora.com").strip().lower()
ADMIN_PASSWORD = os.getenv("FURAMORA_ADMIN_PASSWORD", "admin123")

SELF_SERVICE_ROLES = {"owner", "walker"}
WALKER_DEMO_DISTANCES_KM = (1, 3, 5)

LOGIN_PAGE = "index.html"
ROLE_DESTINATIONS = {
    "owner": "owner.html",
    "walker": "walker.html",
    "admin": "admin.html",
}


@dataclass
class AccessDecision:
    user: Optional[User] = None
    redirect_to: Optional[str] = None
    reason: Optional[str] = None
    failure: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.user is not None


@dataclass
class LoginResult:
    user: User
    redirect_to: str


class IdentityService:
    def __init__(
        self,
        store: RecordStore,
        session: Optional[SessionContext] = None,
        mirror: Optional[ProfileMirror] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self.session = session or SessionContext(store)
        self._mirror = mirror
        self._rng = rng or random.Random()

    def ensure_admin_seed(self) -> List[User]:
        users, version, malformed = self._store.read_collection(USERS, User)
        if any(u.id == ADMIN_ID or (u.role == "admin" and u.email == ADMIN_EMAIL) for u in users):
            return users
        if any(isinstance(raw, dict) and raw.get("id") == ADMIN_ID for _, raw in malformed):
            logger.warning("Stored admin record %s is unreadable, not seeding a replacement", ADMIN_ID)
            return users
        users.append(
            User(
                id=ADMIN_ID,
                name="Furamora Admin",
                email=ADMIN_EMAIL,
                password=ADMIN_PASSWORD,
                role="admin",
            )
        )
        self._store.write_models(USERS, users, expected_version=version, preserved=malformed)
        logger.info("Seeded admin account %s", ADMIN_EMAIL)
        return users

    def load_users(self) -> Tuple[List[User], int]:
        self.ensure_admin_seed()
        return self._store.read_models(USERS, User)

    def _load_users_for_update(self) -> Tuple[List[User], int, List[Tuple[int, Any]]]:
        self.ensure_admin_seed()
        return self._store.read_collection(USERS, User)

    def get_user(self, user_id: str) -> Optional[User]:
        users, _ = self.load_users()
        return next((u for u in users if u.id == user_id), None)

    def register(self, name: str, email: str, password: str, role: str) -> User:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        password = password or ""
        role = (role or "").strip()
        if not name or not email or not password or not role:
            raise MarketplaceValidationError("Please fill in all fields before registering")
        if role == "admin":
            raise MarketplaceValidationError("You cannot register as an admin")
        if role not in SELF_SERVICE_ROLES:
            raise MarketplaceValidationError("Invalid role. Allowed: owner, walker")
        if email == ADMIN_EMAIL:
            raise MarketplaceValidationError("This email address is reserved")

        users, version, malformed = self._load_users_for_update()
        existing_idx = next((idx for idx, u in enumerate(users) if u.email == email), None)
        distance_km = float(self._rng.choice(WALKER_DEMO_DISTANCES_KM)) if role == "walker" else None
        user = User(
            id=users[existing_idx].id if existing_idx is not None else f"u_{uuid4().hex[:10]}",
            name=name,
            email=email,
            password=password,
            role=role,  # type: ignore[arg-type]
            active=True,
            distance_km=distance_km,
        )
        if existing_idx is not None:
            users[existing_idx] = user
        else:
            users.append(user)
        self._store.write_models(USERS, users, expected_version=version, preserved=malformed)
        self.session.establish(user)
        logger.info("User registered: %s (%s, replaced=%s)", user.id, role, existing_idx is not None)
        self._mirror_profile(user)
        return user

    def login(self, email: str, password: str, role: str) -> LoginResult:
        email = (email or "").strip().lower()
        password = password or ""
        role = (role or "").strip()
        if not email or not password or not role:
            raise MarketplaceValidationError("Please enter your email, password and role")

        users, _ = self.load_users()
        user = next(
            (
                u
                for u in users
                if u.email == email and u.password == password and u.role == role and u.active is not False
            ),
            None,
        )
        if not user:
            logger.info("Login rejected for role %s", role)
            raise MarketplaceAuthError("Invalid email, password or role")
        self.session.establish(user)
        logger.info("User logged in: %s (%s)", user.id, user.role)
        return LoginResult(user=user, redirect_to=ROLE_DESTINATIONS[user.role])

    def logout(self) -> None:
        self.session.clear()

    def require_role(self, expected_role: Optional[str] = None) -> AccessDecision:
        try:
            user = self.session.load()
        except MarketplaceSessionError:
            self.session.clear()
            return AccessDecision(
                redirect_to=LOGIN_PAGE,
                reason="There was a problem with your login data, please log in again",
                failure="session",
            )
        if user is None:
            self.session.clear()
            return AccessDecision(redirect_to=LOGIN_PAGE, reason="Please log in to access this page", failure="session")
        if expected_role and user.role != expected_role:
            return AccessDecision(
                redirect_to=LOGIN_PAGE,
                reason="You do not have permission to view this page",
                failure="permission",
            )
        return AccessDecision(user=user)

    def save_owner_profile(self, actor: User, name: str, phone: str) -> User:
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name or not phone:
            raise MarketplaceValidationError("Please fill in both your name and phone number")

        def apply(user: User) -> User:
            return user.model_copy(update={"name": name, "phone": phone})

        return self._update_user(actor, actor.id, apply)

    def save_walker_profile(self, actor: User, name: str, availability: str, bio: str) -> User:
        name = (name or "").strip()
        if not name:
            raise MarketplaceValidationError("Please enter your name")

        def apply(user: User) -> User:
            return user.model_copy(
                update={"name": name, "availability": (availability or "").strip(), "bio": (bio or "").strip()}
            )

        return self._update_user(actor, actor.id, apply)

    def add_pet(self, actor: User, name: str, pet_type: str, notes: str = "") -> Pet:
        name = (name or "").strip()
        pet_type = (pet_type or "").strip()
        if not name or not pet_type:
            raise MarketplaceValidationError("Please enter both pet name and type")
        pet = Pet(id=f"pet_{uuid4().hex[:10]}", name=name, type=pet_type, notes=(notes or "").strip())

        def apply(user: User) -> User:
            return user.model_copy(update={"pets": [*user.pets, pet]})

        self._update_user(actor, actor.id, apply)
        return pet

    def set_user_active(self, actor: User, user_id: str, active: bool) -> User:
        if actor.role != "admin":
            raise MarketplacePermissionError("Only admins can change account status")
        if user_id == ADMIN_ID and not active:
            raise MarketplaceValidationError("The admin account cannot be deactivated")
        return self._update_user(actor, user_id, lambda user: user.model_copy(update={"active": active}))

    def _update_user(self, actor: User, user_id: str, apply: Callable[[User], User]) -> User:
        users, version, malformed = self._load_users_for_update()
        idx = next((i for i, u in enumerate(users) if u.id == user_id), None)
        if idx is None:
            raise MarketplaceNotFoundError("User not found")
        updated = apply(users[idx])
        users[idx] = updated
        self._store.write_models(USERS, users, expected_version=version, preserved=malformed)
        if actor.id == updated.id:
            self.session.establish(updated)
        self._mirror_profile(updated)
        return updated

    def _mirror_profile(self, user: User) -> None:
        if self._mirror is None:
            return
        self._mirror.upsert_user_profile(user.id, user.public_fields())


identity_service = IdentityService(store=record_store, mirror=profile_mirror)
