import logging
from typing import Optional

from pydantic import ValidationError

from app.errors import MarketplaceSessionError
from app.models import User
from app.services.record_store import SESSION, RecordStore

logger = logging.getLogger(__name__)


class SessionContext:
    """The current actor, held in the store's session singleton."""

    def __init__(self, store: RecordStore):
        self._store = store

    def establish(self, user: User) -> None:
        self._store.write_model(SESSION, user)

    def clear(self) -> None:
        self._store.delete(SESSION)

    def load(self) -> Optional[User]:
        """Returns the session user, None when absent.

        Raises ``MarketplaceSessionError`` when a session record exists but cannot
        be read back as a user, so the caller can decide to clear it.
        """
        raw = self._store.get(SESSION)
        if raw is None:
            return None
        try:
            return User.model_validate(raw)
        except ValidationError as exc:
            raise MarketplaceSessionError("Session record is not a valid user") from exc

    def current(self) -> Optional[User]:
        try:
            return self.load()
        except MarketplaceSessionError:
            logger.warning("Clearing unreadable session record")
            self.clear()
            return None
