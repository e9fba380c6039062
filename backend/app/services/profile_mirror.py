import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _parse_workers(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        return 2
    return value if value > 0 else 2


MIRROR_WORKERS = _parse_workers(os.getenv("PROFILE_MIRROR_WORKERS", "2"))


class ProfileMirror:
    """Best-effort copy of public user profiles into Firestore.

    Writes run on a background executor. Callers get a future they are free
    to ignore; failures are logged here and never reach the caller.
    """

    def __init__(self, collection: str = "users"):
        self._lock = Lock()
        self._initialized = False
        self._enabled = False
        self._client = None
        self._collection = collection
        self._executor = ThreadPoolExecutor(max_workers=MIRROR_WORKERS, thread_name_prefix="profile-mirror")

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            credentials_path = os.getenv("FIREBASE_CREDENTIALS_PATH", "").strip()
            if not credentials_path:
                self._initialized = True
                self._enabled = False
                logger.info("Profile mirror disabled: FIREBASE_CREDENTIALS_PATH not set")
                return
            try:
                import firebase_admin
                from firebase_admin import credentials, firestore
            except Exception:
                self._initialized = True
                self._enabled = False
                logger.exception("Profile mirror disabled: firebase-admin import failed")
                return

            try:
                cred = credentials.Certificate(credentials_path)
                if not firebase_admin._apps:  # pylint: disable=protected-access
                    firebase_admin.initialize_app(cred)
                self._client = firestore.client()
                self._enabled = True
                logger.info("Profile mirror initialized")
            except Exception:
                self._enabled = False
                logger.exception("Profile mirror disabled: Firebase init failed")
            finally:
                self._initialized = True

    def upsert_user_profile(self, user_id: str, public_fields: Dict[str, Any]) -> Optional[Future]:
        try:
            return self._executor.submit(self._write_profile, user_id, dict(public_fields))
        except RuntimeError:
            logger.exception("Profile mirror executor unavailable; skipping %s", user_id)
            return None

    def _write_profile(self, user_id: str, public_fields: Dict[str, Any]) -> None:
        try:
            self._ensure_initialized()
            if not self._enabled:
                return
            assert self._client is not None
            self._client.collection(self._collection).document(user_id).set(public_fields)
            logger.info("User profile mirrored: %s", user_id)
        except Exception:
            logger.exception("Profile mirror write failed for %s", user_id)


profile_mirror = ProfileMirror()
