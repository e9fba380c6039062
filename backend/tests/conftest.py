import os
import random
import sys
import tempfile

import pytest

# The app's module-level store must point at a scratch database before import.
os.environ.setdefault("FURAMORA_DB_PATH", os.path.join(tempfile.mkdtemp(prefix="furamora-tests-"), "api.sqlite3"))
os.environ.pop("FIREBASE_CREDENTIALS_PATH", None)

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.services.booking_engine import BookingEngine
from app.services.identity import IdentityService
from app.services.live_location import LiveLocationFeed
from app.services.record_store import RecordStore
from app.services.report_service import ReportService


class RecordingMirror:
    def __init__(self):
        self.calls = []

    def upsert_user_profile(self, user_id, public_fields):
        self.calls.append((user_id, public_fields))
        return None


@pytest.fixture
def store(tmp_path):
    return RecordStore(db_path=str(tmp_path / "records.sqlite3"))


@pytest.fixture
def mirror():
    return RecordingMirror()


@pytest.fixture
def identity(store, mirror):
    return IdentityService(store=store, mirror=mirror, rng=random.Random(7))


@pytest.fixture
def engine(store):
    return BookingEngine(store=store)


@pytest.fixture
def reports(store):
    return ReportService(store=store)


@pytest.fixture
def live_feed(store):
    return LiveLocationFeed(store=store, clock=lambda: 1_700_000_000_000)


@pytest.fixture
def owner(identity):
    return identity.register("Olive Owner", "olive@example.com", "pw-olive", "owner")


@pytest.fixture
def walker(identity):
    return identity.register("Walt Walker", "walt@example.com", "pw-walt", "walker")


@pytest.fixture
def other_walker(identity):
    return identity.register("Wanda Walker", "wanda@example.com", "pw-wanda", "walker")
