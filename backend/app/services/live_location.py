import time
from typing import Callable, Optional

from app.errors import MarketplacePermissionError
from app.models import LiveLocation, User
from app.services.record_store import LIVE_LOCATION, RecordStore, record_store

DEMO_LAT = 51.509865
DEMO_LNG = -0.118092


def _now_ms() -> int:
    return int(time.time() * 1000)


class LiveLocationFeed:
    """Simulated walk position: one record, present while sharing is on."""

    def __init__(self, store: RecordStore, clock: Callable[[], int] = _now_ms):
        self._store = store
        self._clock = clock

    def start_sharing(self, walker: User) -> LiveLocation:
        if walker.role != "walker":
            raise MarketplacePermissionError("Only walkers can share their location")
        location = LiveLocation(lat=DEMO_LAT, lng=DEMO_LNG, walker_id=walker.id, timestamp=self._clock())
        self._store.write_model(LIVE_LOCATION, location)
        return location

    def stop_sharing(self) -> None:
        self._store.delete(LIVE_LOCATION)

    def current(self) -> Optional[LiveLocation]:
        return self._store.read_model(LIVE_LOCATION, LiveLocation)


live_location_feed = LiveLocationFeed(store=record_store)
