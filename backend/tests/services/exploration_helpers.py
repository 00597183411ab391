"""Exploration test helpers — fixed identities, catalog layout, clock and GPS samples.

Invariants:
    - Tokens map to fixed claims; ADMIN_TOKEN carries admin == True
    - CATALOG keeps every district at or above the seeding minimum
    - Kandy is the only Central district, so unlocking it unlocks the province
"""

from datetime import datetime, timedelta, timezone

USER_TOKEN = "user-token"
ADMIN_TOKEN = "admin-token"
USER_ID = "explorer-1"
ADMIN_ID = "admin-1"

TOKENS = {
    USER_TOKEN: {"uid": USER_ID},
    ADMIN_TOKEN: {"uid": ADMIN_ID, "admin": True},
}

# district → (province, base lat, base lon, place count)
CATALOG = {
    "Colombo": ("Western", 6.9271, 79.8612, 8),
    "Gampaha": ("Western", 7.0873, 80.0144, 5),
    "Kandy": ("Central", 7.2906, 80.6337, 4),
}


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def sample_at(latitude: float, longitude: float, count: int = 3,
              accuracy: float = 10.0) -> list[dict]:
    """GPS samples taken right on top of a point."""
    return [
        {"latitude": latitude, "longitude": longitude, "accuracy_meters": accuracy}
        for _ in range(count)
    ]
