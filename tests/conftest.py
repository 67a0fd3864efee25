"""
SightSignal Test Suite - Shared Fixtures and Configuration

Provides entity factories, a fixed clock and in-memory stores for all tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from sightsignal.models import (
    Geofence,
    GeofenceId,
    GeofenceTarget,
    GlobalTarget,
    LatLng,
    Polygon,
    PolygonTarget,
    Sighting,
    SightingId,
    Signal,
    SignalAnalytics,
    SignalClassification,
    SignalConditions,
    SignalId,
    TriggerType,
    User,
    UserId,
    UserReputation,
)
from sightsignal.repositories import InMemoryStore

# Fixed "now" for every time-dependent test
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def square(lat: float, lng: float, size: float) -> Polygon:
    """Axis-aligned square with its south-west corner at (lat, lng)."""
    return Polygon(
        points=(
            LatLng(lat=lat, lng=lng),
            LatLng(lat=lat, lng=lng + size),
            LatLng(lat=lat + size, lng=lng + size),
            LatLng(lat=lat + size, lng=lng),
        )
    )


# =============================================================================
# Singleton Reset
# =============================================================================


@pytest.fixture(autouse=True)
def reset_all_singletons():
    """
    Reset module-level singletons before and after each test.

    Settings cache first (logging reads from settings), then logging state
    so caplog can capture records.
    """

    def do_reset():
        from sightsignal.core.config import reset_settings
        from sightsignal.core.logging import reset_logging

        reset_settings()
        reset_logging()

    do_reset()
    yield
    do_reset()


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    """Callable clock frozen at NOW."""
    return lambda: NOW


# =============================================================================
# Entity Factories
# =============================================================================


@pytest.fixture
def make_signal():
    """
    Factory for signals with sensible defaults.

    Usage:
        def test_something(make_signal):
            signal = make_signal("sig-1", classification=SignalClassification.OFFICIAL)
    """

    def _make(signal_id: str = "sig-1", **overrides) -> Signal:
        data = {
            "id": SignalId(signal_id),
            "name": f"Signal {signal_id}",
            "owner_id": UserId("owner-1"),
            "target": GlobalTarget(),
            "triggers": (TriggerType.NEW_SIGHTING,),
            "conditions": SignalConditions(),
            "classification": SignalClassification.PERSONAL,
            "analytics": SignalAnalytics(),
            "created_at": NOW - timedelta(days=30),
            "updated_at": NOW - timedelta(days=30),
        }
        data.update(overrides)
        return Signal(**data)

    return _make


@pytest.fixture
def make_sighting():
    """Factory for sightings located at (40.71, -74.01) by default."""

    def _make(sighting_id: str = "sight-1", **overrides) -> Sighting:
        data = {
            "id": SightingId(sighting_id),
            "category_id": "wildlife",
            "type_id": "bear",
            "location": LatLng(lat=40.71, lng=-74.01),
            "reporter_id": UserId("reporter-1"),
            "created_at": NOW - timedelta(hours=1),
            "observed_at": NOW - timedelta(hours=1),
        }
        data.update(overrides)
        return Sighting(**data)

    return _make


@pytest.fixture
def manhattan() -> Polygon:
    """Small square around lower Manhattan containing the default sighting."""
    return square(40.70, -74.02, 0.02)


@pytest.fixture
def brooklyn() -> Polygon:
    """Square well away from the default sighting."""
    return square(40.60, -73.95, 0.02)


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def repos(store):
    return store.repositories()


@pytest_asyncio.fixture
async def seeded_repos(repos, make_signal, make_sighting, manhattan, brooklyn):
    """
    Repositories seeded with one sighting in Manhattan and signals targeting
    it in different ways.

    Signals:
        sig-global     global target, matches
        sig-polygon    embedded Manhattan polygon, matches
        sig-geofence   geofence gf-manhattan, matches
        sig-far        embedded Brooklyn polygon, does not match
        sig-missing    geofence gf-deleted which does not exist
        sig-inactive   global but inactive
    """
    await repos.users.save(User(id=UserId("reporter-1"), email="r@example.com"))
    await repos.reputations.save(UserReputation(user_id=UserId("reporter-1"), score=60))
    await repos.geofences.save(
        Geofence(id=GeofenceId("gf-manhattan"), name="Manhattan", polygon=manhattan)
    )
    await repos.sightings.save(make_sighting("sight-1"))

    for signal in (
        make_signal("sig-global"),
        make_signal("sig-polygon", target=PolygonTarget(polygon=manhattan)),
        make_signal("sig-geofence", target=GeofenceTarget(geofence_id=GeofenceId("gf-manhattan"))),
        make_signal("sig-far", target=PolygonTarget(polygon=brooklyn)),
        make_signal("sig-missing", target=GeofenceTarget(geofence_id=GeofenceId("gf-deleted"))),
        make_signal("sig-inactive", is_active=False),
    ):
        await repos.signals.save(signal)

    return repos
