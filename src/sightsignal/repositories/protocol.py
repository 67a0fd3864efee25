"""
Repository Protocol Interfaces.

Read/write contracts the engines consume. Storage engines are pluggable
(in-memory for tests and the CLI, a database elsewhere); the engines only
depend on these async interfaces.

Design notes:
- Lookups by id return None when the entity does not exist
- Writes are upserts keyed on the entity id (or composite key)
- Repository exceptions propagate unmodified through the engines
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from ..models import (
    Geofence,
    GeofenceId,
    Sighting,
    SightingId,
    Signal,
    SignalActivitySnapshot,
    SignalFilters,
    SignalId,
    SignalSubscription,
    User,
    UserCategoryInteraction,
    UserId,
    UserPrivacySettings,
    UserReputation,
    UserSignalPreference,
)

# =============================================================================
# Signals & Geography
# =============================================================================


@runtime_checkable
class SignalRepository(Protocol):
    @abstractmethod
    async def list(self, filters: SignalFilters | None = None) -> list[Signal]:
        """List signals matching the filters (all signals when None)."""
        ...

    @abstractmethod
    async def get_by_id(self, signal_id: SignalId) -> Signal | None: ...

    @abstractmethod
    async def list_with_subscription_counts(
        self, filters: SignalFilters | None = None
    ) -> list[Signal]:
        """
        List signals with ``analytics.subscriber_count`` set to the number
        of active subscriptions.
        """
        ...

    @abstractmethod
    async def save(self, signal: Signal) -> None: ...

    @abstractmethod
    async def delete(self, signal_id: SignalId) -> bool:
        """Delete a signal. Returns False if it did not exist."""
        ...


@runtime_checkable
class GeofenceRepository(Protocol):
    @abstractmethod
    async def get_by_id(self, geofence_id: GeofenceId) -> Geofence | None: ...

    @abstractmethod
    async def save(self, geofence: Geofence) -> None: ...


@runtime_checkable
class SightingRepository(Protocol):
    @abstractmethod
    async def get_by_id(self, sighting_id: SightingId) -> Sighting | None: ...

    @abstractmethod
    async def save(self, sighting: Sighting) -> None: ...


@runtime_checkable
class SignalSubscriptionRepository(Protocol):
    @abstractmethod
    async def get_for_user(
        self, user_id: UserId, signal_id: SignalId
    ) -> SignalSubscription | None: ...

    @abstractmethod
    async def list_for_signal(self, signal_id: SignalId) -> list[SignalSubscription]: ...

    @abstractmethod
    async def save(self, subscription: SignalSubscription) -> None: ...

    @abstractmethod
    async def delete(self, user_id: UserId, signal_id: SignalId) -> bool: ...


@runtime_checkable
class SignalActivitySnapshotRepository(Protocol):
    @abstractmethod
    async def get_recent_for_signal(
        self, signal_id: SignalId, days: int
    ) -> list[SignalActivitySnapshot]:
        """
        Return up to ``days`` of the most recent snapshots.

        Callers must not assume any ordering.
        """
        ...

    @abstractmethod
    async def append(self, snapshot: SignalActivitySnapshot) -> None:
        """Record a snapshot, replacing any existing row for the same day."""
        ...


# =============================================================================
# Users
# =============================================================================


@runtime_checkable
class UserRepository(Protocol):
    @abstractmethod
    async def get_by_id(self, user_id: UserId) -> User | None: ...

    @abstractmethod
    async def save(self, user: User) -> None: ...


@runtime_checkable
class ReputationRepository(Protocol):
    @abstractmethod
    async def get_by_user_id(self, user_id: UserId) -> UserReputation | None: ...

    @abstractmethod
    async def save(self, reputation: UserReputation) -> None: ...


@runtime_checkable
class UserPrivacySettingsRepository(Protocol):
    @abstractmethod
    async def get_by_user_id(self, user_id: UserId) -> UserPrivacySettings | None:
        """Return stored settings, or None when the user never set any."""
        ...

    @abstractmethod
    async def save(self, settings: UserPrivacySettings) -> None: ...


@runtime_checkable
class UserCategoryInteractionRepository(Protocol):
    @abstractmethod
    async def get_top_categories_for_user(
        self, user_id: UserId, n: int
    ) -> list[UserCategoryInteraction]:
        """Return the user's ``n`` highest-scoring category interactions."""
        ...

    @abstractmethod
    async def save(self, interaction: UserCategoryInteraction) -> None: ...


@runtime_checkable
class UserSignalPreferenceRepository(Protocol):
    """Preferences are keyed on ``preference_key(user_id, signal_id)``."""

    @abstractmethod
    async def get(self, user_id: UserId, signal_id: SignalId) -> UserSignalPreference | None: ...

    @abstractmethod
    async def get_hidden_signal_ids(self, user_id: UserId) -> set[SignalId]: ...

    @abstractmethod
    async def get_pinned_signal_ids(self, user_id: UserId) -> set[SignalId]: ...

    @abstractmethod
    async def get_unimportant_signal_ids(self, user_id: UserId) -> set[SignalId]: ...

    @abstractmethod
    async def upsert(self, preference: UserSignalPreference) -> None: ...
