"""
In-Memory Repositories.

``InMemoryStore`` holds every collection in plain dicts. A store is
constructed explicitly and handed to the repositories that share it; there
is no module-level state, so each test or CLI run owns an isolated store.

Usage:
    store = InMemoryStore.from_dict(yaml.safe_load(text))
    repos = store.repositories()
    evaluator = SignalEvaluator(repos.signals, repos.sightings, repos.geofences, repos.reputations)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

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
    preference_key,
)


@dataclass
class InMemoryStore:
    """Per-process collections backing the in-memory repositories."""

    users: dict[UserId, User] = field(default_factory=dict)
    reputations: dict[UserId, UserReputation] = field(default_factory=dict)
    privacy_settings: dict[UserId, UserPrivacySettings] = field(default_factory=dict)
    category_interactions: dict[str, UserCategoryInteraction] = field(default_factory=dict)
    signal_preferences: dict[str, UserSignalPreference] = field(default_factory=dict)
    geofences: dict[GeofenceId, Geofence] = field(default_factory=dict)
    signals: dict[SignalId, Signal] = field(default_factory=dict)
    sightings: dict[SightingId, Sighting] = field(default_factory=dict)
    subscriptions: dict[str, SignalSubscription] = field(default_factory=dict)
    snapshots: dict[SignalId, dict[date, SignalActivitySnapshot]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> InMemoryStore:
        """
        Build a store from a plain mapping of entity lists.

        Recognized keys: users, reputations, privacy_settings,
        category_interactions, signal_preferences, geofences, signals,
        sightings, subscriptions, snapshots. Unknown keys are ignored.

        Raises:
            pydantic.ValidationError: If an entity does not validate
        """
        data = data or {}
        store = cls()

        for raw in data.get("users") or []:
            user = User.model_validate(raw)
            store.users[user.id] = user
        for raw in data.get("reputations") or []:
            rep = UserReputation.model_validate(raw)
            store.reputations[rep.user_id] = rep
        for raw in data.get("privacy_settings") or []:
            privacy = UserPrivacySettings.model_validate(raw)
            store.privacy_settings[privacy.user_id] = privacy
        for raw in data.get("category_interactions") or []:
            interaction = UserCategoryInteraction.model_validate(raw)
            store.category_interactions[
                _interaction_key(interaction.user_id, interaction.category_id)
            ] = interaction
        for raw in data.get("signal_preferences") or []:
            pref = UserSignalPreference.model_validate(raw)
            store.signal_preferences[pref.key] = pref
        for raw in data.get("geofences") or []:
            geofence = Geofence.model_validate(raw)
            store.geofences[geofence.id] = geofence
        for raw in data.get("signals") or []:
            signal = Signal.model_validate(raw)
            store.signals[signal.id] = signal
        for raw in data.get("sightings") or []:
            sighting = Sighting.model_validate(raw)
            store.sightings[sighting.id] = sighting
        for raw in data.get("subscriptions") or []:
            sub = SignalSubscription.model_validate(raw)
            store.subscriptions[preference_key(sub.user_id, sub.signal_id)] = sub
        for raw in data.get("snapshots") or []:
            snapshot = SignalActivitySnapshot.model_validate(raw)
            store.snapshots.setdefault(snapshot.signal_id, {})[snapshot.snapshot_date] = snapshot

        return store

    def repositories(self) -> InMemoryRepositories:
        """Build one repository of each kind over this store."""
        return InMemoryRepositories(
            signals=InMemorySignalRepository(self),
            geofences=InMemoryGeofenceRepository(self),
            sightings=InMemorySightingRepository(self),
            subscriptions=InMemorySignalSubscriptionRepository(self),
            snapshots=InMemorySignalActivitySnapshotRepository(self),
            users=InMemoryUserRepository(self),
            reputations=InMemoryReputationRepository(self),
            privacy_settings=InMemoryUserPrivacySettingsRepository(self),
            category_interactions=InMemoryUserCategoryInteractionRepository(self),
            signal_preferences=InMemoryUserSignalPreferenceRepository(self),
        )


def _interaction_key(user_id: UserId, category_id: str) -> str:
    return f"{user_id}:{category_id}"


# =============================================================================
# Signals & Geography
# =============================================================================


class InMemorySignalRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def list(self, filters: SignalFilters | None = None) -> list[Signal]:
        signals = self._store.signals.values()
        if filters is None:
            return list(signals)
        return [s for s in signals if filters.matches(s)]

    async def get_by_id(self, signal_id: SignalId) -> Signal | None:
        return self._store.signals.get(signal_id)

    async def list_with_subscription_counts(
        self, filters: SignalFilters | None = None
    ) -> list[Signal]:
        counts: dict[SignalId, int] = {}
        for sub in self._store.subscriptions.values():
            if sub.is_active:
                counts[sub.signal_id] = counts.get(sub.signal_id, 0) + 1

        result = []
        for signal in await self.list(filters):
            analytics = signal.analytics.model_copy(
                update={"subscriber_count": counts.get(signal.id, 0)}
            )
            result.append(signal.model_copy(update={"analytics": analytics}))
        return result

    async def save(self, signal: Signal) -> None:
        self._store.signals[signal.id] = signal

    async def delete(self, signal_id: SignalId) -> bool:
        return self._store.signals.pop(signal_id, None) is not None


class InMemoryGeofenceRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_id(self, geofence_id: GeofenceId) -> Geofence | None:
        return self._store.geofences.get(geofence_id)

    async def save(self, geofence: Geofence) -> None:
        self._store.geofences[geofence.id] = geofence


class InMemorySightingRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_id(self, sighting_id: SightingId) -> Sighting | None:
        return self._store.sightings.get(sighting_id)

    async def save(self, sighting: Sighting) -> None:
        self._store.sightings[sighting.id] = sighting


class InMemorySignalSubscriptionRepository:
    """Subscriptions are keyed on ``{user_id}:{signal_id}``."""

    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_for_user(
        self, user_id: UserId, signal_id: SignalId
    ) -> SignalSubscription | None:
        return self._store.subscriptions.get(preference_key(user_id, signal_id))

    async def list_for_signal(self, signal_id: SignalId) -> list[SignalSubscription]:
        return [s for s in self._store.subscriptions.values() if s.signal_id == signal_id]

    async def save(self, subscription: SignalSubscription) -> None:
        key = preference_key(subscription.user_id, subscription.signal_id)
        self._store.subscriptions[key] = subscription

    async def delete(self, user_id: UserId, signal_id: SignalId) -> bool:
        return self._store.subscriptions.pop(preference_key(user_id, signal_id), None) is not None


class InMemorySignalActivitySnapshotRepository:
    """One snapshot per signal per day; appending the same day replaces it."""

    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_recent_for_signal(
        self, signal_id: SignalId, days: int
    ) -> list[SignalActivitySnapshot]:
        by_day = self._store.snapshots.get(signal_id, {})
        newest = sorted(by_day, reverse=True)[:days]
        return [by_day[d] for d in newest]

    async def append(self, snapshot: SignalActivitySnapshot) -> None:
        self._store.snapshots.setdefault(snapshot.signal_id, {})[snapshot.snapshot_date] = snapshot


# =============================================================================
# Users
# =============================================================================


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_id(self, user_id: UserId) -> User | None:
        return self._store.users.get(user_id)

    async def save(self, user: User) -> None:
        self._store.users[user.id] = user


class InMemoryReputationRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_user_id(self, user_id: UserId) -> UserReputation | None:
        return self._store.reputations.get(user_id)

    async def save(self, reputation: UserReputation) -> None:
        self._store.reputations[reputation.user_id] = reputation


class InMemoryUserPrivacySettingsRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_user_id(self, user_id: UserId) -> UserPrivacySettings | None:
        return self._store.privacy_settings.get(user_id)

    async def save(self, settings: UserPrivacySettings) -> None:
        self._store.privacy_settings[settings.user_id] = settings


class InMemoryUserCategoryInteractionRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_top_categories_for_user(
        self, user_id: UserId, n: int
    ) -> list[UserCategoryInteraction]:
        mine = [i for i in self._store.category_interactions.values() if i.user_id == user_id]
        mine.sort(key=lambda i: i.interaction_score, reverse=True)
        return mine[:n]

    async def save(self, interaction: UserCategoryInteraction) -> None:
        key = _interaction_key(interaction.user_id, interaction.category_id)
        self._store.category_interactions[key] = interaction


class InMemoryUserSignalPreferenceRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def _ids_where(self, user_id: UserId, flag: str) -> set[SignalId]:
        return {
            p.signal_id
            for p in self._store.signal_preferences.values()
            if p.user_id == user_id and getattr(p, flag)
        }

    async def get(self, user_id: UserId, signal_id: SignalId) -> UserSignalPreference | None:
        return self._store.signal_preferences.get(preference_key(user_id, signal_id))

    async def get_hidden_signal_ids(self, user_id: UserId) -> set[SignalId]:
        return self._ids_where(user_id, "is_hidden")

    async def get_pinned_signal_ids(self, user_id: UserId) -> set[SignalId]:
        return self._ids_where(user_id, "is_pinned")

    async def get_unimportant_signal_ids(self, user_id: UserId) -> set[SignalId]:
        return self._ids_where(user_id, "is_unimportant")

    async def upsert(self, preference: UserSignalPreference) -> None:
        self._store.signal_preferences[preference.key] = preference


@dataclass
class InMemoryRepositories:
    """One repository of each kind sharing a single store."""

    signals: InMemorySignalRepository
    geofences: InMemoryGeofenceRepository
    sightings: InMemorySightingRepository
    subscriptions: InMemorySignalSubscriptionRepository
    snapshots: InMemorySignalActivitySnapshotRepository
    users: InMemoryUserRepository
    reputations: InMemoryReputationRepository
    privacy_settings: InMemoryUserPrivacySettingsRepository
    category_interactions: InMemoryUserCategoryInteractionRepository
    signal_preferences: InMemoryUserSignalPreferenceRepository
