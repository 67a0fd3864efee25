"""
Repository contracts and the in-memory implementation.
"""

from .memory import InMemoryRepositories, InMemoryStore
from .protocol import (
    GeofenceRepository,
    ReputationRepository,
    SightingRepository,
    SignalActivitySnapshotRepository,
    SignalRepository,
    SignalSubscriptionRepository,
    UserCategoryInteractionRepository,
    UserPrivacySettingsRepository,
    UserRepository,
    UserSignalPreferenceRepository,
)

__all__ = [
    "InMemoryStore",
    "InMemoryRepositories",
    "GeofenceRepository",
    "ReputationRepository",
    "SightingRepository",
    "SignalActivitySnapshotRepository",
    "SignalRepository",
    "SignalSubscriptionRepository",
    "UserCategoryInteractionRepository",
    "UserPrivacySettingsRepository",
    "UserRepository",
    "UserSignalPreferenceRepository",
]
