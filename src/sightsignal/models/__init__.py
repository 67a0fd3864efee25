"""
SightSignal domain models.

Frozen pydantic entities shared by the services, repositories and CLI.
"""

from .geo import Geofence, LatLng, Polygon
from .ids import (
    CategoryId,
    GeofenceId,
    SightingId,
    SightingTypeId,
    SignalId,
    SubscriptionId,
    UserId,
    preference_key,
)
from .ranking import CategoryPreference, RankedSignal, RankingContext, SignalActivitySnapshot
from .sighting import (
    ReactionCounts,
    ReactionType,
    Sighting,
    SightingImportance,
    SightingMatchData,
    SightingReaction,
    Visibility,
)
from .signal import (
    ConditionOperator,
    DeliveryMethod,
    GeofenceTarget,
    GlobalTarget,
    PolygonTarget,
    Signal,
    SignalAnalytics,
    SignalClassification,
    SignalConditions,
    SignalFilters,
    SignalSubscription,
    SignalTarget,
    TriggerType,
)
from .user import (
    MembershipTier,
    ReputationTier,
    User,
    UserCategoryInteraction,
    UserPrivacySettings,
    UserReputation,
    UserRole,
    UserSignalPreference,
)

__all__ = [
    # Identifiers
    "CategoryId",
    "GeofenceId",
    "SightingId",
    "SightingTypeId",
    "SignalId",
    "SubscriptionId",
    "UserId",
    "preference_key",
    # Geography
    "LatLng",
    "Polygon",
    "Geofence",
    # Signals
    "ConditionOperator",
    "DeliveryMethod",
    "GeofenceTarget",
    "GlobalTarget",
    "PolygonTarget",
    "Signal",
    "SignalAnalytics",
    "SignalClassification",
    "SignalConditions",
    "SignalFilters",
    "SignalSubscription",
    "SignalTarget",
    "TriggerType",
    # Sightings
    "ReactionCounts",
    "ReactionType",
    "Sighting",
    "SightingImportance",
    "SightingMatchData",
    "SightingReaction",
    "Visibility",
    # Users
    "MembershipTier",
    "ReputationTier",
    "User",
    "UserCategoryInteraction",
    "UserPrivacySettings",
    "UserReputation",
    "UserRole",
    "UserSignalPreference",
    # Ranking
    "CategoryPreference",
    "RankedSignal",
    "RankingContext",
    "SignalActivitySnapshot",
]
