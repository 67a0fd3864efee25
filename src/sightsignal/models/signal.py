"""
Signal models.

A signal is a persistent, user-owned watch combining a geographic target
(global, a stored geofence, or an embedded polygon) with content conditions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import Field

from .base import SightSignalModel, utc_now
from .geo import Polygon
from .ids import CategoryId, GeofenceId, SignalId, SightingTypeId, SubscriptionId, UserId
from .sighting import SightingImportance
from .user import ReputationTier


class TriggerType(str, Enum):
    """Events that can activate a signal."""

    NEW_SIGHTING = "new_sighting"
    SIGHTING_CONFIRMED = "sighting_confirmed"
    SIGHTING_DISPUTED = "sighting_disputed"
    SCORE_THRESHOLD = "score_threshold"


class SignalClassification(str, Enum):
    """Provenance tier. Ranking priority: official > community > verified > personal."""

    OFFICIAL = "official"
    COMMUNITY = "community"
    VERIFIED = "verified"
    PERSONAL = "personal"


class ConditionOperator(str, Enum):
    AND = "AND"
    OR = "OR"


# =============================================================================
# Targets
# =============================================================================


class GlobalTarget(SightSignalModel):
    kind: Literal["global"] = "global"


class GeofenceTarget(SightSignalModel):
    kind: Literal["geofence"] = "geofence"
    geofence_id: GeofenceId


class PolygonTarget(SightSignalModel):
    kind: Literal["polygon"] = "polygon"
    polygon: Polygon


SignalTarget = Annotated[
    Union[GlobalTarget, GeofenceTarget, PolygonTarget],
    Field(discriminator="kind"),
]


# =============================================================================
# Conditions & Analytics
# =============================================================================


class SignalConditions(SightSignalModel):
    """
    Optional content filters. Absent fields impose no constraint; the
    specified ones are combined with ``operator``.
    """

    category_ids: tuple[CategoryId, ...] | None = None
    type_ids: tuple[SightingTypeId, ...] | None = None
    tags: tuple[str, ...] | None = None
    importance: tuple[SightingImportance, ...] | None = None
    min_trust_level: ReputationTier | None = None
    min_score: float | None = None
    max_score: float | None = None
    operator: ConditionOperator = ConditionOperator.AND


class SignalAnalytics(SightSignalModel):
    view_count: int = Field(default=0, ge=0)
    subscriber_count: int = Field(default=0, ge=0)
    sighting_count: int = Field(default=0, ge=0)
    active_viewers: int = Field(default=0, ge=0)


class Signal(SightSignalModel):
    id: SignalId
    name: str
    description: str | None = None
    owner_id: UserId
    target: SignalTarget
    triggers: tuple[TriggerType, ...]
    conditions: SignalConditions = Field(default_factory=SignalConditions)
    classification: SignalClassification = SignalClassification.PERSONAL
    is_active: bool = True
    analytics: SignalAnalytics = Field(default_factory=SignalAnalytics)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


DeliveryMethod = Literal["push", "email", "in_app"]


class SignalSubscription(SightSignalModel):
    id: SubscriptionId
    signal_id: SignalId
    user_id: UserId
    delivery_method: DeliveryMethod = "in_app"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)


@dataclass(frozen=True)
class SignalFilters:
    """Repository list filters; None means no constraint."""

    owner_id: UserId | None = None
    is_active: bool | None = None
    geofence_id: GeofenceId | None = None

    def matches(self, signal: Signal) -> bool:
        if self.owner_id is not None and signal.owner_id != self.owner_id:
            return False
        if self.is_active is not None and signal.is_active != self.is_active:
            return False
        if self.geofence_id is not None:
            target = signal.target
            if not isinstance(target, GeofenceTarget) or target.geofence_id != self.geofence_id:
                return False
        return True
