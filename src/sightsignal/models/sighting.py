"""
Sighting models: reports, reactions and reaction tallies.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from .base import SightSignalModel, utc_now
from .geo import LatLng
from .ids import CategoryId, SightingId, SightingTypeId, UserId
from .user import ReputationTier


class SightingImportance(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class ReactionType(str, Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"
    CONFIRMED = "confirmed"
    DISPUTED = "disputed"
    SPAM = "spam"


class Visibility(str, Enum):
    """Display classification derived from score and spam reports."""

    VISIBLE = "visible"
    LOW_QUALITY = "low_quality"
    HIDDEN = "hidden"


class ReactionCounts(SightSignalModel):
    """Reaction tallies for one sighting."""

    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    confirmations: int = Field(default=0, ge=0)
    disputes: int = Field(default=0, ge=0)
    spam_reports: int = Field(default=0, ge=0)


class SightingReaction(SightSignalModel):
    sighting_id: SightingId
    user_id: UserId
    type: ReactionType
    created_at: datetime = Field(default_factory=utc_now)


class Sighting(SightSignalModel):
    """
    A reported observation at a location.

    score and hot_score are derived from reactions and only change through
    ``sightsignal.services.reactions.rescore_sighting``.
    """

    id: SightingId
    category_id: CategoryId
    type_id: SightingTypeId
    location: LatLng
    description: str = ""
    importance: SightingImportance = SightingImportance.NORMAL
    reporter_id: UserId | None = None
    tags: tuple[str, ...] = ()
    observed_at: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
    reactions: ReactionCounts = Field(default_factory=ReactionCounts)
    score: float = 0
    hot_score: float = 0


class SightingMatchData(SightSignalModel):
    """Flattened view of a sighting used for condition matching."""

    category_id: CategoryId
    type_id: SightingTypeId
    tags: tuple[str, ...] = ()
    importance: SightingImportance = SightingImportance.NORMAL
    score: float = 0
    reporter_trust_level: ReputationTier = ReputationTier.UNVERIFIED
