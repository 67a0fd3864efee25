"""
Ranking models: activity snapshots, ranking context and ranked output.
"""

from __future__ import annotations

from datetime import date

from pydantic import Field

from .base import SightSignalModel
from .geo import LatLng
from .ids import CategoryId, SignalId
from .signal import Signal
from .user import MembershipTier


class SignalActivitySnapshot(SightSignalModel):
    """One append-only row of daily activity per signal."""

    signal_id: SignalId
    snapshot_date: date
    new_subscribers: int = Field(default=0, ge=0)
    new_sightings: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)

    @property
    def activity(self) -> int:
        """Total engagement for the day."""
        return self.new_subscribers + self.new_sightings + self.view_count


class CategoryPreference(SightSignalModel):
    category_id: CategoryId
    interaction_score: int


class RankingContext(SightSignalModel):
    """Per-request inputs to the rank score. Never persisted."""

    user_location: LatLng | None = None
    user_tier: MembershipTier = MembershipTier.FREE
    category_preferences: tuple[CategoryPreference, ...] = ()
    hidden_signal_ids: frozenset[SignalId] = frozenset()
    pinned_signal_ids: frozenset[SignalId] = frozenset()
    unimportant_signal_ids: frozenset[SignalId] = frozenset()
    enable_personalization: bool = False
    enable_location_ranking: bool = False


class RankedSignal(Signal):
    """A signal decorated with its per-request rank attributes."""

    rank_score: float
    distance_km: float | None = None
    is_viral_boosted: bool = False
    category_boost: float = 1.0
