"""
Signal Ranking Engine.

Orders a user's visible signals by a composite rank score:

    popularity   = views + subscribers * 10 + sightings * 5
    effective    = distance_km / category_boost    (location ranking on and distance known)
                 = 0                               (otherwise)
    rank_score   = popularity * 100 / (effective + 1) * viral_multiplier + classification_base

Classification bases are official 1000, community 500, verified 100 and
personal 0. Official global signals score a fixed 11000 and community
signals the user marked unimportant to a fixed -1000. Pinned signals always
sort ahead of unpinned ones; within each group higher scores come first.

Privacy by default: without stored privacy settings neither personalization
nor location ranking is used.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from datetime import datetime

from ..core.config import SightSignalSettings, get_settings
from ..core.errors import ErrorCode
from ..core.logging import get_logger
from ..core.result import Result, err, ok
from ..models import (
    CategoryPreference,
    GeofenceTarget,
    GlobalTarget,
    LatLng,
    MembershipTier,
    RankedSignal,
    RankingContext,
    Signal,
    SignalClassification,
    SignalFilters,
    SignalId,
    UserId,
)
from ..models.base import utc_now
from ..repositories.protocol import (
    GeofenceRepository,
    SignalActivitySnapshotRepository,
    SignalRepository,
    UserCategoryInteractionRepository,
    UserPrivacySettingsRepository,
    UserRepository,
    UserSignalPreferenceRepository,
)
from .geo import haversine_km, representative_point
from .viral import is_viral, summarize_activity

logger = get_logger(__name__)

CLASSIFICATION_PRIORITY: dict[SignalClassification, int] = {
    SignalClassification.OFFICIAL: 1000,
    SignalClassification.COMMUNITY: 500,
    SignalClassification.VERIFIED: 100,
    SignalClassification.PERSONAL: 0,
}

OFFICIAL_GLOBAL_BONUS = 10000
UNIMPORTANT_COMMUNITY_SCORE = -1000

# Boost by position among the user's top preferred categories
CATEGORY_BOOSTS = (3.0, 2.0, 1.5)

# Popularity weights
VIEW_WEIGHT = 1
SUBSCRIBER_WEIGHT = 10
SIGHTING_WEIGHT = 5


# =============================================================================
# Scoring
# =============================================================================


def popularity_score(signal: Signal) -> int:
    a = signal.analytics
    return (
        a.view_count * VIEW_WEIGHT
        + a.subscriber_count * SUBSCRIBER_WEIGHT
        + a.sighting_count * SIGHTING_WEIGHT
    )


def category_boost(
    signal: Signal,
    preferences: Iterable[CategoryPreference],
    personalization_enabled: bool,
) -> float:
    """
    Multiplier >= 1.0 for signals in the user's favourite categories.

    The top preferences by interaction score are checked in order; the first
    one among the signal's condition categories decides the boost.
    """
    if not personalization_enabled:
        return 1.0

    signal_categories = signal.conditions.category_ids or ()
    if not signal_categories:
        return 1.0

    top = sorted(preferences, key=lambda p: p.interaction_score, reverse=True)
    for rank, pref in enumerate(top[: len(CATEGORY_BOOSTS)]):
        if pref.category_id in signal_categories:
            return CATEGORY_BOOSTS[rank]

    return 1.0


def rank_score(
    signal: Signal,
    context: RankingContext,
    viral: bool,
    distance_km: float | None = None,
    viral_multiplier: float = 2.0,
) -> float:
    """
    Composite rank score for one signal.

    Args:
        signal: Signal to score
        context: Per-request ranking inputs
        viral: Whether the signal is currently viral
        distance_km: Distance from the user, when known
        viral_multiplier: Factor applied to viral signals

    Returns:
        Score; higher ranks first
    """
    base = CLASSIFICATION_PRIORITY[signal.classification]

    if signal.classification == SignalClassification.OFFICIAL and isinstance(
        signal.target, GlobalTarget
    ):
        return float(base + OFFICIAL_GLOBAL_BONUS)

    if (
        signal.classification == SignalClassification.COMMUNITY
        and signal.id in context.unimportant_signal_ids
    ):
        return float(UNIMPORTANT_COMMUNITY_SCORE)

    boost = category_boost(signal, context.category_preferences, context.enable_personalization)

    effective_distance = 0.0
    if context.enable_location_ranking and distance_km is not None:
        effective_distance = distance_km / boost

    score = popularity_score(signal) * 100 / (effective_distance + 1)
    if viral:
        score *= viral_multiplier

    return score + base


def sort_ranked(signals: Iterable[RankedSignal], pinned_ids: Iterable[SignalId]) -> list[RankedSignal]:
    """Pinned first, then by descending rank score. Ties keep input order."""
    pinned = set(pinned_ids)
    return sorted(signals, key=lambda s: (s.id not in pinned, -s.rank_score))


# =============================================================================
# Engine
# =============================================================================


class RankingEngine:
    """
    Builds a user's ranked signal list.

    Per-signal enrichment (distance, viral check, category boost) runs as a
    bounded concurrent fan-out; results are gathered before the final sort.
    """

    def __init__(
        self,
        signal_repository: SignalRepository,
        user_repository: UserRepository,
        privacy_settings_repository: UserPrivacySettingsRepository,
        category_interaction_repository: UserCategoryInteractionRepository,
        signal_preference_repository: UserSignalPreferenceRepository,
        snapshot_repository: SignalActivitySnapshotRepository,
        geofence_repository: GeofenceRepository,
        settings: SightSignalSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.signals = signal_repository
        self.users = user_repository
        self.privacy_settings = privacy_settings_repository
        self.category_interactions = category_interaction_repository
        self.signal_preferences = signal_preference_repository
        self.snapshots = snapshot_repository
        self.geofences = geofence_repository
        self.settings = settings or get_settings()
        self.clock = clock or utc_now

    async def rank(
        self,
        user_id: UserId,
        user_location: LatLng | None = None,
        include_hidden: bool = False,
        filters: SignalFilters | None = None,
    ) -> Result[list[RankedSignal]]:
        """
        Rank the signals visible to a user.

        Args:
            user_id: User requesting the list
            user_location: Current location; ignored unless location sharing is on
            include_hidden: Keep signals the user has hidden
            filters: Repository filters applied before ranking

        Returns:
            Ok(ranked signals, pinned first), or Err(user.not_found)
        """
        start = time.perf_counter()

        user = await self.users.get_by_id(user_id)
        if user is None:
            return err(ErrorCode.USER_NOT_FOUND, "User not found.", field="user_id")

        context = await self.build_context(user_id, user.membership_tier, user_location)

        signals = await self.signals.list(filters)
        if not include_hidden:
            signals = [s for s in signals if s.id not in context.hidden_signal_ids]

        now = self.clock()
        semaphore = asyncio.Semaphore(self.settings.ranking_concurrency)

        async def rank_with_limit(signal: Signal) -> RankedSignal:
            async with semaphore:
                return await self._rank_one(signal, context, now)

        ranked = await asyncio.gather(*(rank_with_limit(s) for s in signals))
        ordered = sort_ranked(ranked, context.pinned_signal_ids)

        logger.debug(
            "Ranked signals for user",
            extra={
                "user_id": user_id,
                "signal_count": len(ordered),
                "personalization": context.enable_personalization,
                "location_ranking": context.enable_location_ranking,
                "elapsed_ms": round((time.perf_counter() - start) * 1000, 1),
            },
        )
        return ok(ordered)

    async def build_context(
        self,
        user_id: UserId,
        user_tier: MembershipTier,
        user_location: LatLng | None = None,
    ) -> RankingContext:
        """Load privacy flags, signal preferences and category preferences."""
        privacy = await self.privacy_settings.get_by_user_id(user_id)
        enable_personalization = privacy.enable_personalization if privacy else False
        enable_location_ranking = privacy.enable_location_sharing if privacy else False

        hidden = await self.signal_preferences.get_hidden_signal_ids(user_id)
        pinned = await self.signal_preferences.get_pinned_signal_ids(user_id)
        unimportant = await self.signal_preferences.get_unimportant_signal_ids(user_id)

        preferences: tuple[CategoryPreference, ...] = ()
        if enable_personalization:
            interactions = await self.category_interactions.get_top_categories_for_user(
                user_id, self.settings.top_category_count
            )
            preferences = tuple(
                CategoryPreference(
                    category_id=i.category_id,
                    interaction_score=i.interaction_score,
                )
                for i in interactions
            )

        return RankingContext(
            user_location=user_location if enable_location_ranking else None,
            user_tier=user_tier,
            category_preferences=preferences,
            hidden_signal_ids=frozenset(hidden),
            pinned_signal_ids=frozenset(pinned),
            unimportant_signal_ids=frozenset(unimportant),
            enable_personalization=enable_personalization,
            enable_location_ranking=enable_location_ranking,
        )

    async def distance_to(self, signal: Signal, location: LatLng) -> float | None:
        """Great-circle distance to the signal's representative point, if it has one."""
        geofence = None
        if isinstance(signal.target, GeofenceTarget):
            geofence = await self.geofences.get_by_id(signal.target.geofence_id)

        point = representative_point(signal.target, geofence)
        if point is None:
            return None
        return haversine_km(location, point)

    async def is_viral_boosted(self, signal_id: SignalId, now: datetime) -> bool:
        snapshots = await self.snapshots.get_recent_for_signal(
            signal_id, self.settings.viral_window_days
        )
        if not snapshots:
            return False
        return is_viral(summarize_activity(snapshots, now))

    async def _rank_one(self, signal: Signal, context: RankingContext, now: datetime) -> RankedSignal:
        distance_km = None
        if context.enable_location_ranking and context.user_location is not None:
            distance_km = await self.distance_to(signal, context.user_location)

        viral = await self.is_viral_boosted(signal.id, now)
        boost = category_boost(signal, context.category_preferences, context.enable_personalization)
        score = rank_score(
            signal,
            context,
            viral,
            distance_km,
            viral_multiplier=self.settings.viral_multiplier,
        )

        return RankedSignal(
            **signal.model_dump(),
            rank_score=score,
            distance_km=distance_km,
            is_viral_boosted=viral,
            category_boost=boost,
        )
