"""
Signal Evaluation Engine.

Determines which active signals match a sighting. For one sighting:

1. Resolve the reporter's trust tier (unverified when no reputation exists)
2. Flatten the sighting into SightingMatchData
3. Fetch all active signals and resolve their geofences concurrently
4. Keep each signal whose geography and conditions both match

A signal whose geofence cannot be resolved is skipped with a warning. A
missing sighting is reported as ``sighting.not_found``. Repository errors
propagate unmodified.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass

from ..core.config import SightSignalSettings, get_settings
from ..core.errors import ErrorCode
from ..core.logging import get_logger
from ..core.result import Result, err, ok
from ..models import (
    Geofence,
    GeofenceId,
    GeofenceTarget,
    GlobalTarget,
    PolygonTarget,
    ReputationTier,
    Sighting,
    SightingId,
    SightingMatchData,
    Signal,
    SignalFilters,
    TriggerType,
    UserId,
)
from ..repositories.protocol import (
    GeofenceRepository,
    ReputationRepository,
    SightingRepository,
    SignalRepository,
)
from .conditions import matches_conditions
from .geo import is_point_in_polygon
from .reputation import tier_for_reputation

logger = get_logger(__name__)


@dataclass(frozen=True)
class SignalEvaluation:
    """Outcome of checking one signal against one sighting."""

    signal: Signal
    matched: bool
    reason: str

    def explain(self) -> str:
        if self.matched:
            return f'Signal "{self.signal.name}" matched: {self.reason}'
        return f'Signal "{self.signal.name}" did not match: {self.reason}'


# =============================================================================
# Pure Helpers
# =============================================================================


def should_trigger(signal: Signal, event: TriggerType) -> bool:
    """True if the signal activates on this event type."""
    return TriggerType(event) in signal.triggers


def crossed_score_threshold(previous_score: float, current_score: float, threshold: float) -> bool:
    """True only when the score moved from below the threshold to at or above it."""
    return previous_score < threshold <= current_score


def build_match_data(sighting: Sighting, trust_level: ReputationTier) -> SightingMatchData:
    return SightingMatchData(
        category_id=sighting.category_id,
        type_id=sighting.type_id,
        tags=sighting.tags,
        importance=sighting.importance,
        score=sighting.score,
        reporter_trust_level=trust_level,
    )


def matches_geography(
    sighting: Sighting,
    signal: Signal,
    geofences: dict[GeofenceId, Geofence],
) -> bool:
    """
    Test the sighting location against the signal target.

    Geofence targets missing from ``geofences`` never match.
    """
    target = signal.target

    if isinstance(target, GlobalTarget):
        return True

    if isinstance(target, PolygonTarget):
        return is_point_in_polygon(sighting.location, target.polygon)

    if isinstance(target, GeofenceTarget):
        geofence = geofences.get(target.geofence_id)
        if geofence is None:
            return False
        return is_point_in_polygon(sighting.location, geofence.polygon)

    return False


def calculate_match_score(signal: Signal, sighting: Sighting) -> int:
    """
    Relevance of a matched sighting to a signal, 0-100.

    More specific conditions that the sighting satisfies score higher.
    """
    conditions = signal.conditions
    score = 10

    if conditions.category_ids and sighting.category_id in conditions.category_ids:
        score += 20
    if conditions.type_ids and sighting.type_id in conditions.type_ids:
        score += 30
    if conditions.importance and sighting.importance in conditions.importance:
        score += 15
    if conditions.min_score is not None and sighting.score >= conditions.min_score:
        score += 10
    if conditions.max_score is not None and sighting.score <= conditions.max_score:
        score += 10
    if isinstance(signal.target, PolygonTarget):
        score += 5

    return min(score, 100)


# =============================================================================
# Evaluator
# =============================================================================


class SignalEvaluator:
    """
    Matches sightings against stored signals.

    Holds only repository handles and settings; every call is independent.
    """

    def __init__(
        self,
        signal_repository: SignalRepository,
        sighting_repository: SightingRepository,
        geofence_repository: GeofenceRepository,
        reputation_repository: ReputationRepository,
        settings: SightSignalSettings | None = None,
    ):
        self.signals = signal_repository
        self.sightings = sighting_repository
        self.geofences = geofence_repository
        self.reputations = reputation_repository
        self.settings = settings or get_settings()

    async def evaluate(
        self,
        sighting_id: SightingId,
        event: TriggerType | None = None,
    ) -> Result[list[Signal]]:
        """
        Find every active signal matching a sighting.

        Args:
            sighting_id: Sighting to evaluate
            event: When given, only signals triggering on this event are kept

        Returns:
            Ok(matched signals), or Err(sighting.not_found)
        """
        result = await self.evaluate_detailed(sighting_id, event)
        if not result.ok:
            return result
        return ok([e.signal for e in result.value if e.matched])

    async def evaluate_detailed(
        self,
        sighting_id: SightingId,
        event: TriggerType | None = None,
    ) -> Result[list[SignalEvaluation]]:
        """Evaluate every active signal and report why each did or did not match."""
        start = time.perf_counter()

        sighting = await self.sightings.get_by_id(sighting_id)
        if sighting is None:
            return err(
                ErrorCode.SIGHTING_NOT_FOUND,
                f"Sighting {sighting_id} not found",
                field="sighting_id",
            )

        trust_level = await self.reporter_trust_level(sighting.reporter_id)
        match_data = build_match_data(sighting, trust_level)

        signals = await self.signals.list(SignalFilters(is_active=True))
        geofences = await self.resolve_geofences(signals)

        evaluations = [
            self._evaluate_one(sighting, match_data, signal, geofences, event)
            for signal in signals
        ]

        matched = sum(1 for e in evaluations if e.matched)
        logger.debug(
            "Evaluated sighting against active signals",
            extra={
                "sighting_id": sighting_id,
                "signal_count": len(signals),
                "match_count": matched,
                "elapsed_ms": round((time.perf_counter() - start) * 1000, 1),
            },
        )
        return ok(evaluations)

    async def would_match(self, signal: Signal, sighting: Sighting) -> bool:
        """Check geography and conditions only, ignoring triggers and activity."""
        trust_level = await self.reporter_trust_level(sighting.reporter_id)
        geofences = await self.resolve_geofences([signal])
        return matches_geography(sighting, signal, geofences) and matches_conditions(
            signal.conditions, build_match_data(sighting, trust_level)
        )

    async def evaluate_signal_feed(
        self,
        signal: Signal,
        sightings: Iterable[Sighting],
    ) -> list[Sighting]:
        """Sightings belonging to one signal's feed. Inactive signals have none."""
        if not signal.is_active:
            return []

        geofences = await self.resolve_geofences([signal])
        sightings = list(sightings)
        reporters = {s.reporter_id for s in sightings}
        tiers = {r: await self.reporter_trust_level(r) for r in reporters}

        return [
            s
            for s in sightings
            if matches_geography(s, signal, geofences)
            and matches_conditions(signal.conditions, build_match_data(s, tiers[s.reporter_id]))
        ]

    async def reporter_trust_level(self, reporter_id: UserId | None) -> ReputationTier:
        """Anonymous reporters and reporters without reputation are unverified."""
        if reporter_id is None:
            return ReputationTier.UNVERIFIED
        reputation = await self.reputations.get_by_user_id(reporter_id)
        return tier_for_reputation(reputation)

    async def resolve_geofences(self, signals: Iterable[Signal]) -> dict[GeofenceId, Geofence]:
        """
        Fetch the geofences referenced by geofence-targeted signals.

        Lookups run concurrently, bounded by ``ranking_concurrency``.
        Unresolvable ids are absent from the result.
        """
        ids = sorted(
            {s.target.geofence_id for s in signals if isinstance(s.target, GeofenceTarget)}
        )
        if not ids:
            return {}

        semaphore = asyncio.Semaphore(self.settings.ranking_concurrency)

        async def fetch_with_limit(geofence_id: GeofenceId) -> Geofence | None:
            async with semaphore:
                return await self.geofences.get_by_id(geofence_id)

        fetched = await asyncio.gather(*(fetch_with_limit(gid) for gid in ids))
        return {gid: g for gid, g in zip(ids, fetched) if g is not None}

    def _evaluate_one(
        self,
        sighting: Sighting,
        match_data: SightingMatchData,
        signal: Signal,
        geofences: dict[GeofenceId, Geofence],
        event: TriggerType | None,
    ) -> SignalEvaluation:
        if not signal.is_active:
            return SignalEvaluation(signal, False, "Signal is not active")

        if event is not None and not should_trigger(signal, event):
            return SignalEvaluation(
                signal, False, f"Signal does not trigger on {TriggerType(event).value}"
            )

        target = signal.target
        if isinstance(target, GeofenceTarget) and target.geofence_id not in geofences:
            logger.warning(
                "Signal %s targets unknown geofence %s, skipping",
                signal.id,
                target.geofence_id,
            )
            return SignalEvaluation(signal, False, "Signal geofence could not be resolved")

        if not matches_geography(sighting, signal, geofences):
            return SignalEvaluation(
                signal, False, "Sighting location is outside signal geographic bounds"
            )

        if not matches_conditions(signal.conditions, match_data):
            return SignalEvaluation(signal, False, "Sighting does not match signal conditions")

        return SignalEvaluation(signal, True, "All criteria matched")
