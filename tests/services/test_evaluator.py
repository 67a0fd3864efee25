"""
Tests for the signal evaluation engine.
"""

from __future__ import annotations

import logging

import pytest

from sightsignal.models import (
    GeofenceId,
    GeofenceTarget,
    PolygonTarget,
    ReputationTier,
    SightingId,
    SightingImportance,
    SignalConditions,
    TriggerType,
    UserId,
)
from sightsignal.services.evaluator import (
    SignalEvaluation,
    SignalEvaluator,
    build_match_data,
    calculate_match_score,
    crossed_score_threshold,
    matches_geography,
    should_trigger,
)


def make_evaluator(repos) -> SignalEvaluator:
    return SignalEvaluator(repos.signals, repos.sightings, repos.geofences, repos.reputations)


# =============================================================================
# Pure Helpers
# =============================================================================


class TestHelpers:
    def test_should_trigger(self, make_signal):
        signal = make_signal(triggers=(TriggerType.NEW_SIGHTING, TriggerType.SCORE_THRESHOLD))
        assert should_trigger(signal, TriggerType.NEW_SIGHTING)
        assert should_trigger(signal, "score_threshold")
        assert not should_trigger(signal, TriggerType.SIGHTING_DISPUTED)

    @pytest.mark.parametrize(
        "previous,current,expected",
        [
            (9, 10, True),
            (5, 25, True),
            (10, 12, False),
            (12, 9, False),
            (3, 9, False),
        ],
    )
    def test_crossed_score_threshold(self, previous, current, expected):
        assert crossed_score_threshold(previous, current, 10) is expected

    def test_build_match_data(self, make_sighting):
        sighting = make_sighting(tags=("night",), score=4, importance=SightingImportance.HIGH)
        data = build_match_data(sighting, ReputationTier.TRUSTED)
        assert data.category_id == "wildlife"
        assert data.tags == ("night",)
        assert data.score == 4
        assert data.reporter_trust_level == ReputationTier.TRUSTED

    def test_matches_geography_missing_geofence(self, make_signal, make_sighting):
        signal = make_signal(target=GeofenceTarget(geofence_id=GeofenceId("gf-x")))
        assert not matches_geography(make_sighting(), signal, {})

    def test_matches_geography_polygon(self, make_signal, make_sighting, manhattan, brooklyn):
        inside = make_signal(target=PolygonTarget(polygon=manhattan))
        outside = make_signal(target=PolygonTarget(polygon=brooklyn))
        assert matches_geography(make_sighting(), inside, {})
        assert not matches_geography(make_sighting(), outside, {})

    def test_match_score(self, make_signal, make_sighting, manhattan):
        sighting = make_sighting(score=5)
        plain = make_signal()
        specific = make_signal(
            target=PolygonTarget(polygon=manhattan),
            conditions=SignalConditions(
                category_ids=("wildlife",),
                type_ids=("bear",),
                importance=(SightingImportance.NORMAL,),
                min_score=1,
                max_score=10,
            ),
        )
        assert calculate_match_score(plain, sighting) == 10
        assert calculate_match_score(specific, sighting) == 100

    def test_explain(self, make_signal):
        signal = make_signal(name="Bears")
        assert SignalEvaluation(signal, True, "All criteria matched").explain() == (
            'Signal "Bears" matched: All criteria matched'
        )
        assert "did not match" in SignalEvaluation(signal, False, "nope").explain()


# =============================================================================
# Evaluator
# =============================================================================


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_matches_global_polygon_and_geofence(self, seeded_repos):
        """Only active signals whose area contains the sighting match."""
        result = await make_evaluator(seeded_repos).evaluate(SightingId("sight-1"))

        assert result.ok
        assert {s.id for s in result.value} == {"sig-global", "sig-polygon", "sig-geofence"}

    @pytest.mark.asyncio
    async def test_missing_geofence_is_skipped_with_warning(self, seeded_repos, caplog):
        with caplog.at_level(logging.WARNING, logger="sightsignal.services.evaluator"):
            result = await make_evaluator(seeded_repos).evaluate(SightingId("sight-1"))

        assert result.ok
        assert "sig-missing" not in {s.id for s in result.value}
        assert any("gf-deleted" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_debug_summary_carries_context(self, seeded_repos, caplog):
        with caplog.at_level(logging.DEBUG, logger="sightsignal.services.evaluator"):
            await make_evaluator(seeded_repos).evaluate(SightingId("sight-1"))

        summary = next(r for r in caplog.records if r.getMessage().startswith("Evaluated sighting"))
        assert summary.sighting_id == "sight-1"
        assert summary.match_count == 3

    @pytest.mark.asyncio
    async def test_unknown_sighting(self, seeded_repos):
        result = await make_evaluator(seeded_repos).evaluate(SightingId("nope"))

        assert not result.ok
        assert result.error.code == "sighting.not_found"
        assert result.error.field == "sighting_id"

    @pytest.mark.asyncio
    async def test_event_filter(self, seeded_repos, make_signal):
        await seeded_repos.signals.save(
            make_signal("sig-confirmed", triggers=(TriggerType.SIGHTING_CONFIRMED,))
        )
        evaluator = make_evaluator(seeded_repos)

        confirmed = await evaluator.evaluate(SightingId("sight-1"), TriggerType.SIGHTING_CONFIRMED)
        any_event = await evaluator.evaluate(SightingId("sight-1"))

        assert [s.id for s in confirmed.value] == ["sig-confirmed"]
        assert "sig-confirmed" in {s.id for s in any_event.value}

    @pytest.mark.asyncio
    async def test_conditions_use_reporter_trust(self, seeded_repos, make_signal):
        """reporter-1 has reputation 60, which is the trusted tier."""
        await seeded_repos.signals.save(
            make_signal(
                "sig-trusted",
                conditions=SignalConditions(min_trust_level=ReputationTier.TRUSTED),
            )
        )
        await seeded_repos.signals.save(
            make_signal(
                "sig-verified",
                conditions=SignalConditions(min_trust_level=ReputationTier.VERIFIED),
            )
        )

        result = await make_evaluator(seeded_repos).evaluate(SightingId("sight-1"))
        ids = {s.id for s in result.value}

        assert "sig-trusted" in ids
        assert "sig-verified" not in ids

    @pytest.mark.asyncio
    async def test_anonymous_reporter_is_unverified(self, seeded_repos, make_sighting, make_signal):
        await seeded_repos.sightings.save(make_sighting("sight-anon", reporter_id=None))
        await seeded_repos.signals.save(
            make_signal("sig-new", conditions=SignalConditions(min_trust_level=ReputationTier.NEW))
        )

        result = await make_evaluator(seeded_repos).evaluate(SightingId("sight-anon"))

        assert "sig-new" not in {s.id for s in result.value}
        assert "sig-global" in {s.id for s in result.value}

    @pytest.mark.asyncio
    async def test_detailed_reasons(self, seeded_repos):
        result = await make_evaluator(seeded_repos).evaluate_detailed(SightingId("sight-1"))
        reasons = {e.signal.id: e.reason for e in result.value}

        assert reasons["sig-global"] == "All criteria matched"
        assert reasons["sig-far"] == "Sighting location is outside signal geographic bounds"
        assert reasons["sig-missing"] == "Signal geofence could not be resolved"
        assert "sig-inactive" not in reasons


class TestEvaluatorHelpers:
    @pytest.mark.asyncio
    async def test_reporter_trust_level(self, seeded_repos):
        evaluator = make_evaluator(seeded_repos)
        assert await evaluator.reporter_trust_level(UserId("reporter-1")) == ReputationTier.TRUSTED
        assert await evaluator.reporter_trust_level(UserId("ghost")) == ReputationTier.UNVERIFIED
        assert await evaluator.reporter_trust_level(None) == ReputationTier.UNVERIFIED

    @pytest.mark.asyncio
    async def test_would_match_ignores_activity(self, seeded_repos, make_signal, make_sighting):
        signal = make_signal(is_active=False)
        assert await make_evaluator(seeded_repos).would_match(signal, make_sighting())

    @pytest.mark.asyncio
    async def test_signal_feed(self, seeded_repos, make_signal, make_sighting, manhattan):
        signal = make_signal(
            target=PolygonTarget(polygon=manhattan),
            conditions=SignalConditions(type_ids=("bear",)),
        )
        sightings = [
            make_sighting("in-bear"),
            make_sighting("in-deer", type_id="deer"),
            make_sighting("out-bear", location={"lat": 40.5, "lng": -74.01}),
        ]
        evaluator = make_evaluator(seeded_repos)

        feed = await evaluator.evaluate_signal_feed(signal, sightings)
        inactive = await evaluator.evaluate_signal_feed(
            signal.model_copy(update={"is_active": False}), sightings
        )

        assert [s.id for s in feed] == ["in-bear"]
        assert inactive == []

    @pytest.mark.asyncio
    async def test_resolve_geofences(self, seeded_repos, make_signal):
        signals = [
            make_signal("a", target=GeofenceTarget(geofence_id=GeofenceId("gf-manhattan"))),
            make_signal("b", target=GeofenceTarget(geofence_id=GeofenceId("gf-deleted"))),
            make_signal("c"),
        ]
        resolved = await make_evaluator(seeded_repos).resolve_geofences(signals)
        assert list(resolved) == ["gf-manhattan"]
