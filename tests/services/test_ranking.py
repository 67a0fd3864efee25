"""
Tests for the signal ranking engine.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest
import pytest_asyncio

from sightsignal.models import (
    CategoryPreference,
    LatLng,
    PolygonTarget,
    RankedSignal,
    RankingContext,
    SignalActivitySnapshot,
    SignalAnalytics,
    SignalClassification,
    SignalConditions,
    SignalFilters,
    SignalId,
    User,
    UserCategoryInteraction,
    UserId,
    UserPrivacySettings,
    UserSignalPreference,
)
from sightsignal.services.ranking import (
    RankingEngine,
    category_boost,
    popularity_score,
    rank_score,
    sort_ranked,
)

USER = UserId("u-1")
USER_LOCATION = LatLng(lat=40.71, lng=-74.01)


def make_engine(repos, clock) -> RankingEngine:
    return RankingEngine(
        repos.signals,
        repos.users,
        repos.privacy_settings,
        repos.category_interactions,
        repos.signal_preferences,
        repos.snapshots,
        repos.geofences,
        clock=clock,
    )


async def set_preference(repos, signal_id: str, **flags) -> None:
    await repos.signal_preferences.upsert(
        UserSignalPreference(user_id=USER, signal_id=SignalId(signal_id), **flags)
    )


@pytest_asyncio.fixture
async def user_repos(repos):
    await repos.users.save(User(id=USER, email="u1@example.com"))
    return repos


def popular(views: int = 10, subscribers: int = 1, sightings: int = 0) -> SignalAnalytics:
    return SignalAnalytics(view_count=views, subscriber_count=subscribers, sighting_count=sightings)


# =============================================================================
# Pure Scoring
# =============================================================================


class TestScoring:
    def test_popularity_weights(self, make_signal):
        signal = make_signal(analytics=popular(views=3, subscribers=2, sightings=4))
        assert popularity_score(signal) == 3 + 20 + 20

    def test_official_global_is_fixed(self, make_signal):
        signal = make_signal(
            classification=SignalClassification.OFFICIAL,
            analytics=popular(views=10_000),
        )
        assert rank_score(signal, RankingContext(), viral=True) == 11000

    def test_unimportant_community_is_fixed(self, make_signal):
        signal = make_signal(
            "sig-c",
            classification=SignalClassification.COMMUNITY,
            analytics=popular(views=500),
        )
        context = RankingContext(unimportant_signal_ids=frozenset({SignalId("sig-c")}))
        assert rank_score(signal, context, viral=False) == -1000

    def test_unimportant_only_affects_community(self, make_signal):
        signal = make_signal("sig-p", analytics=popular())
        context = RankingContext(unimportant_signal_ids=frozenset({SignalId("sig-p")}))
        assert rank_score(signal, context, viral=False) == 2000

    def test_classification_base_added(self, make_signal):
        verified = make_signal(classification=SignalClassification.VERIFIED, analytics=popular())
        assert rank_score(verified, RankingContext(), viral=False) == 2100

    def test_viral_multiplier(self, make_signal):
        signal = make_signal(analytics=popular())
        assert rank_score(signal, RankingContext(), viral=True) == 4000
        assert rank_score(signal, RankingContext(), viral=True, viral_multiplier=3) == 6000

    def test_distance_ignored_without_location_ranking(self, make_signal):
        signal = make_signal(analytics=popular())
        assert rank_score(signal, RankingContext(), viral=False, distance_km=50) == 2000

    def test_distance_divides_score(self, make_signal):
        signal = make_signal(analytics=popular())
        context = RankingContext(enable_location_ranking=True)
        assert rank_score(signal, context, viral=False, distance_km=9) == pytest.approx(200)

    def test_category_boost_by_position(self, make_signal):
        prefs = [
            CategoryPreference(category_id="birds", interaction_score=3),
            CategoryPreference(category_id="wildlife", interaction_score=9),
            CategoryPreference(category_id="weather", interaction_score=5),
        ]
        wildlife = make_signal(conditions=SignalConditions(category_ids=("wildlife",)))
        birds = make_signal(conditions=SignalConditions(category_ids=("birds",)))
        other = make_signal(conditions=SignalConditions(category_ids=("traffic",)))

        assert category_boost(wildlife, prefs, True) == 3.0
        assert category_boost(birds, prefs, True) == 1.5
        assert category_boost(other, prefs, True) == 1.0
        assert category_boost(wildlife, prefs, False) == 1.0
        assert category_boost(make_signal(), prefs, True) == 1.0

    def test_boost_shrinks_effective_distance(self, make_signal):
        signal = make_signal(
            analytics=popular(),
            conditions=SignalConditions(category_ids=("wildlife",)),
        )
        context = RankingContext(
            enable_location_ranking=True,
            enable_personalization=True,
            category_preferences=(CategoryPreference(category_id="wildlife", interaction_score=4),),
        )
        assert rank_score(signal, context, viral=False, distance_km=9) == pytest.approx(500)

    def test_sort_ranked_pins_first(self, make_signal):
        signals = [make_signal(s, analytics=popular()) for s in ("a", "b", "c")]
        ranked = [
            RankedSignal(**s.model_dump(), rank_score=score)
            for s, score in zip(signals, (50.0, 10.0, 900.0))
        ]
        ordered = sort_ranked(ranked, {SignalId("b")})
        assert [s.id for s in ordered] == ["b", "c", "a"]


# =============================================================================
# Engine
# =============================================================================


class TestRankingEngine:
    @pytest.mark.asyncio
    async def test_unknown_user(self, repos, clock):
        result = await make_engine(repos, clock).rank(UserId("ghost"))

        assert not result.ok
        assert result.error.code == "user.not_found"
        assert result.error.field == "user_id"

    @pytest.mark.asyncio
    async def test_orders_by_score(self, user_repos, make_signal, clock):
        await user_repos.signals.save(make_signal("low", analytics=popular(views=1, subscribers=0)))
        await user_repos.signals.save(
            make_signal("official", classification=SignalClassification.OFFICIAL)
        )
        await user_repos.signals.save(make_signal("mid", analytics=popular()))

        result = await make_engine(user_repos, clock).rank(USER)

        assert [s.id for s in result.value] == ["official", "mid", "low"]
        assert result.value[0].rank_score == 11000

    @pytest.mark.asyncio
    async def test_pinned_always_first(self, user_repos, make_signal, clock):
        await user_repos.signals.save(
            make_signal("official", classification=SignalClassification.OFFICIAL)
        )
        await user_repos.signals.save(make_signal("quiet"))
        await set_preference(user_repos, "quiet", is_pinned=True)

        result = await make_engine(user_repos, clock).rank(USER)

        assert [s.id for s in result.value] == ["quiet", "official"]

    @pytest.mark.asyncio
    async def test_hidden_excluded_by_default(self, user_repos, make_signal, clock):
        await user_repos.signals.save(make_signal("shown"))
        await user_repos.signals.save(make_signal("hidden"))
        await set_preference(user_repos, "hidden", is_hidden=True)
        engine = make_engine(user_repos, clock)

        default = await engine.rank(USER)
        everything = await engine.rank(USER, include_hidden=True)

        assert [s.id for s in default.value] == ["shown"]
        assert {s.id for s in everything.value} == {"shown", "hidden"}

    @pytest.mark.asyncio
    async def test_unimportant_community_sinks(self, user_repos, make_signal, clock):
        await user_repos.signals.save(make_signal("personal"))
        await user_repos.signals.save(
            make_signal(
                "community",
                classification=SignalClassification.COMMUNITY,
                analytics=popular(views=1000),
            )
        )
        await set_preference(user_repos, "community", is_unimportant=True)

        result = await make_engine(user_repos, clock).rank(USER)

        assert [s.id for s in result.value] == ["personal", "community"]
        assert result.value[1].rank_score == -1000

    @pytest.mark.asyncio
    async def test_viral_signal_doubles(self, user_repos, make_signal, clock, now):
        await user_repos.signals.save(make_signal("viral", analytics=popular()))
        await user_repos.snapshots.append(
            SignalActivitySnapshot(
                signal_id=SignalId("viral"),
                snapshot_date=now.date(),
                view_count=40,
            )
        )

        result = await make_engine(user_repos, clock).rank(USER)

        ranked = result.value[0]
        assert ranked.is_viral_boosted
        assert ranked.rank_score == 4000

    @pytest.mark.asyncio
    async def test_steady_activity_is_not_viral(self, user_repos, make_signal, clock, now):
        await user_repos.signals.save(make_signal("steady", analytics=popular()))
        for days_ago in range(0, 8):
            await user_repos.snapshots.append(
                SignalActivitySnapshot(
                    signal_id=SignalId("steady"),
                    snapshot_date=now.date() - timedelta(days=days_ago),
                    view_count=20,
                )
            )

        result = await make_engine(user_repos, clock).rank(USER)

        assert not result.value[0].is_viral_boosted

    @pytest.mark.asyncio
    async def test_privacy_defaults_ignore_location(self, user_repos, make_signal, manhattan, clock):
        await user_repos.signals.save(
            make_signal("near", target=PolygonTarget(polygon=manhattan), analytics=popular())
        )

        result = await make_engine(user_repos, clock).rank(USER, user_location=USER_LOCATION)

        ranked = result.value[0]
        assert ranked.distance_km is None
        assert ranked.category_boost == 1.0
        assert ranked.rank_score == 2000

    @pytest.mark.asyncio
    async def test_location_ranking_prefers_near(
        self, user_repos, make_signal, manhattan, brooklyn, clock
    ):
        await user_repos.privacy_settings.save(
            UserPrivacySettings(user_id=USER, enable_location_sharing=True)
        )
        await user_repos.signals.save(
            make_signal("far", target=PolygonTarget(polygon=brooklyn), analytics=popular())
        )
        await user_repos.signals.save(
            make_signal("near", target=PolygonTarget(polygon=manhattan), analytics=popular())
        )

        result = await make_engine(user_repos, clock).rank(USER, user_location=USER_LOCATION)

        assert [s.id for s in result.value] == ["near", "far"]
        assert result.value[0].distance_km == pytest.approx(0, abs=0.01)
        assert result.value[1].distance_km > 5

    @pytest.mark.asyncio
    async def test_category_boost_with_personalization(
        self, user_repos, make_signal, brooklyn, clock
    ):
        await user_repos.privacy_settings.save(
            UserPrivacySettings(
                user_id=USER,
                enable_location_sharing=True,
                enable_personalization=True,
            )
        )
        await user_repos.category_interactions.save(
            UserCategoryInteraction(user_id=USER, category_id="wildlife", click_count=5)
        )
        target = PolygonTarget(polygon=brooklyn)
        await user_repos.signals.save(make_signal("plain", target=target, analytics=popular()))
        await user_repos.signals.save(
            make_signal(
                "boosted",
                target=target,
                analytics=popular(),
                conditions=SignalConditions(category_ids=("wildlife",)),
            )
        )

        result = await make_engine(user_repos, clock).rank(USER, user_location=USER_LOCATION)

        assert [s.id for s in result.value] == ["boosted", "plain"]
        assert result.value[0].category_boost == 3.0
        assert result.value[1].category_boost == 1.0

    @pytest.mark.asyncio
    async def test_filters_passed_to_repository(self, user_repos, make_signal, clock):
        await user_repos.signals.save(make_signal("on"))
        await user_repos.signals.save(make_signal("off", is_active=False))

        result = await make_engine(user_repos, clock).rank(
            USER, filters=SignalFilters(is_active=True)
        )

        assert [s.id for s in result.value] == ["on"]

    @pytest.mark.asyncio
    async def test_build_context_defaults(self, user_repos, clock):
        context = await make_engine(user_repos, clock).build_context(
            USER, user_tier="free", user_location=USER_LOCATION
        )

        assert not context.enable_personalization
        assert not context.enable_location_ranking
        assert context.user_location is None
        assert context.category_preferences == ()


class TestViralWindow:
    @pytest.mark.asyncio
    async def test_no_snapshots_is_not_viral(self, user_repos, clock, now):
        engine = make_engine(user_repos, clock)
        assert not await engine.is_viral_boosted(SignalId("nothing"), now)

    @pytest.mark.asyncio
    async def test_old_surge_is_ignored(self, user_repos, clock, now):
        await user_repos.snapshots.append(
            SignalActivitySnapshot(
                signal_id=SignalId("old"),
                snapshot_date=date(2026, 2, 1),
                view_count=500,
            )
        )
        engine = make_engine(user_repos, clock)
        assert not await engine.is_viral_boosted(SignalId("old"), now)
