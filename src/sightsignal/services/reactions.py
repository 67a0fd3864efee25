"""
Reaction scoring.

base score = upvotes - downvotes + 2*confirmations - 2*disputes - 5*spam

hot score  = sign(base) * log10(1 + |base|) / (age_hours + 2) ** 1.5

The +2 hour offset keeps brand-new sightings from dividing by ~0 and the
1.5 exponent is the decay gravity. Both are calibrated against worked
examples (base 61 at 1h ~ 0.34, base -15 at 24h ~ -0.009).
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from ..core.errors import ErrorCode
from ..core.result import Result, err, ok
from ..models.ids import UserId
from ..models.sighting import (
    ReactionCounts,
    ReactionType,
    Sighting,
    SightingReaction,
    Visibility,
)

HOT_SCORE_OFFSET_HOURS = 2.0
HOT_SCORE_GRAVITY = 1.5

# Visibility thresholds
SPAM_HIDE_THRESHOLD = 3
HIDE_SCORE_THRESHOLD = -5

_COUNT_FIELDS = {
    ReactionType.UPVOTE: "upvotes",
    ReactionType.DOWNVOTE: "downvotes",
    ReactionType.CONFIRMED: "confirmations",
    ReactionType.DISPUTED: "disputes",
    ReactionType.SPAM: "spam_reports",
}


def base_score(counts: ReactionCounts) -> int:
    """Weighted reaction tally."""
    return (
        counts.upvotes
        - counts.downvotes
        + counts.confirmations * 2
        - counts.disputes * 2
        - counts.spam_reports * 5
    )


def hot_score(score: float, age_hours: float) -> float:
    """
    Time-decayed popularity.

    Args:
        score: Base score
        age_hours: Hours since the sighting was created (negative clamps to 0)

    Returns:
        Score with the same sign as ``score``, shrinking as age grows
    """
    if score == 0:
        return 0.0
    sign = 1.0 if score > 0 else -1.0
    order = math.log10(1 + abs(score))
    decay = (max(age_hours, 0.0) + HOT_SCORE_OFFSET_HOURS) ** HOT_SCORE_GRAVITY
    return sign * order / decay


def visibility(score: float, spam_reports: int) -> Visibility:
    """
    Classify display visibility.

    Spam reports take priority: three or more hide the sighting whatever its score.
    """
    if spam_reports >= SPAM_HIDE_THRESHOLD:
        return Visibility.HIDDEN
    if score <= HIDE_SCORE_THRESHOLD:
        return Visibility.HIDDEN
    if score < 0:
        return Visibility.LOW_QUALITY
    return Visibility.VISIBLE


def age_in_hours(created_at: datetime, now: datetime) -> float:
    return (now - created_at).total_seconds() / 3600


def validate_reaction_type(value: str) -> Result[ReactionType]:
    """Parse a reaction type string."""
    try:
        return ok(ReactionType(value))
    except ValueError:
        valid = ", ".join(t.value for t in ReactionType)
        return err(
            ErrorCode.REACTION_INVALID_TYPE,
            f"Invalid reaction type. Must be one of: {valid}",
            field="type",
        )


def can_user_react(user_id: UserId, reporter_id: UserId | None) -> Result[None]:
    """Reporters cannot react to their own sightings."""
    if reporter_id is not None and reporter_id == user_id:
        return err(
            ErrorCode.REACTION_CANNOT_REACT_TO_OWN,
            "Cannot react to your own sighting",
        )
    return ok(None)


def tally_reactions(reactions: Iterable[SightingReaction]) -> ReactionCounts:
    """Build counts from individual reaction records."""
    totals = {name: 0 for name in _COUNT_FIELDS.values()}
    for reaction in reactions:
        totals[_COUNT_FIELDS[reaction.type]] += 1
    return ReactionCounts(**totals)


def rescore_sighting(sighting: Sighting, counts: ReactionCounts, now: datetime) -> Sighting:
    """Return a copy of the sighting with counts, score and hot score refreshed."""
    score = base_score(counts)
    return sighting.model_copy(
        update={
            "reactions": counts,
            "score": score,
            "hot_score": hot_score(score, age_in_hours(sighting.created_at, now)),
        }
    )
