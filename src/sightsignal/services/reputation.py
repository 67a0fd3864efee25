"""
Reputation tier resolution.

Maps an accumulated reputation score to an ordinal trust tier:

    unverified  score < 10
    new         10 <= score < 50
    trusted     score >= 50
    verified    assigned out-of-band (admin vetting), never by threshold
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models.user import ReputationTier, UserReputation

NEW_THRESHOLD = 10
TRUSTED_THRESHOLD = 50


class ReputationReason(str, Enum):
    SIGHTING_CREATED = "sighting_created"
    SIGHTING_UPVOTED = "sighting_upvoted"
    SIGHTING_CONFIRMED = "sighting_confirmed"
    SIGHTING_DISPUTED = "sighting_disputed"
    SIGNAL_CREATED = "signal_created"
    SIGNAL_SUBSCRIBED = "signal_subscribed"
    SIGNAL_VERIFIED = "signal_verified"
    REPORT_UPHELD = "report_upheld"


# Points awarded (or removed) per reputation event
REPUTATION_AMOUNTS: dict[ReputationReason, int] = {
    ReputationReason.SIGHTING_CREATED: 1,
    ReputationReason.SIGHTING_UPVOTED: 1,
    ReputationReason.SIGHTING_CONFIRMED: 2,
    ReputationReason.SIGHTING_DISPUTED: -1,
    ReputationReason.SIGNAL_CREATED: 5,
    ReputationReason.SIGNAL_SUBSCRIBED: 2,
    ReputationReason.SIGNAL_VERIFIED: 50,
    ReputationReason.REPORT_UPHELD: -10,
}

_LABELS = {
    ReputationTier.VERIFIED: "Verified",
    ReputationTier.TRUSTED: "Trusted",
    ReputationTier.NEW: "New",
    ReputationTier.UNVERIFIED: "Unverified",
}

_DESCRIPTIONS = {
    ReputationTier.VERIFIED: "Admin-vetted trusted contributor",
    ReputationTier.TRUSTED: f"High reputation member ({TRUSTED_THRESHOLD}+ points)",
    ReputationTier.NEW: f"Establishing reputation ({NEW_THRESHOLD}-{TRUSTED_THRESHOLD - 1} points)",
    ReputationTier.UNVERIFIED: f"New member (< {NEW_THRESHOLD} points)",
}


def tier_for_score(score: float, is_verified: bool = False) -> ReputationTier:
    """Resolve the trust tier for a score."""
    if is_verified:
        return ReputationTier.VERIFIED
    if score >= TRUSTED_THRESHOLD:
        return ReputationTier.TRUSTED
    if score >= NEW_THRESHOLD:
        return ReputationTier.NEW
    return ReputationTier.UNVERIFIED


def tier_for_reputation(reputation: UserReputation | None) -> ReputationTier:
    """Trust tier for a reputation record; missing records are unverified."""
    if reputation is None:
        return ReputationTier.UNVERIFIED
    return tier_for_score(reputation.score, reputation.is_verified)


def tier_label(tier: ReputationTier) -> str:
    return _LABELS[tier]


def tier_description(tier: ReputationTier) -> str:
    return _DESCRIPTIONS[tier]


@dataclass(frozen=True)
class TierProgress:
    """Progress from the current tier towards the next threshold tier."""

    tier: ReputationTier
    next_tier: ReputationTier | None
    points_to_next: int
    fraction: float


def next_tier_progress(score: int) -> TierProgress:
    """
    Compute progress towards the next threshold tier.

    Trusted is the last tier reachable by points; beyond it progress is 1.0.
    """
    tier = tier_for_score(score)
    if tier == ReputationTier.UNVERIFIED:
        return TierProgress(
            tier=tier,
            next_tier=ReputationTier.NEW,
            points_to_next=NEW_THRESHOLD - score,
            fraction=max(score, 0) / NEW_THRESHOLD,
        )
    if tier == ReputationTier.NEW:
        span = TRUSTED_THRESHOLD - NEW_THRESHOLD
        return TierProgress(
            tier=tier,
            next_tier=ReputationTier.TRUSTED,
            points_to_next=TRUSTED_THRESHOLD - score,
            fraction=(score - NEW_THRESHOLD) / span,
        )
    return TierProgress(tier=tier, next_tier=None, points_to_next=0, fraction=1.0)


def apply_reputation_event(reputation: UserReputation, reason: ReputationReason) -> UserReputation:
    """Return a copy with the event's points applied. Scores never drop below 0."""
    new_score = max(0, reputation.score + REPUTATION_AMOUNTS[reason])
    return reputation.model_copy(update={"score": new_score})
