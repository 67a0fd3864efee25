"""
Condition matching for signals.

Each populated field of SignalConditions becomes one predicate over the
sighting's match data. The predicates are then combined with the conditions'
operator: AND (default) requires all, OR requires at least one. Conditions
with no populated field match every sighting.
"""

from __future__ import annotations

from ..models.signal import ConditionOperator, SignalConditions
from ..models.sighting import SightingMatchData
from ..models.user import ReputationTier


def meets_min_trust_level(actual: ReputationTier, required: ReputationTier) -> bool:
    """Ordinal comparison of trust tiers."""
    return actual.rank >= required.rank


def condition_checks(conditions: SignalConditions, sighting: SightingMatchData) -> list[bool]:
    """
    Evaluate every specified predicate.

    Empty lists count as unspecified.
    """
    checks: list[bool] = []

    if conditions.category_ids:
        checks.append(sighting.category_id in conditions.category_ids)

    if conditions.type_ids:
        checks.append(sighting.type_id in conditions.type_ids)

    if conditions.tags:
        checks.append(any(tag in sighting.tags for tag in conditions.tags))

    if conditions.importance:
        checks.append(sighting.importance in conditions.importance)

    if conditions.min_trust_level is not None:
        checks.append(
            meets_min_trust_level(sighting.reporter_trust_level, conditions.min_trust_level)
        )

    if conditions.min_score is not None:
        checks.append(sighting.score >= conditions.min_score)

    if conditions.max_score is not None:
        checks.append(sighting.score <= conditions.max_score)

    return checks


def matches_conditions(conditions: SignalConditions | None, sighting: SightingMatchData) -> bool:
    """
    Check whether a sighting satisfies a signal's conditions.

    Args:
        conditions: Signal conditions (None behaves like empty conditions)
        sighting: Flattened sighting attributes

    Returns:
        True if the combined predicates hold
    """
    if conditions is None:
        return True

    checks = condition_checks(conditions, sighting)
    if not checks:
        return True

    if conditions.operator == ConditionOperator.OR:
        return any(checks)
    return all(checks)


def describe_conditions(conditions: SignalConditions) -> str:
    """Human-readable summary, e.g. 'Categories: wildlife AND Min trust: new'."""
    parts: list[str] = []

    if conditions.category_ids:
        parts.append(f"Categories: {', '.join(conditions.category_ids)}")
    if conditions.type_ids:
        parts.append(f"Types: {', '.join(conditions.type_ids)}")
    if conditions.tags:
        parts.append(f"Tags: {', '.join(conditions.tags)}")
    if conditions.importance:
        parts.append(f"Importance: {', '.join(i.value for i in conditions.importance)}")
    if conditions.min_trust_level is not None:
        parts.append(f"Min trust: {conditions.min_trust_level.value}")
    if conditions.min_score is not None or conditions.max_score is not None:
        low = conditions.min_score if conditions.min_score is not None else "-inf"
        high = conditions.max_score if conditions.max_score is not None else "inf"
        parts.append(f"Score: {low} to {high}")

    if not parts:
        return "All sightings"

    return f" {conditions.operator.value} ".join(parts)
