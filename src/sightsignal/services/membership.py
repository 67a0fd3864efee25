"""
Membership tier quota policy.

Fixed per-tier limits:

    tier   max area km2   max polygon points   max sighting types   global signals
    free   25             20                   10                   no
    paid   500            100                  50                   no
    admin  unlimited      unlimited            unlimited            yes

Each validator returns a Result; failures carry the offending value, the
tier's limit and, for free/paid tiers, an upgrade prompt in ``details``.
Admin never fails. The composite checks run every relevant validator and
report all failures together.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..core.errors import ErrorCode
from ..core.result import DomainError, Err, Result, err, ok
from ..models.geo import Geofence, Polygon
from ..models.signal import GlobalTarget, PolygonTarget, SignalConditions, SignalTarget
from ..models.user import MembershipTier
from .geo import polygon_area_km2


@dataclass(frozen=True)
class TierLimits:
    """Quota limits for one tier. None means unlimited."""

    tier: MembershipTier
    max_geofence_area_km2: float | None
    max_polygon_points: int | None
    max_sighting_types: int | None
    can_create_global_signals: bool


TIER_LIMITS: dict[MembershipTier, TierLimits] = {
    MembershipTier.FREE: TierLimits(
        tier=MembershipTier.FREE,
        max_geofence_area_km2=25,
        max_polygon_points=20,
        max_sighting_types=10,
        can_create_global_signals=False,
    ),
    MembershipTier.PAID: TierLimits(
        tier=MembershipTier.PAID,
        max_geofence_area_km2=500,
        max_polygon_points=100,
        max_sighting_types=50,
        can_create_global_signals=False,
    ),
    MembershipTier.ADMIN: TierLimits(
        tier=MembershipTier.ADMIN,
        max_geofence_area_km2=None,
        max_polygon_points=None,
        max_sighting_types=None,
        can_create_global_signals=True,
    ),
}


def tier_limits(tier: MembershipTier) -> TierLimits:
    return TIER_LIMITS[MembershipTier(tier)]


def upgrade_prompt(tier: MembershipTier, what: str) -> str:
    """Upgrade hint for a tier-dependent limit."""
    if tier == MembershipTier.FREE:
        return f"Upgrade to paid tier for {what}."
    return f"Contact an administrator to request {what}."


def _exceeded(
    code: ErrorCode,
    tier: MembershipTier,
    summary: str,
    value: float,
    limit: float,
    what: str,
    field_name: str,
) -> Err:
    prompt = upgrade_prompt(tier, what)
    return err(
        code,
        f"{summary} {prompt}",
        field=field_name,
        details={
            "value": value,
            "limit": limit,
            "tier": tier.value,
            "upgrade_prompt": prompt,
        },
    )


# =============================================================================
# Individual Validators
# =============================================================================


def validate_geofence_area(area_km2: float, tier: MembershipTier) -> Result[None]:
    tier = MembershipTier(tier)
    limit = tier_limits(tier).max_geofence_area_km2
    if limit is None or area_km2 <= limit:
        return ok(None)
    return _exceeded(
        ErrorCode.MEMBERSHIP_GEOFENCE_AREA_EXCEEDED,
        tier,
        f"Geofence area {area_km2:.2f} km² exceeds {tier.value} tier limit of {limit} km².",
        area_km2,
        limit,
        "larger geofences",
        "polygon",
    )


def validate_polygon_points(point_count: int, tier: MembershipTier) -> Result[None]:
    tier = MembershipTier(tier)
    limit = tier_limits(tier).max_polygon_points
    if limit is None or point_count <= limit:
        return ok(None)
    return _exceeded(
        ErrorCode.MEMBERSHIP_POLYGON_POINTS_EXCEEDED,
        tier,
        f"Polygon has {point_count} points, exceeds {tier.value} tier limit of {limit}.",
        point_count,
        limit,
        "more complex polygons",
        "polygon",
    )


def validate_sighting_type_count(type_count: int, tier: MembershipTier) -> Result[None]:
    tier = MembershipTier(tier)
    limit = tier_limits(tier).max_sighting_types
    if limit is None or type_count <= limit:
        return ok(None)
    return _exceeded(
        ErrorCode.MEMBERSHIP_SIGHTING_TYPES_EXCEEDED,
        tier,
        f"Signal has {type_count} sighting types, exceeds {tier.value} tier limit of {limit}.",
        type_count,
        limit,
        "more sighting types",
        "conditions",
    )


def validate_global_signal_permission(tier: MembershipTier) -> Result[None]:
    tier = MembershipTier(tier)
    if tier_limits(tier).can_create_global_signals:
        return ok(None)
    return err(
        ErrorCode.MEMBERSHIP_GLOBAL_SIGNAL_NOT_ALLOWED,
        f"{tier.value} tier users cannot create global signals. "
        "Only administrators can create global signals.",
        field="target",
        details={"tier": tier.value},
    )


# =============================================================================
# Composite Checks
# =============================================================================


@dataclass
class AreaReport:
    """Measured quantities and every quota failure for one operation."""

    tier: MembershipTier
    area_km2: float | None = None
    point_count: int | None = None
    type_count: int | None = None
    failures: list[DomainError] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def collect(self, result: Result[None]) -> None:
        if not result.ok:
            self.failures.append(result.error)

    def to_dict(self) -> dict:
        return {
            "tier": self.tier.value,
            "area_km2": self.area_km2,
            "point_count": self.point_count,
            "type_count": self.type_count,
            "passed": self.passed,
            "failures": [f.to_dict() for f in self.failures],
        }


def validate_geofence_limits(polygon: Polygon, tier: MembershipTier) -> AreaReport:
    """Run the area and vertex-count checks for a polygon."""
    tier = MembershipTier(tier)
    report = AreaReport(
        tier=tier,
        area_km2=polygon_area_km2(polygon.points),
        point_count=len(polygon.points),
    )
    report.collect(validate_geofence_area(report.area_km2, tier))
    report.collect(validate_polygon_points(report.point_count, tier))
    return report


def validate_signal_quota(
    target: SignalTarget,
    conditions: SignalConditions | None,
    tier: MembershipTier,
    geofence: Geofence | None = None,
) -> AreaReport:
    """
    Run every quota check relevant to creating or updating a signal.

    Global targets need the global permission. Embedded polygons, and the
    resolved geofence of a geofence target when one is passed, are measured
    for area and vertices. Condition type ids are always counted.
    """
    tier = MembershipTier(tier)
    report = AreaReport(tier=tier)

    polygon: Polygon | None = None
    if isinstance(target, GlobalTarget):
        report.collect(validate_global_signal_permission(tier))
    elif isinstance(target, PolygonTarget):
        polygon = target.polygon
    elif geofence is not None:
        polygon = geofence.polygon

    if polygon is not None:
        polygon_report = validate_geofence_limits(polygon, tier)
        report.area_km2 = polygon_report.area_km2
        report.point_count = polygon_report.point_count
        report.failures.extend(polygon_report.failures)

    type_ids = conditions.type_ids if conditions else None
    report.type_count = len(type_ids) if type_ids else 0
    report.collect(validate_sighting_type_count(report.type_count, tier))

    return report
