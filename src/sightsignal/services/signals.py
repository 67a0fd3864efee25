"""
Signal lifecycle: validation, creation, updates, classification and
subscriptions.

Field rules:
- name required, at most 100 characters
- description at most 500 characters
- owner required and immutable after creation
- polygon targets need a valid polygon, geofence targets a geofence id
- 1 to 10 triggers, no duplicates
- at most 20 categories, 50 types and 30 tags; min_score <= max_score
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from typing import get_args

from pydantic import Field

from ..core.errors import ErrorCode
from ..core.logging import get_logger
from ..core.result import DomainError, Err, Result, err, ok
from ..models import (
    DeliveryMethod,
    GeofenceTarget,
    PolygonTarget,
    Signal,
    SignalClassification,
    SignalConditions,
    SignalId,
    SignalSubscription,
    SignalTarget,
    SubscriptionId,
    TriggerType,
    User,
    UserId,
    UserRole,
)
from ..models.base import SightSignalModel, utc_now
from ..repositories.protocol import (
    GeofenceRepository,
    SignalRepository,
    SignalSubscriptionRepository,
    UserRepository,
)
from .geo import validate_polygon
from .membership import validate_signal_quota

logger = get_logger(__name__)

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_TRIGGERS = 10
MAX_CATEGORY_IDS = 20
MAX_TYPE_IDS = 50
MAX_TAGS = 30
DELIVERY_METHODS: tuple[str, ...] = get_args(DeliveryMethod)


class NewSignal(SightSignalModel):
    """Input for creating a signal."""

    name: str
    description: str | None = None
    owner_id: str = ""
    target: SignalTarget
    triggers: tuple[TriggerType, ...] = ()
    conditions: SignalConditions = Field(default_factory=SignalConditions)
    is_active: bool = True


class SignalUpdate(SightSignalModel):
    """Partial update; None leaves a field unchanged. Ownership cannot change."""

    name: str | None = None
    description: str | None = None
    target: SignalTarget | None = None
    triggers: tuple[TriggerType, ...] | None = None
    conditions: SignalConditions | None = None
    is_active: bool | None = None


# =============================================================================
# Field Validation
# =============================================================================


def validate_name(name: str) -> Result[str]:
    trimmed = name.strip()
    if not trimmed:
        return err(ErrorCode.SIGNAL_NAME_REQUIRED, "Signal name is required.", field="name")
    if len(trimmed) > MAX_NAME_LENGTH:
        return err(
            ErrorCode.SIGNAL_NAME_TOO_LONG,
            f"Signal name must be {MAX_NAME_LENGTH} characters or less.",
            field="name",
        )
    return ok(trimmed)


def validate_description(description: str | None) -> Result[str | None]:
    if description is None:
        return ok(None)
    trimmed = description.strip()
    if len(trimmed) > MAX_DESCRIPTION_LENGTH:
        return err(
            ErrorCode.SIGNAL_DESCRIPTION_TOO_LONG,
            f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less.",
            field="description",
        )
    return ok(trimmed or None)


def validate_owner(owner_id: str) -> Result[UserId]:
    if not owner_id.strip():
        return err(ErrorCode.SIGNAL_OWNER_REQUIRED, "Signal owner is required.", field="owner_id")
    return ok(UserId(owner_id.strip()))


def validate_target(target: SignalTarget) -> Result[SignalTarget]:
    if isinstance(target, PolygonTarget):
        result = validate_polygon(target.polygon)
        if not result.ok:
            return result
    elif isinstance(target, GeofenceTarget) and not target.geofence_id.strip():
        return err(
            ErrorCode.SIGNAL_GEOFENCE_REQUIRED,
            "Geofence ID is required when target kind is geofence.",
            field="target",
        )
    return ok(target)


def validate_triggers(triggers: tuple[TriggerType, ...]) -> Result[tuple[TriggerType, ...]]:
    if not triggers:
        return err(
            ErrorCode.SIGNAL_TRIGGERS_REQUIRED,
            "At least one trigger is required.",
            field="triggers",
        )
    if len(triggers) > MAX_TRIGGERS:
        return err(
            ErrorCode.SIGNAL_TOO_MANY_TRIGGERS,
            f"Maximum {MAX_TRIGGERS} triggers allowed.",
            field="triggers",
        )
    if len(set(triggers)) != len(triggers):
        return err(
            ErrorCode.SIGNAL_DUPLICATE_TRIGGERS,
            "Duplicate triggers are not allowed.",
            field="triggers",
        )
    return ok(triggers)


def validate_conditions(conditions: SignalConditions) -> Result[SignalConditions]:
    if conditions.category_ids and len(conditions.category_ids) > MAX_CATEGORY_IDS:
        return err(
            ErrorCode.SIGNAL_TOO_MANY_CATEGORIES,
            f"Maximum {MAX_CATEGORY_IDS} categories allowed.",
            field="conditions",
        )
    if conditions.type_ids and len(conditions.type_ids) > MAX_TYPE_IDS:
        return err(
            ErrorCode.SIGNAL_TOO_MANY_TYPES,
            f"Maximum {MAX_TYPE_IDS} types allowed.",
            field="conditions",
        )
    if conditions.tags and len(conditions.tags) > MAX_TAGS:
        return err(
            ErrorCode.SIGNAL_TOO_MANY_TAGS,
            f"Maximum {MAX_TAGS} tags allowed.",
            field="conditions",
        )
    if (
        conditions.min_score is not None
        and conditions.max_score is not None
        and conditions.min_score > conditions.max_score
    ):
        return err(
            ErrorCode.SIGNAL_INVALID_SCORE_RANGE,
            "Minimum score cannot be greater than maximum score.",
            field="conditions",
        )
    return ok(conditions)


def validate_new_signal(data: NewSignal) -> Result[NewSignal]:
    """
    Check every field, stopping at the first failure.

    Returns:
        Ok with names and descriptions trimmed, or the first Err
    """
    name = validate_name(data.name)
    if not name.ok:
        return name
    description = validate_description(data.description)
    if not description.ok:
        return description
    owner = validate_owner(data.owner_id)
    if not owner.ok:
        return owner

    for result in (
        validate_target(data.target),
        validate_triggers(data.triggers),
        validate_conditions(data.conditions),
    ):
        if not result.ok:
            return result

    return ok(
        data.model_copy(
            update={"name": name.value, "description": description.value, "owner_id": owner.value}
        )
    )


def build_signal(data: NewSignal, signal_id: SignalId, now: datetime) -> Result[Signal]:
    """Validate input and construct a personal signal."""
    result = validate_new_signal(data)
    if not result.ok:
        return result
    valid = result.value
    return ok(
        Signal(
            id=signal_id,
            name=valid.name,
            description=valid.description,
            owner_id=UserId(valid.owner_id),
            target=valid.target,
            triggers=valid.triggers,
            conditions=valid.conditions,
            classification=SignalClassification.PERSONAL,
            is_active=valid.is_active,
            created_at=now,
            updated_at=now,
        )
    )


def apply_update(existing: Signal, update: SignalUpdate, now: datetime) -> Result[Signal]:
    """Validate the supplied fields and return the updated signal."""
    changes: dict = {}

    if update.name is not None:
        name = validate_name(update.name)
        if not name.ok:
            return name
        changes["name"] = name.value

    if update.description is not None:
        description = validate_description(update.description)
        if not description.ok:
            return description
        changes["description"] = description.value

    checks = (
        ("target", update.target, validate_target),
        ("triggers", update.triggers, validate_triggers),
        ("conditions", update.conditions, validate_conditions),
    )
    for field_name, value, validator in checks:
        if value is None:
            continue
        result = validator(value)
        if not result.ok:
            return result
        changes[field_name] = result.value

    if update.is_active is not None:
        changes["is_active"] = update.is_active

    changes["updated_at"] = now
    return ok(existing.model_copy(update=changes))


# =============================================================================
# Service
# =============================================================================


def _quota_error(failures: list[DomainError]) -> Err:
    first = failures[0]
    details = dict(first.details or {})
    details["failures"] = [f.to_dict() for f in failures]
    return Err(DomainError(first.code, first.message, first.field, details))


class SignalService:
    """Signal use-cases over injected repositories."""

    def __init__(
        self,
        signal_repository: SignalRepository,
        user_repository: UserRepository,
        subscription_repository: SignalSubscriptionRepository,
        geofence_repository: GeofenceRepository,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.signals = signal_repository
        self.users = user_repository
        self.subscriptions = subscription_repository
        self.geofences = geofence_repository
        self.clock = clock or utc_now
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex)

    async def create_signal(self, data: NewSignal) -> Result[Signal]:
        """
        Create a signal after field validation and the owner's tier quotas.

        Quota failures are reported together: the Err carries the first
        failure and ``details["failures"]`` lists all of them.
        """
        result = build_signal(data, SignalId(self.id_factory()), self.clock())
        if not result.ok:
            return result
        signal = result.value

        owner = await self.users.get_by_id(signal.owner_id)
        if owner is None:
            return err(ErrorCode.USER_NOT_FOUND, "User not found.", field="owner_id")

        allowed = await self._check_target_and_quota(signal, owner)
        if not allowed.ok:
            return allowed

        await self.signals.save(signal)
        logger.debug("Created signal %s for %s", signal.id, signal.owner_id)
        return ok(signal)

    async def _check_target_and_quota(self, signal: Signal, owner: User) -> Result[None]:
        """
        Resolve a geofence target and run the owner's tier quotas.

        A geofence target whose geofence does not exist fails with
        ``signal.geofence_required``.
        """
        geofence = None
        if isinstance(signal.target, GeofenceTarget):
            geofence = await self.geofences.get_by_id(signal.target.geofence_id)
            if geofence is None:
                return err(
                    ErrorCode.SIGNAL_GEOFENCE_REQUIRED,
                    f"Geofence {signal.target.geofence_id} not found.",
                    field="target",
                )

        report = validate_signal_quota(
            signal.target, signal.conditions, owner.membership_tier, geofence
        )
        if not report.passed:
            logger.debug(
                "Signal quota check failed for %s: %d failures",
                owner.id,
                len(report.failures),
            )
            return _quota_error(report.failures)
        return ok(None)

    async def update_signal(
        self,
        signal_id: SignalId,
        update: SignalUpdate,
        user_id: UserId,
    ) -> Result[Signal]:
        """Owner-only update. Target and condition changes are re-checked against quotas."""
        existing = await self.signals.get_by_id(signal_id)
        if existing is None:
            return err(ErrorCode.SIGNAL_NOT_FOUND, "Signal not found.")

        if existing.owner_id != user_id:
            return err(
                ErrorCode.SIGNAL_UNAUTHORIZED,
                "You do not have permission to update this signal.",
            )

        result = apply_update(existing, update, self.clock())
        if not result.ok:
            return result
        updated = result.value

        if update.target is not None or update.conditions is not None:
            owner = await self.users.get_by_id(user_id)
            if owner is None:
                return err(ErrorCode.USER_NOT_FOUND, "User not found.", field="user_id")
            allowed = await self._check_target_and_quota(updated, owner)
            if not allowed.ok:
                return allowed

        await self.signals.save(updated)
        return ok(updated)

    async def classify_signal(
        self,
        signal_id: SignalId,
        classification: SignalClassification | str,
        user_id: UserId,
    ) -> Result[Signal]:
        """Change a signal's classification. Administrators only."""
        user = await self.users.get_by_id(user_id)
        if user is None:
            return err(ErrorCode.USER_NOT_FOUND, "User not found.")

        if user.role != UserRole.ADMIN:
            return err(
                ErrorCode.SIGNAL_UNAUTHORIZED,
                "Only administrators can classify signals.",
            )

        signal = await self.signals.get_by_id(signal_id)
        if signal is None:
            return err(ErrorCode.SIGNAL_NOT_FOUND, "Signal not found.")

        try:
            value = SignalClassification(classification)
        except ValueError:
            valid = ", ".join(c.value for c in SignalClassification)
            return err(
                ErrorCode.SIGNAL_INVALID_CLASSIFICATION,
                f"Invalid classification. Must be one of: {valid}",
                field="classification",
            )

        updated = signal.model_copy(update={"classification": value, "updated_at": self.clock()})
        await self.signals.save(updated)
        logger.info("Signal %s classified as %s by %s", signal_id, value.value, user_id)
        return ok(updated)

    async def subscribe(
        self,
        signal_id: SignalId,
        user_id: UserId,
        delivery_method: DeliveryMethod = "in_app",
    ) -> Result[SignalSubscription]:
        if delivery_method not in DELIVERY_METHODS:
            valid = ", ".join(DELIVERY_METHODS)
            return err(
                ErrorCode.SIGNAL_INVALID_DELIVERY_METHOD,
                f"Invalid delivery method. Must be one of: {valid}",
                field="delivery_method",
            )

        signal = await self.signals.get_by_id(signal_id)
        if signal is None:
            return err(ErrorCode.SIGNAL_NOT_FOUND, "Signal not found.")

        if not signal.is_active:
            return err(ErrorCode.SIGNAL_NOT_ACTIVE, "Cannot subscribe to an inactive signal.")

        if await self.subscriptions.get_for_user(user_id, signal_id) is not None:
            return err(
                ErrorCode.SIGNAL_ALREADY_SUBSCRIBED,
                "Already subscribed to this signal.",
            )

        subscription = SignalSubscription(
            id=SubscriptionId(self.id_factory()),
            signal_id=signal_id,
            user_id=user_id,
            delivery_method=delivery_method,
            created_at=self.clock(),
        )
        await self.subscriptions.save(subscription)
        return ok(subscription)

    async def unsubscribe(self, signal_id: SignalId, user_id: UserId) -> Result[None]:
        if await self.subscriptions.get_for_user(user_id, signal_id) is None:
            return err(ErrorCode.SIGNAL_NOT_SUBSCRIBED, "Not subscribed to this signal.")

        await self.subscriptions.delete(user_id, signal_id)
        return ok(None)
