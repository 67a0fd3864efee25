"""
SightSignal Error Codes and Exceptions.

Domain failures travel as Result values carrying a DomainError with one of the
stable codes below. Exceptions are reserved for the process edge (CLI dataset
loading) and for unwrapping a Result that was not checked.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes returned inside DomainError."""

    # Signals
    SIGNAL_NOT_FOUND = "signal.not_found"
    SIGNAL_UNAUTHORIZED = "signal.unauthorized"
    SIGNAL_NOT_ACTIVE = "signal.not_active"
    SIGNAL_ALREADY_SUBSCRIBED = "signal.already_subscribed"
    SIGNAL_NOT_SUBSCRIBED = "signal.not_subscribed"
    SIGNAL_NAME_REQUIRED = "signal.name_required"
    SIGNAL_NAME_TOO_LONG = "signal.name_too_long"
    SIGNAL_DESCRIPTION_TOO_LONG = "signal.description_too_long"
    SIGNAL_OWNER_REQUIRED = "signal.owner_required"
    SIGNAL_TRIGGERS_REQUIRED = "signal.triggers_required"
    SIGNAL_TOO_MANY_TRIGGERS = "signal.too_many_triggers"
    SIGNAL_DUPLICATE_TRIGGERS = "signal.duplicate_triggers"
    SIGNAL_TOO_MANY_CATEGORIES = "signal.too_many_categories"
    SIGNAL_TOO_MANY_TYPES = "signal.too_many_types"
    SIGNAL_TOO_MANY_TAGS = "signal.too_many_tags"
    SIGNAL_INVALID_SCORE_RANGE = "signal.invalid_score_range"
    SIGNAL_GEOFENCE_REQUIRED = "signal.geofence_required"
    SIGNAL_INVALID_CLASSIFICATION = "signal.invalid_classification"
    SIGNAL_INVALID_DELIVERY_METHOD = "signal.invalid_delivery_method"

    # Geography
    GEO_INVALID_POLYGON = "geo.invalid_polygon"
    GEO_INVALID_LAT = "geo.invalid_lat"
    GEO_INVALID_LNG = "geo.invalid_lng"

    # Membership quotas
    MEMBERSHIP_GEOFENCE_AREA_EXCEEDED = "membership.geofence_area_exceeded"
    MEMBERSHIP_POLYGON_POINTS_EXCEEDED = "membership.polygon_points_exceeded"
    MEMBERSHIP_SIGHTING_TYPES_EXCEEDED = "membership.sighting_types_exceeded"
    MEMBERSHIP_GLOBAL_SIGNAL_NOT_ALLOWED = "membership.global_signal_not_allowed"

    # Reactions
    REACTION_INVALID_TYPE = "reaction.invalid_type"
    REACTION_CANNOT_REACT_TO_OWN = "reaction.cannot_react_to_own"

    # Missing entities
    USER_NOT_FOUND = "user.not_found"
    SIGHTING_NOT_FOUND = "sighting.not_found"


class SightSignalError(Exception):
    """Base exception for SightSignal operations."""

    code: str = "SIGHTSIGNAL_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the CLI error payload."""
        return {"error": self.code, "message": str(self)}


class ResultError(SightSignalError):
    """Raised when unwrapping an Err result."""

    def __init__(self, error: Any):
        self.error = error
        self.code = getattr(error, "code", self.code)
        super().__init__(getattr(error, "message", str(error)))


class DatasetError(SightSignalError):
    """Raised when a CLI dataset file cannot be loaded."""

    code = "dataset.invalid"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load dataset {path}: {reason}")
