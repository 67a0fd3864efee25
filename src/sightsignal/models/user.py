"""
User-side models: accounts, reputation, privacy settings and preferences.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from .base import SightSignalModel
from .ids import CategoryId, SignalId, UserId, preference_key


class MembershipTier(str, Enum):
    """Account level governing quota limits."""

    FREE = "free"
    PAID = "paid"
    ADMIN = "admin"


class UserRole(str, Enum):
    """Authorization role."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class ReputationTier(str, Enum):
    """Ordinal trust tier of a sighting reporter."""

    UNVERIFIED = "unverified"
    NEW = "new"
    TRUSTED = "trusted"
    VERIFIED = "verified"

    @property
    def rank(self) -> int:
        """Ordinal position, unverified = 0 .. verified = 3."""
        return _TIER_ORDER[self]


_TIER_ORDER = {
    ReputationTier.UNVERIFIED: 0,
    ReputationTier.NEW: 1,
    ReputationTier.TRUSTED: 2,
    ReputationTier.VERIFIED: 3,
}


class User(SightSignalModel):
    id: UserId
    email: str
    username: str | None = None
    role: UserRole = UserRole.USER
    membership_tier: MembershipTier = MembershipTier.FREE


class UserReputation(SightSignalModel):
    """Accumulated reputation; is_verified is assigned out-of-band by admins."""

    user_id: UserId
    score: int = Field(default=0, ge=0)
    is_verified: bool = False


class UserPrivacySettings(SightSignalModel):
    """Opt-in data usage flags. Every flag defaults to off."""

    user_id: UserId
    enable_personalization: bool = False
    enable_view_tracking: bool = False
    enable_location_sharing: bool = False


class UserCategoryInteraction(SightSignalModel):
    """Per-user, per-category engagement counters."""

    user_id: UserId
    category_id: CategoryId
    click_count: int = Field(default=0, ge=0)
    subscription_count: int = Field(default=0, ge=0)
    last_interaction: datetime | None = None

    @property
    def interaction_score(self) -> int:
        """Subscriptions weigh twice as much as clicks."""
        return self.click_count + self.subscription_count * 2


class UserSignalPreference(SightSignalModel):
    """A user's hide/pin/unimportant flags for one signal."""

    user_id: UserId
    signal_id: SignalId
    is_hidden: bool = False
    is_pinned: bool = False
    is_unimportant: bool = False
    custom_rank: int | None = Field(default=None, ge=0)

    @property
    def key(self) -> str:
        return preference_key(self.user_id, self.signal_id)
