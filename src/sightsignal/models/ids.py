"""
Nominal identifier types.

Each identifier is a distinct NewType over str so a type checker rejects
passing a UserId where a SignalId is expected.
"""

from __future__ import annotations

from typing import NewType

SignalId = NewType("SignalId", str)
UserId = NewType("UserId", str)
GeofenceId = NewType("GeofenceId", str)
SightingId = NewType("SightingId", str)
CategoryId = NewType("CategoryId", str)
SightingTypeId = NewType("SightingTypeId", str)
SubscriptionId = NewType("SubscriptionId", str)


def preference_key(user_id: UserId, signal_id: SignalId) -> str:
    """Composite identity of a user/signal preference record."""
    return f"{user_id}:{signal_id}"
