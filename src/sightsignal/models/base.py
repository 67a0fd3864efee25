"""
Base model for SightSignal entities.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


class SightSignalModel(BaseModel):
    """
    Base model for domain entities.

    Configuration:
    - frozen: Prevents accidental mutation, enables hashing
    - extra="forbid": Catches typos in field names during construction
    """

    model_config = ConfigDict(frozen=True, extra="forbid")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
