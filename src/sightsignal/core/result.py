"""
Result values for domain operations.

Every engine and validator returns ``Ok(value)`` or ``Err(DomainError)``
instead of raising. Callers branch on ``result.ok``:

    result = validate_geofence_area(30, MembershipTier.FREE)
    if not result.ok:
        print(result.error.code, result.error.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar, Union

from .errors import ErrorCode, ResultError

T = TypeVar("T")


@dataclass(frozen=True)
class DomainError:
    """Error payload: stable code, human message, optional offending field."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field:
            data["field"] = self.field
        if self.details:
            data["details"] = self.details
        return data


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    value: T

    @property
    def ok(self) -> Literal[True]:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed result."""

    error: DomainError

    @property
    def ok(self) -> Literal[False]:
        return False

    def unwrap(self) -> Any:
        raise ResultError(self.error)


Result = Union[Ok[T], Err]


def ok(value: T = None) -> Ok[T]:  # type: ignore[assignment]
    """Wrap a value in Ok."""
    return Ok(value)


def err(
    code: ErrorCode | str,
    message: str,
    field: str | None = None,
    details: dict[str, Any] | None = None,
) -> Err:
    """Build an Err from a code and message."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    return Err(DomainError(code=code_value, message=message, field=field, details=details))
