"""Uniform success/failure results returned by mutating operations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """Outcome of a mutation: either a value or an error message."""

    success: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> OperationResult[T]:
        """Build a successful result carrying ``value``."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> OperationResult[T]:
        """Build a failed result carrying a human readable ``error``."""
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Return the carried value, raising when the operation failed."""
        if not self.success or self.value is None:
            raise ValueError(self.error or "Operation produced no value")
        return self.value

    def as_payload(self, key: str) -> dict[str, Any]:
        """Render in the ``{"success": ..., key or "error": ...}`` payload shape."""
        if not self.success:
            return {"success": False, "error": self.error}
        value: Any = self.value
        if is_dataclass(value) and not isinstance(value, type):
            value = asdict(value)
        return {"success": True, key: value}


__all__ = ["OperationResult"]
