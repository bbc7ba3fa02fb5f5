"""Structured outcome of a store or session operation."""

from dataclasses import dataclass
from typing import Any, Optional

from models.enums import ErrorReason


@dataclass(frozen=True)
class OpResult:
    """Success or failure of one operation.

    ``stale`` is set when the write itself succeeded but reloading the
    affected collection failed, so the cache still shows the old data.
    """
    ok: bool
    value: Any = None
    reason: Optional[ErrorReason] = None
    message: str = ""
    stale: bool = False

    @classmethod
    def success(cls, value: Any = None, stale: bool = False) -> "OpResult":
        return cls(ok=True, value=value, stale=stale)

    @classmethod
    def failure(cls, reason: ErrorReason, message: str) -> "OpResult":
        return cls(ok=False, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.ok
