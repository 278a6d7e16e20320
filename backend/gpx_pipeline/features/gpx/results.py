"""
Tagged stage results.

Degradable pipeline stages return a StageResult instead of raising, so the
orchestrator decides explicitly whether to continue or abort:

    OK        - value is complete
    DEGRADED  - value is usable but partial (reason says why)
    FATAL     - no usable value, error holds the cause
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class StageOutcome(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one pipeline stage."""

    outcome: StageOutcome
    value: Optional[T] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def ok(cls, value: T) -> "StageResult[T]":
        return cls(StageOutcome.OK, value)

    @classmethod
    def degraded(cls, value: T, reason: str) -> "StageResult[T]":
        return cls(StageOutcome.DEGRADED, value, reason)

    @classmethod
    def fatal(cls, error: BaseException) -> "StageResult[T]":
        return cls(StageOutcome.FATAL, None, str(error), error)

    @property
    def is_ok(self) -> bool:
        return self.outcome is StageOutcome.OK

    @property
    def is_degraded(self) -> bool:
        return self.outcome is StageOutcome.DEGRADED

    @property
    def is_fatal(self) -> bool:
        return self.outcome is StageOutcome.FATAL

    def unwrap(self) -> T:
        """Return the value, re-raising the captured error for FATAL."""
        if self.is_fatal:
            if self.error is not None:
                raise self.error
            raise RuntimeError(self.reason or "stage failed")
        return self.value
