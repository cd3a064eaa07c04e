"""
Result -- typed success/failure value for every business outcome.

Responsibility:
    Carries either a success payload or a ``BusinessRuleError`` describing
    why the operation was refused.  Commands and queries in the kernel
    return a Result instead of raising for expected conditions.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Failure modes:
    - ``unwrap()`` on a failure raises the carried error (opt-in exception
      style for callers that want it).
    - Constructing a Result with both or neither of value/error is a
      programmer error (ValueError).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from ledger_kernel.exceptions import BusinessRuleError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Success payload OR business error, never both.

    Contract:
        ``error is None`` means success.  A successful Result may carry
        ``None`` as its value (e.g. a delete).

    Guarantees:
        - Immutable (frozen dataclass)
        - ``bool(result) == result.is_success``
    """

    value: T | None = None
    error: BusinessRuleError | None = None

    def __post_init__(self) -> None:
        if self.error is not None and self.value is not None:
            raise ValueError("Result cannot carry both a value and an error")

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: BusinessRuleError) -> Result[T]:
        if not isinstance(error, BusinessRuleError):
            raise TypeError(
                f"Result.failure requires a BusinessRuleError, got {type(error)}"
            )
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def __bool__(self) -> bool:
        return self.is_success

    def unwrap(self) -> T:
        """Return the value, or raise the carried business error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> Result[U]:
        if self.error is not None:
            return Result(error=self.error)
        return Result(value=fn(self.value))  # type: ignore[arg-type]

    def then(self, fn: Callable[[T], Result[U]]) -> Result[U]:
        """Chain another Result-returning step; failures short-circuit."""
        if self.error is not None:
            return Result(error=self.error)
        return fn(self.value)  # type: ignore[arg-type]


def attempt(fn: Callable[[], T]) -> Result[T]:
    """
    Run ``fn`` and capture a raised BusinessRuleError as a failure.

    Used at the service boundary where value constructors (Money,
    JournalEntryLine, ...) raise on invalid input.  Anything that is not a
    business error propagates.
    """
    try:
        return Result.success(fn())
    except BusinessRuleError as exc:
        return Result.failure(exc)
