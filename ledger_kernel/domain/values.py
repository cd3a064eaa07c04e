"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the foundational value types used by the journal aggregate and
    the auto-journal generator: Money, AccountId and JournalEntryId.  These
    replace primitive types (Decimal, int) wherever an amount or identifier
    crosses a domain boundary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module.

Invariants enforced:
    - Money is never negative and never a float.
    - Identifiers are positive integers.

Failure modes:
    - ValidationError on construction with a negative, non-numeric or float
      amount, or a non-positive identifier.

Non-goals:
    - Money carries no currency; multi-currency is out of scope.  Signed
      balances (which can go negative) are plain Decimals in the reporting
      layer, never Money.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger_kernel.exceptions import ValidationError

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class Money:
    """
    Non-negative monetary amount.

    Contract:
        Wraps an arbitrary-precision Decimal.  Construction normalizes int and
        str inputs to Decimal and rejects floats and negative values.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is always a Decimal >= 0
        - Subtraction that would go negative fails instead of wrapping
    """

    amount: Decimal

    def __post_init__(self) -> None:
        # Floats are rejected outright: Decimal(0.1) is not 0.1
        if isinstance(self.amount, float):
            raise ValidationError(
                "invalid_amount", f"Float amounts are not allowed: {self.amount!r}",
                amount=self.amount,
            )
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValidationError(
                    "invalid_amount", f"Invalid amount: {self.amount!r}",
                    amount=self.amount,
                ) from e
        if not self.amount.is_finite():
            raise ValidationError(
                "invalid_amount", f"Amount must be finite: {self.amount}",
                amount=self.amount,
            )
        if self.amount < ZERO:
            raise ValidationError(
                "negative_amount", f"Money cannot be negative: {self.amount}",
                amount=self.amount,
            )

    @classmethod
    def of(cls, amount: Decimal | str | int) -> Money:
        """Factory accepting Decimal, str or int."""
        return cls(amount=amount)  # type: ignore[arg-type]

    @classmethod
    def zero(cls) -> Money:
        return cls(amount=ZERO)

    @property
    def is_zero(self) -> bool:
        return self.amount == ZERO

    @property
    def is_positive(self) -> bool:
        return self.amount > ZERO

    def quantize(self, decimal_places: int, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to ``decimal_places`` (HALF_UP by default)."""
        exponent = Decimal(1).scaleb(-decimal_places)
        return Money(self.amount.quantize(exponent, rounding=rounding))

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount >= other.amount

    def __str__(self) -> str:
        return str(self.amount)

    def __repr__(self) -> str:
        return f"Money({self.amount!r})"


def sum_money(amounts) -> Money:
    """Sum an iterable of Money (empty -> zero)."""
    total = ZERO
    for money in amounts:
        total += money.amount
    return Money(total)


@dataclass(frozen=True, slots=True)
class _PositiveId:
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                "invalid_identifier",
                f"{type(self).__name__} must be an int, got {self.value!r}",
            )
        if self.value < 1:
            raise ValidationError(
                "invalid_identifier",
                f"{type(self).__name__} must be positive, got {self.value}",
            )

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class AccountId(_PositiveId):
    """Surrogate identifier of an Account."""


@dataclass(frozen=True, slots=True)
class JournalEntryId(_PositiveId):
    """Store-assigned identifier of a persisted JournalEntry."""
