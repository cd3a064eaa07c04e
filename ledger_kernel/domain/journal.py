"""
Journal entry aggregate (``ledger_kernel.domain.journal``).

Responsibility
--------------
The double-entry journal entry: header + ordered lines, the balancing
invariant, the approval lifecycle state machine and the optimistic
version token.  Every mutation is a pure function returning a new
``JournalEntry`` wrapped in a ``Result``; nothing is mutated in place.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  Timestamps are
passed in by the caller (from an injected Clock).

Invariants enforced
-------------------
* Every line has exactly one of debit/credit, strictly positive.
* Line numbers are unique and form the contiguous sequence ``1..N``.
* ``sum(debits) == sum(credits)`` whenever status is not DRAFT, checked
  at construction and again on every transition out of DRAFT.
* ``JOURNAL_TRANSITIONS`` defines the only legal status changes.
  CONFIRMED has no outgoing edges; edits and deletes are DRAFT-only.
* ``version`` is never changed here.  Only the store bumps it, at the
  moment a save commits.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable

from ledger_kernel.domain.result import Result, attempt
from ledger_kernel.domain.values import AccountId, JournalEntryId, Money, ZERO
from ledger_kernel.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    CONFIRMED = "confirmed"


class JournalAction(str, Enum):
    """Actions that drive the journal entry state machine."""

    EDIT = "edit"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    CONFIRM = "confirm"
    DELETE = "delete"


JOURNAL_TRANSITIONS: dict[JournalEntryStatus, dict[JournalAction, JournalEntryStatus]] = {
    JournalEntryStatus.DRAFT: {
        JournalAction.EDIT: JournalEntryStatus.DRAFT,
        JournalAction.SUBMIT: JournalEntryStatus.PENDING_APPROVAL,
    },
    JournalEntryStatus.PENDING_APPROVAL: {
        JournalAction.APPROVE: JournalEntryStatus.APPROVED,
        # Rejection hands authoring control back to the creator
        JournalAction.REJECT: JournalEntryStatus.DRAFT,
    },
    JournalEntryStatus.APPROVED: {
        JournalAction.CONFIRM: JournalEntryStatus.CONFIRMED,
    },
    JournalEntryStatus.CONFIRMED: {},
}

DELETABLE_STATUSES: frozenset[JournalEntryStatus] = frozenset({JournalEntryStatus.DRAFT})

# Only confirmed entries feed the ledger aggregation engine
REPORTABLE_STATUSES: frozenset[JournalEntryStatus] = frozenset({JournalEntryStatus.CONFIRMED})


def allowed_predecessors(status: JournalEntryStatus) -> frozenset[JournalEntryStatus]:
    """Statuses from which a save may legally arrive at ``status``."""
    return frozenset(
        source
        for source, edges in JOURNAL_TRANSITIONS.items()
        if status in edges.values()
    )


def _as_money(value: Money | Decimal | int | str | None) -> Money | None:
    if value is None or isinstance(value, Money):
        return value
    return Money.of(value)


@dataclass(frozen=True)
class JournalEntryLine:
    """
    One debit or credit movement against a single account.

    Contract: exactly one of ``debit_amount``/``credit_amount`` is set and it
    is strictly positive; the other is None (never zero).
    """

    line_number: int
    account_id: AccountId
    debit_amount: Money | None = None
    credit_amount: Money | None = None
    description: str | None = None
    sub_account_code: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.line_number, bool) or not isinstance(self.line_number, int):
            raise ValidationError("invalid_line_number", line_number=self.line_number)
        if self.line_number < 1:
            raise ValidationError("invalid_line_number", line_number=self.line_number)
        if isinstance(self.account_id, int):
            object.__setattr__(self, "account_id", AccountId(self.account_id))
        elif not isinstance(self.account_id, AccountId):
            raise ValidationError("invalid_account_id", line_number=self.line_number)
        object.__setattr__(self, "debit_amount", _as_money(self.debit_amount))
        object.__setattr__(self, "credit_amount", _as_money(self.credit_amount))

        if (self.debit_amount is None) == (self.credit_amount is None):
            raise ValidationError(
                "debit_xor_credit",
                "Exactly one of debit or credit must be set",
                line_number=self.line_number,
            )
        if not self.amount.is_positive:
            raise ValidationError(
                "non_positive_amount",
                f"Line {self.line_number} amount must be positive",
                line_number=self.line_number,
            )

    @classmethod
    def debit(
        cls,
        line_number: int,
        account_id: AccountId | int,
        amount: Money | Decimal | int | str,
        description: str | None = None,
        sub_account_code: str | None = None,
    ) -> JournalEntryLine:
        return cls(
            line_number, account_id, debit_amount=_as_money(amount),
            description=description, sub_account_code=sub_account_code,
        )

    @classmethod
    def credit(
        cls,
        line_number: int,
        account_id: AccountId | int,
        amount: Money | Decimal | int | str,
        description: str | None = None,
        sub_account_code: str | None = None,
    ) -> JournalEntryLine:
        return cls(
            line_number, account_id, credit_amount=_as_money(amount),
            description=description, sub_account_code=sub_account_code,
        )

    @property
    def is_debit(self) -> bool:
        return self.debit_amount is not None

    @property
    def amount(self) -> Money:
        return self.debit_amount if self.debit_amount is not None else self.credit_amount  # type: ignore[return-value]


def check_line_numbers(lines: Iterable[JournalEntryLine]) -> ValidationError | None:
    """Return the first line-numbering violation, or None."""
    numbers = [line.line_number for line in lines]
    seen: set[int] = set()
    for number in numbers:
        if number in seen:
            return ValidationError("duplicate_line_number", line_number=number)
        seen.add(number)
    expected = list(range(1, len(numbers) + 1))
    if sorted(numbers) != expected:
        return ValidationError(
            "non_sequential_line_number",
            f"Line numbers must be 1..{len(numbers)}, got {sorted(numbers)}",
            line_numbers=tuple(sorted(numbers)),
        )
    return None


def line_totals(lines: Iterable[JournalEntryLine]) -> tuple[Decimal, Decimal]:
    debits = ZERO
    credits = ZERO
    for line in lines:
        if line.is_debit:
            debits += line.amount.amount
        else:
            credits += line.amount.amount
    return debits, credits


@dataclass(frozen=True)
class JournalEntry:
    """
    Journal entry header + lines.

    Contract:
        Instances always satisfy the line invariants and, outside DRAFT, the
        balance invariant -- construction raises ValidationError otherwise.
        Use the Result-returning methods for expected failures.

    Guarantees:
        - Immutable; every method returns a new instance.
        - ``lines`` is a tuple sorted by line_number.
        - ``id`` is None until the store assigns one.
    """

    journal_date: date
    description: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    status: JournalEntryStatus = JournalEntryStatus.DRAFT
    version: int = 0
    lines: tuple[JournalEntryLine, ...] = field(default_factory=tuple)
    id: JournalEntryId | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.journal_date, date):
            raise ValidationError("invalid_journal_date")
        if not self.description or not self.description.strip():
            raise ValidationError("blank_description", "Description is required")
        if not self.created_by or not str(self.created_by).strip():
            raise ValidationError("blank_created_by", "Creator is required")
        if not isinstance(self.status, JournalEntryStatus):
            object.__setattr__(self, "status", JournalEntryStatus(self.status))
        if isinstance(self.id, int):
            object.__setattr__(self, "id", JournalEntryId(self.id))
        if self.version < 0:
            raise ValidationError("invalid_version", version=self.version)

        ordered = tuple(sorted(self.lines, key=lambda line: line.line_number))
        object.__setattr__(self, "lines", ordered)
        numbering_error = check_line_numbers(ordered)
        if numbering_error is not None:
            raise numbering_error
        if self.status != JournalEntryStatus.DRAFT:
            self._require_balanced()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        journal_date: date,
        description: str,
        created_by: str,
        now: datetime,
        lines: Iterable[JournalEntryLine] = (),
    ) -> Result[JournalEntry]:
        """New DRAFT entry at version 0."""
        return attempt(lambda: cls(
            journal_date=journal_date,
            description=description,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            lines=tuple(lines),
        ))

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    @property
    def total_debits(self) -> Money:
        return Money(line_totals(self.lines)[0])

    @property
    def total_credits(self) -> Money:
        return Money(line_totals(self.lines)[1])

    @property
    def difference(self) -> Decimal:
        debits, credits = line_totals(self.lines)
        return abs(debits - credits)

    @property
    def is_balanced(self) -> bool:
        debits, credits = line_totals(self.lines)
        return debits == credits

    @property
    def is_editable(self) -> bool:
        return JournalAction.EDIT in JOURNAL_TRANSITIONS[self.status]

    def _require_balanced(self) -> None:
        if not self.lines:
            raise ValidationError("no_lines", "Journal entry has no lines")
        debits, credits = line_totals(self.lines)
        if debits != credits:
            raise ValidationError.unbalanced(debits, credits)

    # ------------------------------------------------------------------
    # DRAFT edits
    # ------------------------------------------------------------------

    def _edit(self, now: datetime | None, **changes) -> Result[JournalEntry]:
        if not self.is_editable:
            return Result.failure(
                InvalidStateError(self.id, self.status.value, JournalAction.EDIT.value)
            )
        if now is not None:
            changes["updated_at"] = now
        return attempt(lambda: replace(self, **changes))

    def add_line(self, line: JournalEntryLine, now: datetime | None = None) -> Result[JournalEntry]:
        return self._edit(now, lines=self.lines + (line,))

    def remove_line(self, line_number: int, now: datetime | None = None) -> Result[JournalEntry]:
        """Drop one line and renumber the following lines to keep 1..N."""
        if not self.is_editable:
            return Result.failure(
                InvalidStateError(self.id, self.status.value, JournalAction.EDIT.value)
            )
        if not any(line.line_number == line_number for line in self.lines):
            return Result.failure(NotFoundError("JournalEntryLine", line_number))
        remaining = tuple(
            replace(line, line_number=line.line_number - 1)
            if line.line_number > line_number else line
            for line in self.lines
            if line.line_number != line_number
        )
        return self._edit(now, lines=remaining)

    def with_lines(self, lines: Iterable[JournalEntryLine], now: datetime | None = None) -> Result[JournalEntry]:
        return self._edit(now, lines=tuple(lines))

    def with_description(self, description: str, now: datetime | None = None) -> Result[JournalEntry]:
        return self._edit(now, description=description)

    def with_journal_date(self, journal_date: date, now: datetime | None = None) -> Result[JournalEntry]:
        return self._edit(now, journal_date=journal_date)

    def check_deletable(self) -> Result[JournalEntry]:
        if self.status not in DELETABLE_STATUSES:
            return Result.failure(
                InvalidStateError(self.id, self.status.value, JournalAction.DELETE.value)
            )
        return Result.success(self)

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def _refusal(self, action: JournalAction) -> InvalidStateError | None:
        """The error for an action the current status does not allow, else None."""
        if action not in JOURNAL_TRANSITIONS[self.status]:
            return InvalidStateError(self.id, self.status.value, action.value)
        return None

    def _transition(
        self,
        action: JournalAction,
        now: datetime,
        **changes,
    ) -> Result[JournalEntry]:
        refusal = self._refusal(action)
        if refusal is not None:
            return Result.failure(refusal)
        target = JOURNAL_TRANSITIONS[self.status][action]
        # Leaving DRAFT (or landing anywhere but DRAFT) re-checks balance
        return attempt(lambda: replace(self, status=target, updated_at=now, **changes))

    def submit_for_approval(self, now: datetime) -> Result[JournalEntry]:
        return self._transition(JournalAction.SUBMIT, now)

    def approve(self, approver_id: str, now: datetime) -> Result[JournalEntry]:
        refusal = self._refusal(JournalAction.APPROVE)
        if refusal is not None:
            return Result.failure(refusal)
        if not approver_id or not str(approver_id).strip():
            return Result.failure(ValidationError("blank_approver"))
        return self._transition(
            JournalAction.APPROVE, now, approved_by=approver_id, approved_at=now,
        )

    def reject(self, rejector_id: str, reason: str, now: datetime) -> Result[JournalEntry]:
        refusal = self._refusal(JournalAction.REJECT)
        if refusal is not None:
            return Result.failure(refusal)
        if not reason or not reason.strip():
            return Result.failure(ValidationError("blank_rejection_reason"))
        if not rejector_id or not str(rejector_id).strip():
            return Result.failure(ValidationError("blank_rejector"))
        return self._transition(
            JournalAction.REJECT, now,
            rejected_by=rejector_id, rejected_at=now, rejection_reason=reason,
            approved_by=None, approved_at=None,
        )

    def confirm(self, confirmer_id: str, now: datetime) -> Result[JournalEntry]:
        refusal = self._refusal(JournalAction.CONFIRM)
        if refusal is not None:
            return Result.failure(refusal)
        if not confirmer_id or not str(confirmer_id).strip():
            return Result.failure(ValidationError("blank_confirmer"))
        return self._transition(
            JournalAction.CONFIRM, now, confirmed_by=confirmer_id, confirmed_at=now,
        )

    # ------------------------------------------------------------------
    # Persistence guard
    # ------------------------------------------------------------------

    def validate_for_save(self) -> Result[JournalEntry]:
        """Re-check every invariant before a store writes this value."""
        numbering_error = check_line_numbers(self.lines)
        if numbering_error is not None:
            return Result.failure(numbering_error)
        if self.status != JournalEntryStatus.DRAFT:
            try:
                self._require_balanced()
            except ValidationError as exc:
                return Result.failure(exc)
        return Result.success(self)
