"""
Journal entry search criteria and the paged result.

Responsibility:
    JournalEntrySearch validates the filter combination once, so stores
    only translate it; JournalEntryPage is what a search returns.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Filter semantics (all given filters must hold):
    - statuses: entry status is one of them; empty means any status.
    - date_from / date_to: inclusive bounds on journal_date.
    - account_id: at least one line posts to the account.
    - amount_from / amount_to: inclusive bounds on the entry's total debits.
    - description: case-insensitive substring of the entry description.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable

from ledger_kernel.domain.journal import JournalEntry, JournalEntryStatus
from ledger_kernel.domain.values import AccountId
from ledger_kernel.exceptions import ValidationError


def _statuses(values: Iterable[JournalEntryStatus | str]) -> tuple[JournalEntryStatus, ...]:
    statuses = []
    for value in values:
        try:
            status = JournalEntryStatus(value)
        except ValueError as e:
            raise ValidationError(
                "invalid_status", f"Unknown journal entry status {value!r}", status=value,
            ) from e
        if status not in statuses:
            statuses.append(status)
    return tuple(statuses)


def _amount(name: str, value: Decimal | int | str | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, (bool, float)):
        raise ValidationError("invalid_amount", f"{name} must be a Decimal", field=name)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError("invalid_amount", f"{name} is not a number", field=name) from e
    if not amount.is_finite() or amount < 0:
        raise ValidationError(
            "invalid_amount", f"{name} must be a non-negative number", field=name,
        )
    return amount


@dataclass(frozen=True)
class JournalEntrySearch:
    """Filters for a journal entry search; every field is optional."""

    statuses: tuple[JournalEntryStatus, ...] = ()
    date_from: date | None = None
    date_to: date | None = None
    account_id: AccountId | None = None
    amount_from: Decimal | None = None
    amount_to: Decimal | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "statuses", _statuses(self.statuses))
        if self.date_from is not None and self.date_to is not None \
                and self.date_from > self.date_to:
            raise ValidationError(
                "invalid_date_range",
                f"date_from {self.date_from} is after date_to {self.date_to}",
                date_from=self.date_from,
                date_to=self.date_to,
            )
        if self.account_id is not None and not isinstance(self.account_id, AccountId):
            object.__setattr__(self, "account_id", AccountId(self.account_id))
        object.__setattr__(self, "amount_from", _amount("amount_from", self.amount_from))
        object.__setattr__(self, "amount_to", _amount("amount_to", self.amount_to))
        if self.amount_from is not None and self.amount_to is not None \
                and self.amount_from > self.amount_to:
            raise ValidationError(
                "invalid_amount_range",
                f"amount_from {self.amount_from} is above amount_to {self.amount_to}",
                amount_from=self.amount_from,
                amount_to=self.amount_to,
            )
        keyword = self.description.strip() if self.description is not None else ""
        object.__setattr__(self, "description", keyword or None)

    @property
    def has_amount_range(self) -> bool:
        return self.amount_from is not None or self.amount_to is not None

    def matches(self, entry: JournalEntry) -> bool:
        """The same filters, applied to an in-memory entry."""
        if self.statuses and entry.status not in self.statuses:
            return False
        if self.date_from is not None and entry.journal_date < self.date_from:
            return False
        if self.date_to is not None and entry.journal_date > self.date_to:
            return False
        if self.account_id is not None and all(
            line.account_id != self.account_id for line in entry.lines
        ):
            return False
        total = entry.total_debits.amount
        if self.amount_from is not None and total < self.amount_from:
            return False
        if self.amount_to is not None and total > self.amount_to:
            return False
        if self.description is not None \
                and self.description.casefold() not in entry.description.casefold():
            return False
        return True


@dataclass(frozen=True)
class JournalEntryPage:
    """One page of search results plus the size of the whole result set."""

    entries: tuple[JournalEntry, ...]
    page: int
    size: int
    total_entries: int

    @property
    def total_pages(self) -> int:
        if self.total_entries == 0:
            return 0
        return (self.total_entries + self.size - 1) // self.size
