"""
Auto-journal patterns and the generator that turns them into entries.

Responsibility:
    An AutoJournalPattern is a reusable template: one item per journal line,
    each naming a side (D/C), an account code, an amount formula and an
    optional description template.  ``generate`` evaluates the formulas
    against caller-supplied parameters and builds an ordinary DRAFT
    JournalEntry -- exactly the value a user would have entered by hand.

Architecture position:
    Kernel > Domain -- pure.  Account codes are resolved through a
    ``resolve_account`` callable supplied by the service layer.

Failure modes (all returned as Result.failure):
    - ValidationError("inactive_pattern" | "empty_pattern" |
      "unknown_account" | "unbalanced" | "non_positive_amount")
    - FormulaEvaluationError for a bad formula, a missing parameter, a
      division by zero or an out-of-range result.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Iterable, Mapping

from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.formula import evaluate_formula, parse_formula, render_template
from ledger_kernel.domain.journal import JournalEntry, JournalEntryLine, check_line_numbers
from ledger_kernel.domain.result import Result, attempt
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import BusinessRuleError, ValidationError

AccountResolver = Callable[[str], "Account | None"]


class DebitCredit(str, Enum):
    DEBIT = "D"
    CREDIT = "C"


@dataclass(frozen=True)
class AutoJournalPatternItem:
    """One line template of a pattern."""

    line_number: int
    debit_credit: DebitCredit
    account_code: str
    amount_formula: str
    description_template: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.debit_credit, DebitCredit):
            try:
                object.__setattr__(self, "debit_credit", DebitCredit(self.debit_credit))
            except ValueError as e:
                raise ValidationError(
                    "invalid_debit_credit", line_number=self.line_number,
                ) from e
        if isinstance(self.line_number, bool) or not isinstance(self.line_number, int) \
                or self.line_number < 1:
            raise ValidationError("invalid_line_number", line_number=self.line_number)
        if not self.account_code or not self.account_code.strip():
            raise ValidationError("blank_account_code", line_number=self.line_number)
        # Fail at definition time, not at first generation
        parse_formula(self.amount_formula)


@dataclass(frozen=True)
class AutoJournalPattern:
    """A named, switchable template for generating journal entries."""

    pattern_code: str
    pattern_name: str
    source_table_name: str
    description: str | None = None
    is_active: bool = True
    items: tuple[AutoJournalPatternItem, ...] = field(default_factory=tuple)
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.pattern_code or not self.pattern_code.strip():
            raise ValidationError("blank_pattern_code")
        if not self.pattern_name or not self.pattern_name.strip():
            raise ValidationError("blank_pattern_name", pattern_code=self.pattern_code)
        if not self.source_table_name or not self.source_table_name.strip():
            raise ValidationError("blank_source_table_name", pattern_code=self.pattern_code)
        ordered = tuple(sorted(self.items, key=lambda item: item.line_number))
        object.__setattr__(self, "items", ordered)
        numbering_error = check_line_numbers(ordered)
        if numbering_error is not None:
            raise numbering_error

    @classmethod
    def create(
        cls,
        pattern_code: str,
        pattern_name: str,
        source_table_name: str,
        description: str | None = None,
        items: Iterable[AutoJournalPatternItem] = (),
    ) -> Result[AutoJournalPattern]:
        return attempt(lambda: cls(
            pattern_code=pattern_code,
            pattern_name=pattern_name,
            source_table_name=source_table_name,
            description=description,
            items=tuple(items),
        ))

    def add_item(self, item: AutoJournalPatternItem) -> Result[AutoJournalPattern]:
        return attempt(lambda: replace(self, items=self.items + (item,)))

    def with_items(self, items: Iterable[AutoJournalPatternItem]) -> Result[AutoJournalPattern]:
        return attempt(lambda: replace(self, items=tuple(items)))

    def activate(self) -> AutoJournalPattern:
        return replace(self, is_active=True)

    def deactivate(self) -> AutoJournalPattern:
        return replace(self, is_active=False)


def _build_line(
    item: AutoJournalPatternItem,
    parameters: Mapping[str, object],
    resolve_account: AccountResolver,
    decimal_places: int,
) -> JournalEntryLine:
    account = resolve_account(item.account_code)
    if account is None or account.id is None:
        raise ValidationError(
            "unknown_account",
            f"Account code {item.account_code!r} not found",
            account_code=item.account_code,
            line_number=item.line_number,
        )
    amount = evaluate_formula(item.amount_formula, parameters, decimal_places)
    if amount <= 0:
        raise ValidationError(
            "non_positive_amount",
            f"Formula {item.amount_formula!r} produced {amount} for line {item.line_number}",
            line_number=item.line_number,
            amount=amount,
        )
    factory = JournalEntryLine.debit if item.debit_credit == DebitCredit.DEBIT else JournalEntryLine.credit
    return factory(
        item.line_number,
        account.id,
        Money(amount),
        description=render_template(item.description_template, parameters),
    )


def generate(
    pattern: AutoJournalPattern,
    parameters: Mapping[str, object],
    journal_date: date,
    created_by: str,
    now: datetime,
    resolve_account: AccountResolver,
    description: str | None = None,
    decimal_places: int = 0,
) -> Result[JournalEntry]:
    """
    Build a DRAFT entry from ``pattern``.

    The entry description defaults to the pattern name.  The result is
    required to balance, so a pattern whose formulas disagree is refused
    instead of producing a DRAFT that can never be submitted.
    """
    if not pattern.is_active:
        return Result.failure(ValidationError(
            "inactive_pattern", f"Pattern {pattern.pattern_code} is inactive",
            pattern_code=pattern.pattern_code,
        ))
    if not pattern.items:
        return Result.failure(ValidationError(
            "empty_pattern", f"Pattern {pattern.pattern_code} has no items",
            pattern_code=pattern.pattern_code,
        ))

    try:
        lines = [
            _build_line(item, parameters, resolve_account, decimal_places)
            for item in pattern.items
        ]
    except BusinessRuleError as exc:
        return Result.failure(exc)

    entry_result = JournalEntry.create(
        journal_date,
        description if description is not None else pattern.pattern_name,
        created_by,
        now,
        lines,
    )
    if entry_result.is_failure:
        return entry_result
    entry = entry_result.value
    if not entry.is_balanced:
        debits, credits = entry.total_debits.amount, entry.total_credits.amount
        return Result.failure(ValidationError.unbalanced(debits, credits))
    return Result.success(entry)
