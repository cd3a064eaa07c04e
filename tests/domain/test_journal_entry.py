"""
Tests for the JournalEntry aggregate and its lifecycle state machine.

Pure domain: no database, timestamps passed explicitly.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from ledger_kernel.domain.journal import (
    JOURNAL_TRANSITIONS,
    JournalAction,
    JournalEntry,
    JournalEntryLine,
    JournalEntryStatus,
    allowed_predecessors,
)
from ledger_kernel.exceptions import InvalidStateError, NotFoundError, ValidationError

NOW = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)
LATER = datetime(2024, 4, 2, 9, 0, tzinfo=timezone.utc)


def _entry(*lines: JournalEntryLine) -> JournalEntry:
    return JournalEntry.create(date(2024, 4, 1), "Cash sale", "alice", NOW, lines).unwrap()


def _balanced() -> JournalEntry:
    return _entry(
        JournalEntryLine.debit(1, 1, Decimal("500")),
        JournalEntryLine.credit(2, 2, Decimal("500")),
    )


def _approved() -> JournalEntry:
    entry = _balanced().submit_for_approval(NOW).unwrap()
    return entry.approve("bob", NOW).unwrap()


class TestJournalEntryLine:
    """Tests for line construction rules."""

    def test_debit_line(self):
        line = JournalEntryLine.debit(1, 10, "250.00")
        assert line.is_debit
        assert line.amount.amount == Decimal("250.00")
        assert line.credit_amount is None

    def test_both_sides_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            JournalEntryLine(1, 10, debit_amount=Decimal("1"), credit_amount=Decimal("1"))
        assert exc_info.value.reason == "debit_xor_credit"

    def test_neither_side_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            JournalEntryLine(1, 10)
        assert exc_info.value.reason == "debit_xor_credit"

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            JournalEntryLine.credit(1, 10, Decimal("0"))
        assert exc_info.value.reason == "non_positive_amount"

    def test_line_number_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            JournalEntryLine.debit(0, 10, Decimal("1"))
        assert exc_info.value.reason == "invalid_line_number"


class TestCreate:
    """Tests for JournalEntry.create."""

    def test_new_entry_is_draft_at_version_zero(self):
        entry = _entry()
        assert entry.status == JournalEntryStatus.DRAFT
        assert entry.version == 0
        assert entry.id is None
        assert entry.lines == ()
        assert entry.created_at == entry.updated_at == NOW

    def test_blank_description_fails(self):
        result = JournalEntry.create(date(2024, 4, 1), "   ", "alice", NOW)
        assert result.is_failure
        assert result.error.reason == "blank_description"

    def test_lines_are_sorted(self):
        entry = _entry(
            JournalEntryLine.credit(2, 2, Decimal("5")),
            JournalEntryLine.debit(1, 1, Decimal("5")),
        )
        assert [line.line_number for line in entry.lines] == [1, 2]

    def test_draft_may_be_unbalanced(self):
        entry = _entry(JournalEntryLine.debit(1, 1, Decimal("5")))
        assert not entry.is_balanced
        assert entry.difference == Decimal("5")


class TestLineEditing:
    """Tests for add_line / remove_line / with_lines."""

    def test_add_line_in_sequence(self):
        entry = _entry().add_line(JournalEntryLine.debit(1, 1, Decimal("10"))).unwrap()
        assert len(entry.lines) == 1

    def test_duplicate_line_number_rejected(self):
        entry = _entry(JournalEntryLine.debit(1, 1, Decimal("10")))
        result = entry.add_line(JournalEntryLine.credit(1, 2, Decimal("10")))
        assert result.error.reason == "duplicate_line_number"

    def test_gap_in_line_numbers_rejected(self):
        entry = _entry(JournalEntryLine.debit(1, 1, Decimal("10")))
        result = entry.add_line(JournalEntryLine.credit(3, 2, Decimal("10")))
        assert result.error.reason == "non_sequential_line_number"

    def test_remove_line_renumbers(self):
        entry = _entry(
            JournalEntryLine.debit(1, 1, Decimal("10")),
            JournalEntryLine.debit(2, 3, Decimal("5")),
            JournalEntryLine.credit(3, 2, Decimal("15")),
        )
        updated = entry.remove_line(2, LATER).unwrap()
        assert [line.line_number for line in updated.lines] == [1, 2]
        assert updated.lines[1].credit_amount.amount == Decimal("15")
        assert updated.updated_at == LATER

    def test_remove_unknown_line(self):
        result = _balanced().remove_line(9)
        assert isinstance(result.error, NotFoundError)

    def test_edits_do_not_touch_version(self):
        entry = _balanced().with_description("Corrected", LATER).unwrap()
        assert entry.description == "Corrected"
        assert entry.version == 0

    def test_edit_outside_draft_fails(self):
        pending = _balanced().submit_for_approval(NOW).unwrap()
        result = pending.with_description("Too late")
        assert isinstance(result.error, InvalidStateError)
        assert result.error.action == "edit"
        assert result.error.status == "pending_approval"

    def test_remove_line_outside_draft_reports_state(self):
        pending = _balanced().submit_for_approval(NOW).unwrap()
        for line_number in (1, 9):
            result = pending.remove_line(line_number)
            assert isinstance(result.error, InvalidStateError)
            assert result.error.action == "edit"


class TestLifecycle:
    """Tests for the approval state machine."""

    def test_happy_path(self):
        entry = _approved().confirm("carol", LATER).unwrap()
        assert entry.status == JournalEntryStatus.CONFIRMED
        assert entry.approved_by == "bob"
        assert entry.confirmed_by == "carol"
        assert entry.confirmed_at == LATER

    def test_submit_unbalanced_fails(self):
        entry = _entry(
            JournalEntryLine.debit(1, 1, Decimal("1000")),
            JournalEntryLine.credit(2, 2, Decimal("900")),
        )
        result = entry.submit_for_approval(NOW)
        assert result.is_failure
        assert result.error.reason == "unbalanced"
        assert result.error.difference == Decimal("100")
        assert entry.status == JournalEntryStatus.DRAFT

    def test_submit_without_lines_fails(self):
        result = _entry().submit_for_approval(NOW)
        assert result.error.reason == "no_lines"

    def test_reject_returns_to_draft(self):
        pending = _balanced().submit_for_approval(NOW).unwrap()
        rejected = pending.reject("bob", "Wrong account", LATER).unwrap()
        assert rejected.status == JournalEntryStatus.DRAFT
        assert rejected.rejected_by == "bob"
        assert rejected.rejected_at == LATER
        assert rejected.rejection_reason == "Wrong account"

    def test_reject_requires_reason(self):
        pending = _balanced().submit_for_approval(NOW).unwrap()
        result = pending.reject("bob", " ", LATER)
        assert result.error.reason == "blank_rejection_reason"

    def test_confirm_requires_approval(self):
        pending = _balanced().submit_for_approval(NOW).unwrap()
        result = pending.confirm("carol", NOW)
        assert isinstance(result.error, InvalidStateError)
        assert result.error.action == "confirm"

    def test_confirmed_is_terminal(self):
        confirmed = _approved().confirm("carol", NOW).unwrap()
        for attempt_result in (
            confirmed.submit_for_approval(NOW),
            confirmed.approve("bob", NOW),
            confirmed.reject("bob", "x", NOW),
            confirmed.confirm("carol", NOW),
            confirmed.with_description("edit"),
            confirmed.check_deletable(),
        ):
            assert isinstance(attempt_result.error, InvalidStateError)

    @pytest.mark.parametrize(
        "act",
        [
            lambda entry: entry.reject("bob", " ", NOW),
            lambda entry: entry.reject("", "Wrong account", NOW),
            lambda entry: entry.approve("", NOW),
        ],
        ids=["blank_reason", "blank_rejector", "blank_approver"],
    )
    def test_state_checked_before_arguments(self, act):
        confirmed = _approved().confirm("carol", NOW).unwrap()
        result = act(confirmed)
        assert isinstance(result.error, InvalidStateError)
        assert result.error.status == "confirmed"

    def test_confirm_draft_with_blank_confirmer_reports_state(self):
        result = _balanced().confirm(" ", NOW)
        assert isinstance(result.error, InvalidStateError)
        assert result.error.action == "confirm"

    def test_only_draft_is_deletable(self):
        assert _balanced().check_deletable().is_success
        assert _approved().check_deletable().is_failure

    def test_non_draft_construction_requires_balance(self):
        with pytest.raises(ValidationError):
            JournalEntry(
                journal_date=date(2024, 4, 1),
                description="Broken",
                created_by="alice",
                created_at=NOW,
                updated_at=NOW,
                status=JournalEntryStatus.APPROVED,
                lines=(JournalEntryLine.debit(1, 1, Decimal("5")),),
            )


class TestTransitionTable:
    """Tests for the transition mapping itself."""

    def test_confirmed_has_no_edges(self):
        assert JOURNAL_TRANSITIONS[JournalEntryStatus.CONFIRMED] == {}

    def test_reject_target_is_draft(self):
        edges = JOURNAL_TRANSITIONS[JournalEntryStatus.PENDING_APPROVAL]
        assert edges[JournalAction.REJECT] == JournalEntryStatus.DRAFT

    def test_allowed_predecessors(self):
        assert allowed_predecessors(JournalEntryStatus.DRAFT) == {
            JournalEntryStatus.DRAFT,
            JournalEntryStatus.PENDING_APPROVAL,
        }
        assert allowed_predecessors(JournalEntryStatus.CONFIRMED) == {
            JournalEntryStatus.APPROVED,
        }


class TestValidateForSave:
    def test_balanced_draft_passes(self):
        assert _balanced().validate_for_save().is_success

    def test_unbalanced_draft_passes(self):
        assert _entry(JournalEntryLine.debit(1, 1, Decimal("5"))).validate_for_save().is_success
