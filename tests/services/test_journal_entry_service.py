"""
Tests for JournalEntryService against the SQL stores.

Covers creation, DRAFT edits, deletion, the approval lifecycle,
optimistic-lock conflicts, audit notifications and structured log events.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from ledger_kernel.domain.journal import JournalEntryLine, JournalEntryStatus
from ledger_kernel.domain.values import AccountId
from ledger_kernel.exceptions import (
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ledger_kernel.models.audit_event import AuditEventModel
from ledger_kernel.services import JournalEntryService
from tests.conftest import TEST_ACTOR_ID

APRIL_1 = date(2024, 4, 1)


class FailingRecorder:
    def record(self, action, entity_type, entity_id, actor_id, payload):
        raise RuntimeError("audit sink unavailable")


@pytest.fixture
def draft(journal_service, make_lines):
    return journal_service.create_entry(
        APRIL_1, "Cash sale", TEST_ACTOR_ID,
        make_lines(("1000", 1000, None), ("4000", None, 1000)),
    ).unwrap()


def _audit_actions(session) -> list[str]:
    return list(session.scalars(select(AuditEventModel.action).order_by(AuditEventModel.id)))


class TestCreateEntry:
    def test_balanced_entry_is_stored_as_draft(self, journal_service, draft):
        assert draft.id is not None
        assert draft.status == JournalEntryStatus.DRAFT
        assert draft.version == 0
        assert draft.is_balanced

        stored = journal_service.get_entry(draft.id).unwrap()
        assert stored.version == 0
        assert stored.created_by == TEST_ACTOR_ID
        assert stored.lines == draft.lines

    def test_unbalanced_draft_may_be_saved(self, journal_service, make_lines):
        result = journal_service.create_entry(
            APRIL_1, "Work in progress", TEST_ACTOR_ID,
            make_lines(("1000", 1000, None), ("4000", None, 900)),
        )
        assert result.is_success
        assert result.value.difference == Decimal("100")

    def test_unknown_account_rejected(self, journal_service, accounts):
        lines = [
            JournalEntryLine.debit(1, accounts["1000"].id, Decimal("10")),
            JournalEntryLine.credit(2, AccountId(9999), Decimal("10")),
        ]
        result = journal_service.create_entry(APRIL_1, "Bad", TEST_ACTOR_ID, lines)
        assert isinstance(result.error, ValidationError)
        assert result.error.reason == "unknown_account"
        assert result.error.line_number == 2

    def test_blank_description_rejected(self, journal_service, accounts):
        result = journal_service.create_entry(APRIL_1, "", TEST_ACTOR_ID)
        assert result.error.reason == "blank_description"

    def test_created_event_logged_and_audited(self, journal_service, make_lines, session, captured_logs):
        entry = journal_service.create_entry(
            APRIL_1, "Logged", TEST_ACTOR_ID, make_lines(("1000", 5, None), ("4000", None, 5)),
        ).unwrap()

        records = [r for r in captured_logs() if r["message"] == "journal_entry_created"]
        assert len(records) == 1
        assert records[0]["entry_id"] == int(entry.id)
        assert records[0]["actor_id"] == TEST_ACTOR_ID
        assert records[0]["line_count"] == 2

        event = session.scalars(select(AuditEventModel)).one()
        assert event.action == "journal_entry_created"
        assert event.entity_id == str(entry.id)
        assert event.payload["total_debits"] == "5"
        assert len(event.payload_hash) == 64


class TestUpdateEntry:
    def test_fields_replaced_and_version_bumped(self, journal_service, draft, make_lines):
        updated = journal_service.update_entry(
            draft.id, draft.version, TEST_ACTOR_ID,
            description="Cash sale (corrected)",
            journal_date=date(2024, 4, 2),
            lines=make_lines(("1000", 250, None), ("4000", None, 250)),
        ).unwrap()
        assert updated.version == 1
        assert updated.description == "Cash sale (corrected)"
        assert updated.journal_date == date(2024, 4, 2)
        assert updated.total_debits.amount == Decimal("250")

        stored = journal_service.get_entry(draft.id).unwrap()
        assert stored.version == 1
        assert len(stored.lines) == 2

    def test_stale_version_leaves_row_untouched(self, journal_service, draft):
        entry = draft
        for n in range(3):
            entry = journal_service.update_entry(
                entry.id, entry.version, TEST_ACTOR_ID, description=f"Revision {n}",
            ).unwrap()
        assert entry.version == 3

        result = journal_service.update_entry(
            draft.id, 2, TEST_ACTOR_ID, description="Lost update",
        )
        assert isinstance(result.error, ConcurrencyError)
        assert result.error.expected_version == 2
        assert result.error.actual_version == 3

        stored = journal_service.get_entry(draft.id).unwrap()
        assert stored.version == 3
        assert stored.description == "Revision 2"

    def test_conflict_logged(self, journal_service, draft, captured_logs):
        journal_service.update_entry(draft.id, 7, TEST_ACTOR_ID, description="x")
        conflicts = [r for r in captured_logs() if r["message"] == "journal_entry_conflict"]
        assert conflicts
        assert conflicts[0]["error_code"] == ConcurrencyError.code
        assert conflicts[0]["level"] == "WARNING"

    def test_non_draft_cannot_be_edited(self, journal_service, draft):
        pending = journal_service.submit_for_approval(draft.id, 0, TEST_ACTOR_ID).unwrap()
        result = journal_service.update_entry(
            pending.id, pending.version, TEST_ACTOR_ID, description="late",
        )
        assert isinstance(result.error, InvalidStateError)
        assert result.error.action == "edit"

    def test_lines_with_unknown_account(self, journal_service, draft):
        result = journal_service.update_entry(
            draft.id, 0, TEST_ACTOR_ID,
            lines=[JournalEntryLine.debit(1, AccountId(4242), Decimal("1"))],
        )
        assert result.error.reason == "unknown_account"

    def test_missing_entry(self, journal_service, accounts):
        result = journal_service.update_entry(999, 0, TEST_ACTOR_ID, description="x")
        assert isinstance(result.error, NotFoundError)


class TestDeleteEntry:
    def test_draft_deleted(self, journal_service, draft):
        assert journal_service.delete_entry(draft.id, 0, TEST_ACTOR_ID).is_success
        assert isinstance(journal_service.get_entry(draft.id).error, NotFoundError)

    def test_stale_version(self, journal_service, draft):
        result = journal_service.delete_entry(draft.id, 3, TEST_ACTOR_ID)
        assert isinstance(result.error, ConcurrencyError)

    def test_confirmed_entry_cannot_be_deleted(self, journal_service, post_entry):
        entry = post_entry(APRIL_1, "Posted", ("1000", 10, None), ("4000", None, 10))
        result = journal_service.delete_entry(entry.id, entry.version, TEST_ACTOR_ID)
        assert isinstance(result.error, InvalidStateError)
        assert journal_service.get_entry(entry.id).is_success


class TestLifecycle:
    def test_full_approval_flow(self, journal_service, draft, session, clock):
        pending = journal_service.submit_for_approval(draft.id, 0, TEST_ACTOR_ID).unwrap()
        assert pending.status == JournalEntryStatus.PENDING_APPROVAL
        assert pending.version == 1

        approved = journal_service.approve(pending.id, 1, "approver").unwrap()
        assert approved.approved_by == "approver"
        assert approved.approved_at == clock.now()

        confirmed = journal_service.confirm(approved.id, 2, "controller").unwrap()
        assert confirmed.status == JournalEntryStatus.CONFIRMED
        assert confirmed.version == 3
        assert journal_service.get_entry(draft.id).unwrap().confirmed_by == "controller"

        assert _audit_actions(session) == [
            "journal_entry_created",
            "journal_entry_submitted",
            "journal_entry_approved",
            "journal_entry_confirmed",
        ]

    def test_submit_unbalanced_fails_without_write(self, journal_service, make_lines):
        entry = journal_service.create_entry(
            APRIL_1, "Unbalanced", TEST_ACTOR_ID,
            make_lines(("1000", 1000, None), ("4000", None, 900)),
        ).unwrap()
        result = journal_service.submit_for_approval(entry.id, 0, TEST_ACTOR_ID)
        assert result.error.reason == "unbalanced"
        assert result.error.difference == Decimal("100")
        stored = journal_service.get_entry(entry.id).unwrap()
        assert stored.status == JournalEntryStatus.DRAFT
        assert stored.version == 0

    def test_reject_returns_to_draft_for_rework(self, journal_service, draft):
        pending = journal_service.submit_for_approval(draft.id, 0, TEST_ACTOR_ID).unwrap()
        rejected = journal_service.reject(pending.id, 1, "approver", "Wrong period").unwrap()
        assert rejected.status == JournalEntryStatus.DRAFT
        assert rejected.rejection_reason == "Wrong period"

        reworked = journal_service.update_entry(
            rejected.id, rejected.version, TEST_ACTOR_ID, journal_date=date(2024, 5, 1),
        )
        assert reworked.is_success

    def test_approve_requires_pending(self, journal_service, draft):
        result = journal_service.approve(draft.id, 0, "approver")
        assert isinstance(result.error, InvalidStateError)
        assert result.error.status == "draft"

    def test_invalid_identifier(self, journal_service):
        result = journal_service.approve(0, 0, "approver")
        assert result.error.reason == "invalid_identifier"


class TestSearch:
    def test_filters(self, journal_service, draft, post_entry):
        posted = post_entry(date(2024, 4, 15), "Later", ("1000", 1, None), ("4000", None, 1))

        confirmed = journal_service.search_entries(statuses=[JournalEntryStatus.CONFIRMED]).unwrap()
        assert [entry.id for entry in confirmed.entries] == [posted.id]

        april_first = journal_service.search_entries(
            date_from=APRIL_1, date_to=APRIL_1,
        ).unwrap()
        assert [entry.id for entry in april_first.entries] == [draft.id]

    def test_several_statuses(self, journal_service, draft, post_entry):
        posted = post_entry(date(2024, 4, 15), "Later", ("1000", 1, None), ("4000", None, 1))
        empty = journal_service.create_entry(
            date(2024, 4, 20), "Empty draft", TEST_ACTOR_ID,
        ).unwrap()

        found = journal_service.search_entries(statuses=["draft", "confirmed"]).unwrap()
        assert [entry.id for entry in found.entries] == [draft.id, posted.id, empty.id]

        none_pending = journal_service.search_entries(
            statuses=[JournalEntryStatus.PENDING_APPROVAL],
        ).unwrap()
        assert none_pending.entries == ()
        assert none_pending.total_entries == 0
        assert none_pending.total_pages == 0

    def test_account_filter(self, journal_service, accounts, draft, post_entry):
        rent = post_entry(date(2024, 4, 2), "Rent", ("5000", 300, None), ("1000", None, 300))

        on_rent = journal_service.search_entries(account_id=accounts["5000"].id).unwrap()
        assert [entry.id for entry in on_rent.entries] == [rent.id]

        on_cash = journal_service.search_entries(account_id=int(accounts["1000"].id)).unwrap()
        assert [entry.id for entry in on_cash.entries] == [draft.id, rent.id]

    def test_amount_range_uses_total_debits(self, journal_service, draft, post_entry):
        small = post_entry(date(2024, 4, 2), "Small", ("1000", 50, None), ("4000", None, 50))
        post_entry(date(2024, 4, 3), "Large", ("1000", 5000, None), ("4000", None, 5000))

        found = journal_service.search_entries(
            amount_from=Decimal("50"), amount_to=Decimal("1000"),
        ).unwrap()
        assert [entry.id for entry in found.entries] == [draft.id, small.id]
        assert found.total_entries == 2

        above = journal_service.search_entries(amount_from="1000.01").unwrap()
        assert [entry.description for entry in above.entries] == ["Large"]

    def test_description_keyword_is_case_insensitive(self, journal_service, draft, post_entry):
        post_entry(date(2024, 4, 2), "Office rent", ("5000", 10, None), ("1000", None, 10))

        found = journal_service.search_entries(description="  CASH ").unwrap()
        assert [entry.id for entry in found.entries] == [draft.id]

        wildcard = journal_service.search_entries(description="100%").unwrap()
        assert wildcard.entries == ()

    def test_pagination_reports_totals(self, journal_service, make_lines):
        ids = [
            journal_service.create_entry(
                date(2024, 5, day), f"Entry {day}", TEST_ACTOR_ID,
                make_lines(("1000", day, None), ("4000", None, day)),
            ).unwrap().id
            for day in range(1, 6)
        ]

        first = journal_service.search_entries(page=1, size=2).unwrap()
        last = journal_service.search_entries(page=3, size=2).unwrap()
        beyond = journal_service.search_entries(page=4, size=2).unwrap()

        assert [entry.id for entry in first.entries] == ids[:2]
        assert [entry.id for entry in last.entries] == ids[4:]
        assert beyond.entries == ()
        assert (first.total_entries, first.total_pages) == (5, 3)
        assert beyond.total_entries == 5

    def test_pagination_with_amount_range(self, journal_service, make_lines):
        for day in range(1, 6):
            journal_service.create_entry(
                date(2024, 5, day), f"Entry {day}", TEST_ACTOR_ID,
                make_lines(("1000", day * 100, None), ("4000", None, day * 100)),
            ).unwrap()

        second = journal_service.search_entries(amount_from=200, page=2, size=3).unwrap()
        assert [entry.description for entry in second.entries] == ["Entry 5"]
        assert (second.total_entries, second.total_pages) == (4, 2)

    def test_size_is_clamped(self, journal_service, config, draft):
        oversized = journal_service.search_entries(size=10_000).unwrap()
        assert oversized.size == config.max_page_size

        default = journal_service.search_entries().unwrap()
        assert default.size == config.default_page_size

        tiny = journal_service.search_entries(size=0).unwrap()
        assert tiny.size == 1
        assert [entry.id for entry in tiny.entries] == [draft.id]

    def test_inverted_range(self, journal_service):
        result = journal_service.search_entries(date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))
        assert result.error.reason == "invalid_date_range"

    @pytest.mark.parametrize(
        ("criteria", "reason"),
        [
            ({"amount_from": 10, "amount_to": 5}, "invalid_amount_range"),
            ({"amount_from": -1}, "invalid_amount"),
            ({"amount_to": "lots"}, "invalid_amount"),
            ({"statuses": ["archived"]}, "invalid_status"),
            ({"page": 0}, "invalid_page"),
        ],
    )
    def test_invalid_criteria(self, journal_service, criteria, reason):
        result = journal_service.search_entries(**criteria)
        assert isinstance(result.error, ValidationError)
        assert result.error.reason == reason


class TestBestEffortAudit:
    def test_failing_recorder_does_not_block(
        self, journal_store, account_store, clock, make_lines, captured_logs,
    ):
        service = JournalEntryService(journal_store, account_store, FailingRecorder(), clock)
        result = service.create_entry(
            APRIL_1, "Still saved", TEST_ACTOR_ID,
            make_lines(("1000", 1, None), ("4000", None, 1)),
        )
        assert result.is_success
        assert service.get_entry(result.value.id).is_success

        failures = [r for r in captured_logs() if r["message"] == "audit_record_failed"]
        assert len(failures) == 1
        assert failures[0]["level"] == "ERROR"
        assert failures[0]["exc_type"] == "RuntimeError"

    def test_without_recorder(self, journal_store, account_store, clock, make_lines):
        service = JournalEntryService(journal_store, account_store, clock=clock)
        result = service.create_entry(
            APRIL_1, "No audit", TEST_ACTOR_ID, make_lines(("1000", 1, None), ("4000", None, 1)),
        )
        assert result.is_success
