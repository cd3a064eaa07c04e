"""Tests for AccountService: creation, rename/retype and deletion with usage guards."""

from datetime import date

import pytest
from sqlalchemy import select

from ledger_kernel.domain.accounts import AccountType
from ledger_kernel.exceptions import NotFoundError, ValidationError
from ledger_kernel.models.audit_event import AuditEventModel
from tests.conftest import TEST_ACTOR_ID


@pytest.fixture
def drafted(journal_service, make_lines):
    """A DRAFT entry on Cash and Sales; Rent and Salaries stay unused."""
    return journal_service.create_entry(
        date(2024, 6, 1), "Cash sale", TEST_ACTOR_ID,
        make_lines(("1000", 100, None), ("4000", None, 100)),
    ).unwrap()


class TestCreateAccount:
    def test_created_and_audited(self, account_service, accounts, session):
        created = account_service.create_account(
            " 6000 ", "Utilities", "expense", TEST_ACTOR_ID,
        ).unwrap()

        assert created.id is not None
        assert created.code == "6000"
        assert created.account_type == AccountType.EXPENSE
        assert account_service.get_account(created.id).unwrap() == created
        assert "account_created" in session.scalars(select(AuditEventModel.action)).all()

    def test_duplicate_code(self, account_service, accounts, captured_logs):
        result = account_service.create_account("1000", "Petty cash", AccountType.ASSET)

        assert isinstance(result.error, ValidationError)
        assert result.error.reason == "duplicate_account_code"
        failures = [r for r in captured_logs() if r["message"] == "account_create_failed"]
        assert failures[0]["account_code"] == "1000"

    @pytest.mark.parametrize(
        ("code", "name", "account_type", "reason"),
        [
            ("", "Nameless", AccountType.ASSET, "blank_account_code"),
            ("6000", "  ", AccountType.ASSET, "blank_account_name"),
            ("6000", "Utilities", "overhead", "invalid_account_type"),
        ],
    )
    def test_invalid_fields(self, account_service, code, name, account_type, reason):
        result = account_service.create_account(code, name, account_type)
        assert result.error.reason == reason


class TestUpdateAccount:
    def test_rename_and_retype_unused_account(self, account_service, accounts):
        updated = account_service.update_account(
            accounts["5000"].id, TEST_ACTOR_ID,
            name="Rent payable", account_type=AccountType.LIABILITY,
        ).unwrap()

        assert updated.name == "Rent payable"
        assert updated.account_type == AccountType.LIABILITY
        assert updated.code == "5000"
        assert account_service.get_account(accounts["5000"].id).unwrap() == updated

    def test_type_change_refused_while_in_use(self, account_service, accounts, drafted):
        result = account_service.update_account(
            accounts["1000"].id, TEST_ACTOR_ID, account_type=AccountType.LIABILITY,
        )

        assert isinstance(result.error, ValidationError)
        assert result.error.reason == "account_in_use"
        assert account_service.get_account(accounts["1000"].id).unwrap().account_type \
            == AccountType.ASSET

    def test_rename_allowed_while_in_use(self, account_service, accounts, drafted):
        renamed = account_service.update_account(
            accounts["1000"].id, TEST_ACTOR_ID,
            name="Cash at bank", account_type=AccountType.ASSET,
        ).unwrap()
        assert renamed.name == "Cash at bank"

    def test_in_use_by_confirmed_entry(self, account_service, accounts, post_entry):
        post_entry(date(2024, 6, 2), "Rent", ("5000", 20, None), ("1000", None, 20))

        result = account_service.update_account(
            accounts["5000"].id, account_type=AccountType.ASSET,
        )
        assert result.error.reason == "account_in_use"

    def test_unknown_account(self, account_service, accounts):
        result = account_service.update_account(9999, name="Ghost")
        assert isinstance(result.error, NotFoundError)

    def test_blank_name(self, account_service, accounts):
        result = account_service.update_account(accounts["5000"].id, name=" ")
        assert result.error.reason == "blank_account_name"


class TestDeleteAccount:
    def test_unused_account_removed(self, account_service, accounts, session):
        assert account_service.delete_account(accounts["5100"].id, TEST_ACTOR_ID).is_success

        assert isinstance(account_service.get_account(accounts["5100"].id).error, NotFoundError)
        assert "5100" not in [a.code for a in account_service.list_accounts().unwrap()]
        assert "account_deleted" in session.scalars(select(AuditEventModel.action)).all()

    def test_refused_while_in_use(self, account_service, accounts, drafted, captured_logs):
        result = account_service.delete_account(accounts["4000"].id, TEST_ACTOR_ID)

        assert result.error.reason == "account_in_use"
        assert account_service.get_account(accounts["4000"].id).is_success
        failures = [r for r in captured_logs() if r["message"] == "account_delete_failed"]
        assert failures[0]["account_code"] == "4000"

    def test_allowed_once_lines_are_gone(self, account_service, journal_service, accounts, drafted):
        journal_service.delete_entry(drafted.id, drafted.version, TEST_ACTOR_ID).unwrap()
        assert account_service.delete_account(accounts["4000"].id).is_success

    def test_unknown_account(self, account_service, accounts):
        assert isinstance(account_service.delete_account(9999).error, NotFoundError)
