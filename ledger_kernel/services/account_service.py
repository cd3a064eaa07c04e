"""
Module: ledger_kernel.services.account_service
Responsibility: Maintain chart-of-accounts metadata.
Architecture position: Kernel > Services.

Invariants enforced:
    - Account codes are unique.
    - An account referenced by any journal line, in any status, keeps its
      type and cannot be deleted; its name can still change.
"""

from __future__ import annotations

from dataclasses import replace

from ledger_kernel.domain.accounts import Account, AccountType
from ledger_kernel.domain.result import Result, attempt
from ledger_kernel.domain.values import AccountId
from ledger_kernel.exceptions import BusinessRuleError, NotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.ports import AccountStore, AuditRecorder, JournalEntryStore
from ledger_kernel.services.audit import BestEffortAudit

logger = get_logger("services.account")

_ENTITY = "Account"


def _account_payload(account: Account) -> dict:
    return {
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type.value,
    }


class AccountService:
    """
    Create, rename, retype and delete accounts.

    Usage:
        service = AccountService(accounts, entries, audit)
        cash = service.create_account("1000", "Cash", AccountType.ASSET, "u1").unwrap()
        service.update_account(cash.id, "u1", name="Cash at bank")
    """

    def __init__(
        self,
        accounts: AccountStore,
        entries: JournalEntryStore,
        audit: AuditRecorder | None = None,
    ):
        self._accounts = accounts
        self._entries = entries
        self._audit = BestEffortAudit(audit)

    def _fail(self, event: str, error: BusinessRuleError) -> Result:
        logger.warning(event, extra={"error_code": error.code, "error": error.details})
        return Result.failure(error)

    def _find(self, account_id: AccountId | int) -> Result[Account]:
        def lookup(key: AccountId) -> Result[Account]:
            account = self._accounts.find_by_id(key)
            if account is None:
                return Result.failure(NotFoundError(_ENTITY, int(key)))
            return Result.success(account)

        return attempt(lambda: AccountId(int(account_id))).then(lookup)

    def _in_use(self, account: Account, change: str) -> ValidationError:
        return ValidationError(
            "account_in_use",
            f"Account {account.code} is referenced by journal lines; cannot {change}",
            account_code=account.code,
        )

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: str | None = None,
    ) -> Result[Account]:
        with LogContext.bind(account_code=code, actor_id=actor_id):
            result = attempt(lambda: Account(code.strip(), name.strip(), account_type))
            if result.is_failure:
                return self._fail("account_create_failed", result.error)

            candidate = result.value
            if self._accounts.find_by_code(candidate.code) is not None:
                return self._fail(
                    "account_create_failed",
                    ValidationError(
                        "duplicate_account_code",
                        f"Account code {candidate.code!r} already exists",
                        account_code=candidate.code,
                    ),
                )

            account = self._accounts.add(candidate)
            logger.info(
                "account_created",
                extra={"account_id": int(account.id), "account_type": account.account_type.value},
            )
            self._audit.notify(
                "account_created", _ENTITY, account.id, actor_id, _account_payload(account),
            )
            return Result.success(account)

    def update_account(
        self,
        account_id: AccountId | int,
        actor_id: str | None = None,
        *,
        name: str | None = None,
        account_type: AccountType | str | None = None,
    ) -> Result[Account]:
        """Rename and/or retype an account.  Omitted fields keep their value."""
        with LogContext.bind(actor_id=actor_id):
            found = self._find(account_id)
            if found.is_failure:
                return self._fail("account_update_failed", found.error)
            current = found.value

        with LogContext.bind(account_code=current.code, actor_id=actor_id):
            result = attempt(lambda: replace(
                current,
                name=current.name if name is None else name.strip(),
                account_type=current.account_type if account_type is None else account_type,
            ))
            if result.is_failure:
                return self._fail("account_update_failed", result.error)

            changed = result.value
            if changed.account_type != current.account_type \
                    and self._entries.is_account_in_use(current.id):
                return self._fail(
                    "account_update_failed", self._in_use(current, "change its type"),
                )

            account = self._accounts.update(changed)
            logger.info("account_updated", extra={"account_type": account.account_type.value})
            self._audit.notify(
                "account_updated", _ENTITY, account.id, actor_id, _account_payload(account),
            )
            return Result.success(account)

    def delete_account(
        self,
        account_id: AccountId | int,
        actor_id: str | None = None,
    ) -> Result[None]:
        with LogContext.bind(actor_id=actor_id):
            found = self._find(account_id)
            if found.is_failure:
                return self._fail("account_delete_failed", found.error)
            account = found.value

        with LogContext.bind(account_code=account.code, actor_id=actor_id):
            if self._entries.is_account_in_use(account.id):
                return self._fail("account_delete_failed", self._in_use(account, "delete it"))

            self._accounts.delete(account.id)
            logger.info("account_deleted", extra={"account_id": int(account.id)})
            self._audit.notify(
                "account_deleted", _ENTITY, account.id, actor_id, _account_payload(account),
            )
            return Result.success(None)

    def get_account(self, account_id: AccountId | int) -> Result[Account]:
        return self._find(account_id)

    def list_accounts(self) -> Result[list[Account]]:
        return Result.success(self._accounts.find_all())
