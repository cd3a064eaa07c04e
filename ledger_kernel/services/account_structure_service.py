"""
Module: ledger_kernel.services.account_structure_service
Responsibility: Maintain the chart-of-accounts hierarchy.
Architecture position: Kernel > Services.

Invariants enforced:
    - Only accounts known to the AccountStore can be placed in the tree.
    - A reparent rewrites the moved node and every descendant in one
      save_all() call, so path and level stay consistent for the subtree.
    - A node with children cannot be removed.
"""

from __future__ import annotations

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain import hierarchy
from ledger_kernel.domain.hierarchy import AccountStructure
from ledger_kernel.domain.result import Result
from ledger_kernel.exceptions import BusinessRuleError, NotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.ports import AccountStore, AccountStructureStore, AuditRecorder
from ledger_kernel.services.audit import BestEffortAudit

logger = get_logger("services.account_structure")

_ENTITY = "AccountStructure"


def _structure_payload(node: AccountStructure) -> dict:
    return {
        "account_path": node.account_path,
        "hierarchy_level": node.hierarchy_level,
        "parent_account_code": node.parent_account_code,
        "display_order": node.display_order,
    }


class AccountStructureService:
    def __init__(
        self,
        structures: AccountStructureStore,
        accounts: AccountStore,
        audit: AuditRecorder | None = None,
        config: LedgerConfig | None = None,
    ):
        self._structures = structures
        self._accounts = accounts
        self._audit = BestEffortAudit(audit)
        self._config = config or LedgerConfig.with_defaults()

    def _fail(self, event: str, error: BusinessRuleError) -> Result:
        logger.warning(event, extra={"error_code": error.code, "error": error.details})
        return Result.failure(error)

    def register(
        self,
        account_code: str,
        parent_code: str | None = None,
        display_order: int = 0,
        actor_id: str | None = None,
    ) -> Result[AccountStructure]:
        with LogContext.bind(account_code=account_code, actor_id=actor_id):
            if self._accounts.find_by_code(account_code) is None:
                return self._fail(
                    "account_structure_register_failed",
                    ValidationError(
                        "unknown_account",
                        f"Account code {account_code!r} not found",
                        account_code=account_code,
                    ),
                )

            result = hierarchy.register(
                account_code,
                parent_code,
                display_order,
                self._structures.find_by_code,
                separator=self._config.path_separator,
                max_depth=self._config.max_hierarchy_depth,
            )
            if result.is_failure:
                return self._fail("account_structure_register_failed", result.error)

            node = self._structures.save(result.value)
            logger.info(
                "account_structure_registered",
                extra={"account_path": node.account_path, "hierarchy_level": node.hierarchy_level},
            )
            self._audit.notify(
                "account_structure_registered", _ENTITY, node.account_code, actor_id,
                _structure_payload(node),
            )
            return Result.success(node)

    def reparent(
        self,
        account_code: str,
        new_parent_code: str | None,
        display_order: int | None = None,
        actor_id: str | None = None,
    ) -> Result[AccountStructure]:
        """
        Move ``account_code`` under ``new_parent_code`` (None makes it a root).

        Returns the moved node; its descendants are rewritten alongside it.
        """
        with LogContext.bind(account_code=account_code, actor_id=actor_id):
            current = self._structures.find_by_code(account_code)
            if current is None:
                return self._fail(
                    "account_structure_reparent_failed",
                    NotFoundError(_ENTITY, account_code),
                )

            result = hierarchy.reparent(
                account_code,
                new_parent_code,
                current.display_order if display_order is None else display_order,
                self._structures.find_all(),
                separator=self._config.path_separator,
                max_depth=self._config.max_hierarchy_depth,
            )
            if result.is_failure:
                return self._fail("account_structure_reparent_failed", result.error)

            updated = result.value
            self._structures.save_all(updated)
            moved = updated[0]
            logger.info(
                "account_structure_reparented",
                extra={
                    "old_parent_code": current.parent_account_code,
                    "new_parent_code": new_parent_code,
                    "nodes_rewritten": len(updated),
                },
            )
            self._audit.notify(
                "account_structure_reparented", _ENTITY, account_code, actor_id,
                {**_structure_payload(moved), "previous_path": current.account_path},
            )
            return Result.success(moved)

    def remove(self, account_code: str, actor_id: str | None = None) -> Result[None]:
        with LogContext.bind(account_code=account_code, actor_id=actor_id):
            current = self._structures.find_by_code(account_code)
            if current is None:
                return self._fail(
                    "account_structure_remove_failed",
                    NotFoundError(_ENTITY, account_code),
                )
            result = hierarchy.check_removable(
                account_code, self._structures.find_children(account_code)
            )
            if result.is_failure:
                return self._fail("account_structure_remove_failed", result.error)

            self._structures.delete(account_code)
            logger.info("account_structure_removed")
            self._audit.notify(
                "account_structure_removed", _ENTITY, account_code, actor_id,
                _structure_payload(current),
            )
            return Result.success(None)

    def get(self, account_code: str) -> Result[AccountStructure]:
        node = self._structures.find_by_code(account_code)
        if node is None:
            return Result.failure(NotFoundError(_ENTITY, account_code))
        return Result.success(node)

    def list_tree(self) -> Result[list[AccountStructure]]:
        """Every node, depth-first with siblings by display order then code."""
        return Result.success(hierarchy.ordered_tree(self._structures.find_all()))
