"""
Typed error taxonomy for the ledger kernel.

===============================================================================
TWO KINDS OF FAILURE
===============================================================================

Business outcomes ("your request is invalid") and infrastructure failures
("try again later") are different things and must never be confused:

  * BusinessRuleError subclasses describe expected outcomes -- an unbalanced
    entry, a stale version, a cycle in the chart of accounts.  Services do
    NOT raise them to callers.  They are carried as the failure value of a
    ``Result`` (see ``ledger_kernel.domain.result``).

  * StorageError describes an infrastructure failure -- the store is
    unreachable, a statement timed out.  It is raised by the store adapters
    and propagated upward unmodified.  Nothing in the kernel catches it.

Example:

    result = journal_service.submit_for_approval(entry_id)
    if result.is_failure:
        if isinstance(result.error, ConcurrencyError):
            reload_and_retry()
        return api_response(code=result.error.code, **result.error.details)

===============================================================================
HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- BusinessRuleError
    |   +-- ValidationError            VALIDATION_ERROR
    |   +-- NotFoundError              NOT_FOUND
    |   +-- ConcurrencyError           CONCURRENCY_CONFLICT
    |   +-- InvalidStateError          INVALID_STATE
    |   +-- CircularReferenceError     CIRCULAR_REFERENCE
    |   +-- ChildrenExistError         CHILDREN_EXIST
    |   +-- FormulaEvaluationError     FORMULA_EVALUATION_ERROR
    |
    +-- StorageError                   STORAGE_ERROR

Every class carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes, so logs and API layers never parse
message strings.
===============================================================================
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class LedgerKernelError(Exception):
    """Base exception for all ledger kernel errors."""

    code: str = "LEDGER_KERNEL_ERROR"


class BusinessRuleError(LedgerKernelError):
    """
    Base for expected business outcomes.

    Services return these inside ``Result.failure``; they are only raised by
    value constructors and converted at the service boundary.
    """

    code: str = "BUSINESS_RULE_ERROR"

    @property
    def details(self) -> dict[str, Any]:
        """Structured attributes of this error (everything but args)."""
        return {
            k: v for k, v in vars(self).items()
            if not k.startswith("_")
        }


class ValidationError(BusinessRuleError):
    """
    A value or aggregate failed validation.

    ``reason`` is a stable snake_case identifier ("unbalanced",
    "blank_description", "unknown_account", ...).  Additional structured
    context is passed as keyword arguments and exposed as attributes.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, reason: str, message: str | None = None, **context: Any):
        self.reason = reason
        for key, value in context.items():
            setattr(self, key, value)
        super().__init__(message or reason.replace("_", " "))

    @classmethod
    def unbalanced(cls, debits: Decimal, credits: Decimal) -> ValidationError:
        """Debits and credits of a line set differ."""
        difference = abs(debits - credits)
        return cls(
            "unbalanced",
            f"Unbalanced entry: debits={debits}, credits={credits}, "
            f"difference={difference}",
            debits=debits,
            credits=credits,
            difference=difference,
        )


class NotFoundError(BusinessRuleError):
    """An entity with the given key does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class ConcurrencyError(BusinessRuleError):
    """
    Optimistic lock conflict: the caller's version is stale.

    The stored value is left untouched; re-reading and retrying is always safe.
    """

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(
        self,
        entity_id: Any,
        expected_version: int,
        actual_version: int | None = None,
    ):
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on {entity_id}: expected {expected_version}, "
            f"stored {actual_version}"
        )


class InvalidStateError(BusinessRuleError):
    """The requested action is illegal in the entity's current status."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_id: Any, status: str, action: str):
        self.entity_id = entity_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} entity {entity_id} in status {status}"
        )


class CircularReferenceError(BusinessRuleError):
    """Attaching the account under the proposed parent would create a cycle."""

    code: str = "CIRCULAR_REFERENCE"

    def __init__(self, account_code: str, parent_code: str):
        self.account_code = account_code
        self.parent_code = parent_code
        super().__init__(
            f"Account {account_code} cannot be placed under {parent_code}: "
            f"circular reference"
        )


class ChildrenExistError(BusinessRuleError):
    """A structure node cannot be removed while it still has children."""

    code: str = "CHILDREN_EXIST"

    def __init__(self, account_code: str, children: tuple[str, ...]):
        self.account_code = account_code
        self.children = children
        super().__init__(
            f"Account structure {account_code} has children: "
            f"{', '.join(children)}"
        )


class FormulaEvaluationError(BusinessRuleError):
    """An amount formula or description template could not be evaluated."""

    code: str = "FORMULA_EVALUATION_ERROR"

    def __init__(self, formula: str, reason: str, message: str | None = None):
        self.formula = formula
        self.reason = reason
        super().__init__(message or f"Cannot evaluate {formula!r}: {reason}")


class StorageError(LedgerKernelError):
    """
    Infrastructure failure in a store (unreachable, timeout, driver error).

    Never converted into a Result: it propagates so callers can tell
    "invalid request" apart from "try again later".
    """

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause_type = type(cause).__name__ if cause is not None else None
        super().__init__(
            f"Storage failure during {operation}"
            + (f": {cause}" if cause is not None else "")
        )
