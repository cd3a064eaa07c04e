"""
Account hierarchy -- the chart-of-accounts tree as materialized paths.

Responsibility:
    Places accounts in a tree.  Each node stores its parent's code, its
    ``account_path`` (ancestor codes joined by the separator, root first)
    and its ``hierarchy_level`` (1 for a root).  Registration and reparenting
    reject any parent that would make a node its own ancestor.

Architecture position:
    Kernel > Domain -- pure functions over AccountStructure values.
    Reads go through a ``lookup`` callable supplied by the caller; this
    module performs no I/O of its own.

Invariants enforced:
    - ``account_path == parent.account_path + separator + account_code``
      (``account_code`` alone for a root).
    - ``hierarchy_level == parent.hierarchy_level + 1`` (1 for a root).
    - A node never appears in its own ancestor chain.
    - After a reparent every descendant's path and level are recomputed.

Failure modes:
    - CircularReferenceError when the proposed parent is the node itself
      or one of its descendants, or the ancestor walk exceeds max_depth.
    - NotFoundError for an unknown node or parent.
    - ChildrenExistError when removing a node that still has children.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from ledger_kernel.domain.result import Result
from ledger_kernel.exceptions import (
    ChildrenExistError,
    CircularReferenceError,
    NotFoundError,
    ValidationError,
)

DEFAULT_SEPARATOR = "~"
DEFAULT_MAX_DEPTH = 64

StructureLookup = Callable[[str], "AccountStructure | None"]


@dataclass(frozen=True)
class AccountStructure:
    """One node of the chart-of-accounts tree."""

    account_code: str
    account_path: str
    hierarchy_level: int
    parent_account_code: str | None = None
    display_order: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent_account_code is None

    def ancestor_codes(self, separator: str = DEFAULT_SEPARATOR) -> tuple[str, ...]:
        """Codes above this node, root first."""
        return tuple(self.account_path.split(separator)[:-1])


def _node(
    code: str,
    parent: AccountStructure | None,
    display_order: int,
    separator: str,
) -> AccountStructure:
    if parent is None:
        return AccountStructure(code, code, 1, None, display_order)
    return AccountStructure(
        account_code=code,
        account_path=f"{parent.account_path}{separator}{code}",
        hierarchy_level=parent.hierarchy_level + 1,
        parent_account_code=parent.account_code,
        display_order=display_order,
    )


def _check_code(code: str, separator: str) -> ValidationError | None:
    if not code or not code.strip():
        return ValidationError("blank_account_code")
    if separator in code:
        return ValidationError(
            "invalid_account_code",
            f"Account code {code!r} contains the path separator {separator!r}",
            account_code=code,
        )
    return None


def has_circular_reference(
    candidate_code: str,
    proposed_parent_code: str | None,
    lookup: StructureLookup,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bool:
    """
    True if placing ``candidate_code`` under ``proposed_parent_code`` would
    make the candidate its own ancestor.

    Walks up from the proposed parent.  A chain longer than ``max_depth`` is
    reported as circular: either the data already holds a cycle or the tree
    is deeper than allowed.
    """
    current = proposed_parent_code
    steps = 0
    while current is not None:
        if current == candidate_code:
            return True
        steps += 1
        if steps > max_depth:
            return True
        node = lookup(current)
        if node is None:
            return False
        current = node.parent_account_code
    return False


def register(
    code: str,
    parent_code: str | None,
    display_order: int,
    lookup: StructureLookup,
    separator: str = DEFAULT_SEPARATOR,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Result[AccountStructure]:
    """Create a new node under ``parent_code`` (or as a root)."""
    invalid = _check_code(code, separator)
    if invalid is not None:
        return Result.failure(invalid)
    if lookup(code) is not None:
        return Result.failure(ValidationError(
            "duplicate_account_structure",
            f"Account structure already registered: {code}",
            account_code=code,
        ))
    if parent_code is None:
        return Result.success(_node(code, None, display_order, separator))

    if parent_code == code:
        return Result.failure(CircularReferenceError(code, parent_code))
    parent = lookup(parent_code)
    if parent is None:
        return Result.failure(NotFoundError("AccountStructure", parent_code))
    if has_circular_reference(code, parent_code, lookup, max_depth):
        return Result.failure(CircularReferenceError(code, parent_code))
    return Result.success(_node(code, parent, display_order, separator))


def reparent(
    code: str,
    new_parent_code: str | None,
    display_order: int,
    structures: Iterable[AccountStructure],
    separator: str = DEFAULT_SEPARATOR,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Result[tuple[AccountStructure, ...]]:
    """
    Move ``code`` under ``new_parent_code`` (None makes it a root).

    Returns the moved node followed by every descendant, breadth-first,
    each with its path and level recomputed.
    """
    by_code = {node.account_code: node for node in structures}
    node = by_code.get(code)
    if node is None:
        return Result.failure(NotFoundError("AccountStructure", code))

    parent: AccountStructure | None = None
    if new_parent_code is not None:
        if new_parent_code == code:
            return Result.failure(CircularReferenceError(code, new_parent_code))
        parent = by_code.get(new_parent_code)
        if parent is None:
            return Result.failure(NotFoundError("AccountStructure", new_parent_code))
        if has_circular_reference(code, new_parent_code, by_code.get, max_depth):
            return Result.failure(CircularReferenceError(code, new_parent_code))

    children_of: dict[str, list[AccountStructure]] = defaultdict(list)
    for candidate in by_code.values():
        if candidate.parent_account_code is not None:
            children_of[candidate.parent_account_code].append(candidate)

    moved = _node(code, parent, display_order, separator)
    updated = [moved]
    queue = [moved]
    while queue:
        current = queue.pop(0)
        for child in sorted(children_of.get(current.account_code, ()), key=_sibling_key):
            rebuilt = replace(
                child,
                account_path=f"{current.account_path}{separator}{child.account_code}",
                hierarchy_level=current.hierarchy_level + 1,
            )
            updated.append(rebuilt)
            queue.append(rebuilt)
    return Result.success(tuple(updated))


def check_removable(code: str, children: Iterable[AccountStructure]) -> Result[None]:
    child_codes = tuple(sorted(child.account_code for child in children))
    if child_codes:
        return Result.failure(ChildrenExistError(code, child_codes))
    return Result.success(None)


def _sibling_key(node: AccountStructure) -> tuple[int, str]:
    return (node.display_order, node.account_code)


def ordered_tree(structures: Iterable[AccountStructure]) -> list[AccountStructure]:
    """Depth-first listing, siblings by (display_order, account_code)."""
    nodes = list(structures)
    present = {node.account_code for node in nodes}
    children_of: dict[str | None, list[AccountStructure]] = defaultdict(list)
    for node in nodes:
        # Orphans (parent missing from the input) are listed as roots
        parent = node.parent_account_code if node.parent_account_code in present else None
        children_of[parent].append(node)

    ordered: list[AccountStructure] = []
    stack = sorted(children_of[None], key=_sibling_key, reverse=True)
    visited: set[str] = set()
    while stack:
        node = stack.pop()
        if node.account_code in visited:
            continue
        visited.add(node.account_code)
        ordered.append(node)
        stack.extend(sorted(children_of[node.account_code], key=_sibling_key, reverse=True))
    return ordered
