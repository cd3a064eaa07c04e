"""
Module: ledger_kernel.stores.journal_store
Responsibility: SQLAlchemy implementation of JournalEntryStore -- journal
    entry persistence with an optimistic version compare-and-swap, plus the
    posted-line range reads that feed the ledger aggregation engine.
Architecture position: Kernel > Stores.  Imports db/, models/, domain/ and
    reporting.models (PostedLine).

Invariants enforced:
    - Insert stores version 0.
    - Update is a single statement:
          UPDATE journal_entries SET ..., version = version + 1
           WHERE id = :id AND version = :expected
             AND status IN (:allowed_predecessors)
      so a stale version or an illegal transition changes nothing.
    - A zero row count is classified by re-reading the row:
      missing -> NotFoundError, version differs -> ConcurrencyError,
      otherwise -> InvalidStateError.
    - Only CONFIRMED entries are returned by the posted-line reads.
    - search() filters in SQL; an amount range is checked against totals
      summed in Python, so the count and the page always agree.

Failure modes:
    - StorageError wrapping any SQLAlchemyError (propagated, never caught).
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, exists, func, select, update

from ledger_kernel.domain.journal import (
    REPORTABLE_STATUSES,
    JournalEntry,
    JournalEntryLine,
    JournalEntryStatus,
    allowed_predecessors,
)
from ledger_kernel.domain.journal_search import JournalEntryPage, JournalEntrySearch
from ledger_kernel.domain.result import Result
from ledger_kernel.domain.values import ZERO, AccountId, JournalEntryId, Money
from ledger_kernel.exceptions import (
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountModel
from ledger_kernel.models.journal import JournalEntryModel, JournalLineModel
from ledger_kernel.reporting.models import PostedLine
from ledger_kernel.stores.base import SqlStore

logger = get_logger("stores.journal")

_POSTED = tuple(status.value for status in REPORTABLE_STATUSES)


def _header_values(entry: JournalEntry) -> dict:
    return {
        "journal_date": entry.journal_date,
        "description": entry.description,
        "status": entry.status.value,
        "created_by": entry.created_by,
        "approved_by": entry.approved_by,
        "approved_at": entry.approved_at,
        "rejected_by": entry.rejected_by,
        "rejected_at": entry.rejected_at,
        "rejection_reason": entry.rejection_reason,
        "confirmed_by": entry.confirmed_by,
        "confirmed_at": entry.confirmed_at,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
    }


def _line_model(entry_id: int, line: JournalEntryLine) -> JournalLineModel:
    return JournalLineModel(
        journal_entry_id=entry_id,
        line_number=line.line_number,
        account_id=int(line.account_id),
        debit_amount=line.debit_amount.amount if line.debit_amount is not None else None,
        credit_amount=line.credit_amount.amount if line.credit_amount is not None else None,
        description=line.description,
        sub_account_code=line.sub_account_code,
    )


def _to_domain(model: JournalEntryModel) -> JournalEntry:
    lines = tuple(
        JournalEntryLine(
            line_number=row.line_number,
            account_id=AccountId(row.account_id),
            debit_amount=Money(row.debit_amount) if row.debit_amount is not None else None,
            credit_amount=Money(row.credit_amount) if row.credit_amount is not None else None,
            description=row.description,
            sub_account_code=row.sub_account_code,
        )
        for row in model.lines
    )
    return JournalEntry(
        id=JournalEntryId(model.id),
        journal_date=model.journal_date,
        description=model.description,
        status=JournalEntryStatus(model.status),
        version=model.version,
        lines=lines,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
        approved_by=model.approved_by,
        approved_at=model.approved_at,
        rejected_by=model.rejected_by,
        rejected_at=model.rejected_at,
        rejection_reason=model.rejection_reason,
        confirmed_by=model.confirmed_by,
        confirmed_at=model.confirmed_at,
    )


class SqlJournalEntryStore(SqlStore):
    """
    Journal entry store over SQLAlchemy.

    Contract:
        save() never overwrites a row whose version differs from the
        caller's; the returned entry carries the new version.
    """

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entry: JournalEntry) -> Result[JournalEntry]:
        checked = entry.validate_for_save()
        if checked.is_failure:
            return checked
        if entry.id is None:
            return self._insert(entry)
        return self._update(entry)

    def _insert(self, entry: JournalEntry) -> Result[JournalEntry]:
        with self._storage("journal_entry.insert"):
            model = JournalEntryModel(version=0, **_header_values(entry))
            self.session.add(model)
            self.session.flush()
            self.session.add_all([_line_model(model.id, line) for line in entry.lines])
            self.session.flush()
            entry_id = model.id
            self._evict(entry_id)

        logger.debug("journal_entry_inserted", extra={"entry_id": entry_id})
        return Result.success(replace(entry, id=JournalEntryId(entry_id), version=0))

    def _update(self, entry: JournalEntry) -> Result[JournalEntry]:
        entry_id = int(entry.id)
        predecessors = [status.value for status in allowed_predecessors(entry.status)]

        with self._storage("journal_entry.update"):
            result = self.session.execute(
                update(JournalEntryModel)
                .where(
                    JournalEntryModel.id == entry_id,
                    JournalEntryModel.version == entry.version,
                    JournalEntryModel.status.in_(predecessors),
                )
                .values(version=JournalEntryModel.version + 1, **_header_values(entry))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return Result.failure(
                    self._classify_miss(entry_id, entry.version, f"save_{entry.status.value}")
                )

            self.session.execute(
                delete(JournalLineModel).where(JournalLineModel.journal_entry_id == entry_id)
            )
            self._evict(entry_id)
            self.session.add_all([_line_model(entry_id, line) for line in entry.lines])
            self.session.flush()

        return Result.success(replace(entry, version=entry.version + 1))

    def _evict(self, entry_id: int) -> None:
        """Drop ORM copies of a row that was just rewritten with Core statements."""
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, JournalEntryModel) and obj.id == entry_id:
                self.session.expunge(obj)
            elif isinstance(obj, JournalLineModel) and obj.journal_entry_id == entry_id:
                self.session.expunge(obj)

    def delete(self, entry_id: JournalEntryId, expected_version: int) -> Result[None]:
        key = int(entry_id)
        with self._storage("journal_entry.delete"):
            result = self.session.execute(
                delete(JournalEntryModel)
                .where(
                    JournalEntryModel.id == key,
                    JournalEntryModel.version == expected_version,
                    JournalEntryModel.status == JournalEntryStatus.DRAFT.value,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return Result.failure(self._classify_miss(key, expected_version, "delete"))
            # SQLite does not cascade unless foreign keys are switched on
            self.session.execute(
                delete(JournalLineModel).where(JournalLineModel.journal_entry_id == key)
            )
            self._evict(key)
        return Result.success(None)

    def _classify_miss(self, entry_id: int, expected_version: int, action: str):
        row = self.session.execute(
            select(JournalEntryModel.version, JournalEntryModel.status)
            .where(JournalEntryModel.id == entry_id)
        ).one_or_none()
        if row is None:
            return NotFoundError("JournalEntry", entry_id)
        if row.version != expected_version:
            logger.info(
                "journal_entry_version_conflict",
                extra={
                    "entry_id": entry_id,
                    "expected_version": expected_version,
                    "actual_version": row.version,
                },
            )
            return ConcurrencyError(entry_id, expected_version, row.version)
        return InvalidStateError(entry_id, row.status, action)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, entry_id: JournalEntryId) -> JournalEntry | None:
        with self._storage("journal_entry.find_by_id"):
            model = self.session.execute(
                select(JournalEntryModel)
                .where(JournalEntryModel.id == int(entry_id))
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            return _to_domain(model) if model is not None else None

    def find_by_status_and_date_range(
        self,
        status: JournalEntryStatus | None,
        date_from: date | None,
        date_to: date | None,
    ) -> list[JournalEntry]:
        criteria = JournalEntrySearch(
            statuses=(status,) if status is not None else (),
            date_from=date_from,
            date_to=date_to,
        )
        stmt = (
            select(JournalEntryModel)
            .where(*self._search_conditions(criteria))
            .order_by(JournalEntryModel.journal_date, JournalEntryModel.id)
            .execution_options(populate_existing=True)
        )
        with self._storage("journal_entry.find_by_status_and_date_range"):
            return [_to_domain(model) for model in self.session.execute(stmt).scalars()]

    @staticmethod
    def _search_conditions(criteria: JournalEntrySearch) -> list:
        """WHERE clauses for every criterion except the amount range."""
        conditions = []
        if criteria.statuses:
            conditions.append(
                JournalEntryModel.status.in_([status.value for status in criteria.statuses])
            )
        if criteria.date_from is not None:
            conditions.append(JournalEntryModel.journal_date >= criteria.date_from)
        if criteria.date_to is not None:
            conditions.append(JournalEntryModel.journal_date <= criteria.date_to)
        if criteria.account_id is not None:
            conditions.append(JournalEntryModel.id.in_(
                select(JournalLineModel.journal_entry_id)
                .where(JournalLineModel.account_id == int(criteria.account_id))
            ))
        if criteria.description is not None:
            conditions.append(
                JournalEntryModel.description.icontains(criteria.description, autoescape=True)
            )
        return conditions

    def search(self, criteria: JournalEntrySearch, page: int, size: int) -> JournalEntryPage:
        stmt = (
            select(JournalEntryModel)
            .where(*self._search_conditions(criteria))
            .order_by(JournalEntryModel.journal_date, JournalEntryModel.id)
            .execution_options(populate_existing=True)
        )
        offset = (page - 1) * size

        with self._storage("journal_entry.search"):
            if criteria.has_amount_range:
                # Totals are summed in Python so SQLite's text decimals compare exactly
                matching = [
                    entry
                    for entry in (_to_domain(model) for model in self.session.execute(stmt).scalars())
                    if criteria.matches(entry)
                ]
                total = len(matching)
                entries = matching[offset:offset + size]
            else:
                total = self.session.execute(
                    select(func.count(JournalEntryModel.id))
                    .where(*self._search_conditions(criteria))
                ).scalar_one()
                entries = [
                    _to_domain(model)
                    for model in self.session.execute(stmt.offset(offset).limit(size)).scalars()
                ]

        return JournalEntryPage(tuple(entries), page, size, total)

    def is_account_in_use(self, account_id: AccountId) -> bool:
        with self._storage("journal_entry.is_account_in_use"):
            return self.session.execute(
                select(
                    exists().where(JournalLineModel.account_id == int(account_id))
                )
            ).scalar_one()

    def _posted_line_query(self, date_from: date | None, date_to: date):
        stmt = (
            select(JournalLineModel, JournalEntryModel, AccountModel.code)
            .join(JournalEntryModel, JournalLineModel.journal_entry_id == JournalEntryModel.id)
            .join(AccountModel, JournalLineModel.account_id == AccountModel.id)
            .where(
                JournalEntryModel.status.in_(_POSTED),
                JournalEntryModel.journal_date <= date_to,
            )
        )
        if date_from is not None:
            stmt = stmt.where(JournalEntryModel.journal_date >= date_from)
        return stmt.order_by(
            JournalEntryModel.journal_date,
            JournalEntryModel.id,
            JournalLineModel.line_number,
        )

    @staticmethod
    def _to_posted(line: JournalLineModel, header: JournalEntryModel, code: str) -> PostedLine:
        return PostedLine(
            journal_entry_id=header.id,
            journal_date=header.journal_date,
            line_number=line.line_number,
            account_code=code,
            debit_amount=line.debit_amount if line.debit_amount is not None else ZERO,
            credit_amount=line.credit_amount if line.credit_amount is not None else ZERO,
            sub_account_code=line.sub_account_code,
            line_description=line.description,
            entry_description=header.description,
        )

    def find_posted_lines_for_account(
        self,
        account_id: AccountId,
        date_from: date,
        date_to: date,
        sub_account_code: str | None = None,
    ) -> list[PostedLine]:
        stmt = self._posted_line_query(date_from, date_to).where(
            JournalLineModel.account_id == int(account_id)
        )
        if sub_account_code is not None:
            stmt = stmt.where(JournalLineModel.sub_account_code == sub_account_code)

        with self._storage("journal_entry.find_posted_lines_for_account"):
            return [self._to_posted(*row) for row in self.session.execute(stmt)]

    def find_posted_lines(self, date_from: date | None, date_to: date) -> list[PostedLine]:
        with self._storage("journal_entry.find_posted_lines"):
            return [
                self._to_posted(*row)
                for row in self.session.execute(self._posted_line_query(date_from, date_to))
            ]

    def sum_before_date(
        self,
        account_id: AccountId,
        before: date,
        sub_account_code: str | None = None,
    ) -> Decimal:
        stmt = (
            select(JournalLineModel.debit_amount, JournalLineModel.credit_amount)
            .join(JournalEntryModel, JournalLineModel.journal_entry_id == JournalEntryModel.id)
            .where(
                JournalLineModel.account_id == int(account_id),
                JournalEntryModel.status.in_(_POSTED),
                JournalEntryModel.journal_date < before,
            )
        )
        if sub_account_code is not None:
            stmt = stmt.where(JournalLineModel.sub_account_code == sub_account_code)

        # Summed here rather than in SQL so SQLite's text decimals stay exact
        total = ZERO
        with self._storage("journal_entry.sum_before_date"):
            for debit, credit in self.session.execute(stmt):
                total += (debit or ZERO) - (credit or ZERO)
        return total
