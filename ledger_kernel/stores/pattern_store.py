"""
Module: ledger_kernel.stores.pattern_store
Responsibility: SQLAlchemy implementation of AutoJournalPatternStore.
Architecture position: Kernel > Stores.

Invariants enforced:
    - A pattern and its items are written together; save() replaces the
      whole item list.
"""

from dataclasses import replace

from sqlalchemy import delete, select

from ledger_kernel.domain.auto_journal import (
    AutoJournalPattern,
    AutoJournalPatternItem,
    DebitCredit,
)
from ledger_kernel.models.auto_journal import (
    AutoJournalPatternItemModel,
    AutoJournalPatternModel,
)
from ledger_kernel.stores.base import SqlStore


def _pattern(model: AutoJournalPatternModel) -> AutoJournalPattern:
    return AutoJournalPattern(
        id=model.id,
        pattern_code=model.pattern_code,
        pattern_name=model.pattern_name,
        source_table_name=model.source_table_name,
        description=model.description,
        is_active=model.is_active,
        items=tuple(
            AutoJournalPatternItem(
                line_number=item.line_number,
                debit_credit=DebitCredit(item.debit_credit),
                account_code=item.account_code,
                amount_formula=item.amount_formula,
                description_template=item.description_template,
            )
            for item in model.items
        ),
    )


class SqlAutoJournalPatternStore(SqlStore):
    def find_by_id(self, pattern_id: int) -> AutoJournalPattern | None:
        with self._storage("auto_journal_pattern.find_by_id"):
            model = self.session.get(AutoJournalPatternModel, pattern_id)
            return _pattern(model) if model is not None else None

    def find_by_code(self, pattern_code: str) -> AutoJournalPattern | None:
        with self._storage("auto_journal_pattern.find_by_code"):
            model = self.session.execute(
                select(AutoJournalPatternModel)
                .where(AutoJournalPatternModel.pattern_code == pattern_code)
            ).scalar_one_or_none()
            return _pattern(model) if model is not None else None

    def find_all(self) -> list[AutoJournalPattern]:
        with self._storage("auto_journal_pattern.find_all"):
            return [
                _pattern(model)
                for model in self.session.execute(
                    select(AutoJournalPatternModel)
                    .order_by(AutoJournalPatternModel.pattern_code)
                ).scalars()
            ]

    def save(self, pattern: AutoJournalPattern) -> AutoJournalPattern:
        with self._storage("auto_journal_pattern.save"):
            model = (
                self.session.get(AutoJournalPatternModel, pattern.id)
                if pattern.id is not None else None
            )
            if model is None:
                model = AutoJournalPatternModel()
                self.session.add(model)
            model.pattern_code = pattern.pattern_code
            model.pattern_name = pattern.pattern_name
            model.source_table_name = pattern.source_table_name
            model.description = pattern.description
            model.is_active = pattern.is_active

            # Clear first: inserting before deleting would trip the line-number constraint
            model.items.clear()
            self.session.flush()
            model.items.extend(
                AutoJournalPatternItemModel(
                    line_number=item.line_number,
                    debit_credit=item.debit_credit.value,
                    account_code=item.account_code,
                    amount_formula=item.amount_formula,
                    description_template=item.description_template,
                )
                for item in pattern.items
            )
            self.session.flush()
            return replace(pattern, id=model.id)

    def delete(self, pattern_id: int) -> None:
        with self._storage("auto_journal_pattern.delete"):
            self.session.execute(
                delete(AutoJournalPatternItemModel)
                .where(AutoJournalPatternItemModel.pattern_id == pattern_id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.execute(
                delete(AutoJournalPatternModel)
                .where(AutoJournalPatternModel.id == pattern_id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.flush()
