"""
Module: ledger_kernel.stores.account_store
Responsibility: SQLAlchemy implementations of AccountStore (chart-of-accounts
    metadata) and AccountStructureStore (the hierarchy nodes).
Architecture position: Kernel > Stores.

Invariants enforced:
    - Returned values are domain snapshots (Account, AccountStructure),
      never ORM instances.
    - save_all() writes a reparented subtree in one flush, so the
      hierarchy is never observed half-moved inside the transaction.
"""

from sqlalchemy import delete, select

from ledger_kernel.domain.accounts import Account, AccountType
from ledger_kernel.domain.hierarchy import AccountStructure
from ledger_kernel.domain.values import AccountId
from ledger_kernel.models.account import AccountModel, AccountStructureModel
from ledger_kernel.stores.base import SqlStore


def _account(model: AccountModel) -> Account:
    return Account(
        code=model.code,
        name=model.name,
        account_type=AccountType(model.account_type),
        id=AccountId(model.id),
    )


def _structure(model: AccountStructureModel) -> AccountStructure:
    return AccountStructure(
        account_code=model.account_code,
        account_path=model.account_path,
        hierarchy_level=model.hierarchy_level,
        parent_account_code=model.parent_account_code,
        display_order=model.display_order,
    )


class SqlAccountStore(SqlStore):
    """Chart-of-accounts metadata."""

    def find_by_code(self, code: str) -> Account | None:
        with self._storage("account.find_by_code"):
            model = self.session.execute(
                select(AccountModel).where(AccountModel.code == code)
            ).scalar_one_or_none()
            return _account(model) if model is not None else None

    def find_by_id(self, account_id: AccountId) -> Account | None:
        with self._storage("account.find_by_id"):
            model = self.session.get(AccountModel, int(account_id))
            return _account(model) if model is not None else None

    def find_all(self) -> list[Account]:
        with self._storage("account.find_all"):
            return [
                _account(model)
                for model in self.session.execute(
                    select(AccountModel).order_by(AccountModel.code)
                ).scalars()
            ]

    def add(self, account: Account) -> Account:
        with self._storage("account.add"):
            model = AccountModel(
                code=account.code,
                name=account.name,
                account_type=account.account_type.value,
            )
            self.session.add(model)
            self.session.flush()
            return _account(model)

    def update(self, account: Account) -> Account:
        with self._storage("account.update"):
            model = self.session.get(AccountModel, int(account.id))
            model.name = account.name
            model.account_type = account.account_type.value
            self.session.flush()
            return _account(model)

    def delete(self, account_id: AccountId) -> None:
        with self._storage("account.delete"):
            self.session.execute(
                delete(AccountModel)
                .where(AccountModel.id == int(account_id))
                .execution_options(synchronize_session="fetch")
            )
            self.session.flush()


class SqlAccountStructureStore(SqlStore):
    """Account hierarchy nodes keyed by account code."""

    def _model(self, code: str) -> AccountStructureModel | None:
        return self.session.execute(
            select(AccountStructureModel).where(AccountStructureModel.account_code == code)
        ).scalar_one_or_none()

    def find_by_code(self, code: str) -> AccountStructure | None:
        with self._storage("account_structure.find_by_code"):
            model = self._model(code)
            return _structure(model) if model is not None else None

    def find_all(self) -> list[AccountStructure]:
        with self._storage("account_structure.find_all"):
            return [
                _structure(model)
                for model in self.session.execute(
                    select(AccountStructureModel).order_by(AccountStructureModel.account_path)
                ).scalars()
            ]

    def find_children(self, code: str) -> list[AccountStructure]:
        with self._storage("account_structure.find_children"):
            return [
                _structure(model)
                for model in self.session.execute(
                    select(AccountStructureModel)
                    .where(AccountStructureModel.parent_account_code == code)
                    .order_by(
                        AccountStructureModel.display_order,
                        AccountStructureModel.account_code,
                    )
                ).scalars()
            ]

    def _upsert(self, structure: AccountStructure) -> None:
        model = self._model(structure.account_code)
        if model is None:
            model = AccountStructureModel(account_code=structure.account_code)
            self.session.add(model)
        model.account_path = structure.account_path
        model.hierarchy_level = structure.hierarchy_level
        model.parent_account_code = structure.parent_account_code
        model.display_order = structure.display_order

    def save(self, structure: AccountStructure) -> AccountStructure:
        with self._storage("account_structure.save"):
            self._upsert(structure)
            self.session.flush()
        return structure

    def save_all(self, structures: tuple[AccountStructure, ...]) -> None:
        with self._storage("account_structure.save_all"):
            for structure in structures:
                self._upsert(structure)
            self.session.flush()

    def delete(self, code: str) -> None:
        with self._storage("account_structure.delete"):
            self.session.execute(
                delete(AccountStructureModel)
                .where(AccountStructureModel.account_code == code)
                .execution_options(synchronize_session="fetch")
            )
            self.session.flush()
