"""
Per-user session: the records loaded for one user plus the mutations on them.

The session holds plain lists. They change only after the store confirms a
write, so a failed call leaves them as they were. Nothing refetches
implicitly; callers invoke ``refresh()`` when they need fresh data.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import aggregation
from database import PersistenceError
from logging_setup import get_logger
from schemas import (
    BankAccount,
    BankAccountCreate,
    Budget,
    BudgetCreate,
    COLLECTIONS,
    IncomeSource,
    IncomeSourceCreate,
    Transaction,
    TransactionCreate,
    TransactionType,
    apply_patch,
    mask_account_number,
)

logger = get_logger(__name__)


class RecordNotFound(LookupError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


# attribute -> (collection key, model, sort field)
_LOADED = {
    "transactions": ("transaction", Transaction, "date"),
    "budgets": ("budget", Budget, "created_at"),
    "income_sources": ("income_source", IncomeSource, "created_at"),
    "bank_accounts": ("bank_account", BankAccount, "created_at"),
}

_CLEARABLE_SOURCE_FIELDS = ("bank_account_id", "next_payment_date")


class FinanceSession:
    def __init__(self, store, user_id: str):
        self.store = store
        self.user_id = user_id
        self.transactions: List[Transaction] = []
        self.budgets: List[Budget] = []
        self.income_sources: List[IncomeSource] = []
        self.bank_accounts: List[BankAccount] = []

    # ---------------- loading -----------------

    def refresh(self, strict: bool = False) -> "FinanceSession":
        """Reload every collection for the user, newest first.

        A failed fetch is logged and leaves that list as it was, unless
        ``strict`` is set, in which case the error propagates.
        """
        for attr in _LOADED:
            self._load(attr, strict)
        return self

    def _load(self, attr: str, strict: bool) -> None:
        key, model, order_by = _LOADED[attr]
        try:
            rows = self.store.fetch_all(COLLECTIONS[key], self.user_id, order_by=order_by, descending=True)
        except PersistenceError:
            logger.exception("error fetching %s for user %s", attr, self.user_id)
            if strict:
                raise
            return
        setattr(self, attr, [model.model_validate(r) for r in rows])

    # ---------------- generic mutations -----------------

    def _add(self, attr: str, data: Dict[str, Any]):
        key, model, _ = _LOADED[attr]
        try:
            stored = self.store.insert(COLLECTIONS[key], self.user_id, data)
        except PersistenceError:
            logger.exception("error adding %s", key)
            raise
        record = model.model_validate(stored)
        setattr(self, attr, [record] + getattr(self, attr))
        return record

    def _update(self, attr: str, record_id: str, patch: Dict[str, Any], nullable: Iterable[str] = ()):
        key, model, _ = _LOADED[attr]
        existing = self._find(attr, record_id)
        merged = model.model_validate(apply_patch(existing.model_dump(), patch, nullable))
        try:
            stored = self.store.update(COLLECTIONS[key], self.user_id, record_id, merged)
        except PersistenceError:
            logger.exception("error updating %s %s", key, record_id)
            raise
        if stored is None:
            raise RecordNotFound(key, record_id)
        record = model.model_validate(stored)
        setattr(self, attr, [record if r.id == record_id else r for r in getattr(self, attr)])
        return record

    def _delete(self, attr: str, record_id: str) -> None:
        key, _, _ = _LOADED[attr]
        try:
            deleted = self.store.delete(COLLECTIONS[key], self.user_id, record_id)
        except PersistenceError:
            logger.exception("error deleting %s %s", key, record_id)
            raise
        if not deleted:
            raise RecordNotFound(key, record_id)
        setattr(self, attr, [r for r in getattr(self, attr) if r.id != record_id])

    def _find(self, attr: str, record_id: str):
        for record in getattr(self, attr):
            if record.id == record_id:
                return record
        raise RecordNotFound(_LOADED[attr][0], record_id)

    # ---------------- transactions -----------------

    def add_transaction(self, payload: TransactionCreate) -> Transaction:
        return self._add("transactions", payload.model_dump(mode="json"))

    def update_transaction(self, record_id: str, patch: Dict[str, Any]) -> Transaction:
        return self._update("transactions", record_id, patch)

    def delete_transaction(self, record_id: str) -> None:
        self._delete("transactions", record_id)

    # ---------------- budgets -----------------

    def add_budget(self, payload: BudgetCreate) -> Budget:
        return self._add("budgets", payload.model_dump(mode="json"))

    def update_budget(self, record_id: str, patch: Dict[str, Any]) -> Budget:
        if patch.get("category") == "":
            patch = dict(patch, category=None)
        return self._update("budgets", record_id, patch, nullable=("category",))

    def delete_budget(self, record_id: str) -> None:
        self._delete("budgets", record_id)

    # ---------------- income sources -----------------

    def add_income_source(self, payload: IncomeSourceCreate) -> IncomeSource:
        return self._add("income_sources", payload.model_dump(mode="json"))

    def update_income_source(self, record_id: str, patch: Dict[str, Any]) -> IncomeSource:
        patch = {k: (None if k in _CLEARABLE_SOURCE_FIELDS and v == "" else v) for k, v in patch.items()}
        return self._update("income_sources", record_id, patch, nullable=_CLEARABLE_SOURCE_FIELDS)

    def delete_income_source(self, record_id: str) -> None:
        self._delete("income_sources", record_id)

    # ---------------- bank accounts -----------------

    def add_bank_account(self, payload: BankAccountCreate) -> BankAccount:
        data = payload.model_dump(mode="json", exclude={"account_number"})
        data["account_number_masked"] = mask_account_number(payload.account_number)
        data["is_connected"] = False
        data["last_sync"] = None
        return self._add("bank_accounts", data)

    def update_bank_account(self, record_id: str, patch: Dict[str, Any]) -> BankAccount:
        patch = dict(patch)
        raw_number = patch.pop("account_number", None)
        if raw_number:
            patch["account_number_masked"] = mask_account_number(raw_number)
        return self._update("bank_accounts", record_id, patch)

    def delete_bank_account(self, record_id: str) -> None:
        self._delete("bank_accounts", record_id)

    # ---------------- derived figures -----------------

    def total_by_type(self, tx_type: TransactionType) -> float:
        return aggregation.total_by_type(self.transactions, tx_type)

    def category_totals(self, tx_type: TransactionType):
        return aggregation.category_totals(self.transactions, tx_type)

    def total_monthly_income(self) -> float:
        return aggregation.total_monthly_income(self.income_sources)

    def total_budget(self) -> float:
        return aggregation.total_budget(self.budgets)

    def remaining_budget(self) -> float:
        return aggregation.remaining_budget(self.budgets, self.transactions)

    def budget_progress(self, budget_id: str) -> float:
        return aggregation.budget_progress(self.budgets, self.transactions, budget_id)

    def budget_status(self, budget_id: str):
        return aggregation.budget_status(self.budgets, self.transactions, budget_id)

    def category_spent(self, category: Optional[str] = None) -> float:
        return aggregation.category_spent(self.transactions, category)

    def monthly_breakdown(self, today: Optional[date] = None):
        return aggregation.monthly_breakdown(self.transactions, today)

    def summary(self, today: Optional[date] = None) -> dict:
        return aggregation.dashboard_summary(self.transactions, self.budgets, self.income_sources, today)
