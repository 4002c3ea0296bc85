from datetime import date

import pytest
from pydantic import ValidationError

from schemas import (
    BudgetCreate,
    TransactionCreate,
    TransactionType,
    apply_patch,
    mask_account_number,
)


def test_transaction_category_defaults_to_uncategorized():
    created = TransactionCreate(amount=5, description="x", date=date(2026, 1, 1), type="expense")
    assert created.category == "Uncategorized"
    blank = TransactionCreate(amount=5, description="x", date=date(2026, 1, 1), type="expense", category="")
    assert blank.category == "Uncategorized"


def test_budget_without_category_is_overall():
    created = BudgetCreate(name="All", amount=100, start_date=date(2026, 1, 1))
    assert created.category is None


def test_create_payloads_reject_bad_values():
    with pytest.raises(ValidationError):
        TransactionCreate(amount=0, description="x", date=date(2026, 1, 1), type="expense")
    with pytest.raises(ValidationError):
        BudgetCreate(name="All", amount=100, period="yearly", start_date=date(2026, 1, 1))


def test_default_categories_per_type():
    assert TransactionType.income.default_categories[0] == "Salary"
    assert TransactionType.expense.default_categories[0] == "Food"
    assert "Salary" not in TransactionType.expense.default_categories


def test_apply_patch():
    existing = {"name": "Rent", "amount": 800, "category": "Housing"}
    merged = apply_patch(existing, {"name": "", "amount": 900, "category": None})
    assert merged == {"name": "Rent", "amount": 900, "category": "Housing"}
    assert existing["amount"] == 800

    cleared = apply_patch(existing, {"category": None}, nullable=("category",))
    assert cleared["category"] is None


@pytest.mark.parametrize(
    "raw, masked",
    [("123456789", "*****6789"), ("12-34 56", "**3456"), ("1234", "1234"), ("12", "12")],
)
def test_mask_account_number(raw, masked):
    assert mask_account_number(raw) == masked
