"""
Database Schemas for Personal Finance Tracker

Each Pydantic model corresponds to a MongoDB collection.
Collection name is given by the COLLECTIONS mapping below.
"""
from datetime import date as Date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNCATEGORIZED = "Uncategorized"

PeriodLiteral = Literal["weekly", "monthly"]
FrequencyLiteral = Literal["weekly", "bi-weekly", "monthly", "quarterly", "annually"]
SourceTypeLiteral = Literal["manual", "bank", "employer"]
AccountTypeLiteral = Literal["checking", "savings", "credit"]
DateFormatLiteral = Literal["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD", "DD-MM-YYYY"]
ThemeLiteral = Literal["light", "dark", "system"]


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"

    @property
    def default_categories(self) -> List[str]:
        return list(DEFAULT_CATEGORIES[self])


DEFAULT_CATEGORIES = {
    TransactionType.income: ("Salary", "Side Hustle", "Investments", "Gifts", "Other"),
    TransactionType.expense: (
        "Food",
        "Housing",
        "Transportation",
        "Entertainment",
        "Utilities",
        "Shopping",
        "Health",
        "Personal",
        "Other",
    ),
}

COLLECTIONS = {
    "transaction": "transactions",
    "budget": "budgets",
    "income_source": "income_sources",
    "bank_account": "bank_accounts",
    "profile": "profiles",
}


class Record(BaseModel):
    """Fields the store assigns to every persisted document."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Transaction(Record):
    """
    Transactions collection schema
    Collection name: "transactions"
    """
    amount: float = Field(..., allow_inf_nan=False, description="Amount in the user's currency")
    description: str = Field("", description="Free text")
    date: Date = Field(..., description="Calendar date of the transaction")
    type: TransactionType = Field(..., description="income or expense")
    category: str = Field("", description="Free-text category label")


class Budget(Record):
    """
    Budgets collection schema
    Collection name: "budgets"

    A budget without a category is an overall budget covering every expense.
    """
    name: str
    amount: float = Field(..., allow_inf_nan=False, description="Budget ceiling")
    period: PeriodLiteral = "monthly"
    start_date: Date
    category: Optional[str] = None


class IncomeSource(Record):
    """
    Income sources collection schema
    Collection name: "income_sources"
    """
    name: str
    amount: float = Field(..., allow_inf_nan=False, description="Amount of one payment at the given frequency")
    frequency: FrequencyLiteral = "monthly"
    source_type: SourceTypeLiteral = "manual"
    bank_account_id: Optional[str] = None
    is_active: bool = True
    next_payment_date: Optional[Date] = None


class BankAccount(Record):
    """
    Bank accounts collection schema
    Collection name: "bank_accounts"
    """
    bank_name: str
    account_name: str
    account_type: AccountTypeLiteral = "checking"
    account_number_masked: str = ""
    is_connected: bool = False
    last_sync: Optional[datetime] = None


class Profile(Record):
    """
    User profile; parameterizes formatting only.
    Collection name: "profiles"
    """
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    currency: str = Field("USD", description="ISO currency code")
    date_format: DateFormatLiteral = "MM/DD/YYYY"
    theme: ThemeLiteral = "light"


# ---------------- Create payloads -----------------

class TransactionCreate(BaseModel):
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Positive amount")
    description: str = Field(..., min_length=1)
    date: Date
    type: TransactionType
    category: Optional[str] = Field(None, validate_default=True)

    @field_validator("category")
    @classmethod
    def default_category(cls, value: Optional[str]) -> str:
        return value or UNCATEGORIZED


class BudgetCreate(BaseModel):
    name: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, allow_inf_nan=False)
    period: PeriodLiteral = "monthly"
    start_date: Date
    category: Optional[str] = None

    @field_validator("category")
    @classmethod
    def blank_means_overall(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class IncomeSourceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    frequency: FrequencyLiteral = "monthly"
    source_type: SourceTypeLiteral = "manual"
    bank_account_id: Optional[str] = None
    is_active: bool = True
    next_payment_date: Optional[Date] = None


class BankAccountCreate(BaseModel):
    bank_name: str = Field(..., min_length=1)
    account_name: str = Field(..., min_length=1)
    account_type: AccountTypeLiteral = "checking"
    account_number: str = Field(..., description="Raw account number, masked before storage")


# ---------------- Derived views -----------------

class CategoryTotal(BaseModel):
    category: str
    amount: float


class CategoryShare(CategoryTotal):
    percentage: float


class MonthlyBucket(BaseModel):
    name: str
    year: int
    month: int
    income: float = 0
    total_expenses: float = 0
    food: float = 0
    housing: float = 0
    transportation: float = 0
    entertainment: float = 0
    shopping: float = 0
    health: float = 0
    other: float = 0


class BudgetStatus(BaseModel):
    budget_id: Optional[str] = None
    progress: float = Field(..., description="Fraction of the budget used, clamped to [0, 1]")
    percent: float
    level: Literal["ok", "caution", "warning", "danger"]
    spent: float
    remaining: float
    over_budget: float


def mask_account_number(account_number: str, mask_char: str = "*") -> str:
    """Keep only the last 4 digits of an account number, masking the rest."""
    digits = "".join(ch for ch in account_number if ch.isdigit())
    if len(digits) <= 4:
        return digits
    return mask_char * (len(digits) - 4) + digits[-4:]


def apply_patch(existing: Dict[str, Any], patch: Dict[str, Any], nullable: Iterable[str] = ()) -> Dict[str, Any]:
    """Merge optional overrides into a record.

    A field in ``patch`` replaces the existing value only when it is present
    and neither None nor the empty string. Fields named in ``nullable`` are
    applied whenever the key is present, None included.
    """
    merged = dict(existing)
    nullable = set(nullable)
    for key, value in patch.items():
        if key in nullable:
            merged[key] = value
        elif value is not None and value != "":
            merged[key] = value
    return merged
