"""
Aggregation engine: derived figures for the dashboard, budgets and income pages.

Every function here is pure. Inputs are collections already loaded by the
caller (see ``session.FinanceSession``); nothing here performs I/O.
"""
import math
from calendar import month_abbr
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from logging_setup import get_logger
from schemas import (
    Budget,
    BudgetStatus,
    CategoryShare,
    CategoryTotal,
    IncomeSource,
    MonthlyBucket,
    Transaction,
    TransactionType,
)

logger = get_logger(__name__)

# Average payment periods per month; fixed, not derived from the calendar.
FREQUENCY_MULTIPLIERS = {
    "weekly": 4.33,
    "bi-weekly": 2.17,
    "monthly": 1,
}
# Months covered by one payment.
FREQUENCY_DIVISORS = {
    "quarterly": 3,
    "annually": 12,
}

# Checked in order; the first group whose keywords occur in the category wins.
EXPENSE_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("food", ("food", "groceries", "restaurant", "dining")),
    ("housing", ("housing", "rent", "utilities", "mortgage")),
    ("transportation", ("transportation", "gas", "car", "uber", "taxi")),
    ("entertainment", ("entertainment", "movies", "streaming", "gaming")),
    ("shopping", ("shopping", "clothing", "electronics", "retail")),
    ("health", ("health", "medical", "pharmacy", "doctor")),
)
FALLBACK_GROUP = "other"

CHART_MONTHS = 6
RECENT_LIMIT = 5


# ---------------- Totals & categories -----------------

def transactions_by_type(transactions: Sequence[Transaction], tx_type: TransactionType) -> List[Transaction]:
    tx_type = TransactionType(tx_type)
    return [t for t in transactions if t.type == tx_type]


def total_by_type(transactions: Sequence[Transaction], tx_type: TransactionType) -> float:
    return sum((t.amount for t in transactions_by_type(transactions, tx_type)), 0)


def category_totals(transactions: Sequence[Transaction], tx_type: TransactionType) -> List[CategoryTotal]:
    """Sum amounts per exact category label, in first-seen order."""
    totals: Dict[str, float] = {}
    for t in transactions_by_type(transactions, tx_type):
        totals[t.category] = totals.get(t.category, 0) + t.amount
    return [CategoryTotal(category=c, amount=a) for c, a in totals.items()]


def category_breakdown(transactions: Sequence[Transaction], tx_type: TransactionType) -> List[CategoryShare]:
    """Non-zero category totals, largest first, with their share of the type total."""
    total = total_by_type(transactions, tx_type)
    shares = []
    for ct in category_totals(transactions, tx_type):
        if ct.amount <= 0:
            continue
        percentage = round(ct.amount / total * 100, 1) if total else 0.0
        shares.append(CategoryShare(category=ct.category, amount=ct.amount, percentage=percentage))
    shares.sort(key=lambda s: s.amount, reverse=True)
    return shares


def recent_transactions(transactions: Sequence[Transaction], limit: int = RECENT_LIMIT) -> List[Transaction]:
    return sorted(transactions, key=lambda t: t.date, reverse=True)[:limit]


# ---------------- Income -----------------

def monthly_equivalent(amount: float, frequency: str) -> float:
    """Convert one payment at ``frequency`` into an average monthly amount."""
    if frequency in FREQUENCY_DIVISORS:
        return amount / FREQUENCY_DIVISORS[frequency]
    return amount * FREQUENCY_MULTIPLIERS.get(frequency, 1)


def active_income_sources(sources: Sequence[IncomeSource]) -> List[IncomeSource]:
    return [s for s in sources if s.is_active]


def total_monthly_income(sources: Sequence[IncomeSource]) -> float:
    return sum((monthly_equivalent(s.amount, s.frequency) for s in active_income_sources(sources)), 0)


# ---------------- Budgets -----------------

def find_budget(budgets: Sequence[Budget], budget_id: str) -> Optional[Budget]:
    return next((b for b in budgets if b.id == budget_id), None)


def budget_by_category(budgets: Sequence[Budget], category: str) -> Optional[Budget]:
    return next((b for b in budgets if b.category == category), None)


def overall_budget(budgets: Sequence[Budget]) -> Optional[Budget]:
    return next((b for b in budgets if not b.category), None)


def primary_budget(budgets: Sequence[Budget]) -> Optional[Budget]:
    """The first category-less budget, else the first budget supplied."""
    budget = overall_budget(budgets)
    if budget is None and budgets:
        budget = budgets[0]
    return budget


def total_budget(budgets: Sequence[Budget]) -> float:
    """Overall budget amount when one exists, otherwise the sum of all budgets."""
    budget = overall_budget(budgets)
    if budget is not None:
        return budget.amount
    return sum((b.amount for b in budgets), 0)


def remaining_budget(budgets: Sequence[Budget], transactions: Sequence[Transaction]) -> float:
    return total_budget(budgets) - total_by_type(transactions, TransactionType.expense)


def budget_used_percentage(budgets: Sequence[Budget], transactions: Sequence[Transaction]) -> int:
    total = total_budget(budgets)
    if total <= 0:
        return 0
    used = total - remaining_budget(budgets, transactions)
    return min(math.floor(used / total * 100), 100)


def category_spent(transactions: Sequence[Transaction], category: Optional[str] = None) -> float:
    """Expense total for one category, or for all expenses when ``category`` is None."""
    totals = category_totals(transactions, TransactionType.expense)
    if category is None:
        return sum((ct.amount for ct in totals), 0)
    return next((ct.amount for ct in totals if ct.category == category), 0)


def budget_spent(budget: Budget, transactions: Sequence[Transaction]) -> float:
    if budget.category:
        return category_spent(transactions, budget.category)
    return total_by_type(transactions, TransactionType.expense)


def budget_progress(budgets: Sequence[Budget], transactions: Sequence[Transaction], budget_id: str) -> float:
    """Fraction of a budget consumed, clamped to 1.

    Unknown ids yield 0. A zero-amount budget also yields 0 and is logged.
    """
    budget = find_budget(budgets, budget_id)
    if budget is None:
        return 0.0
    if budget.amount == 0:
        logger.warning("budget %s has a zero amount; reporting progress 0", budget.id)
        return 0.0
    return min(budget_spent(budget, transactions) / budget.amount, 1)


def status_level(percent: float) -> str:
    if percent > 90:
        return "danger"
    if percent > 75:
        return "warning"
    if percent > 50:
        return "caution"
    return "ok"


def budget_status(budgets: Sequence[Budget], transactions: Sequence[Transaction], budget_id: str) -> Optional[BudgetStatus]:
    budget = find_budget(budgets, budget_id)
    if budget is None:
        return None
    progress = budget_progress(budgets, transactions, budget_id)
    spent = budget_spent(budget, transactions)
    percent = min(progress * 100, 100)
    return BudgetStatus(
        budget_id=budget.id,
        progress=progress,
        percent=percent,
        level=status_level(percent),
        spent=spent,
        remaining=max(budget.amount - spent, 0),
        over_budget=max(spent - budget.amount, 0),
    )


# ---------------- Monthly chart -----------------

def expense_group(category: str) -> str:
    label = (category or "").lower()
    for group, keywords in EXPENSE_GROUPS:
        if any(k in label for k in keywords):
            return group
    return FALLBACK_GROUP


def _shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def monthly_breakdown(
    transactions: Sequence[Transaction], today: Optional[date] = None, months: int = CHART_MONTHS
) -> List[MonthlyBucket]:
    """Income and grouped expenses for the last ``months`` calendar months.

    Buckets are keyed by (year, month) and always all present, oldest first.
    """
    today = today or date.today()
    buckets: Dict[Tuple[int, int], MonthlyBucket] = {}
    for offset in range(-(months - 1), 1):
        year, month = _shift_month(today.year, today.month, offset)
        buckets[(year, month)] = MonthlyBucket(name=month_abbr[month], year=year, month=month)

    for t in transactions:
        bucket = buckets.get((t.date.year, t.date.month))
        if bucket is None:
            continue
        if t.type == TransactionType.income:
            bucket.income += t.amount
            continue
        bucket.total_expenses += t.amount
        group = expense_group(t.category)
        setattr(bucket, group, getattr(bucket, group) + t.amount)

    return list(buckets.values())


# ---------------- Summaries -----------------

def dashboard_summary(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    sources: Sequence[IncomeSource],
    today: Optional[date] = None,
) -> dict:
    """Everything the dashboard shows, as plain numbers.

    Net balance adds the monthly income from sources on top of logged income
    transactions; recurring income logged both ways is counted twice.
    """
    total_income = total_by_type(transactions, TransactionType.income)
    total_expenses = total_by_type(transactions, TransactionType.expense)
    monthly_income = total_monthly_income(sources)
    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "monthly_income_from_sources": monthly_income,
        "net_balance": (total_income + monthly_income) - total_expenses,
        "budget_total": total_budget(budgets),
        "budget_remaining": remaining_budget(budgets, transactions),
        "budget_used_percentage": budget_used_percentage(budgets, transactions),
        "spending_by_category": category_breakdown(transactions, TransactionType.expense),
        "income_by_category": category_breakdown(transactions, TransactionType.income),
        "monthly": monthly_breakdown(transactions, today),
        "recent": recent_transactions(transactions),
    }


def legacy_summary(transactions: Sequence[Transaction], budgets: Sequence[Budget]) -> dict:
    """Summary served by the prototype API; remaining budget never goes negative."""
    total_income = total_by_type(transactions, TransactionType.income)
    total_expenses = total_by_type(transactions, TransactionType.expense)
    main_budget = primary_budget(budgets)
    budget_amount = main_budget.amount if main_budget else 0
    return {
        "totalIncome": total_income,
        "totalExpenses": total_expenses,
        "netBalance": total_income - total_expenses,
        "budgetAmount": budget_amount,
        "budgetRemaining": max(budget_amount - total_expenses, 0),
        "spendingByCategory": category_totals(transactions, TransactionType.expense),
        "recentTransactions": recent_transactions(transactions),
    }
