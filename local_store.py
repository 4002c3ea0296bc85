"""
Offline ledger for the prototype dashboard.

A single JSON file holds two keys: ``budget`` (a number) and ``expenses``
(a list of ``{amount, description, date}``). There is no schema versioning.
"""
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from logging_setup import get_logger

logger = get_logger(__name__)

BUDGET_KEY = "budget"
EXPENSES_KEY = "expenses"
DEFAULT_PATH = os.getenv("LOCAL_LEDGER_PATH", "data/ledger.json")


def _parse_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class LocalLedger:
    def __init__(self, path: Union[str, Path] = DEFAULT_PATH):
        self.path = Path(path)
        self.budget: float = 0
        self.expenses: List[Dict[str, Any]] = []
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.budget = _parse_amount(data.get(BUDGET_KEY)) or 0
        self.expenses = list(data.get(EXPENSES_KEY) or [])

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({BUDGET_KEY: self.budget, EXPENSES_KEY: self.expenses}, f, indent=2)

    def set_budget(self, value: Any) -> bool:
        """Store a new budget; non-numeric input is ignored."""
        amount = _parse_amount(value)
        if amount is None:
            logger.debug("ignoring non-numeric budget %r", value)
            return False
        self.budget = amount
        self.save()
        return True

    def add_expense(self, amount: Any, description: str, when: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Append an expense; returns None when amount or description is unusable."""
        parsed = _parse_amount(amount) if amount not in (None, "") else None
        if parsed is None or not description:
            logger.debug("ignoring expense amount=%r description=%r", amount, description)
            return None
        expense = {
            "amount": parsed,
            "description": description,
            "date": (when or datetime.now(timezone.utc)).isoformat(),
        }
        self.expenses.append(expense)
        self.save()
        return expense

    def total_expenses(self) -> float:
        return sum((e.get("amount", 0) for e in self.expenses), 0)

    def amount_left(self) -> float:
        return self.budget - self.total_expenses()
