"""
Placeholder REST API used by the prototype front end.

Records live in process memory only and are seeded with a couple of sample
entries on start. Errors come back as ``{"error": "..."}``.
"""
import math
import os
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import Body, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from aggregation import legacy_summary
from local_store import LocalLedger
from logging_setup import configure_logging, get_logger
from schemas import UNCATEGORIZED, Budget, Transaction, apply_patch

logger = get_logger(__name__)

app = FastAPI(title="Finance Tracker Placeholder API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class PlaceholderDB:
    """In-memory transactions and budgets for the lifetime of the process."""

    def __init__(self):
        self.transactions: List[Dict[str, Any]] = []
        self.budgets: List[Dict[str, Any]] = []
        self.reset()

    def reset(self) -> None:
        self.transactions = [
            {
                "id": "1",
                "amount": 2500,
                "description": "Salary",
                "date": "2025-06-01",
                "type": "income",
                "category": "Salary",
            },
            {
                "id": "2",
                "amount": 800,
                "description": "Rent",
                "date": "2025-06-05",
                "type": "expense",
                "category": "Housing",
            },
        ]
        self.budgets = [
            {
                "id": "1",
                "name": "Monthly Budget",
                "amount": 3000,
                "period": "monthly",
                "startDate": "2025-06-01",
            },
        ]


store = PlaceholderDB()
ledger = LocalLedger()


def error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def find_index(items: List[Dict[str, Any]], item_id: str) -> int:
    return next((i for i, item in enumerate(items) if item["id"] == item_id), -1)


def parse_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if math.isfinite(amount) else None


def is_iso_date(value: Any) -> bool:
    """True only for a plain YYYY-MM-DD string."""
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def check_text_fields(body: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        if body.get(key) is not None and not isinstance(body[key], str):
            return f"Invalid {key}"
    return None


def check_transaction_fields(body: Dict[str, Any]) -> Optional[str]:
    if body.get("amount") and parse_amount(body["amount"]) is None:
        return "Invalid amount"
    if body.get("date") and not is_iso_date(body["date"]):
        return "Invalid date"
    if body.get("type") and body["type"] not in ("income", "expense"):
        return "Invalid type"
    return check_text_fields(body, ("description", "category"))


def check_budget_fields(body: Dict[str, Any]) -> Optional[str]:
    if body.get("amount") and parse_amount(body["amount"]) is None:
        return "Invalid amount"
    if body.get("startDate") and not is_iso_date(body["startDate"]):
        return "Invalid date"
    if body.get("period") and body["period"] not in ("weekly", "monthly"):
        return "Invalid period"
    return check_text_fields(body, ("name", "category"))


def as_transaction(record: Dict[str, Any]) -> Transaction:
    return Transaction.model_validate(record)


def as_budget(record: Dict[str, Any]) -> Budget:
    return Budget.model_validate({**record, "start_date": record["startDate"]})


def rejected(kind: str, exc: ValidationError) -> JSONResponse:
    logger.warning("rejected %s: %s", kind, exc)
    return error(400, f"Invalid {kind}")


# ---------------- Transactions -----------------

@app.get("/api/transactions")
def list_transactions():
    return store.transactions


@app.get("/api/transactions/{tx_id}")
def get_transaction(tx_id: str):
    index = find_index(store.transactions, tx_id)
    if index == -1:
        return error(404, "Transaction not found")
    return store.transactions[index]


@app.post("/api/transactions", status_code=201)
def create_transaction(body: Dict[str, Any] = Body(...)):
    if not all(body.get(k) for k in ("amount", "description", "date", "type")):
        return error(400, "Missing required fields")
    problem = check_transaction_fields(body)
    if problem:
        return error(400, problem)

    transaction = {
        "id": str(uuid4()),
        "amount": parse_amount(body["amount"]),
        "description": body["description"],
        "date": body["date"],
        "type": body["type"],
        "category": body.get("category") or UNCATEGORIZED,
    }
    try:
        as_transaction(transaction)
    except ValidationError as exc:
        return rejected("transaction", exc)
    store.transactions.append(transaction)
    logger.info("created transaction %s", transaction["id"])
    return transaction


@app.put("/api/transactions/{tx_id}")
def update_transaction(tx_id: str, body: Dict[str, Any] = Body(...)):
    index = find_index(store.transactions, tx_id)
    if index == -1:
        return error(404, "Transaction not found")
    problem = check_transaction_fields(body)
    if problem:
        return error(400, problem)

    patch = {k: body.get(k) for k in ("description", "date", "type", "category")}
    if body.get("amount"):
        patch["amount"] = parse_amount(body["amount"])
    updated = apply_patch(store.transactions[index], patch)
    try:
        as_transaction(updated)
    except ValidationError as exc:
        return rejected("transaction", exc)
    store.transactions[index] = updated
    return updated


@app.delete("/api/transactions/{tx_id}", status_code=204)
def delete_transaction(tx_id: str):
    index = find_index(store.transactions, tx_id)
    if index == -1:
        return error(404, "Transaction not found")
    store.transactions.pop(index)
    return Response(status_code=204)


# ---------------- Budgets -----------------

@app.get("/api/budgets")
def list_budgets():
    return store.budgets


@app.get("/api/budgets/{budget_id}")
def get_budget(budget_id: str):
    index = find_index(store.budgets, budget_id)
    if index == -1:
        return error(404, "Budget not found")
    return store.budgets[index]


@app.post("/api/budgets", status_code=201)
def create_budget(body: Dict[str, Any] = Body(...)):
    if not all(body.get(k) for k in ("name", "amount", "period", "startDate")):
        return error(400, "Missing required fields")
    problem = check_budget_fields(body)
    if problem:
        return error(400, problem)

    budget = {
        "id": str(uuid4()),
        "name": body["name"],
        "amount": parse_amount(body["amount"]),
        "period": body["period"],
        "startDate": body["startDate"],
    }
    if body.get("category") is not None:
        budget["category"] = body["category"]
    try:
        as_budget(budget)
    except ValidationError as exc:
        return rejected("budget", exc)
    store.budgets.append(budget)
    logger.info("created budget %s", budget["id"])
    return budget


@app.put("/api/budgets/{budget_id}")
def update_budget(budget_id: str, body: Dict[str, Any] = Body(...)):
    index = find_index(store.budgets, budget_id)
    if index == -1:
        return error(404, "Budget not found")
    problem = check_budget_fields(body)
    if problem:
        return error(400, problem)

    patch = {k: body.get(k) for k in ("name", "period", "startDate")}
    if body.get("amount"):
        patch["amount"] = parse_amount(body["amount"])
    nullable = ()
    if "category" in body:
        patch["category"] = body["category"]
        nullable = ("category",)
    updated = apply_patch(store.budgets[index], patch, nullable)
    try:
        as_budget(updated)
    except ValidationError as exc:
        return rejected("budget", exc)
    store.budgets[index] = updated
    return updated


@app.delete("/api/budgets/{budget_id}", status_code=204)
def delete_budget(budget_id: str):
    index = find_index(store.budgets, budget_id)
    if index == -1:
        return error(404, "Budget not found")
    store.budgets.pop(index)
    return Response(status_code=204)


# ---------------- Summary -----------------

@app.get("/api/summary")
def get_summary():
    transactions = [as_transaction(t) for t in store.transactions]
    budgets = [as_budget(b) for b in store.budgets]
    summary = legacy_summary(transactions, budgets)

    by_id = {t["id"]: t for t in store.transactions}
    summary["spendingByCategory"] = [c.model_dump() for c in summary["spendingByCategory"]]
    summary["recentTransactions"] = [by_id[t.id] for t in summary["recentTransactions"]]
    return summary


# ---------------- Offline ledger -----------------

def ledger_view() -> Dict[str, Any]:
    return {
        "budget": ledger.budget,
        "expenses": ledger.expenses,
        "totalExpenses": ledger.total_expenses(),
        "amountLeft": ledger.amount_left(),
    }


@app.get("/local")
def get_ledger():
    return ledger_view()


@app.post("/local/budget")
def set_ledger_budget(body: Dict[str, Any] = Body(...)):
    if not ledger.set_budget(body.get("amount")):
        return error(400, "Budget must be a number")
    return ledger_view()


@app.post("/local/expenses", status_code=201)
def add_ledger_expense(body: Dict[str, Any] = Body(...)):
    if ledger.add_expense(body.get("amount"), body.get("description")) is None:
        return error(400, "Amount and description are required")
    return ledger_view()


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    port = int(os.getenv("LEGACY_PORT", 3001))
    uvicorn.run(app, host="0.0.0.0", port=port)
