import os
from datetime import date as Date, datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from database import MongoStore, PersistenceError, db
from formatting import currency_name, currency_symbol, format_currency, format_date, frequency_label
from logging_setup import configure_logging, get_logger
from schemas import (
    COLLECTIONS,
    DEFAULT_CATEGORIES,
    AccountTypeLiteral,
    BankAccountCreate,
    BudgetCreate,
    DateFormatLiteral,
    FrequencyLiteral,
    IncomeSourceCreate,
    PeriodLiteral,
    Profile,
    SourceTypeLiteral,
    ThemeLiteral,
    TransactionCreate,
    TransactionType,
)
from session import FinanceSession, RecordNotFound

logger = get_logger(__name__)

app = FastAPI(title="Personal Finance Tracker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceError)
def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": f"Database error: {exc}"})


@app.exception_handler(RecordNotFound)
def not_found_handler(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# ---------------- Dependencies -----------------

def get_store() -> MongoStore:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return MongoStore(db)


def current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """The signed-in user. Authentication itself happens upstream."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def get_session(store: MongoStore = Depends(get_store), user_id: str = Depends(current_user)) -> FinanceSession:
    return FinanceSession(store, user_id).refresh(strict=True)


def load_profile(session: FinanceSession) -> Profile:
    rows = session.store.fetch_all(COLLECTIONS["profile"], session.user_id)
    return Profile.model_validate(rows[0]) if rows else Profile(user_id=session.user_id)


@app.get("/")
def read_root():
    return {"message": "Finance Tracker Backend Running"}


@app.get("/test")
def test_database():
    """Verify database connectivity and show collections"""
    status = {
        "backend": "✅ Running",
        "database": "❌ Not Connected",
        "collections": [],
    }
    try:
        if db is None:
            status["database"] = "❌ Not Configured"
        else:
            status["database"] = "✅ Connected"
            status["collections"] = db.list_collection_names()
    except Exception as e:
        logger.warning("database check failed: %s", e)
        status["database"] = f"⚠️ {str(e)[:80]}"
    return status


# ---------------- Sample Data Bootstrap -----------------

@app.post("/bootstrap")
def bootstrap_sample_data(session: FinanceSession = Depends(get_session)):
    """Insert a few sample transactions, an overall budget and a salary source for an empty account."""
    today = Date.today()
    created = {"transactions": 0, "budgets": 0, "income_sources": 0}

    if not session.transactions:
        sample_items = [
            {"description": "Salary", "amount": 2500, "type": "income", "category": "Salary"},
            {"description": "Rent", "amount": 800, "type": "expense", "category": "Housing"},
            {"description": "Groceries", "amount": 42.5, "type": "expense", "category": "Food"},
            {"description": "Metro", "amount": 3.2, "type": "expense", "category": "Transportation"},
            {"description": "Coffee", "amount": 4.1, "type": "expense", "category": "Food"},
        ]
        for it in sample_items:
            session.add_transaction(TransactionCreate(date=today, **it))
            created["transactions"] += 1

    if not session.budgets:
        session.add_budget(BudgetCreate(name="Monthly Budget", amount=3000, start_date=today.replace(day=1)))
        created["budgets"] += 1

    if not session.income_sources:
        session.add_income_source(IncomeSourceCreate(name="Employer payroll", amount=1250, frequency="bi-weekly", source_type="employer"))
        created["income_sources"] += 1

    return {"status": "ok", "created": created}


# ---------------- Profile -----------------

class ProfileUpdate(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    currency: Optional[str] = None
    date_format: Optional[DateFormatLiteral] = None
    theme: Optional[ThemeLiteral] = None


@app.get("/profile")
def get_profile(session: FinanceSession = Depends(get_session)):
    return load_profile(session)


@app.post("/profile")
def update_profile(payload: ProfileUpdate, session: FinanceSession = Depends(get_session)):
    update = payload.model_dump(exclude_none=True)
    if "currency" in update:
        update["currency"] = update["currency"].upper()
    if not update:
        return {"status": "noop"}
    profile = load_profile(session)
    merged = profile.model_copy(update=update)
    collection = COLLECTIONS["profile"]
    if profile.id:
        session.store.update(collection, session.user_id, profile.id, merged)
    else:
        session.store.insert(collection, session.user_id, merged)
    return {"status": "ok"}


# ---------------- Summary -----------------

@app.get("/summary")
def get_summary(session: FinanceSession = Depends(get_session)):
    """Totals, budget usage, category breakdowns, six-month chart and recent activity."""
    profile = load_profile(session)
    summary = session.summary()
    summary["currency"] = profile.currency
    summary["currency_symbol"] = currency_symbol(profile.currency)
    summary["currency_name"] = currency_name(profile.currency)
    summary["formatted"] = {
        key: format_currency(summary[key], profile.currency)
        for key in ("total_income", "total_expenses", "monthly_income_from_sources", "net_balance", "budget_total", "budget_remaining")
    }
    summary["recent"] = [
        {**t.model_dump(mode="json"), "display_date": format_date(t.date, profile.date_format)}
        for t in summary["recent"]
    ]
    return summary


@app.get("/monthly")
def get_monthly(session: FinanceSession = Depends(get_session)):
    return session.monthly_breakdown()


# ---------------- Transactions -----------------

class TransactionUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    description: Optional[str] = None
    date: Optional[Date] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None


@app.get("/transactions")
def list_transactions(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    category: Optional[str] = None,
    type: Optional[TransactionType] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    limit: int = 100,
    session: FinanceSession = Depends(get_session),
):
    try:
        start = datetime.strptime(start_date, "%Y-%m-%d").date() if start_date else None
        end = datetime.strptime(end_date, "%Y-%m-%d").date() if end_date else None
    except ValueError:
        raise HTTPException(status_code=422, detail="Dates must be YYYY-MM-DD")

    items = session.transactions
    if start:
        items = [t for t in items if t.date >= start]
    if end:
        items = [t for t in items if t.date < end]
    if category:
        items = [t for t in items if t.category == category]
    if type:
        items = [t for t in items if t.type == type]
    if min_amount is not None:
        items = [t for t in items if t.amount >= min_amount]
    if max_amount is not None:
        items = [t for t in items if t.amount <= max_amount]
    return items[:limit]


@app.post("/transactions", status_code=201)
def add_transaction(payload: TransactionCreate, session: FinanceSession = Depends(get_session)):
    return session.add_transaction(payload)


@app.put("/transactions/{tx_id}")
def update_transaction(tx_id: str, payload: TransactionUpdate, session: FinanceSession = Depends(get_session)):
    return session.update_transaction(tx_id, payload.model_dump(exclude_unset=True))


@app.delete("/transactions/{tx_id}", status_code=204)
def delete_transaction(tx_id: str, session: FinanceSession = Depends(get_session)):
    session.delete_transaction(tx_id)
    return Response(status_code=204)


@app.get("/categories")
def categories(type: Optional[TransactionType] = None):
    if type:
        return type.default_categories
    return {t.value: list(cats) for t, cats in DEFAULT_CATEGORIES.items()}


# ---------------- Budgets -----------------

class BudgetUpdate(BaseModel):
    name: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    period: Optional[PeriodLiteral] = None
    start_date: Optional[Date] = None
    category: Optional[str] = None


@app.get("/budgets")
def list_budgets(session: FinanceSession = Depends(get_session)):
    return session.budgets


@app.post("/budgets", status_code=201)
def add_budget(payload: BudgetCreate, session: FinanceSession = Depends(get_session)):
    return session.add_budget(payload)


@app.put("/budgets/{budget_id}")
def update_budget(budget_id: str, payload: BudgetUpdate, session: FinanceSession = Depends(get_session)):
    return session.update_budget(budget_id, payload.model_dump(exclude_unset=True))


@app.delete("/budgets/{budget_id}", status_code=204)
def delete_budget(budget_id: str, session: FinanceSession = Depends(get_session)):
    session.delete_budget(budget_id)
    return Response(status_code=204)


@app.get("/budgets/{budget_id}/progress")
def budget_progress(budget_id: str, session: FinanceSession = Depends(get_session)):
    status = session.budget_status(budget_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return status


# ---------------- Income sources -----------------

class IncomeSourceUpdate(BaseModel):
    name: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    frequency: Optional[FrequencyLiteral] = None
    source_type: Optional[SourceTypeLiteral] = None
    bank_account_id: Optional[str] = None
    is_active: Optional[bool] = None
    next_payment_date: Optional[Date] = None


@app.get("/income-sources")
def list_income_sources(session: FinanceSession = Depends(get_session)):
    return [
        {**s.model_dump(mode="json"), "frequency_label": frequency_label(s.frequency)}
        for s in session.income_sources
    ]


@app.get("/income-sources/monthly-total")
def monthly_income(session: FinanceSession = Depends(get_session)):
    profile = load_profile(session)
    total = session.total_monthly_income()
    return {
        "monthly_total": total,
        "active_sources": sum(1 for s in session.income_sources if s.is_active),
        "formatted": format_currency(total, profile.currency),
    }


@app.post("/income-sources", status_code=201)
def add_income_source(payload: IncomeSourceCreate, session: FinanceSession = Depends(get_session)):
    return session.add_income_source(payload)


@app.put("/income-sources/{source_id}")
def update_income_source(source_id: str, payload: IncomeSourceUpdate, session: FinanceSession = Depends(get_session)):
    return session.update_income_source(source_id, payload.model_dump(exclude_unset=True))


@app.delete("/income-sources/{source_id}", status_code=204)
def delete_income_source(source_id: str, session: FinanceSession = Depends(get_session)):
    session.delete_income_source(source_id)
    return Response(status_code=204)


# ---------------- Bank accounts -----------------

class BankAccountUpdate(BaseModel):
    bank_name: Optional[str] = None
    account_name: Optional[str] = None
    account_type: Optional[AccountTypeLiteral] = None
    account_number: Optional[str] = None


@app.get("/bank-accounts")
def list_bank_accounts(session: FinanceSession = Depends(get_session)):
    return session.bank_accounts


@app.post("/bank-accounts", status_code=201)
def add_bank_account(payload: BankAccountCreate, session: FinanceSession = Depends(get_session)):
    return session.add_bank_account(payload)


@app.put("/bank-accounts/{account_id}")
def update_bank_account(account_id: str, payload: BankAccountUpdate, session: FinanceSession = Depends(get_session)):
    return session.update_bank_account(account_id, payload.model_dump(exclude_unset=True))


@app.delete("/bank-accounts/{account_id}", status_code=204)
def delete_bank_account(account_id: str, session: FinanceSession = Depends(get_session)):
    session.delete_bank_account(account_id)
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
