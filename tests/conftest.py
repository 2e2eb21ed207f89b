import itertools
from datetime import date

import pytest

from models import Budget, Transaction
from periods import PeriodType
from reconciliation import ReconciliationEngine
from stores import InMemoryBudgetStore, InMemoryLedger

_ids = itertools.count(1)


def make_transaction(day: date, category: str, amount: float, txn_id: str = None, note: str = "") -> Transaction:
    """Build a transaction with an auto-generated id."""
    return Transaction(id=txn_id or f"t{next(_ids)}", date=day, category=category, amount=amount, note=note)


def make_budget(
    budget_id: str,
    category: str,
    allocated: float,
    start: date,
    end: date,
    period_type: PeriodType = PeriodType.MONTHLY
) -> Budget:
    return Budget(
        id=budget_id,
        category=category,
        allocated_amount=allocated,
        start_date=start,
        end_date=end,
        period_type=period_type,
    )


@pytest.fixture
def ledger():
    """Empty in-memory ledger."""
    return InMemoryLedger()


@pytest.fixture
def food_january():
    """Monthly 'Food' budget of 500 for January 2025."""
    return make_budget("food-jan", "Food", 500.0, date(2025, 1, 1), date(2025, 1, 31))


@pytest.fixture
def store(food_january):
    return InMemoryBudgetStore([food_january])


@pytest.fixture
def engine(store, ledger):
    return ReconciliationEngine(store, ledger)
