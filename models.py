"""
Domain records shared by the ledger, the budget store and the engine.

Transactions are immutable snapshots owned by the ledger. Budgets are
mutable: the reconciliation engine rewrites ``spent_amount`` and
``remaining_amount`` in place, everything else is fixed at creation.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from categories import categories_match
from periods import DateLike, PeriodType, in_window

# Spent totals are kept to this many decimal places so that a running total
# and a full rescan of the same amounts land on the same float.
SPENT_DECIMALS = 9


@dataclass(frozen=True)
class Transaction:
    """
    A single ledger entry.

    Attributes:
        id: Unique identifier
        date: Date or datetime of the transaction
        category: Free-text category label
        amount: Signed amount; negative for expenses, non-negative for income
        note: Optional free-text note
    """
    id: str
    date: DateLike
    category: str
    amount: float
    note: str = ""

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


@dataclass
class Budget:
    """
    Spending target for a category over an inclusive date window.

    Attributes:
        id: Unique identifier
        category: Category label, compared case-insensitively
        allocated_amount: Target ceiling set by the user
        start_date: First day of the window (inclusive)
        end_date: Last day of the window (inclusive)
        period_type: Window length the budget was created with
        spent_amount: Sum of matching in-window expenses
        remaining_amount: max(0, allocated - spent); derived when omitted
    """
    id: str
    category: str
    allocated_amount: float
    start_date: date
    end_date: date
    period_type: PeriodType = PeriodType.MONTHLY
    spent_amount: float = 0.0
    remaining_amount: Optional[float] = None

    def __post_init__(self) -> None:
        self.period_type = PeriodType.parse(self.period_type)
        self.spent_amount = round_spent(self.spent_amount)
        if self.remaining_amount is None:
            self.remaining_amount = remaining_for(self.allocated_amount, self.spent_amount)

    def set_spent(self, spent_amount: float) -> None:
        """Set the spent amount and refresh the floored remaining amount."""
        self.spent_amount = round_spent(spent_amount)
        self.remaining_amount = remaining_for(self.allocated_amount, self.spent_amount)

    def contains(self, value: DateLike) -> bool:
        return in_window(value, self.start_date, self.end_date)

    def applies_to(self, transaction: Transaction) -> bool:
        """True when the transaction's category and date fall under this budget."""
        return categories_match(transaction.category, self.category) and self.contains(transaction.date)

    @property
    def over_by(self) -> float:
        return max(0.0, self.spent_amount - self.allocated_amount)

    @property
    def is_over_budget(self) -> bool:
        return self.spent_amount > self.allocated_amount

    @property
    def progress(self) -> float:
        """Share of the allocation used, capped at 1.0."""
        if self.allocated_amount <= 0:
            return 0.0
        return min(self.spent_amount / self.allocated_amount, 1.0)


@dataclass
class BudgetStatus:
    """
    Status of a budget category.

    Attributes:
        category: Category name
        allocated: Amount allocated to category
        spent: Amount spent in category
        remaining: Remaining budget, never negative
        over_by: Amount spent beyond the allocation
        percentage_used: Percentage of budget used (uncapped)
        is_over_budget: Whether spending exceeds the allocation
        start_date: Window start
        end_date: Window end
    """
    category: str
    allocated: float
    spent: float
    remaining: float
    over_by: float
    percentage_used: float
    is_over_budget: bool
    start_date: date
    end_date: date


def remaining_for(allocated_amount: float, spent_amount: float) -> float:
    """Remaining allocation, floored at zero."""
    return max(0.0, allocated_amount - spent_amount)


def round_spent(spent_amount: float) -> float:
    """Round a spent total to SPENT_DECIMALS places, folding -0.0 into 0.0."""
    return float(round(spent_amount, SPENT_DECIMALS)) + 0.0
