"""
Budget creation and reporting helpers.

BudgetFactory builds new budget records with their window computed up front
and, for historical budgets, their spent amount backfilled from the ledger
using the same filter-and-sum as the reconciliation engine's recompute path.
The factory never writes to a budget store; callers insert the result.
"""

import logging
import uuid
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from models import Budget, BudgetStatus
from periods import MONDAY, DateLike, PeriodType, compute_window
from reconciliation import LedgerSource, snapshot_transactions, spent_for_budget

logger = logging.getLogger(__name__)


class BudgetFactory:
    """
    Builds budget records for a category and period.

    Args:
        week_start: First weekday of weekly windows (0 = Monday)
        today: Clock used when no anchor date is supplied
    """

    def __init__(self, week_start: int = MONDAY, today: Optional[Callable[[], date]] = None):
        self.week_start = week_start
        self.today = today or date.today

    def _new_budget(
        self,
        category: str,
        allocated_amount: float,
        period_type: Union[PeriodType, str],
        anchor_date: Optional[DateLike]
    ) -> Budget:
        period = PeriodType.parse(period_type)
        anchor = anchor_date if anchor_date is not None else self.today()
        start, end = compute_window(period, anchor, self.week_start)
        return Budget(
            id=str(uuid.uuid4()),
            category=category,
            allocated_amount=allocated_amount,
            start_date=start,
            end_date=end,
            period_type=period,
        )

    def create_empty(
        self,
        category: str,
        allocated_amount: float,
        period_type: Union[PeriodType, str] = PeriodType.MONTHLY,
        anchor_date: Optional[DateLike] = None
    ) -> Budget:
        """Create a budget with nothing spent yet."""
        budget = self._new_budget(category, allocated_amount, period_type, anchor_date)
        logger.info(
            "Created empty %s budget for '%s': %.2f (%s to %s)",
            budget.period_type.value, category, allocated_amount, budget.start_date, budget.end_date
        )
        return budget

    def create_with_history(
        self,
        category: str,
        allocated_amount: float,
        period_type: Union[PeriodType, str] = PeriodType.MONTHLY,
        anchor_date: Optional[DateLike] = None,
        ledger: LedgerSource = None
    ) -> Budget:
        """
        Create a budget whose spent amount already reflects the ledger.

        Args:
            category: Category label
            allocated_amount: Target ceiling
            period_type: weekly, monthly or yearly
            anchor_date: Date inside the wanted period (defaults to today)
            ledger: Ledger or iterable of transactions to backfill from

        Returns:
            A fully populated budget, not yet inserted anywhere
        """
        budget = self._new_budget(category, allocated_amount, period_type, anchor_date)
        budget.set_spent(spent_for_budget(budget, snapshot_transactions(ledger)))
        logger.info(
            "Created %s budget for '%s': %.2f (%s to %s), %.2f already spent",
            budget.period_type.value, category, allocated_amount,
            budget.start_date, budget.end_date, budget.spent_amount
        )
        return budget


def budget_status(budget: Budget) -> BudgetStatus:
    """Snapshot a budget's figures for display."""
    allocated = budget.allocated_amount
    percentage_used = (budget.spent_amount / allocated * 100) if allocated > 0 else 0.0
    return BudgetStatus(
        category=budget.category,
        allocated=allocated,
        spent=budget.spent_amount,
        remaining=budget.remaining_amount,
        over_by=budget.over_by,
        percentage_used=percentage_used,
        is_over_budget=budget.is_over_budget,
        start_date=budget.start_date,
        end_date=budget.end_date,
    )


def summarize_budgets(budgets: Iterable[Budget]) -> Dict[str, Any]:
    """
    Calculate aggregate metrics across budgets.

    Returns:
        Dictionary with total_allocated, total_spent, total_remaining,
        budget_used_pct and over_budget_count.
    """
    items: List[Budget] = list(budgets)
    total_allocated = sum(b.allocated_amount for b in items)
    total_spent = sum(b.spent_amount for b in items)
    total_remaining = sum(b.remaining_amount for b in items)
    budget_used_pct = (total_spent / total_allocated * 100.0) if total_allocated > 0 else 0.0

    summary = {
        "total_allocated": total_allocated,
        "total_spent": total_spent,
        "total_remaining": total_remaining,
        "budget_used_pct": budget_used_pct,
        "over_budget_count": sum(1 for b in items if b.is_over_budget),
    }
    logger.debug("Budget summary calculated: %s", summary)
    return summary
