"""
Budget reconciliation engine.

Keeps each budget's spent and remaining amounts consistent with the
transaction ledger. Two paths exist and must always agree:

- the incremental path (``transaction_added``, ``transaction_updated``,
  ``transaction_deleted``) applies a single transaction's delta to every
  budget it falls under;
- the recompute path (``recompute_all``) rebuilds every budget from a full
  ledger scan and is the reference the incremental path is checked against.

Only expenses (negative amounts) count toward a budget. A transaction falls
under a budget when the categories match case-insensitively and the
transaction date lies inside the budget's inclusive window; it may fall
under several budgets at once.

All operations are synchronous and must be called by a single writer.
"""

import logging
import math
from typing import Iterable, List, Optional, Union

from categories import categories_match
from exceptions import ReconciliationError
from models import Budget, Transaction
from stores import BudgetStore, TransactionLedger

logger = logging.getLogger(__name__)

LedgerSource = Union[TransactionLedger, Iterable[Transaction], None]

DEFAULT_TOLERANCE = 1e-9


def snapshot_transactions(ledger: LedgerSource) -> List[Transaction]:
    """Materialize a ledger collaborator or a plain iterable into a list."""
    if ledger is None:
        return []
    if hasattr(ledger, "transactions"):
        return list(ledger.transactions())
    return list(ledger)


def spent_for_budget(budget: Budget, transactions: Iterable[Transaction]) -> float:
    """Sum of absolute expense amounts falling under the budget."""
    return math.fsum(
        abs(transaction.amount)
        for transaction in transactions
        if transaction.is_expense and budget.applies_to(transaction)
    )


class ReconciliationEngine:
    """
    Applies ledger changes to the budgets held by a budget store.

    Args:
        budget_store: Collaborator holding the budgets to keep in sync
        ledger: Optional ledger used by ``recompute_all`` and the query helpers
        strict: Raise instead of clamping when a removal would make spent negative
        tolerance: Float residue below zero that is absorbed without a diagnostic
    """

    def __init__(
        self,
        budget_store: BudgetStore,
        ledger: Optional[TransactionLedger] = None,
        *,
        strict: bool = False,
        tolerance: float = DEFAULT_TOLERANCE
    ):
        self.budget_store = budget_store
        self.ledger = ledger
        self.strict = strict
        self.tolerance = tolerance
        self.clamp_events = 0
        logger.info("Reconciliation engine initialized (strict=%s)", strict)

    def _matching_budgets(self, transaction: Transaction) -> List[Budget]:
        return [budget for budget in self.budget_store.budgets() if budget.applies_to(transaction)]

    def transaction_added(self, transaction: Transaction) -> List[Budget]:
        """
        Count a newly recorded transaction against every budget it falls under.

        Returns:
            Budgets that were updated (empty for income or unmatched expenses)
        """
        if not transaction.is_expense:
            return []

        amount = abs(transaction.amount)
        affected = self._matching_budgets(transaction)
        for budget in affected:
            budget.set_spent(budget.spent_amount + amount)
            self.budget_store.save(budget)
            logger.debug(
                "Budget %s ('%s') +%.2f -> spent %.2f",
                budget.id, budget.category, amount, budget.spent_amount
            )
        return affected

    def transaction_deleted(self, transaction: Transaction) -> List[Budget]:
        """
        Remove a deleted transaction's spend from every budget it falls under.

        Spent amounts never drop below zero, and a result within the
        tolerance of zero is stored as exactly 0.0. A removal that would go below
        zero by more than the tolerance means the budget never saw the
        matching addition; it is counted in ``clamp_events`` and logged, or
        raised as ReconciliationError in strict mode before anything changes.

        Returns:
            Budgets that were updated
        """
        if not transaction.is_expense:
            return []

        amount = abs(transaction.amount)
        affected = self._matching_budgets(transaction)

        underflows = [b for b in affected if b.spent_amount - amount < -self.tolerance]
        if underflows:
            self.clamp_events += len(underflows)
            ids = ", ".join(str(b.id) for b in underflows)
            if self.strict:
                raise ReconciliationError(
                    "Removing transaction would make budget spend negative",
                    details={"transaction_id": transaction.id, "budgets": ids, "amount": amount}
                )
            logger.warning(
                "Clamped spent amount at zero removing transaction %s (%.2f) from budgets: %s",
                transaction.id, amount, ids
            )

        for budget in affected:
            new_spent = budget.spent_amount - amount
            if new_spent <= self.tolerance:
                new_spent = 0.0
            budget.set_spent(new_spent)
            self.budget_store.save(budget)
            logger.debug(
                "Budget %s ('%s') -%.2f -> spent %.2f",
                budget.id, budget.category, amount, budget.spent_amount
            )
        return affected

    def transaction_updated(self, old: Transaction, new: Transaction) -> List[Budget]:
        """
        Move a transaction's spend from its previous to its current version.

        Implemented as a deletion of ``old`` followed by an addition of
        ``new`` against the current budget state.

        Returns:
            Budgets touched by either step, without duplicates
        """
        removed = self.transaction_deleted(old)
        added = self.transaction_added(new)

        affected: List[Budget] = []
        seen = set()
        for budget in removed + added:
            if budget.id not in seen:
                seen.add(budget.id)
                affected.append(budget)
        return affected

    def recompute_all(
        self,
        ledger: LedgerSource = None,
        budgets: Optional[Iterable[Budget]] = None
    ) -> List[Budget]:
        """
        Rebuild spent and remaining amounts from a full ledger scan.

        Args:
            ledger: Ledger or iterable of transactions (defaults to the injected ledger)
            budgets: Budgets to rebuild in place; when omitted every budget in
                the store is rebuilt and saved back

        Returns:
            The rebuilt budgets
        """
        transactions = snapshot_transactions(ledger if ledger is not None else self.ledger)
        from_store = budgets is None
        targets = self.budget_store.budgets() if from_store else list(budgets)

        for budget in targets:
            budget.set_spent(spent_for_budget(budget, transactions))
            if from_store:
                self.budget_store.save(budget)

        logger.info("Recomputed %s budgets from %s transactions", len(targets), len(transactions))
        return targets

    def reset_diagnostics(self) -> None:
        self.clamp_events = 0

    # Read-only queries

    def budgets_for_category(self, category: str) -> List[Budget]:
        return [budget for budget in self.budget_store.budgets() if categories_match(category, budget.category)]

    def spent_amount_for_category(self, category: str) -> float:
        """
        All-time expense total for a category across the whole ledger.

        Independent of any budget window. Returns 0.0 when no ledger is wired.
        """
        if self.ledger is None:
            return 0.0
        return sum(
            abs(transaction.amount)
            for transaction in self.ledger.transactions()
            if transaction.is_expense and categories_match(transaction.category, category)
        )

    def remaining_for_category(self, category: str) -> float:
        """Remaining amount of the first budget for the category, or 0.0."""
        matches = self.budgets_for_category(category)
        if not matches:
            return 0.0
        return matches[0].remaining_amount

    def is_over_budget(self, category: str) -> bool:
        """Whether the first budget for the category has spent more than allocated."""
        matches = self.budgets_for_category(category)
        if not matches:
            return False
        return matches[0].is_over_budget
