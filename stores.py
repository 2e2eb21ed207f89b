"""
Collaborator interfaces for the reconciliation engine.

The engine never owns transactions or budgets. It reads a ledger snapshot
through ``TransactionLedger`` and reads/writes budgets through
``BudgetStore``. In-memory implementations are provided for callers that
keep state in process and for tests; ``database_ops`` provides SQL-backed
ones.
"""

import logging
from typing import Dict, List, Optional, Protocol

from categories import categories_match
from models import Budget, Transaction

logger = logging.getLogger(__name__)


class TransactionLedger(Protocol):
    """Read access to the current transactions."""

    def transactions(self) -> List[Transaction]:  # pragma: no cover - interface
        ...


class BudgetStore(Protocol):
    """Enumerable, writable collection of budgets."""

    def budgets(self) -> List[Budget]:  # pragma: no cover - interface
        ...

    def save(self, budget: Budget) -> None:  # pragma: no cover - interface
        ...


class InMemoryLedger:
    """Ordered, id-addressed transaction ledger held in memory."""

    def __init__(self, transactions: Optional[List[Transaction]] = None):
        self._items: Dict[str, Transaction] = {}
        for transaction in transactions or []:
            self.add(transaction)

    def transactions(self) -> List[Transaction]:
        return list(self._items.values())

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return self._items.get(transaction_id)

    def add(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._items:
            raise ValueError(f"Transaction '{transaction.id}' already exists")
        self._items[transaction.id] = transaction
        return transaction

    def update(self, transaction: Transaction) -> Transaction:
        """
        Replace a transaction by id.

        Returns:
            The transaction that was replaced

        Raises:
            KeyError: If no transaction has that id
        """
        previous = self._items[transaction.id]
        self._items[transaction.id] = transaction
        return previous

    def remove(self, transaction_id: str) -> Transaction:
        return self._items.pop(transaction_id)

    def __len__(self) -> int:
        return len(self._items)


class InMemoryBudgetStore:
    """Insertion-ordered budget collection held in memory."""

    def __init__(self, budgets: Optional[List[Budget]] = None):
        self._items: Dict[str, Budget] = {}
        for budget in budgets or []:
            self.add(budget)

    def budgets(self) -> List[Budget]:
        return list(self._items.values())

    def get(self, budget_id: str) -> Optional[Budget]:
        return self._items.get(budget_id)

    def add(self, budget: Budget) -> Budget:
        self._items[budget.id] = budget
        logger.debug("Added budget %s for '%s' (%s to %s)", budget.id, budget.category, budget.start_date, budget.end_date)
        return budget

    def save(self, budget: Budget) -> None:
        """Replace the stored budget with the same id; unknown ids are ignored."""
        if budget.id not in self._items:
            logger.debug("Ignoring save for unknown budget %s", budget.id)
            return
        self._items[budget.id] = budget

    def remove(self, budget_id: str) -> bool:
        if self._items.pop(budget_id, None) is None:
            logger.warning("Budget %s not found", budget_id)
            return False
        return True

    def budgets_for_category(self, category: str) -> List[Budget]:
        return [budget for budget in self._items.values() if categories_match(category, budget.category)]

    def __len__(self) -> int:
        return len(self._items)
