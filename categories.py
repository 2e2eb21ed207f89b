"""
Category matching between transactions and budgets.

Categories are free-text labels. A transaction belongs to a budget's
category when the two labels are equal ignoring case, and only then:
"Food" matches "food", but "Food & Dining" does not match "Food" and
surrounding whitespace is significant. Budget creation must therefore use
the same vocabulary as transaction entry.
"""

from typing import Optional


def category_key(category: Optional[str]) -> str:
    """
    Generate the comparison key for a category label.

    Args:
        category: Category name (None is treated as empty).

    Returns:
        Lowercase category key.
    """
    if category is None:
        return ""
    return category.lower()


def categories_match(transaction_category: Optional[str], budget_category: Optional[str]) -> bool:
    """Return True when a transaction category belongs to a budget category."""
    return category_key(transaction_category) == category_key(budget_category)
