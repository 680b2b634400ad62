"""
Transaction Classifier

Single dispatch over the ordered rule cascade in `rules.py`.
Never raises for odd input: anything no rule claims is "Other".
"""

from decimal import Decimal
from typing import Optional, Sequence

import structlog

from src.classification.rules import FALLBACK_CATEGORY, RULES, CategoryRule
from src.models.transaction import Bill, Category, Transaction

logger = structlog.get_logger(__name__)


def match_rule(
    description: str,
    amount: Decimal,
    bills: Sequence[Bill] = (),
    rules: Sequence[CategoryRule] = RULES,
) -> tuple[Optional[str], Category]:
    """
    Find the first rule that claims the description.

    Returns:
        (rule_name, category); rule_name is None when the fallback applied
    """
    lowered = description.lower()
    for rule in rules:
        category = rule.match(lowered, amount, bills)
        if category is not None:
            return rule.name, category
    return None, FALLBACK_CATEGORY


def classify(
    description: str,
    amount: Decimal,
    bills: Sequence[Bill] = (),
) -> Category:
    """Category for one description/amount pair."""
    _, category = match_rule(description, amount, bills)
    return category


def classify_transaction(tx: Transaction, bills: Sequence[Bill] = ()) -> Transaction:
    """Copy of the transaction with its category assigned."""
    rule_name, category = match_rule(tx.description, tx.amount, bills)
    logger.debug(
        "transaction_classified",
        transaction_id=tx.id,
        rule=rule_name or "fallback",
        category=category.value,
    )
    return tx.model_copy(update={"category": category})
