"""Rule-based transaction categorization."""

from src.classification.classifier import classify, classify_transaction, match_rule
from src.classification.rules import (
    FALLBACK_CATEGORY,
    RULES,
    CategoryRule,
    ConfiguredBillRule,
    KeywordRule,
)

__all__ = [
    "CategoryRule",
    "ConfiguredBillRule",
    "FALLBACK_CATEGORY",
    "KeywordRule",
    "RULES",
    "classify",
    "classify_transaction",
    "match_rule",
]
