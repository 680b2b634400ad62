"""
Category Rules

The ordered rule cascade used to categorize imported transactions.

CRITICAL: Order is part of the contract. Rules are evaluated top to
bottom and the first match wins, so a description that hits two keyword
sets lands in whichever rule comes first. For example a restaurant whose
name contains "loan" is Debt, because the debt rule runs before dining.
Reordering RULES changes results for real statements.

All matching is case-insensitive substring containment; rules receive the
description already lowercased.
"""

from decimal import Decimal
from typing import NamedTuple, Optional, Protocol, Sequence

from src.models.transaction import Bill, Category


# =============================================================================
# KEYWORD SETS
# =============================================================================

# The rent service pays the landlord on our behalf; always rent, whatever the amount
RENT_PROVIDER_MARKERS = ("flex finance", "getflex.com")

# A configured bill whose *name* contains one of these is a debt payment
DEBT_BILL_NAME_MARKERS = ("loan", "card", "finance", "chase", "amex", "citi", "synchrony")

SUBSCRIPTION_KEYWORDS = (
    "youtube", "google *disney", "google *youtube", "google play",
    "google storage", "google *svcs", "disney+", "hulu", "netflix",
    "spotify", "apple.com/bill",
)

ENTERTAINMENT_KEYWORDS = (
    "steam", "playstation", "xbox", "nintendo", "game", "amc", "regal",
    "cinema", "movie", "ticket", "stubhub", "seatgeek", "eventbrite",
    "golf", "bowling", "entertainment", "hobby", "toy", "lego", "party",
    "club", "vape", "smoke", "dispensary",
)

DEBT_KEYWORDS = (
    "loan", "payment", "credit card", "chase", "amex", "citi", "discover",
    "capital one", "synchrony", "affirm",
)

RENT_KEYWORDS = ("rent", "lease", "apartment", "property")

DINING_KEYWORDS = (
    "restaurant", "cafe", "coffee", "starbucks", "dunkin", "mcdonalds",
    "chick-fil-a", "burger", "taco", "chipotle", "pizza", "eats",
    "doordash", "grubhub", "uber eats", "grill", "bistro", "steak", "bar",
    "dominos", "bagel", "ny bagel", "dd/br", "kfc", "popeyes", "wendy",
    "sonic", "subway", "jersey mike", "panera", "sushi", "diner",
)

GROCERY_KEYWORDS = (
    "grocery", "market", "kroger", "whole foods", "trader joe", "publix",
    "heb", "harris teeter", "wegmans", "aldi", "lidl", "walmart", "target",
    "food lion", "safeway", "bj's", "wholesale", "sam's club", "samsclub",
    "sams club", "costco", "meijer", "walgreens", "cvs",
)

INCOME_KEYWORDS = ("payroll", "deposit", "salary", "elevate")

P2P_KEYWORDS = ("venmo", "zelle", "cash app", "paypal")


# =============================================================================
# RULE TYPES
# =============================================================================

class CategoryRule(Protocol):
    """Anything with a name that can claim a description for a category."""

    name: str

    def match(
        self,
        description: str,
        amount: Decimal,
        bills: Sequence[Bill],
    ) -> Optional[Category]:
        ...


class KeywordRule(NamedTuple):
    """
    Claims a description containing any of its keywords.

    When `outflow_category` is set, the rule depends on direction:
    money in gets `category`, money out (or zero) gets `outflow_category`.
    """

    name: str
    keywords: tuple[str, ...]
    category: Category
    outflow_category: Optional[Category] = None

    def match(
        self,
        description: str,
        amount: Decimal,
        bills: Sequence[Bill],
    ) -> Optional[Category]:
        if not any(keyword in description for keyword in self.keywords):
            return None
        if self.outflow_category is not None and amount <= 0:
            return self.outflow_category
        return self.category


class ConfiguredBillRule(NamedTuple):
    """
    Claims a description containing the name of one of the user's bills.

    The bill's own name decides Bills vs Debt: "Car Loan" or
    "Chase Credit Card" are debt, "Netflix" is a bill. The transaction
    description plays no part in that choice.
    """

    name: str = "configured_bill"
    debt_markers: tuple[str, ...] = DEBT_BILL_NAME_MARKERS

    def match(
        self,
        description: str,
        amount: Decimal,
        bills: Sequence[Bill],
    ) -> Optional[Category]:
        for bill in bills:
            bill_name = bill.name.lower()
            if bill_name and bill_name in description:
                if any(marker in bill_name for marker in self.debt_markers):
                    return Category.DEBT
                return Category.BILLS
        return None


# =============================================================================
# THE CASCADE
# =============================================================================

RULES: tuple[CategoryRule, ...] = (
    KeywordRule("rent_provider", RENT_PROVIDER_MARKERS, Category.RENT),
    ConfiguredBillRule(),
    KeywordRule("subscriptions", SUBSCRIPTION_KEYWORDS, Category.BILLS),
    KeywordRule("entertainment", ENTERTAINMENT_KEYWORDS, Category.FOR_FUN),
    KeywordRule("debt", DEBT_KEYWORDS, Category.DEBT),
    KeywordRule("rent", RENT_KEYWORDS, Category.RENT),
    KeywordRule("dining", DINING_KEYWORDS, Category.DINING),
    KeywordRule("groceries", GROCERY_KEYWORDS, Category.GROCERIES),
    KeywordRule("income", INCOME_KEYWORDS, Category.INCOME),
    KeywordRule("p2p_transfer", P2P_KEYWORDS, Category.INCOME, outflow_category=Category.OTHER),
)

FALLBACK_CATEGORY = Category.OTHER
