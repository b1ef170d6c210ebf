"""Read-only analyses computed from scratch on every call.

Nothing here keeps state between calls: rankings and fraud checks scan the
transactions they are given.
"""

from __future__ import annotations

import heapq
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple

from ledger.errors import InvalidIndex
from ledger.models import DuplicateFinding, Finding, LargeFinding, SafeFinding, Transaction

ZERO = Decimal("0")


def top_expenses(transactions: Iterable[Transaction], k: int) -> List[Tuple[Decimal, str]]:
    """Return the k largest debits as ``(amount, description)``.

    Ordered by amount descending, then description ascending, then id
    ascending. Costs O(n log k) per call.
    """
    if k <= 0:
        raise InvalidIndex(f"k must be positive, got {k}")
    debits = (t for t in transactions if not t.is_income)
    ranked = heapq.nsmallest(k, debits, key=lambda t: (-t.amount, t.description, t.id))
    return [(t.amount, t.description) for t in ranked]


def monthly_average(monthly_totals: Mapping[str, Decimal], months: int) -> Decimal:
    """Average debit total over the most recent ``months`` months that have debits.

    Months are ranked by their ``YYYY-MM`` key as text, so dates must use a
    zero-padded four digit year.
    """
    if months <= 0:
        raise InvalidIndex(f"months must be positive, got {months}")
    if not monthly_totals:
        return ZERO
    keys = sorted(monthly_totals)
    considered = keys[-min(months, len(keys)):]
    total = sum((monthly_totals[key] for key in considered), ZERO)
    return total / len(considered)


def category_suggestions(transactions: Iterable[Transaction], prefix: str) -> List[str]:
    return sorted({t.category for t in transactions if t.category.startswith(prefix)})


def find_duplicates(transactions: Iterable[Transaction]) -> List[DuplicateFinding]:
    groups: Dict[Tuple[Decimal, str, str], int] = {}
    for t in transactions:
        key = (t.amount, t.category, t.date)
        groups[key] = groups.get(key, 0) + 1
    return [
        DuplicateFinding(amount=amount, category=category, date=date, count=count)
        for (amount, category, date), count in groups.items()
        if count > 1
    ]


def find_large_expenses(transactions: List[Transaction], multiplier: Decimal = Decimal("3")) -> List[LargeFinding]:
    """Debits strictly above ``multiplier`` times the median debit.

    The median is the element at ``n // 2`` of the sorted amounts, which is the
    upper median when n is even.
    """
    amounts = sorted(t.amount for t in transactions if not t.is_income)
    if not amounts:
        return []
    threshold = amounts[len(amounts) // 2] * multiplier
    return [
        LargeFinding(amount=t.amount, category=t.category, date=t.date)
        for t in transactions
        if not t.is_income and t.amount > threshold
    ]


def detect_fraud(transactions: Iterable[Transaction], multiplier: Decimal = Decimal("3")) -> List[Finding]:
    transactions = list(transactions)
    findings: List[Finding] = []
    findings.extend(find_duplicates(transactions))
    findings.extend(find_large_expenses(transactions, multiplier))
    if not findings:
        return [SafeFinding()]
    return findings
