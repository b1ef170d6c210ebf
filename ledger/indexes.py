"""Derived indexes kept in step with the transaction store.

Each index exposes an ``add``/``remove`` pair (``push``/``remove`` for the
balance prefix, whose next value is projected up front). ``LedgerEngine`` calls them in
a fixed order after every append and undo, so each one always reflects the
transactions currently stored.
"""

from __future__ import annotations

import heapq
from bisect import bisect_left, bisect_right, insort
from collections import deque
from decimal import Decimal
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

from ledger.errors import EmptyHistory, InvalidIndex
from ledger.models import Transaction

ZERO = Decimal("0")


class BalanceAccumulator:
    """Prefix balances: ``history[i]`` is the balance after the i-th append."""

    def __init__(self) -> None:
        self._history: List[Decimal] = [ZERO]

    @property
    def current(self) -> Decimal:
        return self._history[-1]

    def projected(self, transaction: Transaction) -> Decimal:
        """Balance the ledger would have after appending ``transaction``."""
        return self._history[-1] + transaction.signed_amount

    def push(self, balance: Decimal) -> Decimal:
        self._history.append(balance)
        return balance

    def remove(self, transaction: Transaction) -> Decimal:
        if len(self._history) == 1:
            raise EmptyHistory()
        self._history.pop()
        return self._history[-1]

    def balance_after(self, k: int) -> Decimal:
        if not 0 <= k < len(self._history):
            raise InvalidIndex(f"Balance position must be between 0 and {len(self._history) - 1}, got {k}")
        return self._history[k]

    def __len__(self) -> int:
        return len(self._history)


class CategoryAggregator:
    """Expense totals and counts per category. Income never contributes."""

    def __init__(self) -> None:
        self._totals: Dict[str, Decimal] = {}
        self._counts: Dict[str, int] = {}

    def add(self, transaction: Transaction) -> None:
        if transaction.is_income:
            return
        category = transaction.category
        self._totals[category] = self._totals.get(category, ZERO) + transaction.amount
        self._counts[category] = self._counts.get(category, 0) + 1

    def remove(self, transaction: Transaction) -> None:
        if transaction.is_income:
            return
        category = transaction.category
        if category in self._totals:
            remaining = self._totals[category] - transaction.amount
            if remaining <= ZERO:
                del self._totals[category]
            else:
                self._totals[category] = remaining
        if category in self._counts:
            self._counts[category] -= 1
            if self._counts[category] <= 0:
                del self._counts[category]

    def total(self, category: str) -> Decimal:
        return self._totals.get(category, ZERO)

    def count(self, category: str) -> int:
        return self._counts.get(category, 0)

    def totals(self) -> Dict[str, Decimal]:
        return dict(self._totals)

    def counts(self) -> Dict[str, int]:
        return dict(self._counts)

    def total_spending(self) -> Decimal:
        return sum(self._totals.values(), ZERO)

    def top(self, k: int) -> List[Tuple[str, Decimal]]:
        """Largest totals first; equal totals ordered by category name ascending."""
        if k <= 0:
            raise InvalidIndex(f"k must be positive, got {k}")
        return heapq.nsmallest(k, self._totals.items(), key=lambda item: (-item[1], item[0]))


class TemporalIndex:
    """Sorted ``(date, id)`` pairs plus ids grouped by ``YYYY-MM``."""

    def __init__(self) -> None:
        self._by_date: List[Tuple[str, int]] = []
        self._by_month: Dict[str, List[int]] = {}

    def add(self, transaction: Transaction) -> None:
        insort(self._by_date, (transaction.date, transaction.id))
        self._by_month.setdefault(transaction.month, []).append(transaction.id)

    def remove(self, transaction: Transaction) -> None:
        key = (transaction.date, transaction.id)
        position = bisect_left(self._by_date, key)
        if position < len(self._by_date) and self._by_date[position] == key:
            del self._by_date[position]

        ids = self._by_month.get(transaction.month)
        if ids is None:
            return
        if ids and ids[-1] == transaction.id:
            ids.pop()
        elif transaction.id in ids:
            ids.remove(transaction.id)
        if not ids:
            del self._by_month[transaction.month]

    def ids_between(self, start: str, end: str) -> List[int]:
        lo = bisect_left(self._by_date, (start,))
        hi = bisect_right(self._by_date, (end, float("inf")))
        return [transaction_id for _, transaction_id in self._by_date[lo:hi]]

    def ids_in_month(self, year_month: str) -> List[int]:
        return list(self._by_month.get(year_month, ()))

    def months(self) -> List[str]:
        return sorted(self._by_month)

    def monthly_expense_totals(self, lookup: Callable[[int], Transaction]) -> Dict[str, Decimal]:
        """Debit totals for every month holding at least one debit, keys ascending."""
        totals: Dict[str, Decimal] = {}
        for month in self.months():
            debits = [lookup(i) for i in self._by_month[month]]
            debits = [t for t in debits if not t.is_income]
            if debits:
                totals[month] = sum((t.amount for t in debits), ZERO)
        return totals

    def dates(self) -> List[Tuple[str, int]]:
        return list(self._by_date)


class RecencyWindow:
    def __init__(self, capacity: int = 10) -> None:
        self.capacity = capacity
        self._items: Deque[Transaction] = deque(maxlen=capacity)

    def add(self, transaction: Transaction) -> None:
        self._items.append(transaction)

    def remove(self, transaction: Transaction, refill: Optional[Transaction] = None) -> None:
        """Drop the newest entry and, if given, restore the entry it once evicted."""
        if self._items and self._items[-1].id == transaction.id:
            self._items.pop()
        if refill is not None and len(self._items) < self.capacity:
            self._items.appendleft(refill)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


class UndoHistory:
    """Bounded LIFO of appended transactions; the oldest is evicted when full."""

    def __init__(self, capacity: int = 5) -> None:
        self.capacity = capacity
        self._items: Deque[Transaction] = deque(maxlen=capacity)

    def push(self, transaction: Transaction) -> None:
        self._items.append(transaction)

    def pop(self) -> Transaction:
        if not self._items:
            raise EmptyHistory()
        return self._items.pop()

    def __len__(self) -> int:
        return len(self._items)
