from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from ledger.analysis import category_suggestions, detect_fraud, monthly_average, top_expenses
from ledger.config import LedgerSettings, get_settings
from ledger.errors import InvalidAmount
from ledger.indexes import BalanceAccumulator, CategoryAggregator, RecencyWindow, TemporalIndex, UndoHistory
from ledger.logging_utils import get_logger
from ledger.models import BudgetReport, Finding, Transaction

LOGGER = get_logger(__name__)

# Accepted amounts have at most 21 significant digits, so running sums stay
# exact under the default 28-digit context.
MAX_AMOUNT = Decimal("1e15")
MAX_DECIMAL_PLACES = 6
_QUANTUM = Decimal(1).scaleb(-MAX_DECIMAL_PLACES)


def to_amount(value) -> Decimal:
    """Coerce ``value`` to a finite, non-negative Decimal or raise InvalidAmount.

    Amounts must be below ``MAX_AMOUNT`` and carry no more than
    ``MAX_DECIMAL_PLACES`` fractional digits.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"Invalid amount: {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if amount >= MAX_AMOUNT:
        raise InvalidAmount(f"Amount too large: {value!r}")
    if amount.quantize(_QUANTUM) != amount:
        raise InvalidAmount(f"Amount has more than {MAX_DECIMAL_PLACES} decimal places: {value!r}")
    return amount


class LedgerEngine:
    """Transaction store plus the indexes derived from it.

    Mutations update the store first and then the balance, category,
    temporal, recency and undo structures, in that order. Not thread-safe:
    callers sharing an engine must serialize access.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self.settings = settings or get_settings()
        self._transactions: List[Transaction] = []
        self._by_id: Dict[int, Transaction] = {}
        self._next_id = 1

        self.balances = BalanceAccumulator()
        self.categories = CategoryAggregator()
        self.temporal = TemporalIndex()
        self.recent = RecencyWindow(self.settings.recent_limit)
        self.undo_history = UndoHistory(self.settings.undo_limit)

    # ===== MUTATIONS =====
    def add_transaction(
            self,
            amount,
            category: str,
            description: str,
            date: str,
            is_income: bool = False,
    ) -> Transaction:
        try:
            amount = to_amount(amount)
        except InvalidAmount:
            LOGGER.warning("Rejected transaction with amount %r", amount)
            raise

        transaction = Transaction(
            id=self._next_id,
            amount=amount,
            category=category,
            description=description,
            date=date,
            is_income=is_income,
        )
        # computed before any state changes
        next_balance = self.balances.projected(transaction)
        self._next_id += 1

        self._transactions.append(transaction)
        self._by_id[transaction.id] = transaction

        self.balances.push(next_balance)
        self.categories.add(transaction)
        self.temporal.add(transaction)
        self.recent.add(transaction)
        self.undo_history.push(transaction)

        LOGGER.debug(
            "Added %s #%d %s %s on %s, balance %s",
            transaction.transaction_type.value, transaction.id, transaction.amount,
            transaction.category, transaction.date, self.balances.current,
        )
        return transaction

    def append(self, amount, category: str, description: str, date: str, is_income: bool = False) -> Decimal:
        """Add a transaction and return the new balance."""
        self.add_transaction(amount, category, description, date, is_income)
        return self.balances.current

    def undo_last_transaction(self) -> Transaction:
        """Remove the most recently appended transaction and return it.

        Raises EmptyHistory when the bounded undo history has nothing left,
        even if older transactions are still stored.
        """
        last = self.undo_history.pop()

        if self._transactions and self._transactions[-1].id == last.id:
            self._transactions.pop()
        else:
            for i, t in enumerate(self._transactions):
                if t.id == last.id:
                    del self._transactions[i]
                    break
        self._by_id.pop(last.id, None)

        self.balances.remove(last)
        self.categories.remove(last)
        self.temporal.remove(last)
        capacity = self.recent.capacity
        refill = self._transactions[-capacity] if len(self._transactions) >= capacity else None
        self.recent.remove(last, refill)

        LOGGER.debug("Undid transaction #%d, balance %s", last.id, self.balances.current)
        return last

    def undo_last(self) -> Decimal:
        """Undo the latest append and return the resulting balance."""
        self.undo_last_transaction()
        return self.balances.current

    # ===== QUERIES =====
    def current_balance(self) -> Decimal:
        return self.balances.current

    def balance_after(self, k: int) -> Decimal:
        return self.balances.balance_after(k)

    def list_all(self) -> Tuple[Transaction, ...]:
        return tuple(self._transactions)

    def get_transaction(self, transaction_id: int) -> Transaction:
        if transaction_id not in self._by_id:
            raise KeyError(f"Transaction {transaction_id} not found")
        return self._by_id[transaction_id]

    def category_totals(self) -> Dict[str, Decimal]:
        return self.categories.totals()

    def category_counts(self) -> Dict[str, int]:
        return self.categories.counts()

    def top_expenses(self, k: int) -> List[Tuple[Decimal, str]]:
        return top_expenses(self._transactions, k)

    def top_categories(self, k: int) -> List[Tuple[str, Decimal]]:
        return self.categories.top(k)

    def monthly_average(self, months: int) -> Decimal:
        totals = self.temporal.monthly_expense_totals(self.get_transaction)
        return monthly_average(totals, months)

    def budget_analysis(self, budget) -> BudgetReport:
        budget = to_amount(budget)
        total_spending = self.categories.total_spending()
        if total_spending > budget:
            return BudgetReport(
                budget=budget,
                total_spending=total_spending,
                status="OVER",
                delta=total_spending - budget,
                overspend_categories=self.categories.top(self.settings.budget_top_categories),
            )
        return BudgetReport(
            budget=budget,
            total_spending=total_spending,
            status="UNDER",
            delta=budget - total_spending,
        )

    def detect_fraud(self) -> List[Finding]:
        return detect_fraud(self._transactions, self.settings.fraud_multiplier)

    def category_suggestions(self, prefix: str = "") -> List[str]:
        return category_suggestions(self._transactions, prefix)

    def transactions_in_month(self, year_month: str) -> List[Transaction]:
        return [self._by_id[i] for i in self.temporal.ids_in_month(year_month)]

    def transactions_between(self, start: str, end: str) -> List[Transaction]:
        return [self._by_id[i] for i in self.temporal.ids_between(start, end)]

    def recent_transactions(self) -> List[Transaction]:
        return list(self.recent)

    def __len__(self) -> int:
        return len(self._transactions)
