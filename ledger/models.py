from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Tuple, Union


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Transaction:
    id: int
    amount: Decimal
    category: str
    description: str
    date: str
    is_income: bool = False

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.INCOME if self.is_income else TransactionType.EXPENSE

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.is_income else -self.amount

    @property
    def month(self) -> str:
        # YYYY-MM, taken by position; the date is never parsed
        return self.date[:7]


BudgetStatus = Literal["OVER", "UNDER"]


@dataclass
class BudgetReport:
    budget: Decimal
    total_spending: Decimal
    status: BudgetStatus
    delta: Decimal
    overspend_categories: List[Tuple[str, Decimal]] = field(default_factory=list)


@dataclass(frozen=True)
class DuplicateFinding:
    amount: Decimal
    category: str
    date: str
    count: int
    kind: str = "DUPLICATE"


@dataclass(frozen=True)
class LargeFinding:
    amount: Decimal
    category: str
    date: str
    kind: str = "LARGE"


@dataclass(frozen=True)
class SafeFinding:
    message: str = "No suspicious activity detected"
    kind: str = "SAFE"


Finding = Union[DuplicateFinding, LargeFinding, SafeFinding]
