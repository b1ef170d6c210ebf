class LedgerError(Exception):
    """Base class for failures the ledger reports back to its caller."""


class EmptyHistory(LedgerError):
    def __init__(self, message: str = "No transactions to undo"):
        super().__init__(message)


class InvalidAmount(LedgerError, ValueError):
    """Amount (or budget) is negative, NaN, infinite or not a number."""


class InvalidIndex(LedgerError, ValueError):
    """A count or position argument is outside its allowed range."""
