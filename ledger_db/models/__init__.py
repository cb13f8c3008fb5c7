from .ledger import (
    Base,
    LedgerCategory,
    LedgerPaymentMethod,
    LedgerSubcategory,
    LedgerTransaction,
)

__all__ = [
    "Base",
    "LedgerCategory",
    "LedgerPaymentMethod",
    "LedgerSubcategory",
    "LedgerTransaction",
]
