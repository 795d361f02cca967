"""Core data models - source records consumed by the reconciliation engine."""

from core.models.records import (
    # Base
    RecordBase,
    AmountValue,
    DateValue,

    # Enums
    PaymentMethod,
    InvoiceStatus,

    # Records
    Payment,
    Invoice,
    LedgerEntry,
)

__all__ = [
    # Base
    "RecordBase",
    "AmountValue",
    "DateValue",

    # Enums
    "PaymentMethod",
    "InvoiceStatus",

    # Records
    "Payment",
    "Invoice",
    "LedgerEntry",
]
