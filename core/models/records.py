"""Source record models - payments, invoices and ledger entries.

These models represent the records handed to the reconciliation engine by
the upstream import collaborator. They are immutable once constructed and
carry no business logic beyond input validation.

Malformed input (negative amount, unparsable date, unknown enum value)
raises ``pydantic.ValidationError`` at construction; the error ``loc``
names the offending field.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


# =============================================================================
# Value Parsers (handle the formats upstream exports produce)
# =============================================================================

def _parse_decimal(value):
    """Parse decimal from various formats (string with $ or commas, floats, etc.)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid amount")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            raise ValueError("Amount is empty")
        s = s.replace("$", "").replace(",", "")
        if s.startswith("(") and s.endswith(")"):
            s = "-" + s[1:-1]
        try:
            return Decimal(s)
        except InvalidOperation:
            raise ValueError(f"Cannot parse amount: {value}")
    return value


def _parse_date(value):
    """Parse date from various string formats."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        # Try common formats
        for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y", "%d/%m/%Y"):
            try:
                return datetime.strptime(s, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Cannot parse date: {s}")
    return value


def _parse_payment_method(value):
    """Accept the spellings exports use for card payments."""
    if isinstance(value, str):
        key = value.strip().replace("_", "").replace(" ", "").upper()
        for method in PaymentMethod:
            if method.value.replace(" ", "").upper() == key:
                return method
    return value


# Annotated types for automatic parsing
AmountValue = Annotated[Decimal, BeforeValidator(_parse_decimal), Field(ge=0)]
DateValue = Annotated[date, BeforeValidator(_parse_date)]


# =============================================================================
# Enums
# =============================================================================

class PaymentMethod(str, Enum):
    """How a payment was made."""
    ACH = "ACH"
    WIRE = "Wire"
    CHECK = "Check"
    CREDIT_CARD = "Credit Card"


class InvoiceStatus(str, Enum):
    """Billing status of an invoice."""
    OPEN = "Open"
    PAID = "Paid"


# =============================================================================
# Base Model
# =============================================================================

class RecordBase(BaseModel):
    """Base model for all source records (immutable)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Records
# =============================================================================

class Payment(RecordBase):
    """A received payment.

    Attributes:
        payment_id: Unique payment identifier (e.g. "PAY-1000")
        payer_name: Payer name as written on the payment (free text)
        amount: Amount received, non-negative
        payment_date: Date the payment was received
        method: Payment method
        reference_note: Remittance note; normally the invoice id. May be
            empty or the sentinel "UNKNOWN".
    """
    payment_id: str = Field(..., min_length=1)
    payer_name: str
    amount: AmountValue
    payment_date: DateValue
    method: Annotated[PaymentMethod, BeforeValidator(_parse_payment_method)]
    reference_note: str = ""


class Invoice(RecordBase):
    """An invoice as recorded in billing.

    ``customer_name`` is the canonical spelling of the customer.
    """
    invoice_id: str = Field(..., min_length=1)
    customer_name: str
    amount_due: AmountValue
    due_date: DateValue
    status: InvoiceStatus = InvoiceStatus.OPEN


class LedgerEntry(RecordBase):
    """A general-ledger posting linking a payment to an invoice."""
    ledger_entry_id: str = Field(..., min_length=1)
    invoice_id: str
    payment_id: str
    amount: AmountValue
    entry_date: DateValue

