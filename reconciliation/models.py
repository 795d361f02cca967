"""Reconciliation result models.

Defines:
- IssueKind / Severity: what went wrong and how badly
- Issue variants: one model per kind, discriminated by ``kind``
- ReconciliationStatus and the status rule
- ReconciliationResult: one classified triple
"""

from abc import abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Annotated, Literal

from core.models import Invoice, LedgerEntry, Payment


# =============================================================================
# Enums
# =============================================================================

class IssueKind(str, Enum):
    """Kinds of discrepancy the detector can report."""
    DUPLICATE_PAYMENT = "duplicate_payment"
    MISSING_INVOICE = "missing_invoice"
    AMOUNT_MISMATCH = "amount_mismatch"
    MISSING_LEDGER_ENTRY = "missing_ledger_entry"
    PAYER_NAME_MISMATCH = "payer_name_mismatch"


class Severity(str, Enum):
    BLOCK = "BLOCK"
    WARN = "WARN"


class ReconciliationStatus(str, Enum):
    RECONCILED = "Reconciled"
    PARTIALLY_RECONCILED = "Partially Reconciled"
    UNRECONCILED = "Unreconciled"


# Issues that mean the transaction cannot be trusted as matched at all
UNTRUSTED_ISSUE_KINDS = frozenset({
    IssueKind.DUPLICATE_PAYMENT,
    IssueKind.MISSING_INVOICE,
})


def status_for_issues(issues: Iterable["IssueBase"]) -> ReconciliationStatus:
    """Derive the status from an issue list."""
    kinds = {issue.kind for issue in issues}
    if not kinds:
        return ReconciliationStatus.RECONCILED
    if kinds & UNTRUSTED_ISSUE_KINDS:
        return ReconciliationStatus.UNRECONCILED
    return ReconciliationStatus.PARTIALLY_RECONCILED


# =============================================================================
# Issues
# =============================================================================

class IssueBase(BaseModel):
    """Common behaviour of all issue kinds."""
    model_config = ConfigDict(frozen=True)

    kind: IssueKind

    @property
    def severity(self) -> Severity:
        return Severity.BLOCK if self.kind in UNTRUSTED_ISSUE_KINDS else Severity.WARN

    @abstractmethod
    def explain(self) -> str:
        """One-line description of the issue."""


class DuplicatePaymentIssue(IssueBase):
    """Another recent payment has the same payer, amount and method."""
    kind: Literal[IssueKind.DUPLICATE_PAYMENT] = IssueKind.DUPLICATE_PAYMENT
    duplicate_of: Payment

    def explain(self) -> str:
        prior = self.duplicate_of
        return (
            f"Possible duplicate of {prior.payment_id} from {prior.payment_date}: "
            f"same payer '{prior.payer_name}', amount {prior.amount} and method {prior.method.value}"
        )


class MissingInvoiceIssue(IssueBase):
    """No invoice could be associated with the payment."""
    kind: Literal[IssueKind.MISSING_INVOICE] = IssueKind.MISSING_INVOICE
    message: str = "Payment has no invoice reference"

    def explain(self) -> str:
        return self.message


class AmountMismatchIssue(IssueBase):
    """Payment amount differs from the invoice amount due."""
    kind: Literal[IssueKind.AMOUNT_MISMATCH] = IssueKind.AMOUNT_MISMATCH
    invoice_amount: Decimal
    payment_amount: Decimal

    @property
    def difference(self) -> Decimal:
        """Signed difference; negative means underpayment."""
        return self.payment_amount - self.invoice_amount

    def explain(self) -> str:
        label = "Underpayment" if self.difference < 0 else "Overpayment"
        return (
            f"{label} of {abs(self.difference)}: paid {self.payment_amount} "
            f"against {self.invoice_amount} due"
        )


class MissingLedgerEntryIssue(IssueBase):
    """No ledger entry records the payment."""
    kind: Literal[IssueKind.MISSING_LEDGER_ENTRY] = IssueKind.MISSING_LEDGER_ENTRY
    message: str = "No corresponding ledger entry found"

    def explain(self) -> str:
        return self.message


class PayerNameMismatchIssue(IssueBase):
    """Payer and invoice customer resolve to different entities."""
    kind: Literal[IssueKind.PAYER_NAME_MISMATCH] = IssueKind.PAYER_NAME_MISMATCH
    customer_name: str
    payer_name: str

    def explain(self) -> str:
        return f"Payer '{self.payer_name}' does not match invoice customer '{self.customer_name}'"


Issue = Annotated[
    Union[
        DuplicatePaymentIssue,
        MissingInvoiceIssue,
        AmountMismatchIssue,
        MissingLedgerEntryIssue,
        PayerNameMismatchIssue,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Result
# =============================================================================

class ReconciliationResult(BaseModel):
    """One classified payment/invoice/ledger triple.

    Attributes:
        payment: The payment being reconciled
        matched_invoice: Invoice associated through the reference note
        ledger_entry: Ledger posting for the payment
        issues: Detected issues in detection order
        status: Derived from ``issues``; a mismatching value is rejected
        confidence_score: Classifier certainty, 0-100
    """
    model_config = ConfigDict(frozen=True)

    payment: Payment
    matched_invoice: Optional[Invoice] = None
    ledger_entry: Optional[LedgerEntry] = None
    issues: Tuple[Issue, ...] = ()
    status: ReconciliationStatus
    confidence_score: int = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def _check_status(self) -> "ReconciliationResult":
        expected = status_for_issues(self.issues)
        if self.status != expected:
            raise ValueError(
                f"status {self.status.value!r} does not match issues (expected {expected.value!r})"
            )
        return self

    @property
    def issue_kinds(self) -> Tuple[IssueKind, ...]:
        return tuple(issue.kind for issue in self.issues)

    def has_issue(self, kind: IssueKind) -> bool:
        return kind in self.issue_kinds
