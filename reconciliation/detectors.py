"""Issue detection rules.

Each rule is a pure function over one payment/invoice/ledger triple that
returns an issue or None. ``detect_issues`` evaluates every rule and returns
the issues in a fixed order:

    duplicate_payment, missing_invoice, amount_mismatch,
    missing_ledger_entry, payer_name_mismatch

When no invoice can be associated (blank/unknown reference note, or no
matched invoice) the amount and payer-name rules are skipped.
"""

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.models import Invoice, LedgerEntry, Payment, PaymentMethod
from entity_resolver import EntityResolver
from reconciliation.config import DEFAULT_POLICY, ReconciliationPolicy
from reconciliation.models import (
    AmountMismatchIssue,
    DuplicatePaymentIssue,
    Issue,
    MissingInvoiceIssue,
    MissingLedgerEntryIssue,
    PayerNameMismatchIssue,
)


DuplicateKey = Tuple[str, Decimal, PaymentMethod]


def _duplicate_key(payment: Payment) -> DuplicateKey:
    # normalize() so 100 and 100.00 compare equal
    return (payment.payer_name, payment.amount.normalize(), payment.method)


def _order_key(payment: Payment):
    return (payment.payment_date, payment.payment_id)


# =============================================================================
# Recent-history window
# =============================================================================

class RecentPaymentWindow:
    """Immutable snapshot of payments used for duplicate detection.

    The snapshot is taken once before a classification pass, so duplicate
    detection does not depend on the order in which payments are classified.
    """

    def __init__(self, payments: Iterable[Payment] = ()):
        index: Dict[DuplicateKey, List[Payment]] = defaultdict(list)
        seen = set()
        for payment in payments:
            if payment.payment_id in seen:
                continue
            seen.add(payment.payment_id)
            index[_duplicate_key(payment)].append(payment)

        self._index = {key: tuple(sorted(group, key=_order_key)) for key, group in index.items()}
        self._size = len(seen)

    def __len__(self) -> int:
        return self._size

    def find_prior_duplicate(self, payment: Payment, window_days: int) -> Optional[Payment]:
        """Find the latest earlier payment with the same payer, amount and method.

        "Earlier" means ordered strictly before ``payment`` by
        (payment_date, payment_id) and dated at most ``window_days`` before it.
        """
        earliest = payment.payment_date - timedelta(days=window_days)
        current = _order_key(payment)

        match = None
        for candidate in self._index.get(_duplicate_key(payment), ()):
            if _order_key(candidate) >= current:
                break
            if candidate.payment_date >= earliest:
                match = candidate
        return match


def as_window(recent_payments: Union[RecentPaymentWindow, Iterable[Payment], None]) -> RecentPaymentWindow:
    """Wrap an iterable of payments into a window (windows pass through)."""
    if isinstance(recent_payments, RecentPaymentWindow):
        return recent_payments
    return RecentPaymentWindow(recent_payments or ())


def invoice_is_associated(
    payment: Payment,
    matched_invoice: Optional[Invoice],
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> bool:
    """Whether the triple has an invoice to compare against."""
    return matched_invoice is not None and not policy.is_unknown_reference(payment.reference_note)


# =============================================================================
# Individual Rules
# =============================================================================

def detect_duplicate_payment(
    payment: Payment,
    window: RecentPaymentWindow,
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> Optional[DuplicatePaymentIssue]:
    prior = window.find_prior_duplicate(payment, policy.duplicate_window_days)
    if prior is None:
        return None
    return DuplicatePaymentIssue(duplicate_of=prior)


def detect_missing_invoice(
    payment: Payment,
    matched_invoice: Optional[Invoice],
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> Optional[MissingInvoiceIssue]:
    if not (payment.reference_note or "").strip():
        return MissingInvoiceIssue(message="Payment has no invoice reference")
    if policy.is_unknown_reference(payment.reference_note):
        return MissingInvoiceIssue(
            message=f"Payment reference '{payment.reference_note}' does not identify an invoice"
        )
    if matched_invoice is None:
        return MissingInvoiceIssue(
            message=f"Cannot find invoice matching reference '{payment.reference_note}'"
        )
    return None


def detect_amount_mismatch(
    payment: Payment,
    matched_invoice: Invoice,
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> Optional[AmountMismatchIssue]:
    if abs(payment.amount - matched_invoice.amount_due) <= policy.amount_epsilon:
        return None
    return AmountMismatchIssue(
        invoice_amount=matched_invoice.amount_due,
        payment_amount=payment.amount,
    )


def detect_missing_ledger_entry(
    payment: Payment,
    ledger_entry: Optional[LedgerEntry],
) -> Optional[MissingLedgerEntryIssue]:
    if ledger_entry is None:
        return MissingLedgerEntryIssue()
    if ledger_entry.payment_id != payment.payment_id:
        return MissingLedgerEntryIssue(
            message=f"Ledger entry {ledger_entry.ledger_entry_id} records payment "
                    f"{ledger_entry.payment_id}, not {payment.payment_id}"
        )
    return None


def detect_payer_name_mismatch(
    payment: Payment,
    matched_invoice: Invoice,
    resolver: EntityResolver,
) -> Optional[PayerNameMismatchIssue]:
    if resolver.same_entity(payment.payer_name, matched_invoice.customer_name):
        return None
    return PayerNameMismatchIssue(
        customer_name=matched_invoice.customer_name,
        payer_name=payment.payer_name,
    )


# =============================================================================
# All Rules
# =============================================================================

def detect_issues(
    payment: Payment,
    matched_invoice: Optional[Invoice],
    ledger_entry: Optional[LedgerEntry],
    recent_payments: Union[RecentPaymentWindow, Iterable[Payment], None],
    resolver: EntityResolver,
    policy: ReconciliationPolicy = DEFAULT_POLICY,
) -> List[Issue]:
    """Evaluate every rule against a triple.

    Args:
        payment: Payment being reconciled
        matched_invoice: Invoice associated with the payment, if any
        ledger_entry: Ledger entry for the payment, if any
        recent_payments: Duplicate-detection window (snapshot or payments)
        resolver: Entity registry used for the payer-name rule
        policy: Detection thresholds

    Returns:
        Issues in detection order (empty when the triple reconciles)
    """
    window = as_window(recent_payments)
    has_invoice = invoice_is_associated(payment, matched_invoice, policy)

    candidates = [
        detect_duplicate_payment(payment, window, policy),
        detect_missing_invoice(payment, matched_invoice, policy),
        detect_amount_mismatch(payment, matched_invoice, policy) if has_invoice else None,
        detect_missing_ledger_entry(payment, ledger_entry),
        detect_payer_name_mismatch(payment, matched_invoice, resolver) if has_invoice else None,
    ]

    return [issue for issue in candidates if issue is not None]
