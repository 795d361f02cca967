"""Reconciliation engine for payment/invoice/ledger classification.

Exposes high-level operations:
- reconcile_triple(payment, invoice, ledger_entry) -> ReconciliationResult
- reconcile_batch(payments, invoices, ledger_entries) -> List[ReconciliationResult]
- recheck_payer_names(results) -> List[ReconciliationResult]
- summarize(results) -> ReconciliationSummary
"""

import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence

from core.models import Invoice, LedgerEntry, Payment
from core.observability import get_logger, get_metrics, with_correlation
from entity_resolver import EntityResolver
from reconciliation.classifier import classify, demote_for_name_mismatch
from reconciliation.config import DEFAULT_POLICY, ReconciliationPolicy
from reconciliation.detectors import (
    RecentPaymentWindow,
    as_window,
    detect_issues,
    detect_payer_name_mismatch,
    invoice_is_associated,
)
from reconciliation.models import ReconciliationResult
from reconciliation.summary import ReconciliationSummary, summarize


logger = get_logger(__name__)


def _reference_key(value: str) -> str:
    return value.strip().upper()


class ReconciliationEngine:
    """Classifies payments against invoices and ledger entries.

    The engine holds no per-call state: the entity registry is passed in by
    reference and the duplicate window is snapshotted per pass.

    Example:
        engine = ReconciliationEngine(EntityResolver(seed=DEFAULT_SEED))
        results = engine.reconcile_batch(payments, invoices, ledger_entries)
        summary = engine.summarize(results)
    """

    def __init__(
        self,
        resolver: EntityResolver,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
    ):
        self.resolver = resolver
        self.policy = policy

    # =========================================================================
    # Single triple
    # =========================================================================

    def reconcile_triple(
        self,
        payment: Payment,
        invoice: Optional[Invoice] = None,
        ledger_entry: Optional[LedgerEntry] = None,
        window: Optional[RecentPaymentWindow] = None,
    ) -> ReconciliationResult:
        """Detect issues for one triple and classify it.

        Args:
            payment: Payment to classify
            invoice: Invoice matched to the payment, if any
            ledger_entry: Ledger entry for the payment, if any
            window: Duplicate-detection snapshot (empty when omitted)

        Returns:
            ReconciliationResult
        """
        invoice_id = invoice.invoice_id if invoice else None
        with with_correlation(payment_id=payment.payment_id, invoice_id=invoice_id, stage="detect"):
            issues = detect_issues(
                payment,
                invoice,
                ledger_entry,
                as_window(window),
                self.resolver,
                self.policy,
            )
            status, score = classify(issues, self.policy)

            for issue in issues:
                logger.debug(
                    f"Issue detected: {issue.explain()}",
                    extra_fields={"kind": issue.kind.value, "severity": issue.severity.value},
                )

        get_metrics().record_result(status.value, [issue.kind.value for issue in issues])

        # Comparisons were skipped, so the invoice is not reported as matched
        matched = invoice if invoice_is_associated(payment, invoice, self.policy) else None

        return ReconciliationResult(
            payment=payment,
            matched_invoice=matched,
            ledger_entry=ledger_entry,
            issues=issues,
            status=status,
            confidence_score=score,
        )

    # =========================================================================
    # Batch
    # =========================================================================

    def reconcile_batch(
        self,
        payments: Sequence[Payment],
        invoices: Iterable[Invoice] = (),
        ledger_entries: Iterable[LedgerEntry] = (),
        history: Iterable[Payment] = (),
        max_workers: Optional[int] = None,
        batch_id: Optional[str] = None,
    ) -> List[ReconciliationResult]:
        """Associate records into triples and classify every payment.

        Invoices are associated through the payment reference note (trimmed,
        case-insensitive); ledger entries through their payment id. The
        duplicate window covers ``history`` plus the batch itself and is
        fixed before classification starts.

        Args:
            payments: Payments to classify
            invoices: Candidate invoices
            ledger_entries: Candidate ledger entries
            history: Earlier payments visible to duplicate detection
            max_workers: Thread count (defaults to the policy value)
            batch_id: Correlation id for logs (generated when omitted)

        Returns:
            Results in the same order as ``payments``
        """
        payments = list(payments)
        batch_id = batch_id or f"batch-{uuid.uuid4().hex[:12]}"
        workers = max_workers or self.policy.max_workers
        start_time = time.time()

        invoices_by_ref: Dict[str, Invoice] = {}
        for invoice in invoices:
            invoices_by_ref.setdefault(_reference_key(invoice.invoice_id), invoice)

        ledger_by_payment: Dict[str, LedgerEntry] = {}
        for entry in ledger_entries:
            ledger_by_payment.setdefault(entry.payment_id, entry)

        window = RecentPaymentWindow(list(history) + payments)
        index_ms = (time.time() - start_time) * 1000

        def classify_one(payment: Payment) -> ReconciliationResult:
            with with_correlation(batch_id=batch_id):
                return self.reconcile_triple(
                    payment,
                    invoices_by_ref.get(_reference_key(payment.reference_note)),
                    ledger_by_payment.get(payment.payment_id),
                    window,
                )

        with with_correlation(batch_id=batch_id, stage="batch"):
            get_metrics().record_batch_started(len(payments))
            get_metrics().record_processing_time("index", index_ms)
            logger.info(
                f"Reconciling {len(payments)} payments",
                extra_fields={"workers": workers, "window_size": len(window)},
            )

            classify_start = time.time()
            if workers > 1 and len(payments) > 1:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    results = list(pool.map(classify_one, payments))
            else:
                results = [classify_one(payment) for payment in payments]
            get_metrics().record_processing_time("classify", (time.time() - classify_start) * 1000)

            duration_ms = (time.time() - start_time) * 1000
            get_metrics().record_batch_completed(duration_ms)
            logger.info(
                f"Reconciled {len(results)} payments",
                extra_fields={"duration_ms": round(duration_ms, 2)},
            )

        return results

    # =========================================================================
    # Re-scoring
    # =========================================================================

    def recheck_payer_names(
        self,
        results: Iterable[ReconciliationResult],
    ) -> List[ReconciliationResult]:
        """Re-run the payer-name rule against the current registry.

        Results with a matched invoice whose names no longer resolve to one
        entity are demoted; everything else is returned unchanged.
        """
        start_time = time.time()
        rechecked = []
        for result in results:
            invoice = result.matched_invoice
            if invoice is None:
                rechecked.append(result)
                continue

            issue = detect_payer_name_mismatch(result.payment, invoice, self.resolver)
            if issue is None:
                rechecked.append(result)
                continue

            demoted = demote_for_name_mismatch(result, issue, self.policy)
            if demoted is not result:
                get_metrics().record_demotion()
                logger.info(
                    f"Payer name mismatch found late for {result.payment.payment_id}",
                    extra_fields={
                        "old_score": result.confidence_score,
                        "new_score": demoted.confidence_score,
                    },
                )
            rechecked.append(demoted)

        get_metrics().record_processing_time("recheck", (time.time() - start_time) * 1000)
        return rechecked

    # =========================================================================
    # Reporting
    # =========================================================================

    def summarize(self, results: Iterable[ReconciliationResult]) -> ReconciliationSummary:
        """Summarize results using this engine's entity registry."""
        start_time = time.time()
        with with_correlation(stage="summarize"):
            summary = summarize(results, self.resolver)
        get_metrics().record_processing_time("summarize", (time.time() - start_time) * 1000)
        return summary

    def explain(self, result: ReconciliationResult) -> str:
        """Generate a human-readable explanation of a result."""
        payment = result.payment
        lines = ["=" * 60, "Reconciliation Explanation", "=" * 60]

        lines.append(f"Payment: {payment.payment_id} from '{payment.payer_name}'")
        lines.append(f"  Amount: {payment.amount} via {payment.method.value} on {payment.payment_date}")
        lines.append(f"  Reference: '{payment.reference_note}'")
        if result.matched_invoice:
            invoice = result.matched_invoice
            lines.append(f"Invoice: {invoice.invoice_id} for '{invoice.customer_name}' ({invoice.amount_due} due)")
        else:
            lines.append("Invoice: none matched")
        if result.ledger_entry:
            lines.append(f"Ledger entry: {result.ledger_entry.ledger_entry_id}")
        lines.append("")

        lines.append(f"Status: {result.status.value}")
        lines.append(f"Confidence: {result.confidence_score}%")

        if result.issues:
            lines.append("")
            lines.append("Issues:")
            for issue in result.issues:
                lines.append(f"  • [{issue.severity.value}] {issue.explain()}")

        lines.append("=" * 60)

        return "\n".join(lines)
