"""Reconciliation - payment classification engine.

Classifies each payment against its invoice and ledger entry: detects the
discrepancies present, derives a status and a confidence score, and
summarizes result collections for the dashboards.

Usage:
    from entity_resolver import EntityResolver, DEFAULT_SEED
    from reconciliation import ReconciliationEngine

    engine = ReconciliationEngine(EntityResolver(seed=DEFAULT_SEED))
    results = engine.reconcile_batch(payments, invoices, ledger_entries)

    for result in results:
        print(result.status.value, result.confidence_score)
"""

from reconciliation.models import (
    IssueKind,
    Severity,
    ReconciliationStatus,
    Issue,
    DuplicatePaymentIssue,
    MissingInvoiceIssue,
    AmountMismatchIssue,
    MissingLedgerEntryIssue,
    PayerNameMismatchIssue,
    ReconciliationResult,
)
from reconciliation.config import ReconciliationPolicy, DEFAULT_POLICY, load_environment, load_policy
from reconciliation.detectors import RecentPaymentWindow, detect_issues
from reconciliation.classifier import (
    classify,
    classify_status,
    score_confidence,
    demote_for_name_mismatch,
)
from reconciliation.summary import (
    ReconciliationSummary,
    SummaryAccumulator,
    summarize,
    summarize_parallel,
    build_entity_clusters,
)
from reconciliation.engine import ReconciliationEngine

__all__ = [
    # Models
    "IssueKind",
    "Severity",
    "ReconciliationStatus",
    "Issue",
    "DuplicatePaymentIssue",
    "MissingInvoiceIssue",
    "AmountMismatchIssue",
    "MissingLedgerEntryIssue",
    "PayerNameMismatchIssue",
    "ReconciliationResult",
    # Config
    "ReconciliationPolicy",
    "DEFAULT_POLICY",
    "load_environment",
    "load_policy",
    # Detection & classification
    "RecentPaymentWindow",
    "detect_issues",
    "classify",
    "classify_status",
    "score_confidence",
    "demote_for_name_mismatch",
    # Summary
    "ReconciliationSummary",
    "SummaryAccumulator",
    "summarize",
    "summarize_parallel",
    "build_entity_clusters",
    # Engine
    "ReconciliationEngine",
]
