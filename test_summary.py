"""
Summary Aggregation Test

Validates the dashboard summary:
1. Counts and totals per status, issue kind and canonical entity
2. Parallel summarization equals the single-pass summary
3. Merging partial accumulators is order-independent
"""

from datetime import date
from decimal import Decimal

import pytest


@pytest.fixture
def resolver():
    from entity_resolver import DEFAULT_SEED, EntityResolver
    return EntityResolver(seed=DEFAULT_SEED)


@pytest.fixture
def results(resolver):
    from core.models import Invoice, LedgerEntry, Payment
    from reconciliation import ReconciliationEngine

    payments = [
        Payment(payment_id="PAY-1", payer_name="Acme Corp", amount="100", payment_date="2024-01-01",
                method="ACH", reference_note="INV-1"),
        Payment(payment_id="PAY-2", payer_name="ACME CORP", amount="200", payment_date="2024-01-02",
                method="Wire", reference_note="INV-2"),
        Payment(payment_id="PAY-3", payer_name="Beta Inc", amount="300", payment_date="2024-01-02",
                method="Check", reference_note=""),
    ]
    invoices = [
        Invoice(invoice_id="INV-1", customer_name="Acme Corp", amount_due="100", due_date="2024-02-01"),
        Invoice(invoice_id="INV-2", customer_name="Acme Corp", amount_due="250", due_date="2024-02-01"),
    ]
    ledger = [
        LedgerEntry(ledger_entry_id="LED-1", invoice_id="INV-1", payment_id="PAY-1",
                    amount="100", entry_date="2024-01-01"),
        LedgerEntry(ledger_entry_id="LED-2", invoice_id="INV-2", payment_id="PAY-2",
                    amount="200", entry_date="2024-01-02"),
    ]
    return ReconciliationEngine(resolver).reconcile_batch(payments, invoices, ledger)


class TestSummarize:

    def test_status_counts(self, results, resolver):
        from reconciliation import summarize

        summary = summarize(results, resolver)

        assert summary.total_results == 3
        assert summary.status_counts == {
            "Reconciled": 1,
            "Partially Reconciled": 1,
            "Unreconciled": 1,
        }
        assert summary.reconciliation_rate == pytest.approx(1 / 3)

    def test_confidence(self, results, resolver):
        from reconciliation import summarize

        summary = summarize(results, resolver)

        # 90 + (70 - 2) + (50 - 3)
        assert summary.total_confidence == 205
        assert summary.average_confidence == pytest.approx(68.33)

    def test_issue_totals(self, results, resolver):
        from reconciliation import summarize

        summary = summarize(results, resolver)

        assert summary.issue_counts == {
            "amount_mismatch": 1,
            "missing_invoice": 1,
            "missing_ledger_entry": 1,
        }
        assert summary.issue_amounts["amount_mismatch"] == Decimal("200")
        assert summary.issue_amounts["missing_invoice"] == Decimal("300")
        assert summary.total_amount == Decimal("600")
        assert summary.amount_by_status["Unreconciled"] == Decimal("300")

    def test_entity_totals(self, results, resolver):
        from reconciliation import summarize

        summary = summarize(results, resolver)

        acme = summary.entities["Acme Corp"]
        assert acme.count == 2
        assert acme.total_amount == Decimal("300")
        assert acme.variants == frozenset({"Acme Corp", "ACME CORP"})
        assert summary.entities["Beta Inc"].count == 1

    def test_issues_by_date(self, results, resolver):
        from reconciliation import summarize

        summary = summarize(results, resolver)
        assert summary.issues_by_date == {
            date(2024, 1, 2): {
                "amount_mismatch": 1,
                "missing_invoice": 1,
                "missing_ledger_entry": 1,
            },
        }

    def test_empty(self, resolver):
        from reconciliation import summarize

        summary = summarize([], resolver)

        assert summary.total_results == 0
        assert summary.average_confidence == 0.0
        assert summary.status_counts["Reconciled"] == 0
        assert summary.reconciliation_rate == 0.0

    def test_engine_summarize(self, results, resolver):
        from reconciliation import ReconciliationEngine, summarize

        engine = ReconciliationEngine(resolver)
        assert engine.summarize(results) == summarize(results, resolver)

    def test_entity_clusters_sorted_by_amount(self, results, resolver):
        from reconciliation import build_entity_clusters

        clusters = build_entity_clusters(results, resolver)
        assert [c.canonical_name for c in clusters] == ["Acme Corp", "Beta Inc"]


class TestParallelSummary:

    def test_parallel_equals_sequential(self, resolver):
        from reconciliation import ReconciliationEngine, summarize, summarize_parallel
        from reconciliation.sample_data import generate_sample_batch

        batch = generate_sample_batch(seed=11, days=15)
        results = ReconciliationEngine(resolver).reconcile_batch(
            batch.payments, batch.invoices, batch.ledger_entries,
        )

        assert summarize_parallel(results, resolver, chunk_size=7, max_workers=4) == summarize(results, resolver)

    def test_merge_order_does_not_matter(self, results, resolver):
        from reconciliation import SummaryAccumulator

        parts = [SummaryAccumulator(resolver).add(result) for result in results]

        forward = SummaryAccumulator(resolver)
        for part in parts:
            forward.merge(part)

        backward = SummaryAccumulator(resolver)
        for part in reversed(parts):
            backward.merge(part)

        assert forward.build() == backward.build()

    def test_empty_parallel(self, resolver):
        from reconciliation import summarize_parallel
        assert summarize_parallel([], resolver).total_results == 0

    def test_invalid_chunk_size(self, resolver):
        from reconciliation import summarize_parallel

        with pytest.raises(ValueError):
            summarize_parallel([], resolver, chunk_size=0)
