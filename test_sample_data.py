"""
Sample Batch Test

The sample batch feeds the dashboards, so it must be reproducible and must
exercise every issue kind the engine can report.
"""

from datetime import date

import pytest


class TestSampleBatch:

    def test_same_seed_same_batch(self):
        from reconciliation.sample_data import generate_sample_batch

        assert generate_sample_batch(seed=9, days=10) == generate_sample_batch(seed=9, days=10)

    def test_different_seed_different_batch(self):
        from reconciliation.sample_data import generate_sample_batch

        assert generate_sample_batch(seed=1, days=10) != generate_sample_batch(seed=2, days=10)

    def test_dates_cover_requested_days(self):
        from reconciliation.sample_data import generate_sample_batch

        batch = generate_sample_batch(days=5, start=date(2024, 3, 1))
        dates = {p.payment_date for p in batch.payments}

        assert min(dates) == date(2024, 3, 1)
        assert max(dates) <= date(2024, 3, 5)

    def test_payment_ids_unique(self):
        from reconciliation.sample_data import generate_sample_batch

        batch = generate_sample_batch()
        ids = [p.payment_id for p in batch.payments]
        assert len(ids) == len(set(ids))

    def test_every_ledger_entry_references_a_payment(self):
        from reconciliation.sample_data import generate_sample_batch

        batch = generate_sample_batch()
        payment_ids = {p.payment_id for p in batch.payments}
        assert all(entry.payment_id in payment_ids for entry in batch.ledger_entries)

    def test_invalid_days(self):
        from reconciliation.sample_data import generate_sample_batch

        with pytest.raises(ValueError):
            generate_sample_batch(days=0)

    def test_all_statuses_and_issue_kinds_occur(self):
        from entity_resolver import DEFAULT_SEED, EntityResolver
        from reconciliation import IssueKind, ReconciliationEngine, ReconciliationStatus
        from reconciliation.sample_data import generate_sample_batch

        batch = generate_sample_batch(seed=42, days=90)
        results = ReconciliationEngine(EntityResolver(seed=DEFAULT_SEED)).reconcile_batch(
            batch.payments, batch.invoices, batch.ledger_entries,
        )

        statuses = {r.status for r in results}
        kinds = {kind for r in results for kind in r.issue_kinds}

        assert statuses == set(ReconciliationStatus)
        assert kinds == set(IssueKind)
