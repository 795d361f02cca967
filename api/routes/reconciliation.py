"""Reconciliation endpoints for the dashboards.

Classifies posted record batches and serves a reproducible sample batch for
the analytics views.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from core.models import Invoice, LedgerEntry, Payment
from reconciliation import ReconciliationEngine, ReconciliationResult, ReconciliationSummary
from reconciliation.sample_data import generate_sample_batch

from api.dependencies import get_engine


router = APIRouter()


class ReconcileRequest(BaseModel):
    """Records to reconcile in one pass."""
    payments: List[Payment]
    invoices: List[Invoice] = Field(default_factory=list)
    ledger_entries: List[LedgerEntry] = Field(default_factory=list)
    history: List[Payment] = Field(default_factory=list, description="Earlier payments for duplicate detection")


class ReconcileResponse(BaseModel):
    """Classified results and their summary."""
    results: List[ReconciliationResult]
    summary: ReconciliationSummary


def _run(engine: ReconciliationEngine, payments, invoices, ledger_entries, history=()) -> ReconcileResponse:
    results = engine.reconcile_batch(payments, invoices, ledger_entries, history=history)
    return ReconcileResponse(results=results, summary=engine.summarize(results))


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(
    request: ReconcileRequest,
    engine: ReconciliationEngine = Depends(get_engine),
) -> ReconcileResponse:
    """Reconcile a batch of payments against invoices and ledger entries."""
    return _run(engine, request.payments, request.invoices, request.ledger_entries, request.history)


@router.get("/sample", response_model=ReconcileResponse)
def sample(
    seed: int = Query(default=42),
    days: int = Query(default=30, ge=1, le=365),
    engine: ReconciliationEngine = Depends(get_engine),
) -> ReconcileResponse:
    """Reconcile a reproducible sample batch."""
    batch = generate_sample_batch(seed=seed, days=days)
    return _run(engine, batch.payments, batch.invoices, batch.ledger_entries)
