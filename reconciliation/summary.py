"""Portfolio-level summary of reconciliation results.

``summarize`` reduces a result collection in one pass. The work is done by
``SummaryAccumulator``, whose ``merge`` is associative and commutative (sums,
counts and set unions only), so chunks can be summarized in parallel and
merged in any order.
"""

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set

from pydantic import BaseModel, Field

from entity_resolver import EntityCluster, EntityResolver
from reconciliation.models import ReconciliationResult, ReconciliationStatus


class ReconciliationSummary(BaseModel):
    """Dashboard statistics over a set of reconciliation results.

    Attributes:
        total_results: Number of results
        status_counts: Results per status (every status present, maybe 0)
        total_confidence: Sum of confidence scores
        average_confidence: Mean confidence score (0 when empty)
        issue_counts: Issues per kind
        issue_amounts: Total payment amount carrying each issue kind
        total_amount: Total payment amount
        amount_by_status: Total payment amount per status
        entities: Per canonical payer entity: count, amount, observed names
        issues_by_date: Issue counts per payment date and kind
    """
    total_results: int = 0
    status_counts: Dict[str, int] = Field(default_factory=dict)
    total_confidence: int = 0
    average_confidence: float = 0.0
    issue_counts: Dict[str, int] = Field(default_factory=dict)
    issue_amounts: Dict[str, Decimal] = Field(default_factory=dict)
    total_amount: Decimal = Decimal("0")
    amount_by_status: Dict[str, Decimal] = Field(default_factory=dict)
    entities: Dict[str, EntityCluster] = Field(default_factory=dict)
    issues_by_date: Dict[date, Dict[str, int]] = Field(default_factory=dict)

    @property
    def reconciliation_rate(self) -> float:
        """Share of results that are fully reconciled."""
        if not self.total_results:
            return 0.0
        return self.status_counts.get(ReconciliationStatus.RECONCILED.value, 0) / self.total_results


class SummaryAccumulator:
    """Mutable running totals for one chunk of results."""

    def __init__(self, resolver: EntityResolver):
        self.resolver = resolver
        self.total_results = 0
        self.total_confidence = 0
        self.total_amount = Decimal("0")
        self.status_counts: Dict[str, int] = defaultdict(int)
        self.amount_by_status: Dict[str, Decimal] = defaultdict(Decimal)
        self.issue_counts: Dict[str, int] = defaultdict(int)
        self.issue_amounts: Dict[str, Decimal] = defaultdict(Decimal)
        self.entity_counts: Dict[str, int] = defaultdict(int)
        self.entity_amounts: Dict[str, Decimal] = defaultdict(Decimal)
        self.entity_variants: Dict[str, Set[str]] = defaultdict(set)
        self.issues_by_date: Dict[date, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def add(self, result: ReconciliationResult) -> "SummaryAccumulator":
        payment = result.payment
        status = result.status.value

        self.total_results += 1
        self.total_confidence += result.confidence_score
        self.total_amount += payment.amount
        self.status_counts[status] += 1
        self.amount_by_status[status] += payment.amount

        for issue in result.issues:
            kind = issue.kind.value
            self.issue_counts[kind] += 1
            self.issue_amounts[kind] += payment.amount
            self.issues_by_date[payment.payment_date][kind] += 1

        canonical = self.resolver.resolve(payment.payer_name).canonical_name
        self.entity_counts[canonical] += 1
        self.entity_amounts[canonical] += payment.amount
        self.entity_variants[canonical].add(payment.payer_name)

        return self

    def add_all(self, results: Iterable[ReconciliationResult]) -> "SummaryAccumulator":
        for result in results:
            self.add(result)
        return self

    def merge(self, other: "SummaryAccumulator") -> "SummaryAccumulator":
        """Fold another accumulator's totals into this one."""
        self.total_results += other.total_results
        self.total_confidence += other.total_confidence
        self.total_amount += other.total_amount

        for key, value in other.status_counts.items():
            self.status_counts[key] += value
        for key, amount in other.amount_by_status.items():
            self.amount_by_status[key] += amount
        for key, value in other.issue_counts.items():
            self.issue_counts[key] += value
        for key, amount in other.issue_amounts.items():
            self.issue_amounts[key] += amount
        for key, value in other.entity_counts.items():
            self.entity_counts[key] += value
        for key, amount in other.entity_amounts.items():
            self.entity_amounts[key] += amount
        for key, names in other.entity_variants.items():
            self.entity_variants[key] |= names
        for day, kinds in other.issues_by_date.items():
            for kind, value in kinds.items():
                self.issues_by_date[day][kind] += value

        return self

    def build(self) -> ReconciliationSummary:
        average = self.total_confidence / self.total_results if self.total_results else 0.0

        return ReconciliationSummary(
            total_results=self.total_results,
            status_counts={
                status.value: self.status_counts.get(status.value, 0)
                for status in ReconciliationStatus
            },
            total_confidence=self.total_confidence,
            average_confidence=round(average, 2),
            issue_counts=dict(self.issue_counts),
            issue_amounts=dict(self.issue_amounts),
            total_amount=self.total_amount,
            amount_by_status=dict(self.amount_by_status),
            entities={
                name: EntityCluster(
                    canonical_name=name,
                    count=self.entity_counts[name],
                    total_amount=self.entity_amounts[name],
                    variants=frozenset(self.entity_variants[name]),
                )
                for name in sorted(self.entity_counts)
            },
            issues_by_date={
                day: dict(kinds) for day, kinds in sorted(self.issues_by_date.items())
            },
        )


def summarize(
    results: Iterable[ReconciliationResult],
    resolver: EntityResolver,
) -> ReconciliationSummary:
    """Summarize results in a single pass.

    Args:
        results: Classified results
        resolver: Entity registry used to group payer names

    Returns:
        ReconciliationSummary
    """
    return SummaryAccumulator(resolver).add_all(results).build()


def summarize_parallel(
    results: Sequence[ReconciliationResult],
    resolver: EntityResolver,
    chunk_size: int = 500,
    max_workers: Optional[int] = None,
) -> ReconciliationSummary:
    """Summarize chunks on a thread pool and merge the partial totals."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")

    chunks: List[Sequence[ReconciliationResult]] = [
        results[i:i + chunk_size] for i in range(0, len(results), chunk_size)
    ]

    total = SummaryAccumulator(resolver)
    if not chunks:
        return total.build()

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        partials = pool.map(lambda chunk: SummaryAccumulator(resolver).add_all(chunk), chunks)
        for partial in partials:
            total.merge(partial)

    return total.build()


def build_entity_clusters(
    results: Iterable[ReconciliationResult],
    resolver: EntityResolver,
) -> List[EntityCluster]:
    """Group payer names of results into clusters, largest amount first."""
    clusters = summarize(results, resolver).entities.values()
    return sorted(clusters, key=lambda c: (-c.total_amount, c.canonical_name))
